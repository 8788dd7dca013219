"""
Conduit entry point.

This file handles startup concerns (arg-parsing, logging) and launches the appropriate interface
(API or CLI).
"""

import argparse
import logging
import sys

from conduit.config import settings

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
def _init_logging(level: str) -> None:
    numeric = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=numeric,
        format="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
        stream=sys.stdout,
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)


def build_parser() -> argparse.ArgumentParser:
    """Command-line options for ``conduit``."""
    parser = argparse.ArgumentParser(description="Run the Conduit tool-augmented chat agent")
    parser.add_argument(
        "--mode",
        choices=["api", "cli"],
        type=str.lower,
        default="api",
        help="Launch the REST API, or the interactive CLI client with the API (default: api)",
    )
    parser.add_argument(
        "--log-level",
        choices=["debug", "info", "warning", "error", "critical"],
        type=str.lower,
        default=settings.LOG_LEVEL,
        help="Logging level (default from env: %(default)s)",
    )
    return parser


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------
def main(argv: list[str] | None = None) -> None:
    """
    Main entry point for the Conduit application.

    Sets up logging and starts the API server, optionally with the CLI client in the foreground.
    """
    if argv is None:
        argv = sys.argv[1:]

    args = build_parser().parse_args(argv)

    # Override log level setting with command-line argument
    settings.LOG_LEVEL = args.log_level

    _init_logging(settings.LOG_LEVEL)

    logger.info("Starting Conduit [%s mode]", args.mode)
    logger.debug("Settings: %s", settings.model_dump())

    # Lazy import to avoid web dependencies at parse time
    from conduit.api.app import run_api  # pylint: disable=import-outside-toplevel

    if args.mode == "api":
        run_api(host="0.0.0.0", port=settings.API_PORT, reload=settings.DEBUG)
        return

    import threading  # pylint: disable=import-outside-toplevel

    # Start API server in a separate thread
    api_thread = threading.Thread(
        target=run_api,
        kwargs={
            "host": "0.0.0.0",
            "port": settings.API_PORT,
            "reload": False,  # Reload doesn't work well with threading
            "log_level": "warning",
        },
        daemon=True,
    )
    api_thread.start()

    from conduit.client.cli import run_cli  # pylint: disable=import-outside-toplevel

    run_cli()


if __name__ == "__main__":
    main()

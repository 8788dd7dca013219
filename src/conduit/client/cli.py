"""CLI client for the Conduit API."""

from __future__ import annotations

import logging
import time
from typing import (
    Any,
    Dict,
    Tuple,
    cast,
)

import httpx

from conduit.common import (
    AnsiColors,
    colored_print,
)
from conduit.config import settings

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# CLI Client
# ---------------------------------------------------------------------------
def get_user_message() -> Tuple[str, bool]:
    """
    Get a message from the user via standard input.

    Returns:
        Tuple of (user_input, success_flag)
        The success_flag is False if input couldn't be read (e.g., Ctrl+C)
    """
    try:
        user_input = input().strip()
        return user_input, True
    except (EOFError, KeyboardInterrupt):
        return "", False


def call_api(
    endpoint: str,
    data: Dict[str, Any],
    max_retries: int = 5,
    base_url: str | None = None,
    transport: httpx.BaseTransport | None = None,
) -> Dict[str, Any]:
    """Make a POST request to the API and return the response with retries."""
    api_url = f"{base_url or f'http://localhost:{settings.API_PORT}'}{endpoint}"
    # The loop may run several backend calls and 60 s tool timeouts per request
    timeout = settings.BACKEND_TIMEOUT * (settings.MAX_TOOL_ITERATIONS + 1)

    for attempt in range(max_retries):
        try:
            with httpx.Client(timeout=timeout, transport=transport) as client:
                response = client.post(api_url, json=data)
                response.raise_for_status()
                return cast(Dict[str, Any], response.json())
        except httpx.ConnectError as e:
            if attempt < max_retries - 1:
                retry_delay = 0.5 * (2**attempt)  # exponential backoff: 0.5s, 1s, 2s, 4s...
                logger.info(
                    "API not ready yet, retrying in %.1f seconds (attempt %d/%d)...",
                    retry_delay,
                    attempt + 1,
                    max_retries,
                )
                time.sleep(retry_delay)
                continue
            error_msg = f"Error connecting to API: {e}"
        except httpx.HTTPStatusError as e:
            logger.error("API request error: %s", str(e))
            error_msg = f"API error: {e.response.status_code}"
            try:
                detail = e.response.json().get("detail")
                if detail:
                    error_msg = f"API error: {detail}"
            except ValueError:
                logger.debug("Error response carried no JSON body")
        except httpx.HTTPError as e:
            logger.error("API request error: %s", str(e))
            error_msg = f"Error connecting to API: {e}"

        colored_print(error_msg, AnsiColors.RED)
        return {"reply": error_msg}

    # If we've exhausted all retries without returning
    error_msg = f"Failed to connect to API after {max_retries} attempts"
    colored_print(error_msg, AnsiColors.RED)
    return {"reply": error_msg}


def run_cli() -> None:
    """Run the CLI client that communicates with the API."""
    session_response = call_api("/sessions", {})
    session_id = session_response.get("session_id")

    if not session_id:
        colored_print("Failed to create a session", AnsiColors.RED)
        return

    colored_print("\nConduit shell - type 'exit' or 'quit' (or Ctrl+C) to exit", AnsiColors.GREEN)
    while True:
        colored_print("\nYou: ", AnsiColors.BLUE, end="")
        user_msg, ok = get_user_message()
        if not ok:
            break  # Exit if user input couldn't be retrieved (e.g., Ctrl+C)
        if user_msg.lower() in {"exit", "quit"}:
            break
        if not user_msg:
            continue

        response = call_api("/chat", {"message": user_msg, "session_id": session_id})

        status = response.get("status")
        if status and status != "done":
            colored_print(f"[{status}]", AnsiColors.RED)
        colored_print(response.get("reply", "No response from API"), AnsiColors.YELLOW)


if __name__ == "__main__":
    run_cli()

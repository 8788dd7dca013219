"""
Exception taxonomy for the orchestration loop.

Only :class:`BackendInvocationError` and :class:`IterationLimitExceeded` ever end a ``chat`` call
early.  The dispatch errors are raised inside the dispatcher and converted into failing
:class:`~conduit.core.schema.ToolResult` objects before they reach the loop, and
:class:`ToolCatalogLoadError` is logged while the catalog is built.
"""


class ConduitError(RuntimeError):
    """Base class for every error raised by Conduit."""


class ToolCatalogLoadError(ConduitError):
    """A declared tool could not be resolved from the registry."""


# ---------------------------------------------------------------------------
# Dispatch failures (degrade into a failing ToolResult)
# ---------------------------------------------------------------------------
class ToolNotFoundError(ConduitError):
    """The directive names a tool that is not in the agent's catalog."""


class ParameterParseError(ConduitError):
    """The directive body is not a JSON object."""


class ParameterValidationError(ConduitError):
    """The tool rejected the parsed parameters."""


class ToolTimeoutError(ConduitError):
    """The tool did not finish within the dispatch timeout."""


class ToolExecutionError(ConduitError):
    """The tool raised, or reported a failure."""


# ---------------------------------------------------------------------------
# Loop-terminating failures
# ---------------------------------------------------------------------------
class BackendInvocationError(ConduitError):
    """The completion backend failed to produce a response."""


class IterationLimitExceeded(ConduitError):
    """The model kept requesting tools after the iteration cap was reached."""

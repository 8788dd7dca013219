"""Dispatches tool-call directives against an agent's catalog and wraps every failure."""

import asyncio
import inspect
import json
import logging
from typing import (
    Any,
    Dict,
    List,
    Mapping,
    Sequence,
)

from conduit.core.errors import (
    ParameterParseError,
    ParameterValidationError,
    ToolExecutionError,
    ToolNotFoundError,
    ToolTimeoutError,
)
from conduit.core.schema import (
    PendingCall,
    ToolResult,
)
from conduit.tools import BaseTool
from conduit.tools.catalog import ToolCatalog

logger = logging.getLogger(__name__)

TOOL_TIMEOUT_SECONDS = 60.0


# ---------------------------------------------------------------------------
# Steps
# ---------------------------------------------------------------------------
def _lookup(call: PendingCall, catalog: ToolCatalog) -> BaseTool:
    tool = catalog.get_tool(call.tool_name)
    if tool is None:
        raise ToolNotFoundError("Tool not available")
    return tool


def _parse_params(call: PendingCall) -> Dict[str, Any]:
    try:
        params = json.loads(call.params_json)
    except (ValueError, RecursionError) as exc:
        # JSONDecodeError, oversized integer literals and runaway nesting
        raise ParameterParseError(f"Invalid JSON parameters: {exc}") from exc
    if not isinstance(params, dict):  # pragma: no cover - the braces guarantee an object
        raise ParameterParseError("Invalid JSON parameters: expected a JSON object")
    return params


def _validate(tool: BaseTool, call: PendingCall, params: Mapping[str, Any]) -> None:
    try:
        accepted = tool.validate(params)
    except Exception as exc:  # pylint: disable=broad-except
        logger.warning("Validator of tool '%s' raised: %s", call.tool_name, exc)
        accepted = False
    if not accepted:
        raise ParameterValidationError(f"Invalid parameters for tool {call.tool_name}")


async def _run_tool(tool: BaseTool, params: Dict[str, Any], context: Mapping[str, Any]) -> Any:
    """Run *tool*, awaiting any awaitable it returns; its errors become ToolExecutionError."""
    try:
        if inspect.iscoroutinefunction(tool.execute):
            outcome = await tool.execute(params, context)
        else:
            outcome = await asyncio.to_thread(tool.execute, params, context)
        if inspect.isawaitable(outcome):
            outcome = await outcome
    except Exception as exc:  # pylint: disable=broad-except
        raise ToolExecutionError(str(exc) or type(exc).__name__) from exc
    return outcome


async def _execute(
    tool: BaseTool,
    call: PendingCall,
    params: Dict[str, Any],
    context: Mapping[str, Any],
    timeout: float,
) -> ToolResult:
    try:
        outcome = await asyncio.wait_for(_run_tool(tool, params, context), timeout=timeout)
    except asyncio.TimeoutError as exc:
        raise ToolTimeoutError(f"Tool '{call.tool_name}' timed out after {timeout}s") from exc

    if isinstance(outcome, ToolResult):
        if not outcome.success:
            raise ToolExecutionError(outcome.error or f"Tool '{call.tool_name}' reported failure")
        return outcome
    return ToolResult.ok(outcome)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
async def dispatch_tool_call(
    call: PendingCall,
    catalog: ToolCatalog,
    context: Mapping[str, Any],
    timeout: float = TOOL_TIMEOUT_SECONDS,
) -> ToolResult:
    """
    Resolve, parse, validate and execute one pending call.

    Parameters
    ----------
    call:
        The directive found in the backend response.
    catalog:
        The agent's read-only tool catalog.
    context:
        Shared chat context handed to the tool unchanged.
    timeout:
        Seconds the tool may run before it is abandoned.

    Returns
    -------
    ToolResult
        Always exactly one result.  Failures at any step are reported as a failing result and
        later steps are skipped; in particular the tool is never executed with unparsable or
        rejected parameters.
    """
    try:
        tool = _lookup(call, catalog)
        params = _parse_params(call)
        _validate(tool, call, params)
        logger.debug("Executing tool '%s' with params=%s", call.tool_name, params)
        result = await _execute(tool, call, params, context, timeout)
    except ToolNotFoundError as exc:
        logger.warning("Tool not found: %s", call.tool_name)
        return ToolResult.failure(str(exc))
    except (ParameterParseError, ParameterValidationError) as exc:
        logger.warning("Rejected call to tool '%s': %s", call.tool_name, exc)
        return ToolResult.failure(str(exc))
    except (ToolTimeoutError, ToolExecutionError) as exc:
        logger.error("Tool %s execution failed: %s", call.tool_name, exc)
        return ToolResult.failure(str(exc))

    logger.debug("Tool '%s' returned: %s", call.tool_name, result)
    return result


async def dispatch_batch(
    calls: Sequence[PendingCall],
    catalog: ToolCatalog,
    context: Mapping[str, Any],
    timeout: float = TOOL_TIMEOUT_SECONDS,
) -> List[ToolResult]:
    """
    Dispatch every call concurrently and join them.

    The returned list is index-aligned with *calls*, whatever order the tools finish in.
    """
    if not calls:
        return []
    logger.info("Dispatching %d tool calls: %s", len(calls), [c.tool_name for c in calls])
    results = await asyncio.gather(
        *(dispatch_tool_call(call, catalog, context, timeout) for call in calls)
    )
    return list(results)


async def dispatch_sequential(
    calls: Sequence[PendingCall],
    catalog: ToolCatalog,
    context: Mapping[str, Any],
    timeout: float = TOOL_TIMEOUT_SECONDS,
) -> List[ToolResult]:
    """Dispatch *calls* one after another; same results as :func:`dispatch_batch`, serial timing."""
    return [await dispatch_tool_call(call, catalog, context, timeout) for call in calls]

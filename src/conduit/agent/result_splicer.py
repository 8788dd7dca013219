"""Replaces tool-call directives with the canonical result directive the model reads back."""

import json
import logging
from typing import (
    Any,
    Dict,
    Sequence,
)

from pydantic_core import (
    PydanticSerializationError,
    to_jsonable_python,
)

from conduit.core.schema import (
    PendingCall,
    ToolResult,
)

logger = logging.getLogger(__name__)

TOOL_RESULT_MARKER = "TOOL_RESULT:"


def build_result_json(tool_name: str, result: ToolResult | None) -> str:
    """
    Encode *result* as ``{"tool", "success", "result"|"error"}`` compact JSON.

    ``result`` is omitted when the value is *None*; ``error`` only appears on failures.  Never
    raises: if the value cannot be encoded a fixed error object is returned instead.
    """
    node: Dict[str, Any] = {"tool": tool_name}
    if result is None:
        node["success"] = False
        node["error"] = "null ToolResult"
    elif result.success:
        node["success"] = True
        if result.result is not None:
            node["result"] = result.result
    else:
        node["success"] = False
        node["error"] = result.error

    try:
        return json.dumps(
            node, separators=(",", ":"), ensure_ascii=False, default=to_jsonable_python
        )
    except (TypeError, ValueError, PydanticSerializationError) as exc:
        logger.error("Could not encode result of tool '%s': %s", tool_name, exc)
        return '{"tool":"' + tool_name + '","success":false,"error":"JSON encode error"}'


def splice_results(
    response: str, calls: Sequence[PendingCall], results: Sequence[ToolResult]
) -> str:
    """
    Rewrite *response*, replacing each call span with ``TOOL_RESULT: <name> <json>``.

    Spans are replaced from the last one to the first, so the offsets of the spans still to be
    processed stay valid however long the replacements are.
    """
    if len(calls) != len(results):
        raise ValueError(f"{len(calls)} tool calls but {len(results)} results")

    rebuilt = response
    for call, result in sorted(
        zip(calls, results), key=lambda pair: pair[0].start, reverse=True
    ):
        payload = build_result_json(call.tool_name, result)
        replacement = f"{TOOL_RESULT_MARKER} {call.tool_name} {payload}"
        rebuilt = rebuilt[: call.start] + replacement + rebuilt[call.end :]
    return rebuilt

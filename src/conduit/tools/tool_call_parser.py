"""
Scanner for tool-call directives embedded in free-form model output.

A directive looks like:
    TOOL_CALL: <name> {"param": "value", ...}
where <name> is made of letters, digits and underscores.  The body runs up to the brace that
balances the opening one; braces inside JSON string literals do not count, so nested objects and
arrays are allowed.  An unbalanced body ends at its first closing brace.
"""

import re
from typing import (
    List,
    Optional,
)

from conduit.core.schema import PendingCall

TOOL_CALL_MARKER = "TOOL_CALL:"

_HEAD_RE = re.compile(r"TOOL_CALL:\s*(\w+)\s*\{", re.ASCII)


# ---------------------------------------------------------------------------
# Small helpers
# ---------------------------------------------------------------------------
def _skip_string(s: str, i: int) -> Optional[int]:
    """Given s[i] == '"', return the index just past the closing quote (None if unterminated)."""
    i += 1
    while i < len(s):
        ch = s[i]
        if ch == "\\":
            i += 2
            continue
        if ch == '"':
            return i + 1
        i += 1
    return None


def _find_matching_brace(s: str, i: int) -> Optional[int]:
    """Given s[i] == '{', return the index just past its matching '}' (None if unbalanced)."""
    depth = 0
    while i < len(s):
        ch = s[i]
        if ch == '"':
            nxt = _skip_string(s, i)
            if nxt is None:
                return None
            i = nxt
            continue
        if ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return i + 1
        i += 1
    return None


# ---------------------------------------------------------------------------
# Public entry points
# ---------------------------------------------------------------------------
def find_tool_calls(text: str) -> List[PendingCall]:
    """
    Return every directive in *text*, left to right, with its exact span.

    When the braces never balance the body stops at the first closing brace instead, so the
    malformed parameters still reach the dispatcher.  A marker with no closing brace at all is
    ignored and scanning resumes right after it.
    """
    calls: List[PendingCall] = []
    pos = 0
    while True:
        match = _HEAD_RE.search(text, pos)
        if match is None:
            return calls
        open_idx = match.end() - 1
        end = _find_matching_brace(text, open_idx)
        if end is None:
            # Unbalanced body: fall back to the first closing brace, if any
            close_idx = text.find("}", open_idx + 1)
            if close_idx == -1:
                pos = match.start() + len(TOOL_CALL_MARKER)
                continue
            end = close_idx + 1
        calls.append(
            PendingCall(
                tool_name=match.group(1),
                raw_params=text[open_idx + 1 : end - 1],
                start=match.start(),
                end=end,
            )
        )
        pos = end


def has_tool_calls(text: str) -> bool:
    """True when *text* contains at least one directive."""
    return bool(find_tool_calls(text))

"""
Prompt rendering for agents.

Templates use two constructs:

* ``{{name}}`` is replaced by ``str(value)``, or by nothing when *name* is missing or *None*.
* ``{{#name}}...{{/name}}`` keeps its body only when *name* is present and truthy.

Substitution is a single pass: text inserted for a placeholder is never scanned again.
"""

import re
from typing import (
    Any,
    Mapping,
)

from conduit.core.schema import ToolSpecification

DEFAULT_SYSTEM_TEMPLATE = (
    "You are a helpful AI assistant named {{agent_name}}. {{agent_description}}{{available_tools}}"
)
DEFAULT_USER_TEMPLATE = (
    "{{user_message}}\n"
    "{{#knowledge_context}}Using this relevant knowledge:\n"
    "{{knowledge_context}}{{/knowledge_context}}"
)
TOOLS_PREAMBLE = (
    "\n\nYou have access to the following tools. To use a tool, respond with "
    'TOOL_CALL: toolName {"param1": "value"}\n\n'
)

_SECTION_RE = re.compile(r"\{\{#(\w+)\}\}(.*?)\{\{/\1\}\}", re.DOTALL)
_PLACEHOLDER_RE = re.compile(r"\{\{(\w+)\}\}")


def render_template(template: str, variables: Mapping[str, Any]) -> str:
    """Render *template* against *variables* (see module docstring)."""

    def _section(match: re.Match) -> str:
        return match.group(2) if variables.get(match.group(1)) else ""

    def _placeholder(match: re.Match) -> str:
        value = variables.get(match.group(1))
        return "" if value is None else str(value)

    return _PLACEHOLDER_RE.sub(_placeholder, _SECTION_RE.sub(_section, template))


def describe_tools(specifications: Mapping[str, ToolSpecification]) -> str:
    """Build the ``{{available_tools}}`` block, empty when there is nothing to advertise."""
    if not specifications:
        return ""
    lines = [TOOLS_PREAMBLE]
    for spec in specifications.values():
        line = f"- {spec.name}: {spec.description}"
        if spec.parameters:
            line += "\n  Parameters: "
            for param in spec.parameters:
                line += f"{param.name} ({param.type}) "
                if param.required:
                    line += "[required] "
                if param.description.strip():
                    line += f"- {param.description}"
                line += "; "
        lines.append(line + "\n")
    return "".join(lines)

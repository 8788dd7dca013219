"""
Schema definitions for agent <-> loop <-> tool messages.

These data models serve as the contract between the agent definition, the orchestration loop, and
individual tools.  We keep them separate from runtime logic so they can be imported anywhere without
side-effects.
"""

from typing import (
    Any,
    Dict,
    List,
    Optional,
)

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    model_validator,
)


class AgentDefinition(BaseModel):
    """Immutable configuration of one agent."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Agent name, injected as {{agent_name}}")
    description: str = Field("", description="Agent description, injected as {{agent_description}}")
    prompt_templates: Dict[str, str] = Field(
        default_factory=dict, description="Templates keyed by 'system' and 'user'"
    )
    configuration: Dict[str, Any] = Field(
        default_factory=dict, description="Extra template variables, override the caller context"
    )
    tools: List[str] = Field(default_factory=list, description="Names of tools this agent may use")


class ToolParameter(BaseModel):
    """One parameter accepted by a tool."""

    name: str
    type: str = "any"
    required: bool = False
    description: str = ""


class ToolSpecification(BaseModel):
    """Metadata the model is shown about a tool."""

    name: str
    description: str = ""
    parameters: List[ToolParameter] = Field(default_factory=list)


class ToolResult(BaseModel):
    """Outcome of one tool dispatch."""

    model_config = ConfigDict(frozen=True)

    success: bool
    result: Any = None
    error: Optional[str] = None

    @model_validator(mode="after")
    def _check_exclusive(self) -> "ToolResult":
        if self.success and self.error is not None:
            raise ValueError("a successful ToolResult cannot carry an error")
        if not self.success and self.result is not None:
            raise ValueError("a failed ToolResult cannot carry a result")
        return self

    @classmethod
    def ok(cls, value: Any = None) -> "ToolResult":
        """Build a successful result carrying *value* (may be ``None``)."""
        return cls(success=True, result=value)

    @classmethod
    def failure(cls, message: str) -> "ToolResult":
        """Build a failed result carrying *message*."""
        return cls(success=False, error=message)


class PendingCall(BaseModel):
    """A tool-call directive found in one backend response."""

    model_config = ConfigDict(frozen=True)

    tool_name: str
    raw_params: str = Field(..., description="Literal text between the outer braces")
    start: int = Field(..., ge=0, description="Offset of the 'TOOL_CALL:' marker")
    end: int = Field(..., ge=0, description="Offset just past the closing brace")

    @property
    def params_json(self) -> str:
        """The directive body re-wrapped as a JSON object."""
        return "{" + self.raw_params + "}"

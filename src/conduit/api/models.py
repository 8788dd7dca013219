"""
Pydantic models for Conduit API requests and responses.
This module defines the request and response schemas used by the Conduit API.
"""

from typing import (
    Any,
    Dict,
    Optional,
)

from pydantic import (
    BaseModel,
    Field,
)


# ---------------------------------------------------------------------------
# Pydantic request / response schema
# ---------------------------------------------------------------------------
class SessionResponse(BaseModel):
    """Response with session information."""

    session_id: str


class ChatRequest(BaseModel):
    """Incoming user message."""

    message: str = Field(..., description="User message, rendered as {{user_message}}")
    session_id: Optional[str] = Field(None, description="Session ID for conversation context")
    context: Dict[str, Any] = Field(
        default_factory=dict, description="Extra template variables and tool context"
    )


class ChatResponse(BaseModel):
    """API response returned to the caller."""

    reply: str
    session_id: str
    status: str = Field(..., description="Terminal loop state: done, limit_exceeded, ...")
    iterations: int = Field(..., description="Tool round trips performed")

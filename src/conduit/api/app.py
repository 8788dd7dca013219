"""
Core API backend for Conduit.

This module exposes a configured agent through a RESTful API used by frontends.
It exposes the following endpoints:
- **GET /health**       - liveness probe for health checks.
- **GET /tools**        - specifications of the tools the agent may call.
- **POST /sessions**    - create a new session, returns a session ID.
- **GET /sessions**     - list all active sessions.
- **POST /chat**        - one conversation turn: {"message": "...", "session_id": "..."}
- **POST /chat/stream** - same turn, reply streamed back word by word.
"""

import importlib
import logging
import uuid
from functools import lru_cache
from pathlib import Path
from typing import (
    TYPE_CHECKING,
    Any,
    Dict,
    Iterable,
    List,
    Optional,
    Tuple,
)

from fastapi import (
    Depends,
    FastAPI,
)
from fastapi.responses import StreamingResponse

from conduit.agent.agent_loop import (
    ChatOutcome,
    ConfigurableAgent,
)
from conduit.agent.backend_interface import load_backend
from conduit.api.models import (
    ChatRequest,
    ChatResponse,
    SessionResponse,
)
from conduit.common import (
    AnsiColors,
    colored_print,
    word_chunks,
)
from conduit.config import settings
from conduit.core.schema import (
    AgentDefinition,
    ToolSpecification,
)
from conduit.tools import default_registry

if TYPE_CHECKING:
    from conduit.memory.vector_memory import VectorMemory

logger = logging.getLogger(__name__)

# Session storage (in-memory for now, could be moved to a database)
sessions: Dict[str, List[str]] = {}

app = FastAPI(title="Conduit API", version="0.1.0", description="Tool-augmented chat agent API")


# ---------------------------------------------------------------------------
# Agent wiring
# ---------------------------------------------------------------------------
def load_agent_definition() -> AgentDefinition:
    """Read the agent definition from ``AGENT_DEFINITION_FILE`` or the inline settings."""
    if settings.AGENT_DEFINITION_FILE:
        path = Path(settings.AGENT_DEFINITION_FILE)
        logger.info("Loading agent definition from %s", path)
        return AgentDefinition.model_validate_json(path.read_text(encoding="utf-8"))
    return AgentDefinition(
        name=settings.AGENT_NAME,
        description=settings.AGENT_DESCRIPTION,
        tools=settings.AGENT_TOOLS,
    )


def import_tool_modules(modules: Iterable[str]) -> None:
    """Import *modules* so that their ``@register_tool`` decorators run."""
    for module in modules:
        logger.debug("Importing tool module %s", module)
        importlib.import_module(module)


@lru_cache(maxsize=1)
def get_agent() -> ConfigurableAgent:
    """Build the process-wide agent on first use."""
    import_tool_modules(settings.TOOL_MODULES)
    return ConfigurableAgent(
        load_agent_definition(),
        load_backend(),
        default_registry,
        max_iterations=settings.MAX_TOOL_ITERATIONS,
        tool_timeout=settings.TOOL_TIMEOUT_SECONDS,
    )


@lru_cache(maxsize=1)
def get_knowledge_store() -> Optional["VectorMemory"]:
    """Return the knowledge store, or *None* when retrieval is disabled."""
    if not settings.KNOWLEDGE_ENABLED:
        return None
    # Lazy import - chromadb is an optional dependency
    from conduit.memory.vector_memory import (  # pylint: disable=import-outside-toplevel
        VectorMemory,
    )

    return VectorMemory(host=settings.VECTOR_DB_HOST, port=settings.VECTOR_DB_PORT)


# ---------------------------------------------------------------------------
# Helper functions
# ---------------------------------------------------------------------------
def get_or_create_session(session_id: Optional[str] = None) -> str:
    """Get existing session or create a new one."""
    if session_id and session_id in sessions:
        return session_id

    new_session_id = str(uuid.uuid4())
    sessions[new_session_id] = []
    return new_session_id


def build_context(
    req: ChatRequest, history: List[str], knowledge: Optional["VectorMemory"]
) -> Dict[str, Any]:
    """Assemble the chat context: caller variables, the message, and ``knowledge_context``."""
    context: Dict[str, Any] = dict(req.context)
    context["user_message"] = req.message
    if context.get("knowledge_context"):
        return context

    context_parts: List[str] = []

    # Retrieved knowledge first, clearly labeled
    if knowledge is not None:
        similar = knowledge.query(req.message, k=settings.KNOWLEDGE_TOP_K)
        if similar:
            context_parts.append(
                "RELEVANT INFORMATION FROM PAST CONVERSATIONS:\n" + "\n\n".join(similar)
            )

    # Conversation history in chronological order
    if history:
        context_parts.append("PREVIOUS CONVERSATION:\n" + "\n".join(history[-3:]))

    context["knowledge_context"] = "\n\n".join(context_parts)
    return context


async def run_turn(
    req: ChatRequest, agent: ConfigurableAgent, knowledge: Optional["VectorMemory"]
) -> Tuple[str, ChatOutcome]:
    """Run one turn for *req* and record it in the session (and knowledge store)."""
    session_id = get_or_create_session(req.session_id)
    context = build_context(req, sessions[session_id], knowledge)
    logger.debug("Chat context: %s", context)

    outcome = await agent.run(context)

    exchange = f"User: {req.message}\nAssistant: {outcome.reply}"
    sessions[session_id].append(exchange)
    if knowledge is not None:
        knowledge.remember_exchange(req.message, outcome.reply, agent.definition.name)
    return session_id, outcome


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------
@app.get("/health", summary="Health check")
async def health() -> dict[str, str]:
    """Return a simple liveness payload."""
    return {"status": "ok"}


@app.get("/tools", response_model=List[ToolSpecification], summary="List available tools")
async def list_tools(agent: ConfigurableAgent = Depends(get_agent)) -> List[ToolSpecification]:
    """List the tools advertised to the model."""
    return list(agent.catalog.specifications.values())


@app.post("/sessions", response_model=SessionResponse, summary="Create a new session")
async def create_session() -> SessionResponse:
    """Create a new conversation session."""
    session_id = get_or_create_session()
    return SessionResponse(session_id=session_id)


@app.get("/sessions", response_model=List[str], summary="List active sessions")
async def list_sessions() -> List[str]:
    """List all active session IDs."""
    return list(sessions.keys())


@app.post("/chat", response_model=ChatResponse, summary="Process a message")
async def chat_endpoint(
    req: ChatRequest,
    agent: ConfigurableAgent = Depends(get_agent),
    knowledge: Any = Depends(get_knowledge_store),
) -> ChatResponse:
    """Process a user message with optional session context."""
    session_id, outcome = await run_turn(req, agent, knowledge)
    return ChatResponse(
        reply=outcome.reply,
        session_id=session_id,
        status=outcome.state.value,
        iterations=outcome.iterations,
    )


@app.post("/chat/stream", summary="Process a message and stream the reply")
async def chat_stream_endpoint(
    req: ChatRequest,
    agent: ConfigurableAgent = Depends(get_agent),
    knowledge: Any = Depends(get_knowledge_store),
) -> StreamingResponse:
    """Same as ``/chat`` but the reply comes back as plain-text word chunks."""
    session_id, outcome = await run_turn(req, agent, knowledge)
    return StreamingResponse(
        iter(word_chunks(outcome.reply)),
        media_type="text/plain",
        headers={"X-Session-Id": session_id},
    )


# ---------------------------------------------------------------------------
# Public helper to launch the API (imported by main.py)
# ---------------------------------------------------------------------------
def run_api(
    host: str = "0.0.0.0", port: int = 8000, reload: bool = False, log_level: str | None = None
) -> None:
    """Start a uvicorn server hosting *app*.

    Parameters
    ----------
    host, port:
        Bind address for the HTTP server.
    reload:
        If *True*, enable auto-reload (useful in dev docker-compose).
    log_level:
        Logging level to use (default from settings if not provided).
    """

    # Lazy import - keeps uvicorn an optional dependency at pkg-import time
    import uvicorn  # pylint: disable=import-outside-toplevel

    if log_level is None:  # Use the default from settings if not provided
        log_level = settings.LOG_LEVEL

    logger.info(
        "Starting Conduit API at %s:%d (reload=%s, log_level=%s)", host, port, reload, log_level
    )
    logger.debug("API settings: %s", settings.model_dump())

    colored_print(f"Conduit API is running at http://localhost:{port}.", AnsiColors.GREEN)
    colored_print(f"Visit http://localhost:{port}/docs for API documentation.", AnsiColors.BLUE)
    uvicorn.run(
        "conduit.api.app:app",
        host=host,
        port=port,
        reload=reload,
        log_level=log_level,
    )


# ---------------------------------------------------------------------------
# `python -m conduit.api.app` helper
# ---------------------------------------------------------------------------
if __name__ == "__main__":
    run_api(reload=True)

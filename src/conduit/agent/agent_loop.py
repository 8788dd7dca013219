"""
Main orchestration loop for Conduit.

One :meth:`ConfigurableAgent.chat` call renders the prompt, then alternates between the completion
backend and the agent's tools:

    AWAITING_MODEL --no directive--> DONE
        |  directive, iterations < cap
        v
    TOOL_EXECUTION --splice + append--> AWAITING_MODEL

The cap is checked before every backend call, so a model that never stops asking for tools gets
exactly ``max_iterations`` backend calls.  A backend failure ends the call at once.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import (
    dataclass,
    field,
)
from datetime import datetime
from enum import Enum
from typing import (
    Any,
    Callable,
    Dict,
    List,
    Mapping,
    Optional,
)

from conduit.agent.backend_interface import BaseBackend
from conduit.agent.prompt_templates import (
    DEFAULT_SYSTEM_TEMPLATE,
    DEFAULT_USER_TEMPLATE,
    describe_tools,
    render_template,
)
from conduit.agent.result_splicer import splice_results
from conduit.agent.tool_executor import (
    TOOL_TIMEOUT_SECONDS,
    dispatch_batch,
)
from conduit.common import word_chunks
from conduit.core.errors import (
    BackendInvocationError,
    ConduitError,
    IterationLimitExceeded,
)
from conduit.core.schema import AgentDefinition
from conduit.tools import (
    ToolRegistry,
    default_registry,
)
from conduit.tools.catalog import (
    ToolCatalog,
    build_catalog,
)
from conduit.tools.tool_call_parser import find_tool_calls

logger = logging.getLogger(__name__)

MAX_TOOL_ITERATIONS = 5

FOLLOW_UP_INSTRUCTION = "\n\nPlease provide a final response based on the tool results: "
BACKEND_FAILURE_MESSAGE = (
    "I encountered an error while processing your request. Please try again."
)
LIMIT_EXCEEDED_MESSAGE = (
    "I'm sorry, but I couldn't complete your request due to too many tool interactions."
)


class LoopState(Enum):
    """States of one chat invocation."""

    AWAITING_MODEL = "awaiting_model"
    TOOL_EXECUTION = "tool_execution"
    DONE = "done"
    LIMIT_EXCEEDED = "limit_exceeded"
    BACKEND_FAILURE = "backend_failure"


@dataclass
class ChatOutcome:
    """Everything one chat invocation produced."""

    reply: str
    state: LoopState
    iterations: int
    backend_calls: int
    transcript: str
    error: Optional[ConduitError] = None
    responses: List[str] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Agent
# ---------------------------------------------------------------------------
class ConfigurableAgent:
    """
    An agent defined by an :class:`AgentDefinition`, talking to one backend.

    The tool catalog is resolved from *registry* once, here, and never changes afterwards.
    """

    def __init__(
        self,
        definition: AgentDefinition,
        backend: BaseBackend,
        registry: ToolRegistry | None = None,
        *,
        max_iterations: int = MAX_TOOL_ITERATIONS,
        tool_timeout: float = TOOL_TIMEOUT_SECONDS,
        clock: Callable[[], datetime] = datetime.now,
    ):
        if max_iterations < 0:
            raise ValueError("max_iterations must be >= 0")
        self._definition = definition
        self._backend = backend
        self._max_iterations = max_iterations
        self._tool_timeout = tool_timeout
        self._clock = clock
        self._catalog: ToolCatalog = build_catalog(
            definition.tools, registry if registry is not None else default_registry
        )
        logger.info("Agent %s initialized with %d tools", definition.name, len(self._catalog))

    @property
    def definition(self) -> AgentDefinition:
        return self._definition

    @property
    def catalog(self) -> ToolCatalog:
        return self._catalog

    @property
    def max_iterations(self) -> int:
        return self._max_iterations

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #
    async def chat(self, context: Mapping[str, Any]) -> str:
        """Run one conversation turn and return the reply text."""
        outcome = await self.run(context)
        return outcome.reply

    async def stream_chat(self, context: Mapping[str, Any]) -> List[str]:
        """Run :meth:`chat` and return the reply split into word chunks."""
        return word_chunks(await self.chat(context))

    async def run(self, context: Mapping[str, Any]) -> ChatOutcome:
        """Run one conversation turn and return the full :class:`ChatOutcome`."""
        system_prompt = self.render_system_prompt(context)
        user_prompt = self.render_user_prompt(context)
        logger.debug("System prompt: %s", system_prompt)
        logger.debug("User prompt: %s", user_prompt)

        full_prompt = f"{system_prompt}\n\nUser: {user_prompt}\nAssistant: "
        return await self._run_loop(full_prompt, dict(context))

    # ------------------------------------------------------------------ #
    # Core logic
    # ------------------------------------------------------------------ #
    async def _run_loop(self, prompt: str, context: Dict[str, Any]) -> ChatOutcome:
        transcript: List[str] = [prompt]
        responses: List[str] = []
        iteration = 0

        while iteration < self._max_iterations:
            logger.debug("%s (iteration %d)", LoopState.AWAITING_MODEL.value, iteration)
            try:
                response = await self._complete("".join(transcript))
            except BackendInvocationError as exc:
                logger.exception("Error during chat execution")
                return ChatOutcome(
                    reply=BACKEND_FAILURE_MESSAGE,
                    state=LoopState.BACKEND_FAILURE,
                    iterations=iteration,
                    backend_calls=len(responses) + 1,
                    transcript="".join(transcript),
                    error=exc,
                    responses=responses,
                )
            responses.append(response)
            logger.debug("AI response: %s", response)

            calls = find_tool_calls(response)
            if not calls:
                return ChatOutcome(
                    reply=response,
                    state=LoopState.DONE,
                    iterations=iteration,
                    backend_calls=len(responses),
                    transcript="".join(transcript),
                    responses=responses,
                )

            logger.debug("%s: %d tool calls", LoopState.TOOL_EXECUTION.value, len(calls))
            results = await dispatch_batch(calls, self._catalog, context, self._tool_timeout)
            transcript.append(splice_results(response, calls, results))
            transcript.append(FOLLOW_UP_INSTRUCTION)
            iteration += 1

        error = IterationLimitExceeded(
            f"Maximum tool execution iterations ({self._max_iterations}) reached"
        )
        logger.warning("%s", error)
        return ChatOutcome(
            reply=LIMIT_EXCEEDED_MESSAGE,
            state=LoopState.LIMIT_EXCEEDED,
            iterations=iteration,
            backend_calls=len(responses),
            transcript="".join(transcript),
            error=error,
            responses=responses,
        )

    async def _complete(self, prompt: str) -> str:
        try:
            return await asyncio.to_thread(self._backend.complete, prompt)
        except BackendInvocationError:
            raise
        except Exception as exc:  # pylint: disable=broad-except
            raise BackendInvocationError(str(exc) or type(exc).__name__) from exc

    # ------------------------------------------------------------------ #
    # Prompt helpers
    # ------------------------------------------------------------------ #
    def render_system_prompt(self, context: Mapping[str, Any]) -> str:
        """Render the system prompt, advertising the catalog's tools."""
        variables: Dict[str, Any] = dict(context)
        variables["agent_name"] = self._definition.name
        variables["agent_description"] = self._definition.description
        variables["current_datetime"] = self._clock().isoformat(timespec="seconds")
        variables.update(self._definition.configuration)
        variables["available_tools"] = describe_tools(self._catalog.specifications)

        template = self._definition.prompt_templates.get("system") or DEFAULT_SYSTEM_TEMPLATE
        return render_template(template, variables)

    def render_user_prompt(self, context: Mapping[str, Any]) -> str:
        """Render the user prompt; ``knowledge_context`` defaults to empty."""
        variables: Dict[str, Any] = dict(context)
        variables.setdefault("knowledge_context", "")

        template = self._definition.prompt_templates.get("user") or DEFAULT_USER_TEMPLATE
        return render_template(template, variables)

"""Shared fakes for the test-suite."""

import asyncio
from datetime import datetime
from typing import (
    Any,
    Callable,
    List,
    Mapping,
    Sequence,
)

import pytest

from conduit.agent.backend_interface import BaseBackend
from conduit.core.schema import (
    AgentDefinition,
    ToolParameter,
    ToolResult,
)
from conduit.tools import (
    BaseTool,
    ToolRegistry,
    register_tool,
)

FIXED_NOW = datetime(2024, 5, 1, 12, 30, 0)


class ScriptedBackend(BaseBackend):
    """Returns canned responses in order and records every prompt it receives."""

    def __init__(self, responses: Sequence[str] | Callable[[int], str]):
        self._responses = responses
        self.prompts: List[str] = []

    def complete(self, prompt: str) -> str:
        self.prompts.append(prompt)
        index = len(self.prompts) - 1
        if callable(self._responses):
            return self._responses(index)
        return self._responses[index]

    @property
    def calls(self) -> int:
        return len(self.prompts)


class FailingBackend(BaseBackend):
    """Always raises, like an unreachable service."""

    def __init__(self) -> None:
        self.calls = 0

    def complete(self, prompt: str) -> str:
        self.calls += 1
        raise ConnectionError("backend unreachable")


class RecordingTool(BaseTool):
    """Counts validations and executions; returns a fixed value after an optional delay."""

    name = "record"
    description = "Records how it was called"
    parameters = [ToolParameter(name="value", type="str", required=True)]

    def __init__(self, value: Any = "recorded", delay: float = 0.0):
        self.value = value
        self.delay = delay
        self.validated = 0
        self.executed: List[Mapping[str, Any]] = []

    def validate(self, params: Mapping[str, Any]) -> bool:
        self.validated += 1
        return super().validate(params)

    async def execute(self, params: Mapping[str, Any], context: Mapping[str, Any]) -> ToolResult:
        self.executed.append(dict(params))
        if self.delay:
            await asyncio.sleep(self.delay)
        return ToolResult.ok(self.value)


@pytest.fixture
def registry() -> ToolRegistry:
    """A fresh registry with a few function tools."""
    reg = ToolRegistry()

    @register_tool("search", registry=reg)
    def search(q: str) -> str:
        """Search the web."""
        return "sunny" if q == "weather" else f"no results for {q}"

    @register_tool("add", registry=reg)
    def add(a: int, b: int) -> int:
        """Return the sum of two integers."""
        return a + b

    @register_tool("nap", registry=reg)
    async def nap(seconds: float, label: str = "") -> str:
        """Sleep, then return the label."""
        await asyncio.sleep(seconds)
        return label

    @register_tool("explode", registry=reg)
    def explode() -> None:
        """Always fails."""
        raise RuntimeError("kaboom")

    @register_tool("whoami", registry=reg)
    def whoami(context: Mapping[str, Any]) -> str:
        """Return the user from the shared context."""
        return str(context.get("user"))

    return reg


@pytest.fixture
def definition() -> AgentDefinition:
    return AgentDefinition(
        name="Tester",
        description="Answers test questions.",
        tools=["search", "add", "nap", "explode", "whoami"],
    )


def fixed_clock() -> datetime:
    return FIXED_NOW


@pytest.fixture
def clock() -> Callable[[], datetime]:
    return fixed_clock


@pytest.fixture
def scripted_backend() -> Callable[..., ScriptedBackend]:
    """Factory: ``scripted_backend(["first", "second"])`` or ``scripted_backend(lambda i: ...)``."""
    return ScriptedBackend


@pytest.fixture
def failing_backend() -> FailingBackend:
    return FailingBackend()


@pytest.fixture
def recording_tool() -> Callable[..., RecordingTool]:
    """Factory for :class:`RecordingTool` instances."""
    return RecordingTool

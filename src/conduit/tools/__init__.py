"""
Tool registry for Conduit.

This module defines the capability contract every tool satisfies (:class:`BaseTool`), an adapter
that turns a plain function into a tool (:class:`FunctionTool`), and a registry to look tools up
by name.  Agents query the registry once, at construction time, to build their catalog.
"""

import asyncio
import inspect
import logging
from abc import (
    ABC,
    abstractmethod,
)
from typing import (
    Any,
    Callable,
    ClassVar,
    Dict,
    List,
    Mapping,
    Optional,
    Tuple,
    get_type_hints,
)

from conduit.core.schema import (
    ToolParameter,
    ToolSpecification,
    ToolResult,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Capability contract
# ---------------------------------------------------------------------------
class BaseTool(ABC):
    """
    A capability the model can invoke with a ``TOOL_CALL:`` directive.

    Subclasses set :attr:`name`, :attr:`description` and :attr:`parameters` and implement
    :meth:`execute`.  ``execute`` may be a coroutine function; synchronous implementations are run
    on a worker thread by the dispatcher.
    """

    name: ClassVar[str] = ""
    description: ClassVar[str] = ""
    parameters: ClassVar[List[ToolParameter]] = []

    def specification(self) -> ToolSpecification:
        """Return the metadata shown to the model."""
        return ToolSpecification(
            name=self.name, description=self.description, parameters=list(self.parameters)
        )

    def validate(self, params: Mapping[str, Any]) -> bool:
        """Return *True* when every required parameter is present."""
        return all(p.name in params for p in self.parameters if p.required)

    @abstractmethod
    def execute(self, params: Mapping[str, Any], context: Mapping[str, Any]) -> Any:
        """Run the tool.  Return a :class:`ToolResult` or a bare value (treated as success)."""


class FunctionTool(BaseTool):
    """Expose a plain (sync or async) function as a tool.

    The specification is derived from the function signature and docstring.  A parameter called
    ``context`` is not shown to the model; it receives the shared chat context instead.
    """

    def __init__(self, name: str, fn: Callable[..., Any], description: str | None = None):
        self._fn = fn
        self._signature = inspect.signature(fn)
        self._tool_name = name
        self._description = description if description is not None else inspect.getdoc(fn) or ""
        self._accepts_context = "context" in self._signature.parameters
        self._accepts_any = any(
            p.kind == inspect.Parameter.VAR_KEYWORD for p in self._signature.parameters.values()
        )

    @property  # type: ignore[override]
    def name(self) -> str:  # pylint: disable=invalid-overridden-method
        return self._tool_name

    @property  # type: ignore[override]
    def description(self) -> str:  # pylint: disable=invalid-overridden-method
        return self._description

    @property  # type: ignore[override]
    def parameters(self) -> List[ToolParameter]:  # pylint: disable=invalid-overridden-method
        try:
            type_hints = get_type_hints(self._fn)
        except (NameError, TypeError):
            type_hints = {}
        params: List[ToolParameter] = []
        for param_name, param in self._signature.parameters.items():
            if param_name == "context" or param.kind in (
                inspect.Parameter.VAR_POSITIONAL,
                inspect.Parameter.VAR_KEYWORD,
            ):
                continue
            param_type = type_hints.get(param_name, "any")
            params.append(
                ToolParameter(
                    name=param_name,
                    type=getattr(param_type, "__name__", str(param_type)),
                    required=param.default is inspect.Parameter.empty,
                )
            )
        return params

    def validate(self, params: Mapping[str, Any]) -> bool:
        """Reject missing required parameters and, unless ``**kwargs`` is declared, unknown ones."""
        declared = self.parameters
        if not all(p.name in params for p in declared if p.required):
            return False
        if self._accepts_any:
            return True
        known = {p.name for p in declared}
        return all(key in known for key in params)

    async def execute(self, params: Mapping[str, Any], context: Mapping[str, Any]) -> Any:
        kwargs = dict(params)
        if self._accepts_context:
            kwargs["context"] = context
        if inspect.iscoroutinefunction(self._fn):
            return await self._fn(**kwargs)
        return await asyncio.to_thread(self._fn, **kwargs)


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------
class ToolRegistry:
    """Name -> tool lookup consulted when an agent builds its catalog."""

    def __init__(self) -> None:
        self._tools: Dict[str, BaseTool] = {}

    def register(self, tool: BaseTool) -> BaseTool:
        """
        Register *tool* under its name.

        Raises
        ------
        ValueError
            If a tool with the same name is already registered.
        """
        if tool.name in self._tools:
            raise ValueError(f"Tool '{tool.name}' is already registered.")
        logger.debug("Registering tool '%s'", tool.name)
        self._tools[tool.name] = tool
        return tool

    def resolve(self, name: str) -> Tuple[Optional[ToolSpecification], Optional[BaseTool]]:
        """Return ``(specification, tool)`` for *name*; both are *None* when it is unknown."""
        tool = self._tools.get(name)
        if tool is None:
            return None, None
        return tool.specification(), tool

    def names(self) -> List[str]:
        """Names of all registered tools, in registration order."""
        return list(self._tools)

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)


default_registry = ToolRegistry()
"""Process-wide registry filled by :func:`register_tool`."""


def register_tool(
    name: str, registry: ToolRegistry | None = None, description: str | None = None
) -> Callable:
    """
    Register a function as a tool with the given name.

    The function is registered as a decorator, so it can be used like this:
        @register_tool("search")
        def search(q: str) -> str:
            ...

    Parameters
    ----------
    name: str
        The name the model uses in ``TOOL_CALL: <name> {...}``.  Must be unique in the registry.
    registry: ToolRegistry | None
        Target registry, :data:`default_registry` when omitted.
    description: str | None
        Overrides the function docstring as the tool description.

    Raises
    ------
    ValueError
        If a tool with the same name is already registered.
    """
    target = registry if registry is not None else default_registry

    def wrapper(fn: Callable) -> Callable:
        target.register(FunctionTool(name, fn, description=description))
        return fn

    return wrapper


__all__ = [
    "BaseTool",
    "FunctionTool",
    "ToolRegistry",
    "ToolResult",
    "default_registry",
    "register_tool",
]

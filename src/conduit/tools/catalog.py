"""Per-agent, read-only view of the tools it is allowed to use."""

import logging
from dataclasses import (
    dataclass,
    field,
)
from types import MappingProxyType
from typing import (
    Iterable,
    Mapping,
    Optional,
)

from conduit.core.errors import ToolCatalogLoadError
from conduit.core.schema import ToolSpecification
from conduit.tools import (
    BaseTool,
    ToolRegistry,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ToolCatalog:
    """Two parallel mappings: name -> specification and name -> tool."""

    specifications: Mapping[str, ToolSpecification] = field(
        default_factory=lambda: MappingProxyType({})
    )
    tools: Mapping[str, BaseTool] = field(default_factory=lambda: MappingProxyType({}))

    def get_tool(self, name: str) -> Optional[BaseTool]:
        """Return the executable tool for *name*, or *None*."""
        return self.tools.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self.tools

    def __len__(self) -> int:
        return len(self.tools)


def _load_one(registry: ToolRegistry, name: str) -> tuple:
    try:
        return registry.resolve(name)
    except Exception as exc:  # pylint: disable=broad-except
        raise ToolCatalogLoadError(f"Failed to load tool {name}: {exc}") from exc


def build_catalog(names: Iterable[str], registry: ToolRegistry) -> ToolCatalog:
    """
    Resolve every declared tool name against *registry*.

    A name that fails to resolve is logged and left out; the catalog may therefore be a strict
    subset of *names*.  Specification and tool are kept independently, so a tool can be executable
    without being advertised in the prompt and vice versa.
    """
    specifications: dict[str, ToolSpecification] = {}
    tools: dict[str, BaseTool] = {}
    for name in names:
        try:
            spec, tool = _load_one(registry, name)
        except ToolCatalogLoadError as exc:
            logger.warning("%s", exc)
            continue
        if spec is not None:
            specifications[name] = spec
            logger.debug("Loaded tool specification for %s: %s", name, spec)
        if tool is not None:
            tools[name] = tool
            logger.debug("Loaded tool instance for %s", name)
        if spec is None and tool is None:
            logger.warning("Tool %s is not registered", name)
    return ToolCatalog(
        specifications=MappingProxyType(specifications), tools=MappingProxyType(tools)
    )

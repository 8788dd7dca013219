"""Tests for the tool registry, function tools and the per-agent catalog."""

from typing import (
    Any,
    Mapping,
)

import pytest

from conduit.tools import (
    FunctionTool,
    ToolRegistry,
    register_tool,
)
from conduit.tools.catalog import build_catalog


def test_duplicate_registration_is_rejected() -> None:
    reg = ToolRegistry()

    @register_tool("dup", registry=reg)
    def _first() -> None:
        """First."""

    with pytest.raises(ValueError):

        @register_tool("dup", registry=reg)
        def _second() -> None:
            """Second."""


def test_function_tool_specification_from_signature() -> None:
    def lookup(city: str, days: int = 1, context: Mapping[str, Any] | None = None) -> str:
        """Look up the forecast."""
        return city

    spec = FunctionTool("forecast", lookup).specification()

    assert spec.name == "forecast"
    assert spec.description == "Look up the forecast."
    assert [(p.name, p.type, p.required) for p in spec.parameters] == [
        ("city", "str", True),
        ("days", "int", False),
    ]


def test_function_tool_validation() -> None:
    def strict(a: int, b: int = 0) -> int:
        return a + b

    def loose(a: int, **extra: Any) -> int:
        return a

    assert FunctionTool("strict", strict).validate({"a": 1})
    assert not FunctionTool("strict", strict).validate({"b": 1})
    assert not FunctionTool("strict", strict).validate({"a": 1, "c": 2})
    assert FunctionTool("loose", loose).validate({"a": 1, "c": 2})


def test_resolve_unknown_name(registry) -> None:
    assert registry.resolve("nope") == (None, None)


def test_resolve_known_name(registry) -> None:
    spec, tool = registry.resolve("search")

    assert spec is not None and spec.name == "search"
    assert tool is not None and tool.name == "search"
    assert "search" in registry


def test_catalog_is_a_subset_when_tools_fail_to_load(registry) -> None:
    class FlakyRegistry(ToolRegistry):
        def resolve(self, name):
            if name == "add":
                raise ConnectionError("registry down")
            return registry.resolve(name)

    catalog = build_catalog(["search", "add", "unknown"], FlakyRegistry())

    assert list(catalog.tools) == ["search"]
    assert list(catalog.specifications) == ["search"]
    assert "add" not in catalog
    assert len(catalog) == 1


def test_catalog_keeps_metadata_and_instance_independently() -> None:
    class SplitRegistry(ToolRegistry):
        def resolve(self, name):
            spec, tool = super().resolve(name)
            return (None, tool) if name == "hidden" else (spec, None)

    reg = SplitRegistry()
    register_tool("hidden", registry=reg)(lambda: "x")
    register_tool("advertised", registry=reg)(lambda: "y")

    catalog = build_catalog(["hidden", "advertised"], reg)

    assert list(catalog.tools) == ["hidden"]
    assert list(catalog.specifications) == ["advertised"]


def test_catalog_mappings_are_read_only(registry) -> None:
    catalog = build_catalog(["search"], registry)

    with pytest.raises(TypeError):
        catalog.tools["evil"] = catalog.tools["search"]  # type: ignore[index]
    with pytest.raises(TypeError):
        del catalog.specifications["search"]  # type: ignore[attr-defined]

"""Tests for backend lookup and the TGI backend."""

import json
import sys
from types import SimpleNamespace

import httpx
import pytest

from conduit.agent.backend_interface import (
    AnthropicBackend,
    OpenAIBackend,
    TGIBackend,
    load_backend,
)
from conduit.core.errors import BackendInvocationError


def _tgi(handler) -> TGIBackend:
    return TGIBackend(
        endpoint="http://tgi.test/generate", timeout=1.0, transport=httpx.MockTransport(handler)
    )


def test_load_backend_by_name() -> None:
    assert isinstance(load_backend("openai"), OpenAIBackend)
    assert isinstance(load_backend("Anthropic"), AnthropicBackend)
    assert isinstance(load_backend("tgi"), TGIBackend)


def test_load_backend_rejects_unknown_names() -> None:
    with pytest.raises(ValueError, match="not registered"):
        load_backend("telepathy")


def test_tgi_returns_generated_text() -> None:
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"generated_text": "Hello there."})

    assert _tgi(handler).complete("User: hi\nAssistant: ") == "Hello there."
    assert seen["body"]["inputs"] == "User: hi\nAssistant: "
    assert "User:" in seen["body"]["parameters"]["stop"]


def test_tgi_http_error_is_a_backend_failure() -> None:
    backend = _tgi(lambda request: httpx.Response(500, text="overloaded"))

    with pytest.raises(BackendInvocationError, match="TGI endpoint"):
        backend.complete("prompt")


def test_tgi_malformed_response_is_a_backend_failure() -> None:
    backend = _tgi(lambda request: httpx.Response(200, json={"text": "wrong key"}))

    with pytest.raises(BackendInvocationError, match="TGI response"):
        backend.complete("prompt")


def test_tgi_connection_error_is_a_backend_failure() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(BackendInvocationError):
        _tgi(handler).complete("prompt")


def test_anthropic_reply_without_text_is_a_backend_failure(monkeypatch) -> None:
    class FakeMessages:
        def create(self, **kwargs):
            return SimpleNamespace(content=[SimpleNamespace(type="tool_use", id="t1")])

    class FakeAnthropic:
        def __init__(self, **kwargs):
            self.messages = FakeMessages()

    monkeypatch.setitem(sys.modules, "anthropic", SimpleNamespace(Anthropic=FakeAnthropic))

    with pytest.raises(BackendInvocationError, match="Empty response from Anthropic"):
        AnthropicBackend().complete("prompt")


def test_anthropic_joins_text_blocks(monkeypatch) -> None:
    class FakeMessages:
        def create(self, **kwargs):
            return SimpleNamespace(
                content=[
                    SimpleNamespace(type="text", text="Hello "),
                    SimpleNamespace(type="text", text="there."),
                ]
            )

    class FakeAnthropic:
        def __init__(self, **kwargs):
            self.messages = FakeMessages()

    monkeypatch.setitem(sys.modules, "anthropic", SimpleNamespace(Anthropic=FakeAnthropic))

    assert AnthropicBackend().complete("prompt") == "Hello there."

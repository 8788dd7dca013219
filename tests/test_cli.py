"""Tests for the CLI client's HTTP helper."""

import httpx

from conduit.client import cli


def test_call_api_returns_json() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/chat"
        return httpx.Response(200, json={"reply": "hi", "status": "done"})

    response = cli.call_api(
        "/chat",
        {"message": "hello"},
        base_url="http://api.test",
        transport=httpx.MockTransport(handler),
    )

    assert response == {"reply": "hi", "status": "done"}


def test_call_api_reports_http_errors(capsys) -> None:
    transport = httpx.MockTransport(
        lambda request: httpx.Response(422, json={"detail": "message is required"})
    )

    response = cli.call_api("/chat", {}, base_url="http://api.test", transport=transport)

    assert response == {"reply": "API error: message is required"}
    assert "API error" in capsys.readouterr().out


def test_call_api_retries_connection_errors(monkeypatch) -> None:
    attempts = []

    def handler(request: httpx.Request) -> httpx.Response:
        attempts.append(request)
        if len(attempts) < 3:
            raise httpx.ConnectError("refused", request=request)
        return httpx.Response(200, json={"session_id": "abc"})

    monkeypatch.setattr(cli.time, "sleep", lambda seconds: None)

    response = cli.call_api(
        "/sessions", {}, base_url="http://api.test", transport=httpx.MockTransport(handler)
    )

    assert response == {"session_id": "abc"}
    assert len(attempts) == 3


def test_call_api_gives_up_after_max_retries(monkeypatch) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    monkeypatch.setattr(cli.time, "sleep", lambda seconds: None)

    response = cli.call_api(
        "/sessions",
        {},
        max_retries=2,
        base_url="http://api.test",
        transport=httpx.MockTransport(handler),
    )

    assert response["reply"].startswith("Error connecting to API")

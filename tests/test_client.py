from __future__ import annotations

import asyncio

import httpx
import pytest

from rcbroker.core import ProviderClient, StaticTokenSource
from rcbroker.errors import SessionCreateFailed, UpstreamTimeout, UpstreamUnavailable

BASE_URL = "https://api.test/api/v1"


def _run(handler, call, timeout=5.0):
    async def scenario():
        client = ProviderClient(
            BASE_URL,
            StaticTokenSource("tok"),
            timeout=timeout,
            transport=httpx.MockTransport(handler),
        )
        async with client:
            return await call(client)

    return asyncio.run(scenario())


def test_request_decodes_json_and_sends_bearer():
    seen: list[httpx.Request] = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json={"ok": True})

    result = _run(handler, lambda c: c.request("GET", "/ping"))

    assert result == {"ok": True}
    assert seen[0].headers["Authorization"] == "Bearer tok"
    assert str(seen[0].url) == f"{BASE_URL}/ping"


def test_empty_body_returns_none():
    result = _run(lambda r: httpx.Response(204), lambda c: c.request("PUT", "/x"))
    assert result is None


def test_error_body_message_is_surfaced():
    def handler(request):
        return httpx.Response(403, json={"error_description": "Token lacks scope"})

    with pytest.raises(SessionCreateFailed, match="Token lacks scope") as excinfo:
        _run(
            handler,
            lambda c: c.request("POST", "/sessions", error=SessionCreateFailed),
        )
    assert excinfo.value.status == 403


def test_plain_text_error_body():
    def handler(request):
        return httpx.Response(502, text="Bad gateway upstream")

    with pytest.raises(UpstreamUnavailable, match="Bad gateway upstream"):
        _run(handler, lambda c: c.request("GET", "/devices"))


def test_transport_failure_maps_to_given_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(UpstreamUnavailable, match="cannot reach"):
        _run(handler, lambda c: c.request("GET", "/devices"))


def test_slow_provider_times_out():
    async def handler(request):
        await asyncio.sleep(1)
        return httpx.Response(200, json={})

    with pytest.raises(UpstreamTimeout, match="timed out"):
        _run(handler, lambda c: c.request("GET", "/devices"), timeout=0.05)


def test_invalid_json_is_an_error():
    def handler(request):
        return httpx.Response(200, text="<html>")

    with pytest.raises(UpstreamUnavailable, match="invalid JSON"):
        _run(handler, lambda c: c.request("GET", "/devices"))

from __future__ import annotations

import asyncio
import json
from datetime import datetime, timedelta, timezone

import httpx
import pytest

from rcbroker.core import ProviderClient, SessionBroker, StaticTokenSource
from rcbroker.errors import SessionCloseFailed, SessionCreateFailed
from rcbroker.models import Session, SessionState

BASE_URL = "https://api.test/api/v1"
NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def _run(transport, call):
    async def scenario():
        client = ProviderClient(BASE_URL, StaticTokenSource("tok"), transport=transport)
        async with client:
            broker = SessionBroker(client, group_name="Support", clock=lambda: NOW)
            return await call(broker)

    return asyncio.run(scenario())


def test_create_session_maps_response(provider):
    session = _run(
        provider.transport(),
        lambda b: b.create_session("Printer jam", "Alex", device_id="d1"),
    )

    assert session.session_id == "123456"
    assert session.state is SessionState.OPEN
    assert session.device_id == "d1"
    assert session.expires_at == provider.now + timedelta(hours=24)
    assert session.connection_url == "https://get.teamviewer.com/s123456"
    assert session.end_customer_url == "https://get.teamviewer.com/c123456"

    body = json.loads(provider.calls("POST", "/sessions")[0].content)
    assert body == {
        "groupname": "Support",
        "description": "Printer jam",
        "end_customer": {"name": "Alex"},
    }


def test_missing_validity_defaults_to_24_hours():
    transport = httpx.MockTransport(
        lambda r: httpx.Response(200, json={"code": "s987", "state": "Open"})
    )

    session = _run(transport, lambda b: b.create_session("d", "c"))

    assert session.created_at == NOW
    assert session.expires_at == NOW + timedelta(hours=24)


def test_waiting_state_is_kept():
    transport = httpx.MockTransport(
        lambda r: httpx.Response(200, json={"code": "s1", "state": "Waiting"})
    )
    session = _run(transport, lambda b: b.create_session("d", "c"))
    assert session.state is SessionState.WAITING
    assert not session.is_closed


def test_create_failure_carries_provider_message(provider):
    provider.fail("POST", "/sessions", 400, {"error_message": "groupname invalid"})

    with pytest.raises(SessionCreateFailed, match="groupname invalid"):
        _run(provider.transport(), lambda b: b.create_session("d", "c"))


def test_create_without_code_fails():
    transport = httpx.MockTransport(lambda r: httpx.Response(200, json={}))
    with pytest.raises(SessionCreateFailed, match="no session code"):
        _run(transport, lambda b: b.create_session("d", "c"))


def test_close_puts_closed_state_and_refetches(provider):
    async def call(broker):
        session = await broker.create_session("d", "c")
        return await broker.close_session(session.session_id)

    closed = _run(provider.transport(), call)

    assert closed.state is SessionState.CLOSED
    put = provider.calls("PUT", "/sessions/123456")[0]
    assert json.loads(put.content) == {"state": "Closed"}
    assert provider.calls("GET", "/sessions/123456")


def test_close_survives_failed_refetch(provider):
    provider.sessions["555"] = {"code": "555", "state": "Open"}
    provider.fail("GET", "/sessions/555", 500, {"error": "flaky"})
    known = Session(
        session_id="555",
        created_at=NOW,
        expires_at=NOW + timedelta(hours=1),
        connection_url="https://get.teamviewer.com/s555",
    )

    closed = _run(provider.transport(), lambda b: b.close_session("555", known=known))

    assert closed.state is SessionState.CLOSED
    assert closed.connection_url == known.connection_url
    assert closed.expires_at == NOW


def test_close_of_unknown_session_raises_with_status(provider):
    with pytest.raises(SessionCloseFailed) as excinfo:
        _run(provider.transport(), lambda b: b.close_session("404404"))
    assert excinfo.value.status == 404

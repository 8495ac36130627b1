from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone
from typing import Any

import httpx
import pytest

from rcbroker.config import (
    CONFIG_ENV_VAR,
    TOKEN_ENV_VAR,
    LaunchConfig,
    ProviderConfig,
    Settings,
    get_settings,
)

T0 = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


class FakeProvider:
    """In-memory provider Web API served through ``httpx.MockTransport``."""

    def __init__(self) -> None:
        self.devices: list[dict[str, Any]] = []
        self.sessions: dict[str, dict[str, Any]] = {}
        self.requests: list[httpx.Request] = []
        self.failures: dict[tuple[str, str], httpx.Response] = {}
        self.next_code = "123456"
        self.now = T0

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    def fail(self, method: str, path: str, status: int, body: Any = None) -> None:
        self.failures[(method, path)] = httpx.Response(status, json=body)

    def calls(self, method: str, path: str) -> list[httpx.Request]:
        return [
            r for r in self.requests if r.method == method and self._path(r) == path
        ]

    @staticmethod
    def _path(request: httpx.Request) -> str:
        return request.url.path.removeprefix("/api/v1")

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = self._path(request)
        failure = self.failures.get((request.method, path))
        if failure is not None:
            return failure

        if request.method == "GET" and path == "/devices":
            state = request.url.params.get("online_state")
            devices = [
                d
                for d in self.devices
                if state is None or d.get("online_state") == state
            ]
            return httpx.Response(200, json={"devices": devices})

        if request.method == "POST" and path == "/sessions":
            body = json.loads(request.content)
            code = self.next_code
            self.sessions[code] = {
                "code": code,
                "state": "Open",
                "groupname": body["groupname"],
                "description": body["description"],
                "end_customer": body["end_customer"],
                "created_at": self.now.isoformat(),
                "valid_until": (self.now + timedelta(hours=24)).isoformat(),
                "supporter_link": f"https://get.teamviewer.com/s{code}",
                "end_customer_link": f"https://get.teamviewer.com/c{code}",
            }
            return httpx.Response(200, json=self.sessions[code])

        if path.startswith("/sessions/"):
            code = path.removeprefix("/sessions/")
            if code not in self.sessions:
                return httpx.Response(404, json={"error": "session not found"})
            if request.method == "PUT":
                self.sessions[code].update(json.loads(request.content))
                return httpx.Response(204)
            if request.method == "GET":
                return httpx.Response(200, json=self.sessions[code])

        return httpx.Response(404, json={"error": f"no route {request.method} {path}"})


@pytest.fixture(autouse=True)
def _isolate_settings_env(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)
    monkeypatch.delenv(TOKEN_ENV_VAR, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def settings() -> Settings:
    return Settings(
        provider=ProviderConfig(token="script-token-1234"),
        launch=LaunchConfig(fallback_delay=0.01),
    )

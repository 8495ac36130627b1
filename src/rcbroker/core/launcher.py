"""Launch sequencing: native client hand-off with a delayed web fallback.

Whether a custom-scheme hand-off reached an installed client cannot be
observed, so every launch also schedules the web client after a short delay.
The delay is an :class:`asyncio.TimerHandle` owned by the attempt and can be
cancelled if the operator abandons the attempt or closes its session first.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
import webbrowser
from collections.abc import Callable
from datetime import timedelta
from typing import Protocol
from urllib.parse import quote, urlencode

from rcbroker.config import LaunchConfig, SessionsConfig
from rcbroker.errors import InvalidIdentifier, UpstreamError
from rcbroker.models import (
    ConnectionAttempt,
    ConnectionStrategy,
    Device,
    Session,
    SessionState,
)
from rcbroker.utils.clock import Clock, utcnow
from rcbroker.utils.redaction import Redactor

from .broker import SessionBroker
from .cache import SessionStore
from .identifiers import normalize_identifier, validate_identifier
from .strategy import select_strategy

logger = logging.getLogger(__name__)

MANUAL_DEVICE_NAME = "Manual Device"

DeviceConnectCallback = Callable[[str, str], None]


class UrlOpener(Protocol):
    def open_native(self, uri: str) -> None: ...

    def open_web(self, url: str) -> None: ...


class BrowserOpener:
    """Opens launch artifacts with the platform's registered handlers."""

    def open_native(self, uri: str) -> None:
        webbrowser.open(uri)

    def open_web(self, url: str) -> None:
        webbrowser.open_new_tab(url)


class RecordingOpener:
    """Collects launch artifacts instead of opening them."""

    def __init__(self) -> None:
        self.opened: list[tuple[str, str]] = []

    def open_native(self, uri: str) -> None:
        self.opened.append(("native", uri))

    def open_web(self, url: str) -> None:
        self.opened.append(("web", url))


class LaunchSequencer:
    def __init__(
        self,
        broker: SessionBroker,
        store: SessionStore,
        opener: UrlOpener,
        launch: LaunchConfig | None = None,
        sessions: SessionsConfig | None = None,
        on_device_connect: DeviceConnectCallback | None = None,
        clock: Clock = utcnow,
    ) -> None:
        self._broker = broker
        self._store = store
        self._opener = opener
        self.launch_config = launch or LaunchConfig()
        self.sessions_config = sessions or SessionsConfig()
        self._on_device_connect = on_device_connect
        self._clock = clock
        self._redactor = Redactor()

    # ------------------------------------------------------------------ #
    # Launch artifacts
    # ------------------------------------------------------------------ #

    def native_uri(self, identifier: str, password: str | None = None) -> str:
        query = {"s": normalize_identifier(identifier)}
        if password:
            query["p"] = password
        return f"{self.launch_config.native_scheme}://control?{urlencode(query)}"

    def web_url(self, identifier: str, password: str | None = None) -> str:
        base = self.launch_config.web_client_base.rstrip("/")
        url = f"{base}/{quote(normalize_identifier(identifier), safe='')}"
        if password:
            url = f"{url}?{urlencode({'password': password})}"
        return url

    # ------------------------------------------------------------------ #
    # Attempts
    # ------------------------------------------------------------------ #

    def prepare(
        self,
        device: Device | None,
        identifier: str | None = None,
        password: str | None = None,
    ) -> ConnectionAttempt:
        """Pick the strategy and build the attempt, without any I/O.

        With no ``device`` the attempt is a manual direct one for
        ``identifier``; :class:`InvalidIdentifier` is raised if it is empty
        or malformed.
        """
        strategy = select_strategy(device)
        if device is None:
            if identifier is None:
                raise InvalidIdentifier("Device ID is empty")
            normalized = validate_identifier(identifier)
            return ConnectionAttempt(
                strategy=strategy,
                identifier=normalized,
                display_name=MANUAL_DEVICE_NAME,
                device_id=normalized,
                password=password or None,
            )

        return ConnectionAttempt(
            strategy=strategy,
            identifier=normalize_identifier(device.remote_id),
            display_name=device.display_name,
            device_id=device.local_id,
        )

    def start(self, attempt: ConnectionAttempt) -> ConnectionAttempt:
        """Run ``attempt`` as its own task; cancel it with ``attempt.cancel()``."""
        attempt._task = asyncio.create_task(
            self._run(attempt), name=f"connect-{attempt.identifier}"
        )
        return attempt

    async def connect(
        self,
        device: Device | None,
        identifier: str | None = None,
        password: str | None = None,
    ) -> ConnectionAttempt:
        attempt = self.start(self.prepare(device, identifier, password))
        return await attempt.wait()

    async def _run(self, attempt: ConnectionAttempt) -> ConnectionAttempt:
        if attempt.strategy is ConnectionStrategy.BROKERED_SESSION:
            await self._broker_session(attempt)

        if not attempt.native_uri:
            attempt.native_uri = self.native_uri(attempt.identifier, attempt.password)
            attempt.web_url = self.web_url(attempt.identifier, attempt.password)
            if attempt.degraded:
                attempt.session = self._degraded_session(attempt)

        self._dispatch(attempt)

        if attempt.session is not None:
            self._store.track(attempt.session)
        if self._on_device_connect is not None:
            self._on_device_connect(attempt.identifier, attempt.display_name)
        return attempt

    async def _broker_session(self, attempt: ConnectionAttempt) -> None:
        try:
            session = await self._broker.create_session(
                self.sessions_config.description,
                self.sessions_config.end_customer_label,
                device_id=attempt.device_id,
            )
        except UpstreamError as exc:
            logger.warning(
                "Session creation failed for %s; falling back to a direct "
                "connection: %s",
                attempt.display_name,
                exc,
            )
            attempt.degraded = True
            return

        code = normalize_identifier(session.session_id)
        attempt.session = session
        attempt.native_uri = session.connection_url or self.native_uri(
            code, session.password
        )
        attempt.web_url = session.web_client_url or self.web_url(code)
        if not session.connection_url:
            attempt.session = session.model_copy(
                update={
                    "connection_url": attempt.native_uri,
                    "web_client_url": attempt.web_url,
                }
            )

    def _degraded_session(self, attempt: ConnectionAttempt) -> Session:
        now = self._clock()
        expiry = timedelta(minutes=self.sessions_config.fallback_expiry_minutes)
        return Session(
            session_id=f"local-{uuid.uuid4().hex[:8]}",
            state=SessionState.OPEN,
            device_id=attempt.device_id,
            created_at=now,
            expires_at=now + expiry,
            connection_url=attempt.native_uri,
            web_client_url=attempt.web_url,
            local_only=True,
        )

    def _dispatch(self, attempt: ConnectionAttempt) -> None:
        logger.info(
            "Launching %s (%s) via %s",
            attempt.display_name,
            attempt.identifier,
            self._redactor.redact_url(attempt.native_uri),
        )
        self._hand_off(self._opener.open_native, attempt.native_uri)

        loop = asyncio.get_running_loop()
        attempt._fallback = loop.call_later(
            self.launch_config.fallback_delay, self._fire_fallback, attempt
        )

    def _fire_fallback(self, attempt: ConnectionAttempt) -> None:
        attempt.fallback_fired = True
        logger.info(
            "Opening web client fallback %s", self._redactor.redact_url(attempt.web_url)
        )
        self._hand_off(self._opener.open_web, attempt.web_url)

    def _hand_off(self, open_: Callable[[str], None], url: str) -> None:
        try:
            open_(url)
        except (OSError, webbrowser.Error) as exc:
            logger.warning("Could not open %s: %s", self._redactor.redact_url(url), exc)

"""The owning context for connection attempts and the local session cache.

:class:`RemoteConsole` wires the provider client, registry, broker, launch
sequencer, session store and sweeper together. It is an async context
manager: leaving it stops the sweeper, cancels pending fallbacks and closes
the HTTP client.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import timedelta

import httpx

from rcbroker.config import OnlineState, Settings
from rcbroker.errors import UpstreamError
from rcbroker.models import ConnectionAttempt, Device, Session, SessionState
from rcbroker.utils.clock import Clock, utcnow

from .broker import SessionBroker
from .cache import InMemorySessionStore, SessionStore, SessionSweeper
from .client import ProviderClient
from .launcher import DeviceConnectCallback, LaunchSequencer, UrlOpener
from .registry import DeviceRegistry
from .tokens import TokenSource, token_source_from_settings

logger = logging.getLogger(__name__)

# Provider answers to a close of a session that is already gone.
ALREADY_CLOSED_STATUSES = frozenset({404, 409, 410})


class RemoteConsole:
    def __init__(
        self,
        settings: Settings,
        opener: UrlOpener,
        tokens: TokenSource | None = None,
        store: SessionStore | None = None,
        on_device_connect: DeviceConnectCallback | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        clock: Clock = utcnow,
    ) -> None:
        self.settings = settings
        provider = settings.provider
        self.client = ProviderClient(
            provider.base_url,
            tokens or token_source_from_settings(settings),
            timeout=provider.timeout,
            transport=transport,
        )
        self.store: SessionStore = (
            store if store is not None else InMemorySessionStore()
        )
        self.registry = DeviceRegistry(
            self.client, settings.devices.unattended_overrides
        )
        self.broker = SessionBroker(
            self.client,
            group_name=settings.sessions.group_name,
            default_expiry=timedelta(hours=settings.sessions.default_expiry_hours),
            clock=clock,
        )
        self.sequencer = LaunchSequencer(
            self.broker,
            self.store,
            opener,
            launch=settings.launch,
            sessions=settings.sessions,
            on_device_connect=on_device_connect,
            clock=clock,
        )
        self.sweeper = SessionSweeper(
            self.store, interval=settings.sessions.sweep_interval, clock=clock
        )
        self._attempts: list[ConnectionAttempt] = []

    async def __aenter__(self) -> RemoteConsole:
        self.sweeper.start()
        return self

    async def __aexit__(self, *_: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self.sweeper.stop()
        for attempt in self._attempts:
            attempt.cancel()
        self._attempts.clear()
        await self.client.aclose()

    # ------------------------------------------------------------------ #
    # Devices
    # ------------------------------------------------------------------ #

    async def list_devices(
        self, online_state: OnlineState | None = None
    ) -> list[Device]:
        return await self.registry.list_devices(
            online_state or self.settings.devices.online_state
        )

    async def find_device(self, ref: str) -> Device | None:
        return await self.registry.get_device(ref)

    # ------------------------------------------------------------------ #
    # Connecting
    # ------------------------------------------------------------------ #

    def begin(
        self,
        device: Device | None,
        identifier: str | None = None,
        password: str | None = None,
    ) -> ConnectionAttempt:
        """Start a connection attempt in the background and return it."""
        attempt = self.sequencer.start(
            self.sequencer.prepare(device, identifier, password)
        )
        self._attempts = [a for a in self._attempts if not a.finished]
        self._attempts.append(attempt)
        return attempt

    async def connect_device(self, device: Device) -> ConnectionAttempt:
        return await self.begin(device).wait()

    async def connect_manual(
        self, identifier: str, password: str | None = None
    ) -> ConnectionAttempt:
        return await self.begin(None, identifier, password).wait()

    @property
    def attempts(self) -> list[ConnectionAttempt]:
        return list(self._attempts)

    # ------------------------------------------------------------------ #
    # Sessions
    # ------------------------------------------------------------------ #

    def sessions(self) -> list[Session]:
        return self.store.sessions()

    def track(self, session: Session) -> None:
        self.store.track(session)

    async def create_session(
        self, description: str | None = None, end_customer_label: str | None = None
    ) -> Session:
        session = await self.broker.create_session(
            description or self.settings.sessions.description,
            end_customer_label or self.settings.sessions.end_customer_label,
        )
        self.store.track(session)
        return session

    async def close_session(self, session_id: str) -> Session | None:
        """Close a session upstream and drop it from the local cache.

        The local entry is removed even when the close fails upstream; the
        error is re-raised afterwards so the caller can report it. Closing a
        session that is not tracked, or that the provider reports as already
        gone, never raises and returns ``None``.
        """
        self._cancel_fallbacks(session_id)
        known = self.store.get(session_id)
        if known is not None and known.local_only:
            self.store.remove(session_id)
            return known.model_copy(update={"state": SessionState.CLOSED})

        try:
            closed = await self.broker.close_session(session_id, known=known)
        except UpstreamError as exc:
            if known is None or exc.status in ALREADY_CLOSED_STATUSES:
                logger.info("Session %s not closed upstream: %s", session_id, exc)
                return None
            raise
        finally:
            self.store.remove(session_id)
        return closed

    async def reconcile(self) -> list[Session]:
        """Drop tracked sessions the provider reports closed or no longer knows."""
        dropped: list[Session] = []
        for session in self.store.sessions():
            if session.local_only:
                continue
            try:
                current = await self.broker.get_session(session.session_id)
            except UpstreamError as exc:
                if exc.status == 404:
                    self.store.remove(session.session_id)
                    dropped.append(session)
                else:
                    logger.warning(
                        "Could not reconcile session %s: %s", session.session_id, exc
                    )
                continue
            if current.is_closed:
                self.store.remove(session.session_id)
                dropped.append(current)
        return dropped

    def _cancel_fallbacks(self, session_id: str) -> None:
        for attempt in self._attempts:
            if attempt.session_id == session_id and attempt.cancel_fallback():
                logger.debug("Cancelled pending web fallback for %s", session_id)

    async def wait_for_fallbacks(self) -> None:
        """Wait until every pending web fallback has fired or been cancelled."""
        delay = self.settings.launch.fallback_delay
        while any(attempt.fallback_pending for attempt in self._attempts):
            await asyncio.sleep(min(delay, 0.1) or 0.01)

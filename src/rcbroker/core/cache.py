"""Local, advisory cache of sessions created by this process.

The provider remains the system of record; entries here may outlive or
predate their upstream state. Closed sessions are never held.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from datetime import datetime
from typing import Protocol

from rcbroker.models import Session
from rcbroker.utils.clock import Clock, utcnow

logger = logging.getLogger(__name__)


class SessionStore(Protocol):
    def track(self, session: Session) -> None: ...

    def remove(self, session_id: str) -> Session | None: ...

    def get(self, session_id: str) -> Session | None: ...

    def sweep_expired(self, now: datetime) -> list[Session]: ...

    def sessions(self) -> list[Session]: ...

    def __len__(self) -> int: ...


class InMemorySessionStore:
    """Insertion-ordered session cache.

    Every mutation swaps in a new dict, so callers iterating over
    :meth:`sessions` never observe a half-applied sweep.
    """

    def __init__(self) -> None:
        self._sessions: dict[str, Session] = {}

    def track(self, session: Session) -> None:
        if session.is_closed:
            self.remove(session.session_id)
            return
        updated = dict(self._sessions)
        updated[session.session_id] = session
        self._sessions = updated
        logger.debug("Tracking session %s", session.session_id)

    def remove(self, session_id: str) -> Session | None:
        if session_id not in self._sessions:
            return None
        updated = dict(self._sessions)
        removed = updated.pop(session_id)
        self._sessions = updated
        logger.debug("Removed session %s", session_id)
        return removed

    def get(self, session_id: str) -> Session | None:
        return self._sessions.get(session_id)

    def sweep_expired(self, now: datetime) -> list[Session]:
        current = self._sessions
        expired = [s for s in current.values() if s.is_expired(now)]
        if not expired:
            return []
        self._sessions = {
            key: session
            for key, session in current.items()
            if not session.is_expired(now)
        }
        for session in expired:
            logger.info("Session %s expired", session.session_id)
        return expired

    def sessions(self) -> list[Session]:
        return list(self._sessions.values())

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions


class SessionSweeper:
    """Runs ``store.sweep_expired`` on a fixed interval.

    Owned by the console; :meth:`stop` must be called (or the sweeper used as
    an async context manager) so the loop does not outlive its owner.
    """

    def __init__(
        self,
        store: SessionStore,
        interval: float = 60.0,
        clock: Clock = utcnow,
        on_expired: Callable[[list[Session]], None] | None = None,
    ) -> None:
        self._store = store
        self.interval = interval
        self._clock = clock
        self._on_expired = on_expired
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def sweep(self) -> list[Session]:
        expired = self._store.sweep_expired(self._clock())
        if expired and self._on_expired is not None:
            self._on_expired(expired)
        return expired

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name="session-sweeper")

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None or task.done():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            try:
                self.sweep()
            except Exception:
                logger.exception("Session sweep failed")

    async def __aenter__(self) -> SessionSweeper:
        self.start()
        return self

    async def __aexit__(self, *_: object) -> None:
        await self.stop()

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from enum import StrEnum

from .session import Session


class ConnectionStrategy(StrEnum):
    DIRECT_UNATTENDED = "direct-unattended"
    BROKERED_SESSION = "brokered-session"
    MANUAL_DIRECT = "manual-direct"


@dataclass
class ConnectionAttempt:
    """Transient state of one operator-initiated connect action.

    The attempt owns the in-flight task and the delayed web fallback; both
    are cancelled together by :meth:`cancel`.
    """

    strategy: ConnectionStrategy
    identifier: str
    display_name: str
    device_id: str | None = None
    password: str | None = field(default=None, repr=False)
    native_uri: str = ""
    web_url: str = ""
    session: Session | None = None
    degraded: bool = False
    fallback_fired: bool = False
    cancelled: bool = False
    _fallback: asyncio.TimerHandle | None = field(default=None, repr=False)
    _task: asyncio.Task[ConnectionAttempt] | None = field(default=None, repr=False)

    @property
    def session_id(self) -> str | None:
        return self.session.session_id if self.session else None

    @property
    def fallback_pending(self) -> bool:
        return (
            self._fallback is not None
            and not self._fallback.cancelled()
            and not self.fallback_fired
        )

    @property
    def finished(self) -> bool:
        """The attempt task is done and no web fallback is still scheduled."""
        task_done = self._task is None or self._task.done()
        return task_done and not self.fallback_pending

    def cancel_fallback(self) -> bool:
        """Cancel the pending web fallback; return True if one was pending."""
        if self._fallback is None or not self.fallback_pending:
            return False
        self._fallback.cancel()
        return True

    def cancel(self) -> None:
        """Abandon the attempt: stop network work and the fallback timer."""
        self.cancelled = True
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self.cancel_fallback()

    async def wait(self) -> ConnectionAttempt:
        if self._task is None:
            return self
        return await self._task

"""Session models."""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel


class SessionState(StrEnum):
    OPEN = "Open"
    WAITING = "Waiting"
    CLOSED = "Closed"


class Session(BaseModel):
    """Time-bounded authorization to connect to a device."""

    session_id: str
    state: SessionState = SessionState.OPEN
    device_id: str | None = None
    created_at: datetime
    expires_at: datetime
    connection_url: str = ""
    web_client_url: str | None = None
    end_customer_url: str | None = None
    password: str | None = None
    # Synthesized by the degraded direct path; unknown to the provider.
    local_only: bool = False

    @property
    def is_closed(self) -> bool:
        return self.state is SessionState.CLOSED

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at <= now

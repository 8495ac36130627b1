from __future__ import annotations

import logging
from datetime import timedelta
from typing import Any
from urllib.parse import quote

from rcbroker.errors import SessionCloseFailed, SessionCreateFailed, UpstreamError
from rcbroker.models import Session, SessionState
from rcbroker.utils.clock import Clock, parse_timestamp, utcnow

from .client import ProviderClient

logger = logging.getLogger(__name__)

DEFAULT_EXPIRY = timedelta(hours=24)


def _session_path(session_id: str) -> str:
    return f"/sessions/{quote(session_id, safe='')}"


def _parse_state(value: Any) -> SessionState:
    try:
        return SessionState(value)
    except ValueError:
        return SessionState.OPEN


class SessionBroker:
    """Creates, queries and closes provider sessions.

    Creation failures are not retried here; the launch sequencer decides
    what to do with a :class:`SessionCreateFailed`.
    """

    def __init__(
        self,
        client: ProviderClient,
        group_name: str = "Remote Control",
        default_expiry: timedelta = DEFAULT_EXPIRY,
        clock: Clock = utcnow,
    ) -> None:
        self._client = client
        self.group_name = group_name
        self.default_expiry = default_expiry
        self._clock = clock

    async def create_session(
        self,
        description: str,
        end_customer_label: str,
        device_id: str | None = None,
    ) -> Session:
        payload = {
            "groupname": self.group_name,
            "description": description,
            "end_customer": {"name": end_customer_label},
        }
        data = await self._client.request(
            "POST",
            "/sessions",
            json=payload,
            error=SessionCreateFailed,
            action="Session creation",
        )
        if not isinstance(data, dict) or not data.get("code"):
            raise SessionCreateFailed("Session creation returned no session code")

        session = self.to_session(data, device_id=device_id)
        if session.is_closed:
            raise SessionCreateFailed(
                f"Provider returned session {session.session_id} already closed"
            )
        logger.info(
            "Created session %s (expires %s)",
            session.session_id,
            session.expires_at.isoformat(),
        )
        return session

    async def get_session(self, session_id: str) -> Session:
        data = await self._client.request(
            "GET", _session_path(session_id), action=f"Session {session_id} lookup"
        )
        if not isinstance(data, dict):
            data = {}
        return self.to_session({"code": session_id, **data})

    async def close_session(
        self, session_id: str, known: Session | None = None
    ) -> Session:
        """Close ``session_id`` upstream and return its post-close record.

        A failing re-fetch does not fail the close: the record is then
        synthesized locally from ``known`` (if given) with state ``Closed``.
        """
        await self._client.request(
            "PUT",
            _session_path(session_id),
            json={"state": SessionState.CLOSED.value},
            error=SessionCloseFailed,
            action=f"Closing session {session_id}",
        )
        logger.info("Closed session %s", session_id)

        try:
            return await self.get_session(session_id)
        except UpstreamError as exc:
            logger.warning(
                "Could not re-fetch closed session %s: %s", session_id, exc
            )
        now = self._clock()
        if known is not None:
            return known.model_copy(
                update={"state": SessionState.CLOSED, "expires_at": now}
            )
        return Session(
            session_id=session_id,
            state=SessionState.CLOSED,
            created_at=now,
            expires_at=now,
        )

    def to_session(self, data: dict[str, Any], device_id: str | None = None) -> Session:
        now = self._clock()
        created_at = parse_timestamp(data.get("created_at") or data.get("created"))
        created_at = created_at or now
        expires_at = parse_timestamp(data.get("valid_until"))
        if expires_at is None:
            expires_at = created_at + self.default_expiry

        return Session(
            session_id=str(data["code"]).strip(),
            state=_parse_state(data.get("state")),
            device_id=device_id or data.get("device_id"),
            created_at=created_at,
            expires_at=expires_at,
            connection_url=data.get("supporter_link") or "",
            web_client_url=data.get("webclient_supporter_link") or None,
            end_customer_url=data.get("end_customer_link") or None,
            password=data.get("password") or None,
        )

"""Remote-control provider REST API client.

Uses httpx for async HTTP. Every call is bounded by an explicit timeout and
raises :class:`~rcbroker.errors.UpstreamTimeout` instead of hanging.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx

from rcbroker.errors import UpstreamError, UpstreamTimeout, UpstreamUnavailable

from .tokens import TokenSource

logger = logging.getLogger(__name__)


def error_message(response: httpx.Response) -> str:
    """Best human-readable message from a provider error body."""
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        for key in ("error_description", "error_message", "message", "error"):
            value = body.get(key)
            if isinstance(value, str) and value:
                return value
    text = response.text.strip()
    return text or response.reason_phrase or f"HTTP {response.status_code}"


class ProviderClient:
    """Thin async wrapper around the provider's Web API.

    A single :class:`httpx.AsyncClient` is reused across calls. The bearer
    token is asked from the :class:`TokenSource` on every request so a
    refreshing source can rotate it. Call :meth:`aclose` (or use as an async
    context manager) when done.
    """

    def __init__(
        self,
        base_url: str,
        tokens: TokenSource,
        timeout: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._tokens = tokens
        self._client = httpx.AsyncClient(
            timeout=timeout,
            transport=transport,
            headers={"Content-Type": "application/json"},
        )

    @property
    def http(self) -> httpx.AsyncClient:
        return self._client

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> ProviderClient:
        return self

    async def __aexit__(self, *_: object) -> None:
        await self.aclose()

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, str] | None = None,
        json: Any = None,
        error: type[UpstreamError] = UpstreamUnavailable,
        action: str | None = None,
    ) -> Any:
        """Send one API call and return the decoded JSON body.

        Non-2xx answers and transport failures raise ``error`` with the
        provider's own message; exceeding the timeout raises
        :class:`UpstreamTimeout`. An empty body decodes to ``None``.
        """
        url = f"{self.base_url}{path}"
        label = action or f"{method} {path}"
        try:
            response = await asyncio.wait_for(
                self._send(method, url, params=params, json=json),
                timeout=self.timeout,
            )
        except (asyncio.TimeoutError, httpx.TimeoutException) as exc:
            raise UpstreamTimeout(
                f"{label} timed out after {self.timeout:g}s"
            ) from exc
        except httpx.HTTPError as exc:
            raise error(f"{label} failed: cannot reach {url}: {exc}") from exc

        logger.debug("%s %s -> %s", method, url, response.status_code)
        if response.is_error:
            raise error(
                f"{label} failed ({response.status_code}): {error_message(response)}",
                status=response.status_code,
            )
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise error(f"{label} returned invalid JSON") from exc

    async def _send(
        self, method: str, url: str, *, params: dict[str, str] | None, json: Any
    ) -> httpx.Response:
        token = await self._tokens.current_token()
        headers = {"Authorization": f"Bearer {token}"}
        return await self._client.request(
            method, url, params=params, json=json, headers=headers
        )

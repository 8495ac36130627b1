"""Bearer credentials for the provider API.

Callers only see :class:`TokenSource`; whether a call to
:meth:`TokenSource.current_token` hits the network is up to the source.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Protocol

import httpx
from pydantic import BaseModel, Field

from rcbroker.config import Settings, resolve_token
from rcbroker.errors import NotConfigured, UpstreamTimeout, UpstreamUnavailable

logger = logging.getLogger(__name__)

# Refresh slightly before the provider would reject the token.
EXPIRY_SKEW = 30.0


class TokenSource(Protocol):
    async def current_token(self) -> str: ...


class StaticTokenSource:
    """Pre-shared script token."""

    def __init__(self, token: str | None) -> None:
        self._token = (token or "").strip()

    @property
    def configured(self) -> bool:
        return bool(self._token)

    async def current_token(self) -> str:
        if not self._token:
            raise NotConfigured(
                "No provider token configured. Set [provider] token in the config "
                "file or the RCBROKER_TOKEN environment variable."
            )
        return self._token


class OAuthToken(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int = 3600
    scope: str = ""
    issued_at: float = Field(default_factory=time.time)

    def is_expired(self, now: float | None = None, skew: float = 0.0) -> bool:
        current = time.time() if now is None else now
        return current >= self.issued_at + self.expires_in - skew


class RefreshingTokenSource:
    """OAuth token that refreshes itself through the provider's token endpoint."""

    def __init__(
        self,
        base_url: str,
        client_id: str,
        client_secret: str,
        refresh_token: str,
        timeout: float = 15.0,
        token: OAuthToken | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        if not (client_id and client_secret and (refresh_token or token)):
            raise NotConfigured(
                "OAuth refresh needs client_id, client_secret and a refresh token"
            )
        self.token_url = f"{base_url.rstrip('/')}/oauth2/token"
        self._client_id = client_id
        self._client_secret = client_secret
        self._refresh_token = token.refresh_token if token else refresh_token
        self._token = token
        self._timeout = timeout
        self._client = client
        self._lock = asyncio.Lock()

    async def current_token(self) -> str:
        async with self._lock:
            if self._token is None or self._token.is_expired(skew=EXPIRY_SKEW):
                self._token = await self._refresh()
            return self._token.access_token

    async def _refresh(self) -> OAuthToken:
        logger.debug("Refreshing provider access token via %s", self.token_url)
        form = {
            "grant_type": "refresh_token",
            "refresh_token": self._refresh_token,
            "client_id": self._client_id,
            "client_secret": self._client_secret,
        }
        client = self._client or httpx.AsyncClient(timeout=self._timeout)
        try:
            response = await client.post(self.token_url, data=form)
        except httpx.TimeoutException as exc:
            raise UpstreamTimeout("Token refresh timed out") from exc
        except httpx.HTTPError as exc:
            raise UpstreamUnavailable(f"Token refresh failed: {exc}") from exc
        finally:
            if self._client is None:
                await client.aclose()

        if response.status_code != 200:
            raise UpstreamUnavailable(
                f"Token refresh rejected ({response.status_code}): {response.text}",
                status=response.status_code,
            )

        data = response.json()
        token = OAuthToken.model_validate(
            {
                **data,
                "refresh_token": data.get("refresh_token") or self._refresh_token,
                "issued_at": time.time(),
            }
        )
        self._refresh_token = token.refresh_token
        logger.info(
            "Provider access token refreshed (expires in %ss)", token.expires_in
        )
        return token


def token_source_from_settings(
    settings: Settings, client: httpx.AsyncClient | None = None
) -> TokenSource:
    """Build the token source described by ``settings``.

    A script token wins over OAuth refresh credentials. With neither, the
    returned source raises :class:`NotConfigured` on first use.
    """
    provider = settings.provider
    token = resolve_token(settings)
    if token:
        return StaticTokenSource(token)
    if provider.client_id and provider.client_secret and provider.refresh_token:
        return RefreshingTokenSource(
            provider.base_url,
            provider.client_id,
            provider.client_secret,
            provider.refresh_token,
            timeout=provider.timeout,
            client=client,
        )
    return StaticTokenSource(None)


def credential_configured(settings: Settings) -> bool:
    provider = settings.provider
    return bool(
        resolve_token(settings)
        or (provider.client_id and provider.client_secret and provider.refresh_token)
    )

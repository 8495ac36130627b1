from __future__ import annotations

from .broker import SessionBroker
from .cache import InMemorySessionStore, SessionStore, SessionSweeper
from .client import ProviderClient
from .console import RemoteConsole
from .identifiers import normalize_identifier, validate_identifier
from .launcher import BrowserOpener, LaunchSequencer, RecordingOpener, UrlOpener
from .registry import DeviceRegistry
from .strategy import select_strategy
from .tokens import (
    OAuthToken,
    RefreshingTokenSource,
    StaticTokenSource,
    TokenSource,
    credential_configured,
    token_source_from_settings,
)

__all__ = [
    "BrowserOpener",
    "DeviceRegistry",
    "InMemorySessionStore",
    "LaunchSequencer",
    "OAuthToken",
    "ProviderClient",
    "RecordingOpener",
    "RefreshingTokenSource",
    "RemoteConsole",
    "SessionBroker",
    "SessionStore",
    "SessionSweeper",
    "StaticTokenSource",
    "TokenSource",
    "UrlOpener",
    "credential_configured",
    "normalize_identifier",
    "select_strategy",
    "token_source_from_settings",
    "validate_identifier",
]

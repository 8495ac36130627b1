"""rcbroker - connect operators to remote devices through a remote-control provider."""

from __future__ import annotations

from importlib.metadata import version

from .config import Settings, get_settings
from .core import (
    DeviceRegistry,
    InMemorySessionStore,
    LaunchSequencer,
    RemoteConsole,
    SessionBroker,
    SessionStore,
    normalize_identifier,
    select_strategy,
)
from .models import ConnectionAttempt, ConnectionStrategy, Device, Session, SessionState

__all__ = [
    "ConnectionAttempt",
    "ConnectionStrategy",
    "Device",
    "DeviceRegistry",
    "InMemorySessionStore",
    "LaunchSequencer",
    "RemoteConsole",
    "Session",
    "SessionBroker",
    "SessionState",
    "SessionStore",
    "Settings",
    "__version__",
    "get_settings",
    "normalize_identifier",
    "select_strategy",
]

__version__ = version("rcbroker")

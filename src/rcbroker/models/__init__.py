"""Data models for rcbroker."""

from rcbroker.models.attempt import ConnectionAttempt, ConnectionStrategy
from rcbroker.models.device import Device, ModelInfo
from rcbroker.models.session import Session, SessionState

__all__ = [
    "ConnectionAttempt",
    "ConnectionStrategy",
    "Device",
    "ModelInfo",
    "Session",
    "SessionState",
]

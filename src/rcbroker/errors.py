"""Error types raised by the broker and its provider client."""

from __future__ import annotations


class BrokerError(Exception):
    """Base error for rcbroker failures."""


class NotConfigured(BrokerError):
    """Raised when no provider credential is configured."""


class InvalidIdentifier(BrokerError):
    """Raised when a manually entered device identifier is empty or malformed."""


class UpstreamError(BrokerError):
    """Base error for failures talking to the remote-control provider."""

    def __init__(self, *args: object, status: int | None = None) -> None:
        super().__init__(*args)
        self.status = status


class UpstreamUnavailable(UpstreamError):
    """Raised when the provider cannot be reached or rejects a request."""


class UpstreamTimeout(UpstreamError):
    """Raised when a provider call exceeds its timeout."""


class SessionCreateFailed(UpstreamError):
    """Raised when the provider refuses to create a session."""


class SessionCloseFailed(UpstreamError):
    """Raised when the provider refuses to close a session."""


class DeviceNotFound(BrokerError):
    """Raised when a device reference matches nothing the provider reports."""

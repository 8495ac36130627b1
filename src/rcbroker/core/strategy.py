from __future__ import annotations

from rcbroker.models import ConnectionStrategy, Device


def select_strategy(device: Device | None) -> ConnectionStrategy:
    """Pick how to connect to ``device``.

    Without a device record (a manually entered ID) the connection is a
    manual direct one and capability inference is skipped.
    """
    if device is None:
        return ConnectionStrategy.MANUAL_DIRECT
    if device.supports_unattended:
        return ConnectionStrategy.DIRECT_UNATTENDED
    return ConnectionStrategy.BROKERED_SESSION

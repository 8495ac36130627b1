from __future__ import annotations

import pytest

from rcbroker.core import select_strategy
from rcbroker.models import ConnectionStrategy, Device


@pytest.mark.parametrize("online", [True, False])
@pytest.mark.parametrize("unattended", [True, False])
def test_strategy_follows_unattended_capability(online, unattended):
    device = Device(
        local_id="d1",
        remote_id="r579487224",
        display_name="Kiosk",
        online=online,
        supports_unattended=unattended,
    )

    expected = (
        ConnectionStrategy.DIRECT_UNATTENDED
        if unattended
        else ConnectionStrategy.BROKERED_SESSION
    )
    assert select_strategy(device) is expected


def test_no_device_means_manual_direct():
    assert select_strategy(None) is ConnectionStrategy.MANUAL_DIRECT

from __future__ import annotations

import asyncio
import logging

import pytest

from rcbroker.core import DeviceRegistry, ProviderClient, StaticTokenSource
from rcbroker.errors import UpstreamUnavailable

BASE_URL = "https://api.test/api/v1"


def _records():
    return [
        {
            "device_id": "d100",
            "remotecontrol_id": "r579487224",
            "alias": "Front Desk",
            "online_state": "online",
            "unattended_access_enabled": True,
            "device_info": {"manufacturer": "Dell", "model": "OptiPlex"},
            "last_seen": "2026-02-28T09:30:00Z",
        },
        {
            "device_id": "d200",
            "remotecontrol_id": "r 111 222 333",
            "alias": "Warehouse Scanner",
            "online_state": "offline",
        },
        {
            "device_id": "d300",
            "remotecontrol_id": "r444555666",
            "alias": "Lab PC",
            "online_state": "online",
            "policy": {"unattended_access_enabled": False},
        },
    ]


async def _with_registry(provider, call, overrides=()):
    client = ProviderClient(
        BASE_URL, StaticTokenSource("tok"), transport=provider.transport()
    )
    async with client:
        return await call(DeviceRegistry(client, overrides))


def test_list_devices_maps_provider_records(provider):
    provider.devices = _records()

    devices = asyncio.run(
        _with_registry(provider, lambda r: r.list_devices("online"))
    )

    assert [d.local_id for d in devices] == ["d100", "d300"]
    front = devices[0]
    assert front.remote_id == "r579487224"
    assert front.display_name == "Front Desk"
    assert front.online is True
    assert front.supports_unattended is True
    assert front.model_info is not None
    assert front.model_info.manufacturer == "Dell"
    assert front.last_seen is not None and front.last_seen.day == 28
    assert devices[1].supports_unattended is False

    request = provider.requests[0]
    assert request.url.params["online_state"] == "online"
    assert request.headers["Authorization"] == "Bearer tok"


def test_list_all_sends_no_state_filter(provider):
    provider.devices = _records()

    devices = asyncio.run(_with_registry(provider, lambda r: r.list_devices("all")))

    assert len(devices) == 3
    assert "online_state" not in provider.requests[0].url.params


def test_missing_flag_defaults_to_attended(provider):
    provider.devices = _records()

    device = asyncio.run(_with_registry(provider, lambda r: r.get_device("d200")))

    assert device is not None
    assert device.supports_unattended is False


def test_override_list_forces_unattended(provider, caplog):
    provider.devices = _records()

    with caplog.at_level(logging.WARNING, logger="rcbroker.core.registry"):
        device = asyncio.run(
            _with_registry(
                provider,
                lambda r: r.get_device("Warehouse Scanner"),
                overrides=["111222333"],
            )
        )

    assert device is not None
    assert device.supports_unattended is True
    assert "override list" in caplog.text


def test_explicit_flag_beats_override(provider):
    provider.devices = _records()

    device = asyncio.run(
        _with_registry(provider, lambda r: r.get_device("d300"), overrides=["d300"])
    )

    assert device is not None
    assert device.supports_unattended is False


@pytest.mark.parametrize("ref", ["d100", "579487224", " r579 487 224", "front desk"])
def test_get_device_matches_any_reference(provider, ref):
    provider.devices = _records()

    device = asyncio.run(_with_registry(provider, lambda r: r.get_device(ref)))

    assert device is not None
    assert device.local_id == "d100"


def test_get_device_unknown_returns_none(provider):
    provider.devices = _records()

    assert asyncio.run(_with_registry(provider, lambda r: r.get_device("nope"))) is None


def test_listing_failure_raises_upstream_unavailable(provider):
    provider.fail("GET", "/devices", 500, {"error": "backend down"})

    with pytest.raises(UpstreamUnavailable, match="backend down") as excinfo:
        asyncio.run(_with_registry(provider, lambda r: r.list_devices()))

    assert excinfo.value.status == 500

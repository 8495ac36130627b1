from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

from rcbroker.config import OnlineState
from rcbroker.models import Device, ModelInfo
from rcbroker.utils.clock import parse_timestamp

from .client import ProviderClient
from .identifiers import normalize_identifier

logger = logging.getLogger(__name__)

UNATTENDED_FLAG_KEYS = (
    "unattended_access_enabled",
    "unattendedAccessEnabled",
    "supports_unattended",
)


def _first(record: dict[str, Any], *keys: str) -> str | None:
    for key in keys:
        value = record.get(key)
        if value not in (None, ""):
            return str(value)
    return None


def _explicit_unattended(record: dict[str, Any]) -> bool | None:
    for key in UNATTENDED_FLAG_KEYS:
        value = record.get(key)
        if isinstance(value, bool):
            return value
    policy = record.get("policy")
    if isinstance(policy, dict):
        value = policy.get("unattended_access_enabled")
        if isinstance(value, bool):
            return value
    return None


class DeviceRegistry:
    """Fetches the provider's device list and maps it to :class:`Device`.

    ``unattended_overrides`` lists device IDs (local or remote) to treat as
    unattended when the provider does not report the capability. It papers
    over an unreliable upstream flag and should stay empty unless needed.
    """

    def __init__(
        self, client: ProviderClient, unattended_overrides: Iterable[str] = ()
    ) -> None:
        self._client = client
        self._overrides = {
            normalize_identifier(item) for item in unattended_overrides if item
        }

    async def list_devices(self, online_state: OnlineState = "online") -> list[Device]:
        params = None if online_state == "all" else {"online_state": online_state}
        data = await self._client.request(
            "GET", "/devices", params=params, action="Device listing"
        )
        records = data.get("devices", []) if isinstance(data, dict) else []
        devices = [
            self.to_device(record) for record in records if isinstance(record, dict)
        ]
        logger.debug(
            "Fetched %d device(s) (online_state=%s)", len(devices), online_state
        )
        return devices

    async def get_device(self, ref: str) -> Device | None:
        """Find a device by local ID, remote ID or display name."""
        devices = await self.list_devices("all")
        wanted = normalize_identifier(ref)
        for device in devices:
            if device.local_id == ref or device.local_id == wanted:
                return device
        for device in devices:
            if normalize_identifier(device.remote_id) == wanted:
                return device
        lowered = ref.strip().lower()
        for device in devices:
            if device.display_name.lower() == lowered:
                return device
        return None

    def to_device(self, record: dict[str, Any]) -> Device:
        local_id = _first(record, "device_id", "id") or ""
        remote_id = _first(record, "remotecontrol_id", "device_id", "id") or local_id
        info = record.get("device_info")
        model_info = None
        if isinstance(info, dict):
            model_info = ModelInfo(
                manufacturer=info.get("manufacturer"),
                model=info.get("model"),
                os_version=info.get("os_version"),
            )

        return Device(
            local_id=local_id,
            remote_id=remote_id,
            display_name=_first(record, "alias", "name", "device_id", "id") or local_id,
            online=record.get("online_state") == "online",
            supports_unattended=self._infer_unattended(record, local_id, remote_id),
            model_info=model_info,
            description=_first(record, "description"),
            group_id=_first(record, "groupid", "group_id"),
            last_seen=parse_timestamp(record.get("last_seen")),
        )

    def _infer_unattended(
        self, record: dict[str, Any], local_id: str, remote_id: str
    ) -> bool:
        explicit = _explicit_unattended(record)
        if explicit is not None:
            return explicit
        if (
            normalize_identifier(local_id) in self._overrides
            or normalize_identifier(remote_id) in self._overrides
        ):
            logger.warning(
                "Device %s reports no unattended flag; using override list",
                local_id,
            )
            return True
        return False

"""Device models."""

from datetime import datetime

from pydantic import BaseModel


class ModelInfo(BaseModel):
    """Hardware and OS details reported by the provider."""

    model_config = {"frozen": True}

    manufacturer: str | None = None
    model: str | None = None
    os_version: str | None = None


class Device(BaseModel):
    """Controllable endpoint as reported by the provider."""

    model_config = {"frozen": True}

    local_id: str
    remote_id: str  # raw, may carry whitespace or a one-letter prefix
    display_name: str
    online: bool = False
    supports_unattended: bool = False
    model_info: ModelInfo | None = None
    description: str | None = None
    group_id: str | None = None
    last_seen: datetime | None = None

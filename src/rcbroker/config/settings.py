from __future__ import annotations

import json
import os
import tomllib
from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, ValidationError

from .paths import default_config_path, expand_path

CONFIG_ENV_VAR = "RCBROKER_CONFIG"
TOKEN_ENV_VAR = "RCBROKER_TOKEN"

OnlineState = Literal["online", "offline", "busy", "all"]


class ProviderConfig(BaseModel):
    model_config = {"frozen": True, "extra": "forbid"}

    base_url: str = "https://webapi.teamviewer.com/api/v1"
    token: str = ""
    client_id: str = ""
    client_secret: str = ""
    refresh_token: str = ""
    timeout: float = Field(default=15.0, gt=0)


class LaunchConfig(BaseModel):
    model_config = {"frozen": True, "extra": "forbid"}

    native_scheme: str = "teamviewer10"
    web_client_base: str = "https://start.teamviewer.com"
    fallback_delay: float = Field(default=1.5, ge=0)


class SessionsConfig(BaseModel):
    model_config = {"frozen": True, "extra": "forbid"}

    group_name: str = "Remote Control"
    description: str = "Remote control session"
    end_customer_label: str = "Remote User"
    default_expiry_hours: float = Field(default=24.0, gt=0)
    fallback_expiry_minutes: float = Field(default=5.0, gt=0)
    sweep_interval: float = Field(default=60.0, gt=0)


class DevicesConfig(BaseModel):
    model_config = {"frozen": True, "extra": "forbid"}

    online_state: OnlineState = "online"
    # Devices forced to unattended when the provider omits the capability flag.
    unattended_overrides: list[str] = Field(default_factory=list)


class Settings(BaseModel):
    model_config = {"frozen": True, "extra": "forbid"}

    provider: ProviderConfig = Field(default_factory=ProviderConfig)
    launch: LaunchConfig = Field(default_factory=LaunchConfig)
    sessions: SessionsConfig = Field(default_factory=SessionsConfig)
    devices: DevicesConfig = Field(default_factory=DevicesConfig)


def resolve_config_path(allow_missing: bool = False) -> tuple[Path, bool]:
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        path = expand_path(env_path)
        if not allow_missing and not path.exists():
            raise FileNotFoundError(f"{CONFIG_ENV_VAR} points to missing file: {path}")
        return path, path.exists()

    path = default_config_path()
    return path, path.exists()


def load_settings(path: Path) -> Settings:
    try:
        with path.open("rb") as handle:
            data = tomllib.load(handle)
    except tomllib.TOMLDecodeError as exc:
        raise ValueError(f"Invalid TOML in config file: {path}\n{exc}") from exc

    try:
        return Settings.model_validate(data or {})
    except ValidationError as exc:
        raise ValueError(f"Invalid config file: {path}\n{exc}") from exc


@lru_cache
def get_settings() -> Settings:
    path, exists = resolve_config_path(allow_missing=False)
    if exists:
        return load_settings(path)
    return Settings()


def resolve_token(settings: Settings) -> str:
    """Return the script token, preferring the environment over the file."""
    return (os.environ.get(TOKEN_ENV_VAR) or settings.provider.token).strip()


def _toml_string(value: str) -> str:
    return json.dumps(value)


def _toml_secret(value: str, mask: bool) -> str:
    if mask and value:
        return _toml_string("***")
    return _toml_string(value)


def render_settings_toml(settings: Settings, mask_secrets: bool = False) -> str:
    provider = settings.provider
    launch = settings.launch
    sessions = settings.sessions
    devices = settings.devices
    lines = [
        "# rcbroker configuration",
        "",
        "[provider]",
        f"base_url = {_toml_string(provider.base_url)}",
        f"token = {_toml_secret(provider.token, mask_secrets)}",
        f"client_id = {_toml_string(provider.client_id)}",
        f"client_secret = {_toml_secret(provider.client_secret, mask_secrets)}",
        f"refresh_token = {_toml_secret(provider.refresh_token, mask_secrets)}",
        f"timeout = {provider.timeout}",
        "",
        "[launch]",
        f"native_scheme = {_toml_string(launch.native_scheme)}",
        f"web_client_base = {_toml_string(launch.web_client_base)}",
        f"fallback_delay = {launch.fallback_delay}",
        "",
        "[sessions]",
        f"group_name = {_toml_string(sessions.group_name)}",
        f"description = {_toml_string(sessions.description)}",
        f"end_customer_label = {_toml_string(sessions.end_customer_label)}",
        f"default_expiry_hours = {sessions.default_expiry_hours}",
        f"fallback_expiry_minutes = {sessions.fallback_expiry_minutes}",
        f"sweep_interval = {sessions.sweep_interval}",
        "",
        "[devices]",
        f"online_state = {_toml_string(devices.online_state)}",
        f"unattended_overrides = {json.dumps(devices.unattended_overrides)}",
        "",
    ]
    return "\n".join(lines)


def write_settings(settings: Settings, path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(render_settings_toml(settings))

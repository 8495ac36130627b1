from __future__ import annotations

from .paths import (
    APP_NAME,
    CONFIG_FILENAME,
    default_config_dir,
    default_config_path,
    expand_path,
)
from .settings import (
    CONFIG_ENV_VAR,
    TOKEN_ENV_VAR,
    DevicesConfig,
    LaunchConfig,
    OnlineState,
    ProviderConfig,
    SessionsConfig,
    Settings,
    get_settings,
    load_settings,
    render_settings_toml,
    resolve_config_path,
    resolve_token,
    write_settings,
)

__all__ = [
    "APP_NAME",
    "CONFIG_ENV_VAR",
    "CONFIG_FILENAME",
    "TOKEN_ENV_VAR",
    "DevicesConfig",
    "LaunchConfig",
    "OnlineState",
    "ProviderConfig",
    "SessionsConfig",
    "Settings",
    "default_config_dir",
    "default_config_path",
    "expand_path",
    "get_settings",
    "load_settings",
    "render_settings_toml",
    "resolve_config_path",
    "resolve_token",
    "write_settings",
]

from __future__ import annotations

import pytest

from rcbroker.config import (
    DevicesConfig,
    ProviderConfig,
    SessionsConfig,
    Settings,
    get_settings,
    load_settings,
    render_settings_toml,
    write_settings,
)


def test_defaults_when_no_config_file(tmp_path, monkeypatch):
    monkeypatch.setattr(
        "rcbroker.config.settings.default_config_path",
        lambda: tmp_path / "missing.toml",
    )

    settings = get_settings()

    assert settings.sessions.default_expiry_hours == 24
    assert settings.launch.fallback_delay == 1.5
    assert settings.sessions.fallback_expiry_minutes == 5
    assert settings.devices.unattended_overrides == []


def test_written_config_loads_back(tmp_path):
    path = tmp_path / "config.toml"
    settings = Settings(
        provider=ProviderConfig(token="abc", timeout=5),
        sessions=SessionsConfig(group_name="Helpdesk"),
        devices=DevicesConfig(online_state="all", unattended_overrides=["r1", "d2"]),
    )

    write_settings(settings, path)

    assert load_settings(path) == settings


def test_env_var_selects_config_file(tmp_path, monkeypatch):
    path = tmp_path / "custom.toml"
    write_settings(Settings(sessions=SessionsConfig(group_name="Field")), path)
    monkeypatch.setenv("RCBROKER_CONFIG", str(path))

    assert get_settings().sessions.group_name == "Field"


def test_env_var_to_missing_file_fails(tmp_path, monkeypatch):
    monkeypatch.setenv("RCBROKER_CONFIG", str(tmp_path / "nope.toml"))

    with pytest.raises(FileNotFoundError):
        get_settings()


def test_unknown_keys_are_rejected(tmp_path):
    path = tmp_path / "config.toml"
    path.write_text('[provider]\ntokn = "typo"\n')

    with pytest.raises(ValueError, match="Invalid config file"):
        load_settings(path)


def test_broken_toml_is_reported(tmp_path):
    path = tmp_path / "config.toml"
    path.write_text("[provider\n")

    with pytest.raises(ValueError, match="Invalid TOML"):
        load_settings(path)


def test_masked_render_hides_secrets():
    settings = Settings(
        provider=ProviderConfig(token="secret-token", client_secret="shh")
    )

    rendered = render_settings_toml(settings, mask_secrets=True)

    assert "secret-token" not in rendered
    assert "shh" not in rendered
    assert 'token = "***"' in rendered
    assert 'refresh_token = ""' in rendered

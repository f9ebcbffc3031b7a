"""Tests for openveo_client.config -- XDG paths, atomic writes, profiles, precedence."""

from __future__ import annotations

import json
import math
from pathlib import Path
from typing import Any

import pytest

from openveo_client.config import (
    _atomic_write,
    delete_profile,
    get_config_dir,
    get_data_dir,
    get_profiles_dir,
    list_profiles,
    load_global_config,
    load_profile,
    load_settings,
    profile_exists,
    resolve_credential,
    resolve_profile,
    save_global_config,
    save_profile,
)
from openveo_client.exceptions import ConfigError
from openveo_client.models import ClientSettings, GlobalConfig, Profile


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _write_json(path: Path, data: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2), encoding="utf-8")


def _make_profile(name: str = "test", url: str = "https://openveo.example.com") -> Profile:
    return Profile(
        name=name,
        url=url,
        client_id_source="env:TEST_CLIENT_ID",
        client_secret_source="env:TEST_CLIENT_SECRET",
    )


# ---------------------------------------------------------------------------
# XDG path resolution
# ---------------------------------------------------------------------------


class TestXDGPaths:
    def test_config_dir_xdg_default(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("openveo_client.config._is_xdg_platform", lambda: True)
        monkeypatch.delenv("XDG_CONFIG_HOME", raising=False)
        monkeypatch.setattr(Path, "home", lambda: tmp_path)
        assert get_config_dir() == tmp_path / ".config" / "openveo-client"
        assert get_config_dir().is_dir()

    def test_config_dir_xdg_env(self, isolated_config: Path) -> None:
        assert get_config_dir() == isolated_config / "config" / "openveo-client"

    def test_data_dir_xdg_env(self, isolated_config: Path) -> None:
        assert get_data_dir() == isolated_config / "data" / "openveo-client"

    def test_profiles_dir(self, isolated_config: Path) -> None:
        assert get_profiles_dir() == get_config_dir() / "profiles"
        assert get_profiles_dir().is_dir()

    def test_fallback_on_non_xdg_platform(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setattr("openveo_client.config._is_xdg_platform", lambda: False)
        monkeypatch.setattr(Path, "home", lambda: tmp_path)
        assert get_config_dir() == tmp_path / ".openveo-client"
        assert get_data_dir() == tmp_path / ".openveo-client" / "logs"


# ---------------------------------------------------------------------------
# Atomic writes
# ---------------------------------------------------------------------------


class TestAtomicWrite:
    def test_writes_content(self, tmp_path: Path) -> None:
        target = tmp_path / "sub" / "file.json"
        _atomic_write(target, '{"a": 1}')
        assert target.read_text(encoding="utf-8") == '{"a": 1}'

    def test_replaces_existing(self, tmp_path: Path) -> None:
        target = tmp_path / "file.json"
        target.write_text("old")
        _atomic_write(target, "new")
        assert target.read_text() == "new"

    def test_no_temp_file_left(self, tmp_path: Path) -> None:
        _atomic_write(tmp_path / "file.json", "data")
        assert [p.name for p in tmp_path.iterdir()] == ["file.json"]

    def test_cleans_up_on_failure(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        def _fail(src: str, dst: Any) -> None:
            raise OSError("disk full")

        monkeypatch.setattr("openveo_client.config.os.replace", _fail)
        with pytest.raises(OSError, match="disk full"):
            _atomic_write(tmp_path / "file.json", "data")
        assert list(tmp_path.iterdir()) == []


# ---------------------------------------------------------------------------
# Global config
# ---------------------------------------------------------------------------


class TestGlobalConfig:
    def test_defaults_when_missing(self, isolated_config: Path) -> None:
        assert load_global_config() == GlobalConfig()

    def test_save_and_load(self, isolated_config: Path) -> None:
        save_global_config(GlobalConfig(default_profile="prod"))
        assert load_global_config().default_profile == "prod"

    def test_invalid_json(self, isolated_config: Path) -> None:
        (get_config_dir() / "config.json").write_text("{not json")
        with pytest.raises(ConfigError, match="Invalid global config"):
            load_global_config()

    def test_invalid_content(self, isolated_config: Path) -> None:
        _write_json(get_config_dir() / "config.json", {"auto_select_single_profile": "maybe"})
        with pytest.raises(ConfigError, match="Invalid global config"):
            load_global_config()


# ---------------------------------------------------------------------------
# Profiles
# ---------------------------------------------------------------------------


class TestProfiles:
    def test_save_and_load(self, isolated_config: Path) -> None:
        profile = _make_profile()
        save_profile(profile)
        assert profile_exists("test") is True
        assert load_profile("test") == profile

    def test_list_sorted(self, isolated_config: Path) -> None:
        for name in ["b", "a", "c"]:
            save_profile(_make_profile(name))
        assert list_profiles() == ["a", "b", "c"]

    def test_load_missing(self, isolated_config: Path) -> None:
        with pytest.raises(ConfigError, match="Profile 'nope' not found"):
            load_profile("nope")

    def test_load_invalid(self, isolated_config: Path) -> None:
        _write_json(get_profiles_dir() / "broken.json", {"name": "broken"})
        with pytest.raises(ConfigError, match="Invalid profile 'broken'"):
            load_profile("broken")

    @pytest.mark.parametrize("name", ["", "../escape", ".hidden", "a/b"])
    def test_invalid_name(self, isolated_config: Path, name: str) -> None:
        with pytest.raises(ConfigError, match="Invalid profile name"):
            profile_exists(name)

    def test_delete(self, isolated_config: Path) -> None:
        save_profile(_make_profile())
        delete_profile("test")
        assert profile_exists("test") is False

    def test_delete_clears_default(self, isolated_config: Path) -> None:
        save_profile(_make_profile())
        save_global_config(GlobalConfig(default_profile="test"))
        delete_profile("test")
        assert load_global_config().default_profile is None

    def test_delete_missing(self, isolated_config: Path) -> None:
        with pytest.raises(ConfigError, match="not found"):
            delete_profile("nope")


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


class TestLoadSettings:
    def test_defaults(self, isolated_config: Path) -> None:
        assert load_settings() == ClientSettings()

    def test_base_kept(self, isolated_config: Path) -> None:
        base = ClientSettings(execution_timeout=30.0)
        assert load_settings(base).execution_timeout == 30.0

    def test_base_not_modified(
        self, isolated_config: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        base = ClientSettings()
        monkeypatch.setenv("OPENVEO_TIMEOUT", "3")
        load_settings(base)
        assert base.execution_timeout == 10.0

    def test_env_overrides(self, isolated_config: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("OPENVEO_TIMEOUT", "2.5")
        monkeypatch.setenv("OPENVEO_ABORT_TIMEOUT", "0.5")
        monkeypatch.setenv("OPENVEO_MAX_AUTH_ATTEMPTS", "3")
        monkeypatch.setenv("OPENVEO_FAIL_ON_HTTP_ERROR", "false")

        settings = load_settings(ClientSettings(execution_timeout=30.0))

        assert settings.execution_timeout == 2.5
        assert settings.abort_timeout == 0.5
        assert settings.max_authentication_attempts == 3
        assert settings.fail_on_http_error is False

    def test_infinite_timeout(self, isolated_config: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("OPENVEO_TIMEOUT", "inf")
        assert math.isinf(load_settings().execution_timeout)

    @pytest.mark.parametrize(("value", "production"), [("production", True), ("development", False)])
    def test_environment(
        self,
        isolated_config: Path,
        monkeypatch: pytest.MonkeyPatch,
        value: str,
        production: bool,
    ) -> None:
        monkeypatch.setenv("OPENVEO_ENV", value)
        assert load_settings().production is production

    def test_invalid_value(self, isolated_config: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("OPENVEO_MAX_AUTH_ATTEMPTS", "many")
        with pytest.raises(ConfigError, match="Invalid client settings"):
            load_settings()


# ---------------------------------------------------------------------------
# Precedence resolution
# ---------------------------------------------------------------------------


class TestResolveProfile:
    def test_cli_flag_wins(self, isolated_config: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        save_profile(_make_profile("cli"))
        save_profile(_make_profile("env"))
        save_global_config(GlobalConfig(default_profile="env"))
        monkeypatch.setenv("OPENVEO_PROFILE", "env")
        assert resolve_profile(cli_profile="cli").name == "cli"

    def test_env_over_global(self, isolated_config: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        save_profile(_make_profile("env"))
        save_profile(_make_profile("default"))
        save_global_config(GlobalConfig(default_profile="default"))
        monkeypatch.setenv("OPENVEO_PROFILE", "env")
        assert resolve_profile().name == "env"

    def test_global_default(self, isolated_config: Path) -> None:
        save_profile(_make_profile("a"))
        save_profile(_make_profile("b"))
        save_global_config(GlobalConfig(default_profile="b"))
        assert resolve_profile().name == "b"

    def test_single_profile_auto_selected(self, isolated_config: Path) -> None:
        save_profile(_make_profile("only"))
        assert resolve_profile().name == "only"

    def test_auto_select_disabled(self, isolated_config: Path) -> None:
        save_profile(_make_profile("only"))
        save_global_config(GlobalConfig(auto_select_single_profile=False))
        with pytest.raises(ConfigError, match="No profile configured"):
            resolve_profile()

    def test_nothing_configured(self, isolated_config: Path) -> None:
        with pytest.raises(ConfigError, match="No profile configured"):
            resolve_profile()

    def test_url_overrides(self, isolated_config: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        save_profile(_make_profile("only"))
        monkeypatch.setenv("OPENVEO_URL", "http://env.example.com")
        assert resolve_profile().url == "http://env.example.com"
        assert resolve_profile(cli_url="http://cli.example.com").url == "http://cli.example.com"
        assert load_profile("only").url == "https://openveo.example.com"

    def test_url_without_profile(self, isolated_config: Path) -> None:
        profile = resolve_profile(cli_url="http://localhost:3000")
        assert profile.url == "http://localhost:3000"
        assert profile.client_id_source == "env:OPENVEO_CLIENT_ID"
        assert profile.client_secret_source == "env:OPENVEO_CLIENT_SECRET"

    def test_settings_include_env(self, isolated_config: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        save_profile(_make_profile("only"))
        monkeypatch.setenv("OPENVEO_ENV", "development")
        assert resolve_profile().settings.production is False


# ---------------------------------------------------------------------------
# Credential sources
# ---------------------------------------------------------------------------


class TestResolveCredential:
    def test_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("MY_SECRET", "s3cret")
        assert resolve_credential("env:MY_SECRET") == "s3cret"

    def test_env_missing(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("MY_SECRET", raising=False)
        with pytest.raises(ConfigError, match="'MY_SECRET' is not set"):
            resolve_credential("env:MY_SECRET")

    def test_file(self, tmp_path: Path) -> None:
        secret = tmp_path / "secret"
        secret.write_text("s3cret\n")
        assert resolve_credential(f"file:{secret}") == "s3cret"

    def test_file_missing(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError, match="Credential file not found"):
            resolve_credential(f"file:{tmp_path / 'missing'}")

    def test_prompt(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("sys.stdin.isatty", lambda: True)
        monkeypatch.setattr("getpass.getpass", lambda prompt: "typed")
        assert resolve_credential("prompt") == "typed"

    def test_prompt_without_tty(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("sys.stdin.isatty", lambda: False)
        with pytest.raises(ConfigError, match="not a TTY"):
            resolve_credential("prompt")

    def test_unknown(self) -> None:
        with pytest.raises(ConfigError, match="Unknown credential source"):
            resolve_credential("literal-secret")

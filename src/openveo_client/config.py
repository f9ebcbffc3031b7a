"""Configuration management with XDG paths, atomic writes, and precedence resolution.

This module handles all persistent configuration of the ``openveo-client``
command:

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.openveo-client/`` on macOS and Windows. See :func:`get_config_dir`,
  :func:`get_data_dir`, :func:`get_profiles_dir`.
* **Global config** -- A single :class:`~openveo_client.models.GlobalConfig`
  JSON file storing the default profile.
* **Profiles** -- One JSON file per web service, each deserialised into a
  :class:`~openveo_client.models.Profile`. Managed via :func:`load_profile`,
  :func:`save_profile`, :func:`delete_profile`.
* **Precedence resolution** -- :func:`resolve_profile` picks the active
  profile from CLI flags, environment variables and the global config;
  :func:`load_settings` layers ``OPENVEO_*`` environment variables over
  the profile's :class:`~openveo_client.models.ClientSettings`.
* **Credential resolution** -- :func:`resolve_credential` reads client ids
  and secrets from env vars, files or interactive prompts.

All file writes use an atomic temp-file-then-rename strategy
(:func:`_atomic_write`).
"""

from __future__ import annotations

import getpass
import json
import os
import platform
import sys
import tempfile
from pathlib import Path
from typing import Any, Optional

from openveo_client.exceptions import ConfigError
from openveo_client.models import ClientSettings, GlobalConfig, Profile

_APP_NAME = "openveo-client"
_CONFIG_FILENAME = "config.json"

ENV_PROFILE = "OPENVEO_PROFILE"
ENV_URL = "OPENVEO_URL"
ENV_CLIENT_ID = "OPENVEO_CLIENT_ID"
ENV_CLIENT_SECRET = "OPENVEO_CLIENT_SECRET"
ENV_ENVIRONMENT = "OPENVEO_ENV"

_SETTINGS_ENV = {
    "OPENVEO_TIMEOUT": "execution_timeout",
    "OPENVEO_ABORT_TIMEOUT": "abort_timeout",
    "OPENVEO_MAX_AUTH_ATTEMPTS": "max_authentication_attempts",
    "OPENVEO_FAIL_ON_HTTP_ERROR": "fail_on_http_error",
}
"""Environment variables overriding :class:`ClientSettings` fields."""


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Return True if the platform supports XDG Base Directory spec (Linux/FreeBSD)."""
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def _fallback_base_dir() -> Path:
    """Fallback base directory for non-XDG platforms (macOS, Windows)."""
    return Path.home() / f".{_APP_NAME}"


def _xdg_base(env_var: str, default_segments: tuple[str, ...]) -> Path:
    """Resolve an XDG base directory from an env var with fallback segments under $HOME."""
    env_value = os.environ.get(env_var, "")
    if env_value:
        return Path(env_value)
    return Path.home().joinpath(*default_segments)


def get_config_dir() -> Path:
    """Return the configuration directory, creating it if necessary.

    On Linux/BSD: ``$XDG_CONFIG_HOME/openveo-client/`` (default
    ``~/.config/openveo-client/``). On macOS/Windows: ``~/.openveo-client/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_CONFIG_HOME", (".config",)) / _APP_NAME
    else:
        path = _fallback_base_dir()
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_data_dir() -> Path:
    """Return the data directory (crash logs), creating it if necessary.

    On Linux/BSD: ``$XDG_DATA_HOME/openveo-client/`` (default
    ``~/.local/share/openveo-client/``). On macOS/Windows:
    ``~/.openveo-client/logs/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_DATA_HOME", (".local", "share")) / _APP_NAME
    else:
        path = _fallback_base_dir() / "logs"
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_profiles_dir() -> Path:
    """Return the profiles directory (``<config_dir>/profiles/``), creating it if necessary."""
    path = get_config_dir() / "profiles"
    path.mkdir(parents=True, exist_ok=True)
    return path


# --- Atomic file writes ---


def _atomic_write(path: Path, data: str) -> None:
    """Write *data* to *path* through a temporary file renamed over it.

    The temporary file lives in the same directory as *path* so that
    ``os.replace`` is an atomic rename. It is removed if anything fails.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(data)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_path, path)
    except BaseException:
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise


def _read_json(path: Path, what: str) -> Any:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        raise ConfigError(f"Invalid {what} at {path}: {exc}") from exc


# --- Global config ---


def _global_config_path() -> Path:
    return get_config_dir() / _CONFIG_FILENAME


def load_global_config() -> GlobalConfig:
    """Load the global configuration.

    Returns:
        The stored :class:`~openveo_client.models.GlobalConfig`, or a
        default instance if none was saved yet.

    Raises:
        ConfigError: If the file holds invalid JSON or fails validation.
    """
    path = _global_config_path()
    if not path.is_file():
        return GlobalConfig()
    data = _read_json(path, "global config")
    try:
        return GlobalConfig.model_validate(data)
    except ValueError as exc:
        raise ConfigError(f"Invalid global config at {path}: {exc}") from exc


def save_global_config(config: GlobalConfig) -> None:
    """Persist the global configuration atomically."""
    data = config.model_dump(mode="json")
    _atomic_write(_global_config_path(), json.dumps(data, indent=2) + "\n")


# --- Profiles ---


def _profile_path(name: str) -> Path:
    if not name or "/" in name or "\\" in name or name.startswith("."):
        raise ConfigError(f"Invalid profile name: {name!r}")
    return get_profiles_dir() / f"{name}.json"


def list_profiles() -> list[str]:
    """Return all profile names, sorted alphabetically."""
    return sorted(p.stem for p in get_profiles_dir().glob("*.json") if p.is_file())


def profile_exists(name: str) -> bool:
    """Check whether a profile named *name* is stored."""
    return _profile_path(name).is_file()


def load_profile(name: str) -> Profile:
    """Load and validate a stored profile.

    Args:
        name: Profile name (``<name>.json`` in the profiles directory).

    Returns:
        The deserialised :class:`~openveo_client.models.Profile`.

    Raises:
        ConfigError: If the profile does not exist, holds invalid JSON or
            fails validation.
    """
    path = _profile_path(name)
    if not path.is_file():
        raise ConfigError(f"Profile '{name}' not found at {path}")
    data = _read_json(path, f"profile '{name}'")
    try:
        return Profile.model_validate(data)
    except ValueError as exc:
        raise ConfigError(f"Invalid profile '{name}' at {path}: {exc}") from exc


def save_profile(profile: Profile) -> None:
    """Persist *profile* atomically, under a file named after ``profile.name``."""
    data = profile.model_dump(mode="json")
    _atomic_write(_profile_path(profile.name), json.dumps(data, indent=2) + "\n")


def delete_profile(name: str) -> None:
    """Delete a stored profile.

    A global default pointing to the deleted profile is cleared as well.

    Raises:
        ConfigError: If the profile does not exist.
    """
    path = _profile_path(name)
    if not path.is_file():
        raise ConfigError(f"Profile '{name}' not found at {path}")
    path.unlink()

    global_cfg = load_global_config()
    if global_cfg.default_profile == name:
        global_cfg.default_profile = None
        save_global_config(global_cfg)


# --- Precedence resolution ---


def load_settings(base: Optional[ClientSettings] = None) -> ClientSettings:
    """Layer environment variables over *base* settings.

    ``OPENVEO_ENV`` set to anything but ``production`` disables TLS
    certificate rejection. ``OPENVEO_TIMEOUT``, ``OPENVEO_ABORT_TIMEOUT``,
    ``OPENVEO_MAX_AUTH_ATTEMPTS`` and ``OPENVEO_FAIL_ON_HTTP_ERROR``
    override the matching :class:`~openveo_client.models.ClientSettings`
    fields.

    Args:
        base: Settings to start from, typically those of the active
            profile. Defaults to :class:`ClientSettings` defaults.

    Returns:
        A new :class:`ClientSettings`; *base* is left untouched.

    Raises:
        ConfigError: If an environment variable holds an invalid value.
    """
    data = (base or ClientSettings()).model_dump()

    environment = os.environ.get(ENV_ENVIRONMENT)
    if environment:
        data["production"] = environment == "production"

    overrides = {
        field: os.environ[var]
        for var, field in _SETTINGS_ENV.items()
        if os.environ.get(var, "") != ""
    }
    data.update(overrides)
    try:
        return ClientSettings.model_validate(data)
    except ValueError as exc:
        raise ConfigError(f"Invalid client settings in environment: {exc}") from exc


def resolve_profile(
    cli_profile: Optional[str] = None,
    cli_url: Optional[str] = None,
) -> Profile:
    """Resolve the active profile with its full precedence chain.

    Profile name precedence (high to low):
        1. ``--profile`` CLI flag
        2. ``OPENVEO_PROFILE`` environment variable
        3. ``default_profile`` of the global config
        4. The only stored profile, if ``auto_select_single_profile`` is on

    The web service URL of the profile is overridden by ``--url``, then by
    ``OPENVEO_URL``. Without any profile, a URL alone is enough: the client
    id and secret are then read from ``OPENVEO_CLIENT_ID`` and
    ``OPENVEO_CLIENT_SECRET``.

    The returned profile's settings already include the environment
    overrides of :func:`load_settings`.

    Returns:
        The active :class:`~openveo_client.models.Profile`.

    Raises:
        ConfigError: If no profile can be resolved or it fails to load.
    """
    global_cfg = load_global_config()

    name: Optional[str] = cli_profile or os.environ.get(ENV_PROFILE) or global_cfg.default_profile
    if name is None and global_cfg.auto_select_single_profile:
        profiles = list_profiles()
        if len(profiles) == 1:
            name = profiles[0]

    url = cli_url or os.environ.get(ENV_URL) or None

    if name is not None:
        profile = load_profile(name)
        if url:
            profile.url = url
    elif url:
        profile = Profile(
            name="environment",
            url=url,
            client_id_source=f"env:{ENV_CLIENT_ID}",
            client_secret_source=f"env:{ENV_CLIENT_SECRET}",
        )
    else:
        raise ConfigError(
            "No profile configured. Run 'openveo-client profile add' "
            f"or set {ENV_URL}."
        )

    profile.settings = load_settings(profile.settings)
    return profile


# --- Credential source resolution ---


def resolve_credential(source: str) -> str:
    """Resolve a credential from its source descriptor.

    Supported formats:
        - ``"env:VAR_NAME"`` -- reads ``os.environ["VAR_NAME"]``
        - ``"file:/path/to/file"`` -- reads file content, stripped of whitespace
        - ``"prompt"`` -- prompts user interactively (requires a TTY)

    Args:
        source: The source descriptor string.

    Returns:
        The resolved credential string.

    Raises:
        ConfigError: If the source can't be resolved.
    """
    if source.startswith("env:"):
        var_name = source[4:]
        value = os.environ.get(var_name)
        if value is None:
            raise ConfigError(
                f"Environment variable '{var_name}' is not set (source: {source})"
            )
        return value

    if source.startswith("file:"):
        path = Path(source[5:]).expanduser()
        if not path.is_file():
            raise ConfigError(f"Credential file not found: {path} (source: {source})")
        try:
            return path.read_text(encoding="utf-8").strip()
        except OSError as exc:
            raise ConfigError(f"Cannot read credential file {path}: {exc}") from exc

    if source == "prompt":
        if not sys.stdin.isatty():
            raise ConfigError(
                "Cannot prompt for credentials: stdin is not a TTY (source: prompt)"
            )
        return getpass.getpass("Enter credential: ")

    raise ConfigError(f"Unknown credential source format: {source}")

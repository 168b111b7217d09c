"""Configuration management with XDG paths, atomic writes, and precedence resolution.

This module handles the persistent, process-level configuration for
platform-auth:

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.platform-auth/`` on macOS and Windows. See :func:`get_config_dir`
  and :func:`get_data_dir`.
* **Settings** -- a single :class:`~platform_auth.models.AuthSettings` JSON
  file storing defaults (environment, realm, client id, token store).
* **Precedence resolution** -- :func:`resolve_settings` layers
  ``PLATFORM_AUTH_*`` environment variables over the settings file.

File writes use an atomic temp-file-then-rename strategy
(:func:`atomic_write`); the file token store reuses it for its token file.
"""

from __future__ import annotations

import json
import os
import platform
import tempfile
from pathlib import Path
from typing import Optional

from platform_auth.exceptions import ConfigError
from platform_auth.models import AuthSettings

_APP_NAME = "platform-auth"
_CONFIG_FILENAME = "config.json"
_ENV_PREFIX = "PLATFORM_AUTH_"

# Settings fields that may be overridden from the environment.
_ENV_FIELDS = (
    "env",
    "base_url",
    "realm",
    "client_id",
    "token_store_type",
    "token_store_dir",
    "interactive_login_timeout",
    "token_refresh_threshold",
)


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
    base = Path.home()
    for seg in default_segments:
        base = base / seg
    return base


def get_config_dir() -> Path:
    """Return the configuration directory, creating it if necessary.

    On Linux/BSD: ``$XDG_CONFIG_HOME/platform-auth/`` (default
    ``~/.config/platform-auth/``). On macOS/Windows: ``~/.platform-auth/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_CONFIG_HOME", (".config",)) / _APP_NAME
    else:
        path = _fallback_base_dir()
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_data_dir() -> Path:
    """Return the data directory (token store, crash logs), creating it if necessary.

    On Linux/BSD: ``$XDG_DATA_HOME/platform-auth/`` (default
    ``~/.local/share/platform-auth/``). On macOS/Windows:
    ``~/.platform-auth/data/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_DATA_HOME", (".local", "share")) / _APP_NAME
    else:
        path = _fallback_base_dir() / "data"
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_token_store_dir() -> Path:
    """Return the default directory for the file token store (``<data_dir>/tokens``)."""
    path = get_data_dir() / "tokens"
    path.mkdir(parents=True, exist_ok=True)
    return path


# --- Atomic file writes ---


def atomic_write(path: Path, data: str | bytes, mode: Optional[int] = None) -> None:
    """Write data to file atomically using temp file + rename.

    The temporary file is created in the same directory as *path* so that
    ``os.replace`` is an atomic rename on POSIX systems. When *mode* is given
    it is applied to the temp file before any content is written, so secrets
    are never world-readable, even momentarily.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    binary = isinstance(data, bytes)

    fd = None
    tmp_path: Optional[str] = None
    try:
        fd = tempfile.NamedTemporaryFile(
            mode="wb" if binary else "w",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
            encoding=None if binary else "utf-8",
        )
        tmp_path = fd.name
        if mode is not None:
            os.chmod(tmp_path, mode)
        fd.write(data)
        fd.flush()
        os.fsync(fd.fileno())
        fd.close()
        fd = None  # prevent double-close below
        os.replace(tmp_path, path)
    except BaseException:
        # Clean up the temp file on any error (including KeyboardInterrupt).
        if fd is not None:
            fd.close()
        if tmp_path is not None:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
        raise


# --- Settings ---


def _settings_path() -> Path:
    """Path to the settings file."""
    return get_config_dir() / _CONFIG_FILENAME


def load_settings() -> AuthSettings:
    """Load settings from the config directory.

    Returns:
        The deserialised :class:`~platform_auth.models.AuthSettings`, or a
        default instance when the file does not exist.

    Raises:
        ConfigError: If the file exists but contains invalid JSON or fails
            validation.
    """
    path = _settings_path()
    if not path.is_file():
        return AuthSettings()
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        return AuthSettings.model_validate(data)
    except (json.JSONDecodeError, ValueError) as exc:
        raise ConfigError(f"Invalid config at {path}: {exc}") from exc


def save_settings(settings: AuthSettings) -> None:
    """Persist settings atomically to disk."""
    data = settings.model_dump(mode="json", exclude_defaults=True)
    atomic_write(_settings_path(), json.dumps(data, indent=2) + "\n")


def resolve_settings() -> AuthSettings:
    """Resolve settings with the environment layered over the config file.

    Precedence (high to low):
        1. ``PLATFORM_AUTH_<FIELD>`` environment variables
        2. User config (``~/.config/platform-auth/config.json``)
        3. Defaults

    Raises:
        ConfigError: If the config file or an environment value is invalid.
    """
    settings = load_settings()
    overrides: dict[str, str] = {}
    for field in _ENV_FIELDS:
        value = os.environ.get(f"{_ENV_PREFIX}{field.upper()}")
        if value:
            overrides[field] = value
    if not overrides:
        return settings
    try:
        return AuthSettings.model_validate({**settings.model_dump(), **overrides})
    except ValueError as exc:
        raise ConfigError(f"Invalid {_ENV_PREFIX}* environment variable: {exc}") from exc

"""Settings storage and resolution.

* **Where files live** -- on Linux and the BSDs, ``$XDG_CONFIG_HOME`` and
  ``$XDG_DATA_HOME`` (defaulting to ``~/.config`` and ``~/.local/share``)
  each get a ``sessionbridge`` directory. Elsewhere everything sits under
  ``~/.sessionbridge/``. See :func:`get_config_dir` and :func:`get_data_dir`.
* **Config file** -- ``config.json``, one JSON object of
  :class:`~sessionbridge.models.Settings` fields, read and written by
  :func:`load_config_file` and :func:`save_config_file`.
* **Resolution** -- :func:`resolve_settings` layers explicit overrides,
  environment variables, the config file and model defaults into the
  frozen settings a background context is built from.

Every write goes through :func:`atomic_write`, so a crash leaves either
the old file or the new one, never half of each.
"""

from __future__ import annotations

import json
import os
import platform
import tempfile
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError

from sessionbridge.exceptions import ConfigError
from sessionbridge.models import Settings

_APP_NAME = "sessionbridge"
_CONFIG_FILENAME = "config.json"
_ENV_PREFIX = "SESSIONBRIDGE_"

# Unprefixed variable names understood for compatibility with existing
# extension build environments.
_LEGACY_ENV = {
    "client_id": "CLIENT_ID",
    "redirect_uri": "REDIRECT_URI",
    "handle_resolver": "HANDLE_RESOLVER",
    "server_url": "SERVER_URL",
}


# --- Directories ---


def _is_xdg_platform() -> bool:
    system = platform.system()
    return system == "Linux" or system.endswith("BSD")


def _app_dir(xdg_var: str, xdg_default: str, fallback: Path) -> Path:
    if _is_xdg_platform():
        root = os.environ.get(xdg_var) or str(Path.home() / xdg_default)
        path = Path(root) / _APP_NAME
    else:
        path = fallback
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_config_dir() -> Path:
    """Directory holding ``config.json``; created on first use."""
    return _app_dir("XDG_CONFIG_HOME", ".config", Path.home() / f".{_APP_NAME}")


def get_data_dir() -> Path:
    """Directory holding sessions, pending authorizations and crash logs.

    Created on first use. Outside XDG platforms this is
    ``~/.sessionbridge/data/``.
    """
    return _app_dir(
        "XDG_DATA_HOME",
        os.path.join(".local", "share"),
        Path.home() / f".{_APP_NAME}" / "data",
    )


# --- Writing ---


def atomic_write(path: Path, data: str, mode: Optional[int] = None) -> None:
    """Replace *path* with *data* in one rename.

    The content is staged in a sibling temp file (same filesystem, so
    ``os.replace`` is atomic) and fsynced first. *mode*, when given, is
    set on the temp file before any content lands in it. The temp file is
    removed if anything goes wrong.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, staged = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            if mode is not None:
                os.chmod(staged, mode)
            handle.write(data)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(staged, path)
    except BaseException:
        Path(staged).unlink(missing_ok=True)
        raise


# --- Config file ---


def config_file_path() -> Path:
    """Path to the config file."""
    return get_config_dir() / _CONFIG_FILENAME


def load_config_file() -> dict[str, Any]:
    """Load the raw config file.

    Returns:
        The stored settings as a dict; empty when the file does not exist.

    Raises:
        ConfigError: If the file exists but is not a JSON object.
    """
    path = config_file_path()
    if not path.is_file():
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, OSError) as exc:
        raise ConfigError(f"Invalid config file at {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Invalid config file at {path}: expected a JSON object")
    return data


def save_config_file(data: dict[str, Any]) -> None:
    """Persist raw settings atomically.

    Raises:
        ConfigError: If a key is not a settings field.
    """
    unknown = sorted(set(data) - set(Settings.model_fields))
    if unknown:
        raise ConfigError(f"Unknown config keys: {', '.join(unknown)}")
    atomic_write(config_file_path(), json.dumps(data, indent=2) + "\n")


# --- Precedence resolution ---


def _env_overrides() -> dict[str, str]:
    """Collect settings from the environment, prefixed names winning."""
    values: dict[str, str] = {}
    for field, var in _LEGACY_ENV.items():
        value = os.environ.get(var)
        if value:
            values[field] = value
    for field in Settings.model_fields:
        value = os.environ.get(f"{_ENV_PREFIX}{field.upper()}")
        if value:
            values[field] = value
    return values


def resolve_settings(overrides: Optional[dict[str, Any]] = None) -> Settings:
    """Resolve the static settings with the full precedence chain.

    Precedence (high to low):
        1. Explicit *overrides* (used by tests and embedding code)
        2. Environment variables (``SESSIONBRIDGE_<FIELD>``, then the
           unprefixed ``CLIENT_ID``, ``REDIRECT_URI``, ``HANDLE_RESOLVER``,
           ``SERVER_URL``)
        3. Config file (``~/.config/sessionbridge/config.json``)
        4. Model defaults

    Raises:
        ConfigError: If required settings are missing or a value is invalid.
    """
    data = load_config_file()
    data.update(_env_overrides())
    if overrides:
        data.update(overrides)

    required = [
        name for name, field in Settings.model_fields.items() if field.is_required()
    ]
    missing = [name for name in required if not data.get(name)]
    if missing:
        raise ConfigError(
            f"Missing required settings: {', '.join(missing)}. "
            "Set them with 'sessionbridge config set' or the environment."
        )

    try:
        return Settings.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"Invalid settings: {exc}") from exc

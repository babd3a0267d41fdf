"""Configuration management with XDG paths, atomic writes, and precedence resolution.

This module handles all persistent configuration for authflow:

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.authflow/`` on macOS and Windows. See :func:`get_config_dir` and
  :func:`get_data_dir`.
* **Client config** -- A single :class:`~authflow.models.ClientConfig`
  JSON file holding the brand identifier, default host, timeouts, refresh
  policy, token endpoint paths and connectivity probe settings.
* **Precedence resolution** -- :func:`resolve_config` merges CLI flags,
  environment variables and the config file into the effective
  configuration.

All file writes use an atomic temp-file-then-rename strategy
(:func:`atomic_write`) to prevent data loss on crash or power failure.
"""

from __future__ import annotations

import json
import os
import platform
import tempfile
from pathlib import Path
from typing import Optional

from authflow.exceptions import ConfigError
from authflow.models import ClientConfig

_APP_NAME = "authflow"
_CONFIG_FILENAME = "config.json"

ENV_BRAND_ID = "AUTHFLOW_BRAND_ID"
ENV_HOST = "AUTHFLOW_HOST"


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Return True on platforms that follow the XDG Base Directory layout (Linux/BSD)."""
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

    On Linux/BSD: ``$XDG_CONFIG_HOME/authflow/`` (default ``~/.config/authflow/``).
    On macOS/Windows: ``~/.authflow/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_CONFIG_HOME", (".config",)) / _APP_NAME
    else:
        path = _fallback_base_dir()
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_data_dir() -> Path:
    """Return the data directory (credentials), creating it if necessary.

    On Linux/BSD: ``$XDG_DATA_HOME/authflow/`` (default ``~/.local/share/authflow/``).
    On macOS/Windows: ``~/.authflow/data/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_DATA_HOME", (".local", "share")) / _APP_NAME
    else:
        path = _fallback_base_dir() / "data"
    path.mkdir(parents=True, exist_ok=True)
    return path


# --- Atomic file writes ---


def atomic_write(path: Path, data: str, mode: Optional[int] = None) -> None:
    """Write data to file atomically using temp file + rename.

    The temporary file is created in the same directory as *path* so that
    ``os.replace`` is an atomic rename on POSIX systems.  When *mode* is
    given it is applied to the temp file before any content is written.
    On any failure the temp file is cleaned up.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    fd = None
    tmp_path: Optional[str] = None
    try:
        fd = tempfile.NamedTemporaryFile(
            mode="w",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
            encoding="utf-8",
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


# --- Client config ---


def config_path() -> Path:
    """Path to the client config file."""
    return get_config_dir() / _CONFIG_FILENAME


def load_config(path: Optional[Path] = None) -> ClientConfig:
    """Load the client configuration.

    Args:
        path: Config file to read.  Defaults to :func:`config_path`.

    Returns:
        The deserialised :class:`~authflow.models.ClientConfig`, or a
        default instance when the file does not exist.

    Raises:
        ConfigError: If the file exists but contains invalid JSON or fails
            Pydantic validation.
    """
    path = path or config_path()
    if not path.is_file():
        return ClientConfig()
    try:
        text = path.read_text(encoding="utf-8")
        return ClientConfig.model_validate(json.loads(text))
    except (json.JSONDecodeError, ValueError) as exc:
        raise ConfigError(f"Invalid config at {path}: {exc}") from exc


def save_config(config: ClientConfig, path: Optional[Path] = None) -> None:
    """Persist the client configuration atomically to disk."""
    data = config.model_dump(mode="json")
    atomic_write(path or config_path(), json.dumps(data, indent=2) + "\n")


# --- Precedence resolution ---


def resolve_config(
    cli_host: Optional[str] = None,
    cli_brand_id: Optional[str] = None,
    path: Optional[Path] = None,
) -> ClientConfig:
    """Resolve the effective config.

    Precedence (high to low):
        1. CLI flags (``cli_host``, ``cli_brand_id``)
        2. Environment variables (``AUTHFLOW_HOST``, ``AUTHFLOW_BRAND_ID``)
        3. Config file (``~/.config/authflow/config.json``)
        4. Defaults
    """
    config = load_config(path)

    env_host = os.environ.get(ENV_HOST)
    if env_host:
        config.host = env_host
    env_brand = os.environ.get(ENV_BRAND_ID)
    if env_brand:
        config.brand_id = env_brand

    if cli_host is not None:
        config.host = cli_host
    if cli_brand_id is not None:
        config.brand_id = cli_brand_id

    return config

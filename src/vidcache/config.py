"""Configuration management with project-local config, atomic writes, and precedence resolution.

This module handles all persistent configuration for vidcache:

* **Project config** -- A ``vidcache.json`` file in the working directory,
  deserialised into a :class:`~vidcache.models.ProjectConfig`. It lists the
  channel and playlists the site publishes and the cache tunables.
* **Cache directory** -- :func:`resolve_cache_dir` merges the CLI flag,
  ``VIDCACHE_CACHE_DIR`` and the project config into the effective path
  (default ``./.youtube-cache``).
* **Credential resolution** -- :func:`resolve_credential` reads the API key
  from an environment variable or a file.
* **Data directory** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.vidcache/`` elsewhere; holds crash logs. See :func:`get_data_dir`.

All cache file writes go through :func:`_atomic_write`, a temp-file-then-rename
strategy that prevents readers from ever seeing half-written JSON.
"""

from __future__ import annotations

import json
import os
import platform
import tempfile
from pathlib import Path
from typing import Optional

from vidcache.exceptions import ConfigError, MissingCredentialError
from vidcache.models import ProjectConfig

_APP_NAME = "vidcache"
_PROJECT_CONFIG_FILENAME = "vidcache.json"
_DEFAULT_CACHE_DIRNAME = ".youtube-cache"
CACHE_DIR_ENV = "VIDCACHE_CACHE_DIR"


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Return True if the platform supports XDG Base Directory spec (Linux/FreeBSD)."""
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def get_data_dir() -> Path:
    """Return the data directory (crash logs), creating it if necessary.

    On Linux/BSD: ``$XDG_DATA_HOME/vidcache/`` (default ``~/.local/share/vidcache/``).
    On macOS/Windows: ``~/.vidcache/``.

    Returns:
        Absolute path to the data directory (guaranteed to exist).
    """
    if _is_xdg_platform():
        env_value = os.environ.get("XDG_DATA_HOME", "")
        base = Path(env_value) if env_value else Path.home() / ".local" / "share"
        path = base / _APP_NAME
    else:
        path = Path.home() / f".{_APP_NAME}"
    path.mkdir(parents=True, exist_ok=True)
    return path


# --- Atomic file writes ---


def _atomic_write(path: Path, data: str) -> None:
    """Write data to file atomically using temp file + rename.

    The temporary file is created in the same directory as *path* with a
    unique name, so concurrent writers never share a temp file and
    ``os.replace`` is an atomic rename on POSIX systems. On success the
    temp file is renamed over *path*; on any failure it is cleaned up.
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
        fd.write(data)
        fd.flush()
        os.fsync(fd.fileno())
        fd.close()
        fd = None  # prevent double-close in finally
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


# --- Project config ---


def project_config_path(path: Optional[str | Path] = None) -> Path:
    """Return *path* or ``./vidcache.json`` when not given."""
    if path is not None:
        return Path(path)
    return Path.cwd() / _PROJECT_CONFIG_FILENAME


def load_project_config(path: Optional[str | Path] = None) -> ProjectConfig:
    """Load project configuration from ``vidcache.json``.

    Args:
        path: Explicit config file. Defaults to ``vidcache.json`` in the
            current working directory.

    Returns:
        The validated :class:`~vidcache.models.ProjectConfig`. When no file
        exists (and no explicit *path* was given) a default instance with
        no playlists is returned, so maintenance commands keep working.

    Raises:
        ConfigError: If an explicit *path* does not exist, or the file
            contains invalid JSON or fails Pydantic validation.
    """
    config_path = project_config_path(path)
    if not config_path.is_file():
        if path is not None:
            raise ConfigError(f"Config file not found: {config_path}")
        return ProjectConfig()
    try:
        text = config_path.read_text(encoding="utf-8")
        data = json.loads(text)
        return ProjectConfig.model_validate(data)
    except (json.JSONDecodeError, ValueError) as exc:
        raise ConfigError(f"Invalid project config at {config_path}: {exc}") from exc


# --- Precedence resolution ---


def resolve_cache_dir(
    cli_cache_dir: Optional[str] = None,
    project: Optional[ProjectConfig] = None,
) -> Path:
    """Resolve the cache directory with the full precedence chain.

    Precedence (high to low):
        1. CLI flag (``--cache-dir``)
        2. Environment variable (``VIDCACHE_CACHE_DIR``)
        3. Project config (``cacheDir`` in ``vidcache.json``)
        4. Default ``./.youtube-cache``

    The directory is not created here; the store creates it lazily on the
    first write.
    """
    if cli_cache_dir:
        return Path(cli_cache_dir)
    env_dir = os.environ.get(CACHE_DIR_ENV)
    if env_dir:
        return Path(env_dir)
    if project is not None and project.cache_dir:
        return Path(project.cache_dir)
    return Path.cwd() / _DEFAULT_CACHE_DIRNAME


# --- Credential source resolution ---


def resolve_credential(source: str) -> str:
    """Resolve the API key from its source descriptor.

    Supported formats:
        - ``"env:VAR_NAME"`` -- reads ``os.environ["VAR_NAME"]``
        - ``"file:/path/to/file"`` -- reads file content, stripped of whitespace

    Args:
        source: The source descriptor string.

    Returns:
        The resolved credential string.

    Raises:
        MissingCredentialError: If the variable is unset or empty, or the
            file is missing or empty.
        ConfigError: If the descriptor format is unknown.
    """
    if source.startswith("env:"):
        var_name = source[4:]
        value = os.environ.get(var_name)
        if not value:
            raise MissingCredentialError(
                f"Environment variable '{var_name}' is not set (source: {source})"
            )
        return value

    if source.startswith("file:"):
        path = Path(source[5:]).expanduser()
        if not path.is_file():
            raise MissingCredentialError(f"Credential file not found: {path} (source: {source})")
        try:
            value = path.read_text(encoding="utf-8").strip()
        except OSError as exc:
            raise MissingCredentialError(f"Cannot read credential file {path}: {exc}") from exc
        if not value:
            raise MissingCredentialError(f"Credential file is empty: {path}")
        return value

    raise ConfigError(f"Unknown credential source format: {source}")

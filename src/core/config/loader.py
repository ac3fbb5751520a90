"""
Configuration loader — reads aptcache.yml and the environment into settings.

Precedence, highest first:
    APTCACHE_* environment variables  >  aptcache.yml  >  model defaults

The YAML file is optional. It may be flat or wrap everything under a
``cache:`` key.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

import yaml
from pydantic import ValidationError

from src.core.models.settings import CacheSettings

logger = logging.getLogger(__name__)

# Default config filename
CONFIG_FILE = "aptcache.yml"

ENV_PREFIX = "APTCACHE_"

# Settings fields that may be overridden from the environment.
_ENV_FIELDS = (
    "cache_dir",
    "root_dir",
    "archive_ext",
    "install_command",
    "use_sudo",
    "max_workers",
    "apt_lists_max_age_minutes",
    "command_timeout",
    "execute_install_scripts",
)


class ConfigError(Exception):
    """Raised when configuration is invalid or unreadable."""

    exit_code = 9


def find_config_file(start_dir: Path | None = None) -> Path | None:
    """Search for aptcache.yml starting from the given directory, walking up.

    Args:
        start_dir: Directory to start searching from (default: cwd).

    Returns:
        Path to aptcache.yml, or None if not found.
    """
    current = (start_dir or Path.cwd()).resolve()

    for _ in range(20):  # safety limit
        candidate = current / CONFIG_FILE
        if candidate.is_file():
            return candidate
        parent = current.parent
        if parent == current:
            break  # filesystem root
        current = parent

    return None


def _read_yaml(path: Path) -> dict:
    if not path.is_file():
        raise ConfigError(f"Config file not found: {path}")

    logger.debug("Loading cache config from %s", path)

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")

    section = data.get("cache", data)
    if not isinstance(section, dict):
        raise ConfigError(f"Expected 'cache' to be a mapping in {path}")
    return dict(section)


def _env_overrides(environ: dict[str, str]) -> dict[str, str]:
    overrides = {}
    for name in _ENV_FIELDS:
        value = environ.get(ENV_PREFIX + name.upper())
        if value is not None and value != "":
            overrides[name] = value
    # APTCACHE_DIR is the short form most workflows use.
    if "cache_dir" not in overrides and environ.get("APTCACHE_DIR"):
        overrides["cache_dir"] = environ["APTCACHE_DIR"]
    return overrides


def load_settings(
    path: Path | None = None,
    *,
    search: bool = True,
    environ: dict[str, str] | None = None,
    **overrides: object,
) -> CacheSettings:
    """Load and validate the effective cache settings.

    Args:
        path: Explicit path to aptcache.yml.
        search: If no path is given, look for aptcache.yml upward from cwd.
        environ: Environment mapping (default: ``os.environ``).
        **overrides: Values that beat every other source (CLI options).
            None values are ignored.

    Raises:
        ConfigError: If the file or any value is invalid.
    """
    if path is None and search:
        path = find_config_file()

    data: dict = _read_yaml(path) if path is not None else {}
    data.update(_env_overrides(dict(os.environ if environ is None else environ)))
    data.update({k: v for k, v in overrides.items() if v is not None})

    try:
        settings = CacheSettings.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid cache configuration: {e}") from e

    logger.debug("Cache settings: %s", settings.model_dump(mode="json"))
    return settings

"""
CacheSettings — effective configuration for one invocation.

Loaded from aptcache.yml (optional) and APTCACHE_* environment
variables by ``src.core.config.loader``.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, Field, field_validator


def _default_cache_dir() -> Path:
    return Path.home() / ".cache" / "apt-pkg-cache"


class CacheSettings(BaseModel):
    """Where the cache lives and how commands are run."""

    cache_dir: Path = Field(default_factory=_default_cache_dir)
    root_dir: str = ""                  # "" = live filesystem root
    archive_ext: str = "tar"
    install_command: str = "apt-get"    # or apt-fast, if installed
    use_sudo: bool = True
    max_workers: int = Field(default=4, ge=1, le=64)
    apt_lists_max_age_minutes: int = Field(default=5, ge=0)
    command_timeout: int = Field(default=1800, ge=1)
    execute_install_scripts: bool = False

    @field_validator("archive_ext")
    @classmethod
    def _strip_dot(cls, v: str) -> str:
        v = v.lstrip(".")
        if not v:
            raise ValueError("archive_ext cannot be empty")
        return v

    @field_validator("cache_dir", mode="before")
    @classmethod
    def _expand_home(cls, v: object) -> object:
        if isinstance(v, str):
            return Path(v).expanduser()
        return v

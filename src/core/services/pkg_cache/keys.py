"""
Cache key derivation.

The key is an MD5 over ``"<normalized list> @ <version tag> <epoch>"``.
MD5 is stable everywhere and 128 bits is plenty to tell package sets
apart; nothing here is a security boundary.

The value is hashed without a trailing newline, unlike the shell
action's ``echo "$value" | md5sum``. Keys therefore never match caches
written by that action; such caches miss once and are rebuilt.
"""

from __future__ import annotations

import hashlib
import logging
from pathlib import Path

from src.core.services.pkg_cache.errors import InvalidVersionError

logger = logging.getLogger(__name__)

# Bump to invalidate every existing cache after a capture format change.
CACHE_EPOCH = 1

CACHE_KEY_FILE = "cache_key.md5"


def validate_version_tag(version: str) -> str:
    """Reject version tags containing whitespace."""
    if any(ch.isspace() for ch in version):
        raise InvalidVersionError(version)
    return version


def cache_key_value(normalized_packages: str, version: str, epoch: int = CACHE_EPOCH) -> str:
    """The exact string that gets hashed."""
    return f"{normalized_packages} @ {version} {epoch}"


def derive_cache_key(normalized_packages: str, version: str, epoch: int = CACHE_EPOCH) -> str:
    """Derive the hex cache key for a resolved, normalized package list.

    Args:
        normalized_packages: Output of ``normalize_package_list`` over
            ``name=version`` tokens.
        version: Caller-supplied cache version tag (no whitespace).
        epoch: Global invalidation counter.

    Raises:
        InvalidVersionError: If ``version`` contains whitespace.
    """
    validate_version_tag(version)
    value = cache_key_value(normalized_packages, version, epoch)
    logger.info("Value to hash is '%s'", value)
    key = hashlib.md5(value.encode("utf-8"), usedforsecurity=False).hexdigest()
    logger.info("Value hashed as '%s'", key)
    return key


def write_cache_key(cache_dir: Path, key: str) -> Path:
    """Write the key to ``<cache_dir>/cache_key.md5``."""
    cache_dir.mkdir(parents=True, exist_ok=True)
    path = cache_dir / CACHE_KEY_FILE
    path.write_text(key + "\n", encoding="utf-8")
    logger.info("Hash value written to %s", path)
    return path

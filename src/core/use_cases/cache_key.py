"""
Cache key use case — validate the request and fingerprint it.

Runs before any cache lookup: every input error surfaces here, before
anything is installed or written besides the key file itself.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from src.core.models.package import PackageRef
from src.core.services.pkg_cache.apt_index import AptPackageIndex
from src.core.services.pkg_cache.errors import EmptyPackageListError
from src.core.services.pkg_cache.keys import (
    CACHE_EPOCH,
    cache_key_value,
    derive_cache_key,
    validate_version_tag,
    write_cache_key,
)
from src.core.services.pkg_cache.normalize import normalize_package_list, split_package_list

logger = logging.getLogger(__name__)


@dataclass
class CacheKeyResult:
    """Result of the cache key use case."""

    key: str = ""
    value: str = ""
    normalized: str = ""
    packages: list[PackageRef] = field(default_factory=list)
    key_path: Path | None = None

    def to_dict(self) -> dict:
        return {
            "key": self.key,
            "value": self.value,
            "normalized": self.normalized,
            "packages": [str(p) for p in self.packages],
            "key_path": str(self.key_path) if self.key_path else None,
        }


def prepare_cache_key(
    raw_packages: str,
    version: str,
    cache_dir: Path,
    index: AptPackageIndex,
    *,
    refresh_lists: bool = True,
    lists_max_age_minutes: int = 5,
    epoch: int = CACHE_EPOCH,
) -> CacheKeyResult:
    """Validate inputs, resolve versions and write ``cache_key.md5``.

    Raises:
        InvalidVersionError: ``version`` contains whitespace.
        EmptyPackageListError: No package tokens in ``raw_packages``.
        UnknownPackageError: A package is not in the apt index.
    """
    packages = normalize_package_list(raw_packages)
    logger.info("Validating action arguments (version='%s', packages='%s')...", version, packages)
    validate_version_tag(version)
    if not packages:
        raise EmptyPackageListError()

    if refresh_lists:
        index.update_lists(lists_max_age_minutes)

    logger.info("Verifying packages...")
    resolved = index.resolve_all(split_package_list(packages))

    normalized = normalize_package_list(" ".join(str(p) for p in resolved))
    logger.info("Normalized package list is '%s'.", normalized)

    key = derive_cache_key(normalized, version, epoch)
    key_path = write_cache_key(cache_dir, key)

    return CacheKeyResult(
        key=key,
        value=cache_key_value(normalized, version, epoch),
        normalized=normalized,
        packages=resolved,
        key_path=key_path,
    )

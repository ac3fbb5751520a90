"""
Archive restore — unpack cached package archives onto a root.

Archives hold root-relative member names, so extracting into ``/``
reproduces the original absolute paths, symlinks and modes included.
"""

from __future__ import annotations

import logging
import tarfile
from pathlib import Path

from src.core.models.package import PackageRef
from src.core.services.pkg_cache.capture import DEFAULT_ARCHIVE_EXT
from src.core.services.pkg_cache.control_scripts import resolve_root
from src.core.services.pkg_cache.errors import ArchiveRestoreError

logger = logging.getLogger(__name__)


def cached_archives(cache_dir: Path, archive_ext: str = DEFAULT_ARCHIVE_EXT) -> list[Path]:
    """Package archives in ``cache_dir``, sorted by name."""
    if not cache_dir.is_dir():
        return []
    return sorted(
        p for p in cache_dir.glob(f"*=*.{archive_ext}")
        if p.is_file() and not p.name.startswith(".")
    )


def archive_package(path: Path) -> PackageRef:
    """``<cache>/jq=1.6.tar`` → ``PackageRef(jq, 1.6)``."""
    return PackageRef.parse(path.stem)


def restore_archives(
    cache_dir: Path,
    root: str = "",
    archive_ext: str = DEFAULT_ARCHIVE_EXT,
) -> list[Path]:
    """Extract every cached archive into ``root``.

    Raises:
        ArchiveRestoreError: On the first archive that cannot be read or
            extracted.
    """
    root_path = resolve_root(root)
    archives = cached_archives(cache_dir, archive_ext)
    logger.info("Restoring %d packages from cache %s...", len(archives), cache_dir)

    for archive in archives:
        logger.info("- %s", archive.name)
        try:
            with tarfile.open(archive, "r") as tar:
                # Own archives; absolute symlinks and setuid bits are legitimate.
                tar.extractall(path=root_path, filter="fully_trusted")
        except (OSError, tarfile.TarError) as e:
            raise ArchiveRestoreError(str(archive), e) from e

    return archives

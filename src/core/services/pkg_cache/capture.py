"""
Archive capture — pack each installed package into its own tar.

One archive per ``name=version``, holding every file dpkg says the
package owns plus its preinst/postinst, stored relative to the
filesystem root so extracting at ``/`` puts everything back.

Archives are content-addressed by name: an existing archive is never
rewritten, which makes capture resumable after a crash and harmless
when apt reports the same package twice. Writes go to a temp file in
the cache directory and are renamed into place only on success.
"""

from __future__ import annotations

import logging
import os
import tarfile
import tempfile
from collections.abc import Iterable
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

from src.core.models.package import PackageRef
from src.core.models.results import CaptureResult
from src.core.services.pkg_cache.apt_index import AptPackageIndex
from src.core.services.pkg_cache.control_scripts import (
    POSTINST,
    PREINST,
    find_control_script,
    resolve_root,
)
from src.core.services.pkg_cache.errors import ArchiveWriteError

logger = logging.getLogger(__name__)

DEFAULT_ARCHIVE_EXT = "tar"


def archive_relpath(path: str) -> str:
    """Drop the single leading separator tar refuses to store."""
    return path[1:] if path.startswith("/") else path


def format_size(size_bytes: int) -> str:
    """Human-readable size, ``du -h`` style."""
    size = float(size_bytes)
    for unit in ("B", "K", "M", "G"):
        if size < 1024 or unit == "G":
            return f"{size:.0f}{unit}" if unit == "B" else f"{size:.1f}{unit}"
        size /= 1024
    return f"{size:.1f}G"


def directory_size(path: Path) -> int:
    return sum(f.stat().st_size for f in path.iterdir() if f.is_file())


class ArchiveCapturer:
    """Capture installed packages into a cache directory."""

    def __init__(
        self,
        index: AptPackageIndex,
        cache_dir: Path,
        *,
        root: str = "",
        archive_ext: str = DEFAULT_ARCHIVE_EXT,
        max_workers: int = 4,
    ):
        self.index = index
        self.cache_dir = cache_dir
        self.root = root
        self.root_path = resolve_root(root)
        self.archive_ext = archive_ext
        self.max_workers = max(1, max_workers)

    def archive_path(self, package: PackageRef) -> Path:
        return self.cache_dir / f"{package.archive_stem}.{self.archive_ext}"

    def _exists_on_disk(self, relpath: str) -> bool:
        full = self.root_path / relpath
        return os.path.islink(full) or os.path.isfile(full)

    def collect_members(self, package: PackageRef) -> list[str]:
        """Root-relative paths to archive for ``package``.

        Owned files and both control scripts are looked up concurrently;
        anything that is no longer a regular file or symlink is dropped.
        """
        with ThreadPoolExecutor(max_workers=3) as pool:
            owned = pool.submit(self.index.owned_files, package.name)
            preinst = pool.submit(find_control_script, self.root, package.name, PREINST)
            postinst = pool.submit(find_control_script, self.root, package.name, POSTINST)
            candidates = [archive_relpath(p) for p in owned.result()]
            for script in (preinst.result(), postinst.result()):
                if script is not None:
                    candidates.append(str(script.relative_to(self.root_path)))

        members: list[str] = []
        seen: set[str] = set()
        for relpath in candidates:
            if not relpath or relpath in seen:
                continue
            seen.add(relpath)
            if self._exists_on_disk(relpath):
                members.append(relpath)
        return members

    def _write_archive(self, path: Path, members: list[str]) -> None:
        fd, tmp_name = tempfile.mkstemp(
            dir=self.cache_dir, prefix=f".{path.name}.", suffix=".tmp",
        )
        os.close(fd)
        tmp = Path(tmp_name)
        try:
            with tarfile.open(tmp, "w") as tar:
                for relpath in members:
                    tar.add(str(self.root_path / relpath), arcname=relpath, recursive=False)
            os.replace(tmp, path)
        except (OSError, tarfile.TarError) as e:
            tmp.unlink(missing_ok=True)
            raise ArchiveWriteError(str(path), e) from e

    def capture(self, package: PackageRef) -> CaptureResult:
        """Archive one package unless its archive already exists."""
        path = self.archive_path(package)
        if path.exists():
            logger.debug("Archive %s already cached, skipping", path.name)
            return CaptureResult(package=package, path=str(path), status="skipped",
                                 size_bytes=path.stat().st_size)

        logger.info("  * Caching %s to %s...", package.name, path)
        members = self.collect_members(package)
        self.cache_dir.mkdir(parents=True, exist_ok=True)
        self._write_archive(path, members)

        size = path.stat().st_size
        logger.info("    done (%d files, size %s).", len(members), format_size(size))
        return CaptureResult(package=package, path=str(path), files=len(members), size_bytes=size)

    def capture_closure(self, closure: Iterable[PackageRef]) -> list[CaptureResult]:
        """Capture every distinct package in ``closure``, concurrently.

        Results follow first-appearance order. The first archive failure
        is re-raised once the pool drains; archives finished before it
        stay valid.
        """
        unique = list(dict.fromkeys(closure))
        logger.info("Caching %d installed packages...", len(unique))

        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            futures = [pool.submit(self.capture, package) for package in unique]
            results = [future.result() for future in futures]

        if self.cache_dir.is_dir():
            logger.info("done (total cache size %s)", format_size(directory_size(self.cache_dir)))
        return results

"""
apt/dpkg queries — the package manager seen through the executor.

Read-only lookups (``apt-cache show``, ``dpkg -L``) plus the two
mutating calls the pipeline needs around the cache: refreshing stale
package lists and the install itself. Resolution and download stay
apt's job; this module only asks and observes.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Iterable
from pathlib import Path

from src.adapters.base import Executor
from src.core.models.package import PackageRef
from src.core.services.pkg_cache.errors import InstallError, UnknownPackageError

logger = logging.getLogger(__name__)

APT_LISTS_DIR = Path("/var/lib/apt/lists")

NONINTERACTIVE_ENV = {"DEBIAN_FRONTEND": "noninteractive"}


class AptPackageIndex:
    """Query and drive apt through an injected executor."""

    def __init__(
        self,
        executor: Executor,
        *,
        install_command: str = "apt-get",
        lists_dir: Path = APT_LISTS_DIR,
    ):
        self.executor = executor
        self.install_command = install_command
        self.lists_dir = lists_dir

    # ── Lookups ─────────────────────────────────────────────────

    def show_version(self, name: str) -> str | None:
        """Candidate version from ``apt-cache show``, or None if unknown."""
        result = self.executor.run(["apt-cache", "show", name])
        if not result.ok:
            return None
        for line in result.stdout.splitlines():
            if line.startswith("Version:"):
                version = line.split(":", 1)[1].strip()
                if version:
                    return version
        return None

    def resolve(self, token: str) -> PackageRef:
        """Resolve a requested token to ``name=version``.

        Tokens that already carry a version are trusted as given.

        Raises:
            UnknownPackageError: If the name is not in the index.
        """
        ref = PackageRef.parse(token)
        if ref.is_resolved:
            return ref
        version = self.show_version(ref.name)
        if version is None:
            raise UnknownPackageError(token)
        return ref.with_version(version)

    def resolve_all(self, tokens: Iterable[str]) -> list[PackageRef]:
        resolved = []
        for token in tokens:
            ref = self.resolve(token)
            logger.info("- %s (%s)", ref.name, ref.version)
            resolved.append(ref)
        return resolved

    def owned_files(self, name: str) -> list[str]:
        """Paths dpkg records as owned by ``name``.

        An empty list when dpkg does not know the package; the capture
        then holds only control scripts, if any.
        """
        result = self.executor.run(["dpkg", "-L", name])
        if not result.ok:
            logger.debug("dpkg -L %s failed: %s", name, result.error)
            return []
        return result.lines

    # ── Mutations ───────────────────────────────────────────────

    def lists_are_fresh(self, max_age_minutes: int) -> bool:
        """Whether the package lists were refreshed recently."""
        try:
            mtime = self.lists_dir.stat().st_mtime
        except OSError:
            return False
        return (time.time() - mtime) < max_age_minutes * 60

    def update_lists(self, max_age_minutes: int = 5) -> bool:
        """Run ``apt-get update`` unless the lists are fresh.

        Returns True if an update ran. A failed update is logged and
        tolerated; ``resolve`` will report packages it cannot find.
        """
        if self.lists_are_fresh(max_age_minutes):
            logger.info("Package lists fresh within %d minutes, skipping update", max_age_minutes)
            return False
        result = self.executor.run(
            [self.install_command, "update"], privileged=True, env=NONINTERACTIVE_ENV,
        )
        if not result.ok:
            logger.warning("Package list update failed: %s", result.stderr or result.error)
        return True

    def install(self, packages: list[PackageRef], transcript_path: Path) -> None:
        """Install ``packages``, writing apt's stdout to ``transcript_path``.

        Raises:
            InstallError: If the package manager exits non-zero.
        """
        cmd = [self.install_command, "--yes", "install", *[str(p) for p in packages]]
        result = self.executor.run(
            cmd, privileged=True, env=NONINTERACTIVE_ENV, stdout_path=transcript_path,
        )
        if not result.ok:
            detail = result.stderr.strip().splitlines()[-1:] or [result.error or ""]
            raise InstallError(
                f"{self.install_command} install failed (exit {result.returncode}): {detail[0]}"
            )
        logger.info("Installation log written to %s", transcript_path)

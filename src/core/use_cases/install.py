"""
Install-and-cache use case — the cache-miss path.

    resolve → manifest_main → apt install (transcript) → parse closure
            → capture archives → manifest_all
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from src.core.models.package import PackageRef
from src.core.models.results import CaptureResult
from src.core.services.pkg_cache.apt_index import AptPackageIndex
from src.core.services.pkg_cache.capture import ArchiveCapturer
from src.core.services.pkg_cache.errors import EmptyPackageListError
from src.core.services.pkg_cache.manifest import (
    ALL_MANIFEST,
    MAIN_MANIFEST,
    manifest_sequence,
    write_manifest,
)
from src.core.services.pkg_cache.normalize import split_package_list
from src.core.services.pkg_cache.transcript import read_transcript

logger = logging.getLogger(__name__)

TRANSCRIPT_FILE = "install.log"


@dataclass
class InstallReport:
    """Result of the install-and-cache use case."""

    requested: list[PackageRef] = field(default_factory=list)
    closure: list[PackageRef] = field(default_factory=list)
    captures: list[CaptureResult] = field(default_factory=list)
    transcript: Path | None = None
    main_manifest: Path | None = None
    all_manifest: Path | None = None

    @property
    def captured(self) -> int:
        return sum(1 for c in self.captures if not c.skipped)

    @property
    def skipped(self) -> int:
        return sum(1 for c in self.captures if c.skipped)

    def to_dict(self) -> dict:
        return {
            "requested": [str(p) for p in self.requested],
            "closure": [str(p) for p in self.closure],
            "captured": self.captured,
            "skipped": self.skipped,
            "archives": [c.path for c in self.captures],
            "transcript": str(self.transcript) if self.transcript else None,
            "main_manifest": str(self.main_manifest) if self.main_manifest else None,
            "all_manifest": str(self.all_manifest) if self.all_manifest else None,
        }


def install_and_cache(
    raw_packages: str,
    cache_dir: Path,
    index: AptPackageIndex,
    capturer: ArchiveCapturer,
) -> InstallReport:
    """Install the requested packages and capture everything apt unpacked.

    Raises:
        EmptyPackageListError: No package tokens in ``raw_packages``.
        UnknownPackageError: A package is not in the apt index.
        InstallError: apt failed.
        TranscriptParseError: The transcript has a malformed unpack line.
        ArchiveWriteError: An archive could not be written.
    """
    tokens = split_package_list(raw_packages)
    if not tokens:
        raise EmptyPackageListError()

    report = InstallReport()
    logger.info("Clean installing and caching %d package(s).", len(tokens))

    logger.info("Package list:")
    report.requested = index.resolve_all(tokens)
    cache_dir.mkdir(parents=True, exist_ok=True)
    report.main_manifest = write_manifest(
        "main", manifest_sequence(report.requested), cache_dir / MAIN_MANIFEST,
    )

    report.transcript = cache_dir / TRANSCRIPT_FILE
    logger.info("Clean installing %d packages...", len(report.requested))
    index.install(report.requested, report.transcript)

    report.closure = read_transcript(report.transcript)
    logger.info("Installed package list:")
    for package in report.closure:
        logger.info("- %s (%s)", package.name, package.version)

    report.captures = capturer.capture_closure(report.closure)

    report.all_manifest = write_manifest(
        "all", manifest_sequence(report.closure), cache_dir / ALL_MANIFEST,
    )
    return report

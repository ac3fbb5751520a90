"""
Manifests — sorted ``name=version`` listings written beside the archives.

``manifest_main.log`` holds the requested packages, ``manifest_all.log``
the whole installed closure. A missing manifest means "nothing to
install", so an empty package sequence writes no file at all.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path

from src.core.models.package import PackageRef

logger = logging.getLogger(__name__)

MAIN_MANIFEST = "manifest_main.log"
ALL_MANIFEST = "manifest_all.log"


def manifest_sequence(packages: Iterable[PackageRef]) -> str:
    """Build the comma-terminated ``a=1,b=2,`` sequence."""
    return "".join(f"{p}," for p in packages)


def write_manifest(label: str, sequence: str, path: Path) -> Path | None:
    """Write a manifest from a comma-terminated ``name=version,`` sequence.

    Returns the written path, or None when there was nothing to write.
    """
    if not sequence:
        logger.info("Skipped %s manifest write. No packages to install.", label)
        return None

    entries = sorted(e for e in sequence.removesuffix(",").split(",") if e)
    logger.info("Writing %s packages manifest to %s...", label, path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("\n".join(entries) + "\n", encoding="utf-8")
    return path


def read_manifest(path: Path) -> list[PackageRef]:
    """Read a manifest back. A missing file is an empty manifest."""
    if not path.is_file():
        return []
    return [
        PackageRef.parse(line.strip())
        for line in path.read_text(encoding="utf-8").splitlines()
        if line.strip()
    ]

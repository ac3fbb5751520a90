"""
dpkg control scripts — find and run a package's preinst/postinst.

dpkg keeps them in ``var/lib/dpkg/info`` as ``<name>[:<arch>].<ext>``.
Running one here is a best-effort replay: the scripts expect dpkg's
runtime (triggers, a live status database) and regularly exit non-zero
outside it. The runner reports the exit code; the caller decides what
a failure means.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path

from src.adapters.base import Executor
from src.core.models.results import ScriptOutcome
from src.core.services.pkg_cache.normalize import bare_package_name

logger = logging.getLogger(__name__)

DPKG_INFO_DIR = "var/lib/dpkg/info"

PREINST = "preinst"
POSTINST = "postinst"


def resolve_root(root: str | Path) -> Path:
    """``""`` means the live filesystem root."""
    return Path(root) if str(root) else Path("/")


def find_control_script(root: str | Path, package: str, extension: str) -> Path | None:
    """Locate ``<package>[:<qualifier>].<extension>`` under ``root``.

    ``package`` may carry a version or arch decoration; it is stripped.
    Matching ignores case and the arch qualifier.
    """
    name = bare_package_name(package)
    info_dir = resolve_root(root) / DPKG_INFO_DIR
    pattern = re.compile(
        rf"^{re.escape(name)}(:[^.]+)?\.{re.escape(extension)}$", re.IGNORECASE,
    )
    try:
        candidates = sorted(info_dir.iterdir())
    except OSError:
        return None
    for candidate in candidates:
        if pattern.match(candidate.name):
            return candidate
    return None


def run_control_script(
    executor: Executor,
    root: str | Path,
    package: str,
    extension: str,
    argument: str,
) -> ScriptOutcome:
    """Run a package's control script with ``sh -x <script> <argument>``.

    Returns ``not_found`` when the package has no such script, otherwise
    ``executed`` with the script's exit code. Never raises for a
    failing script.
    """
    script = find_control_script(root, package, extension)
    if script is None:
        return ScriptOutcome.not_found()

    logger.info("- Executing %s...", script)
    result = executor.run(["sh", "-x", str(script), argument], privileged=True)
    if result.stderr:
        logger.debug("%s trace:\n%s", script.name, result.stderr)
    return ScriptOutcome.ran(str(script), result.returncode)

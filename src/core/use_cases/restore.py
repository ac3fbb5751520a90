"""
Restore use case — the cache-hit path.

Unpack every cached archive onto the root, then optionally re-run each
package's ``postinst configure`` to redo what file copying cannot
(alternatives, ldconfig, registered handlers).
"""

from __future__ import annotations

import logging
from pathlib import Path

from src.adapters.base import Executor
from src.core.models.results import RestoreReport
from src.core.services.pkg_cache.capture import DEFAULT_ARCHIVE_EXT
from src.core.services.pkg_cache.control_scripts import POSTINST, run_control_script
from src.core.services.pkg_cache.restore import archive_package, restore_archives

logger = logging.getLogger(__name__)

POSTINST_ARGUMENT = "configure"


def restore_cache(
    cache_dir: Path,
    executor: Executor,
    *,
    root: str = "",
    execute_install_scripts: bool = False,
    archive_ext: str = DEFAULT_ARCHIVE_EXT,
) -> RestoreReport:
    """Restore cached packages into ``root``.

    Raises:
        ArchiveRestoreError: An archive could not be extracted.
    """
    report = RestoreReport()
    archives = restore_archives(cache_dir, root, archive_ext)
    report.archives = [str(a) for a in archives]

    if not execute_install_scripts:
        return report

    logger.info("Executing package post-installation scripts...")
    for archive in archives:
        package = archive_package(archive)
        outcome = run_control_script(executor, root, package.name, POSTINST, POSTINST_ARGUMENT)

        if not outcome.executed:
            report.scripts_missing.append(package.name)
        elif outcome.succeeded:
            report.scripts_executed.append(package.name)
        else:
            # dpkg triggers fail outside a dpkg run; not fatal to the restore
            logger.warning(
                "  %s exited %s, continuing", outcome.path, outcome.exit_code,
            )
            report.scripts_failed.append(package.name)

    logger.info("done")
    return report

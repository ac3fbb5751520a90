"""
Shell executor — run system commands with optional sudo elevation.

The SINGLE PLACE where ``subprocess.run`` is called. All privilege,
logging and error handling for external commands is centralised here.
"""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
import time
from pathlib import Path

from src.adapters.base import Executor
from src.core.models.results import CommandResult

logger = logging.getLogger(__name__)

# stderr tail kept on a result for diagnostics; stdout is kept whole
_MAX_STDERR = 64 * 1024

# dpkg paths are bytes; undecodable ones must round-trip to the filesystem
_TEXT_KW = {"encoding": "utf-8", "errors": "surrogateescape"}


class ShellExecutor(Executor):
    """Execute commands on the live system.

    Privileged commands are prefixed with ``sudo -n`` unless the process
    already runs as root or ``use_sudo`` is off. Extra environment
    variables are handed to sudo as ``VAR=value`` arguments so they
    survive its environment reset.
    """

    def __init__(self, use_sudo: bool = True, timeout: int = 1800):
        self._use_sudo = use_sudo
        self._timeout = timeout

    @property
    def name(self) -> str:
        return "shell"

    def is_available(self) -> bool:
        return shutil.which("sh") is not None

    def _needs_sudo(self, privileged: bool) -> bool:
        return privileged and self._use_sudo and os.geteuid() != 0

    def build_command(
        self,
        cmd: list[str],
        *,
        privileged: bool = False,
        env: dict[str, str] | None = None,
    ) -> list[str]:
        """Return the argv actually executed for ``cmd``."""
        if not self._needs_sudo(privileged):
            return list(cmd)
        assignments = [f"{k}={v}" for k, v in (env or {}).items()]
        return ["sudo", "-n", *assignments, *cmd]

    def run(
        self,
        cmd: list[str],
        *,
        privileged: bool = False,
        env: dict[str, str] | None = None,
        timeout: int | None = None,
        stdout_path: Path | None = None,
    ) -> CommandResult:
        argv = self.build_command(cmd, privileged=privileged, env=env)
        timeout = timeout or self._timeout

        proc_env = os.environ.copy()
        if env:
            proc_env.update(env)

        logger.debug("Executing: %s", " ".join(argv))
        start = time.monotonic()

        try:
            if stdout_path is not None:
                stdout_path.parent.mkdir(parents=True, exist_ok=True)
                with open(stdout_path, "w", encoding="utf-8") as out:
                    result = subprocess.run(
                        argv,
                        stdout=out,
                        stderr=subprocess.PIPE,
                        **_TEXT_KW,
                        timeout=timeout,
                        env=proc_env,
                    )
                stdout = ""
            else:
                result = subprocess.run(
                    argv,
                    capture_output=True,
                    **_TEXT_KW,
                    timeout=timeout,
                    env=proc_env,
                )
                stdout = result.stdout or ""

            elapsed_ms = int((time.monotonic() - start) * 1000)
            stderr = result.stderr[-_MAX_STDERR:] if result.stderr else ""

            if result.returncode == 0:
                return CommandResult.success(
                    argv, stdout, stderr=stderr, duration_ms=elapsed_ms,
                )
            return CommandResult.failure(
                argv,
                error=f"Command failed (exit {result.returncode})",
                returncode=result.returncode,
                stdout=stdout,
                stderr=stderr,
                duration_ms=elapsed_ms,
            )

        except subprocess.TimeoutExpired:
            return CommandResult.failure(argv, error=f"Command timed out ({timeout}s)")
        except OSError as e:
            # Binary missing (dpkg on a non-Debian host) or not executable
            logger.debug("Cannot execute %s: %s", argv[0], e)
            return CommandResult.failure(argv, error=str(e), returncode=127)

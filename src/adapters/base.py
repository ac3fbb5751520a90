"""
Executor base — the contract between the cache engine and the system.

The engine never calls ``subprocess`` directly. Every dpkg query,
apt invocation and control-script run goes through an Executor, which
also owns privilege elevation: callers only say *whether* a command
needs root, never *how* to get it.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path

from src.core.models.results import CommandResult


class Executor(ABC):
    """Abstract base class for command executors.

    Executors NEVER raise for a failing command — failures are captured
    in the CommandResult.

    To create a new executor:
        1. Subclass Executor
        2. Implement name, is_available, run
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """The executor identifier (e.g., 'shell', 'mock')."""

    @abstractmethod
    def is_available(self) -> bool:
        """Check if the executor can run commands here. Never raises."""

    @abstractmethod
    def run(
        self,
        cmd: list[str],
        *,
        privileged: bool = False,
        env: dict[str, str] | None = None,
        timeout: int | None = None,
        stdout_path: Path | None = None,
    ) -> CommandResult:
        """Run a command and return its result.

        Args:
            cmd: Command list (no shell interpretation).
            privileged: Whether the command needs root.
            env: Extra environment variables for the command.
            timeout: Seconds before giving up (None = executor default).
            stdout_path: If set, stdout is written to this file instead
                of being captured.
        """

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"

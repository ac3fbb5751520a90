"""
Mock executor — test double for every command the engine runs.

Returns success with empty output by default. Responses can be
configured per command prefix; the longest matching prefix wins.
When a command is run with ``stdout_path``, the configured stdout is
written to that file, the way the shell executor would redirect it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from src.adapters.base import Executor
from src.core.models.results import CommandResult


@dataclass
class MockCall:
    """One recorded call to the mock."""

    cmd: list[str]
    privileged: bool = False
    env: dict[str, str] = field(default_factory=dict)
    stdout_path: Path | None = None


class MockExecutor(Executor):
    """Universal mock executor for testing."""

    def __init__(self, executor_name: str = "mock", available: bool = True):
        self._name = executor_name
        self._available = available
        self._responses: dict[tuple[str, ...], CommandResult] = {}
        self._call_log: list[MockCall] = []

    @property
    def name(self) -> str:
        return self._name

    @property
    def call_log(self) -> list[MockCall]:
        """Every call this mock has received."""
        return self._call_log

    @property
    def call_count(self) -> int:
        return len(self._call_log)

    def calls_to(self, *prefix: str) -> list[MockCall]:
        """Recorded calls whose command starts with ``prefix``."""
        return [c for c in self._call_log if tuple(c.cmd[: len(prefix)]) == prefix]

    def is_available(self) -> bool:
        return self._available

    def set_response(self, prefix: list[str], stdout: str = "", returncode: int = 0) -> None:
        """Configure the result for commands starting with ``prefix``."""
        if returncode == 0:
            result = CommandResult.success(list(prefix), stdout)
        else:
            result = CommandResult.failure(
                list(prefix),
                error=f"Command failed (exit {returncode})",
                returncode=returncode,
                stdout=stdout,
            )
        self._responses[tuple(prefix)] = result

    def set_failure(self, prefix: list[str], error: str = "Mock failure", returncode: int = 1) -> None:
        """Configure commands starting with ``prefix`` to fail."""
        self._responses[tuple(prefix)] = CommandResult.failure(
            list(prefix), error=error, returncode=returncode,
        )

    def _lookup(self, cmd: list[str]) -> CommandResult | None:
        best: tuple[str, ...] | None = None
        for prefix in self._responses:
            if tuple(cmd[: len(prefix)]) == prefix and (best is None or len(prefix) > len(best)):
                best = prefix
        return self._responses[best] if best is not None else None

    def run(
        self,
        cmd: list[str],
        *,
        privileged: bool = False,
        env: dict[str, str] | None = None,
        timeout: int | None = None,
        stdout_path: Path | None = None,
    ) -> CommandResult:
        self._call_log.append(
            MockCall(cmd=list(cmd), privileged=privileged, env=dict(env or {}), stdout_path=stdout_path)
        )

        response = self._lookup(cmd) or CommandResult.success(list(cmd))
        result = response.model_copy(update={"command": list(cmd)})

        if stdout_path is not None:
            stdout_path.parent.mkdir(parents=True, exist_ok=True)
            stdout_path.write_text(result.stdout, encoding="utf-8")
            result = result.model_copy(update={"stdout": ""})

        return result

    def reset(self) -> None:
        """Clear call log and configured responses."""
        self._call_log.clear()
        self._responses.clear()

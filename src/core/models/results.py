"""
Result models — what side-effecting operations hand back.

Executors never raise for a failing command: the outcome is captured
in a CommandResult and the caller decides whether it is fatal.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field, SkipValidation

from src.core.models.package import PackageRef


class CommandResult(BaseModel):
    """Outcome of one executor command."""

    command: list[str] = Field(default_factory=list)
    status: Literal["ok", "failed"] = "ok"
    returncode: int = 0
    # may hold surrogate escapes for undecodable bytes (non-UTF-8 paths)
    stdout: SkipValidation[str] = ""
    stderr: SkipValidation[str] = ""
    duration_ms: int = 0
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.status == "ok"

    @property
    def failed(self) -> bool:
        return self.status == "failed"

    @property
    def lines(self) -> list[str]:
        """Non-blank stdout lines."""
        return [line for line in self.stdout.splitlines() if line.strip()]

    @classmethod
    def success(cls, command: list[str], stdout: str = "", **kwargs: Any) -> CommandResult:
        """Create a success result."""
        return cls(command=command, status="ok", returncode=0, stdout=stdout, **kwargs)

    @classmethod
    def failure(
        cls,
        command: list[str],
        error: str,
        returncode: int = 1,
        **kwargs: Any,
    ) -> CommandResult:
        """Create a failure result."""
        return cls(
            command=command,
            status="failed",
            returncode=returncode,
            error=error,
            **kwargs,
        )


class ScriptOutcome(BaseModel):
    """Result of looking up and running a dpkg control script.

    Either ``executed`` (with the script's exit code) or ``not_found``.
    A non-zero exit code is data, not an error.
    """

    status: Literal["executed", "not_found"]
    path: str | None = None
    exit_code: int | None = None

    @property
    def executed(self) -> bool:
        return self.status == "executed"

    @property
    def succeeded(self) -> bool:
        return self.executed and self.exit_code == 0

    @classmethod
    def ran(cls, path: str, exit_code: int) -> ScriptOutcome:
        return cls(status="executed", path=path, exit_code=exit_code)

    @classmethod
    def not_found(cls) -> ScriptOutcome:
        return cls(status="not_found")


class CaptureResult(BaseModel):
    """Outcome of capturing one package into its archive."""

    package: PackageRef
    path: str
    status: Literal["captured", "skipped"] = "captured"
    files: int = 0
    size_bytes: int = 0

    @property
    def skipped(self) -> bool:
        return self.status == "skipped"


class RestoreReport(BaseModel):
    """Summary of one cache restore."""

    archives: list[str] = Field(default_factory=list)
    scripts_executed: list[str] = Field(default_factory=list)
    scripts_failed: list[str] = Field(default_factory=list)
    scripts_missing: list[str] = Field(default_factory=list)

    def to_dict(self) -> dict:
        return self.model_dump()

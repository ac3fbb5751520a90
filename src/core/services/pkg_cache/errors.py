"""
Package cache errors — every fatal condition the engine can raise.

Each class carries the process exit code the CLI maps it to, so the
surrounding tooling can tell the conditions apart without parsing
messages.
"""

from __future__ import annotations


class PackageCacheError(Exception):
    """Base class for all fatal package cache conditions."""

    exit_code: int = 1


# ── Input validation ────────────────────────────────────────────


class InvalidVersionError(PackageCacheError):
    """The cache version tag contains whitespace."""

    exit_code = 2

    def __init__(self, version: str):
        self.version = version
        super().__init__(f"Version value '{version}' cannot contain spaces.")


class EmptyPackageListError(PackageCacheError):
    """No packages were requested."""

    exit_code = 3

    def __init__(self) -> None:
        super().__init__("Packages argument cannot be empty.")


class UnknownPackageError(PackageCacheError):
    """A requested package is not known to the package index."""

    exit_code = 5

    def __init__(self, package: str):
        self.package = package
        super().__init__(f"Package '{package}' not found.")


# ── Transcript integrity ────────────────────────────────────────


class TranscriptParseError(PackageCacheError):
    """An unpack line could not be parsed into a name and version."""

    exit_code = 6
    reason = "unable to parse package name and version"

    def __init__(self, line: str, line_number: int = 0, column: int = 0):
        self.line = line
        self.line_number = line_number
        self.column = column
        where = f"line {line_number}" if line_number else "line"
        super().__init__(f'{where}: {self.reason} from "{line}"')


class MissingPackageNameError(TranscriptParseError):
    reason = "missing package name"


class UnterminatedProgressError(TranscriptParseError):
    reason = "unterminated progress counter"


class MissingVersionError(TranscriptParseError):
    reason = "missing parenthesized version"


class EmptyVersionError(TranscriptParseError):
    reason = "empty version"


# ── Side effects ────────────────────────────────────────────────


class InstallError(PackageCacheError):
    """The external package manager install step failed."""

    exit_code = 7


class ArchiveWriteError(PackageCacheError):
    """A package archive could not be written."""

    exit_code = 8

    def __init__(self, path: str, cause: Exception):
        self.path = path
        self.cause = cause
        super().__init__(f"Failed to write archive {path}: {cause}")


class ArchiveRestoreError(PackageCacheError):
    """A cached archive could not be extracted."""

    exit_code = 10

    def __init__(self, path: str, cause: Exception):
        self.path = path
        self.cause = cause
        super().__init__(f"Failed to restore archive {path}: {cause}")

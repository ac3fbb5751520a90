"""
Package identity — the name/version pair everything else is keyed by.

Two string forms exist and must not be mixed:

    name=version     internal normalized form (manifests, archive names)
    name:qualifier   dpkg multi-arch form (transcripts, info file names)
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class PackageRef(BaseModel):
    """A package name with an optional resolved version."""

    model_config = ConfigDict(frozen=True)

    name: str
    version: str | None = None

    @property
    def is_resolved(self) -> bool:
        return bool(self.version)

    @property
    def archive_stem(self) -> str:
        """Deterministic archive file stem, ``name=version``."""
        return f"{self.name}={self.version or ''}"

    @classmethod
    def parse(cls, token: str) -> PackageRef:
        """Parse ``name``, ``name=version`` or ``name:arch`` into a ref."""
        name, sep, version = token.partition("=")
        name = name.split(":", 1)[0]
        return cls(name=name, version=version if sep and version else None)

    def with_version(self, version: str) -> PackageRef:
        return self.model_copy(update={"version": version})

    def __str__(self) -> str:
        if self.version:
            return f"{self.name}={self.version}"
        return self.name

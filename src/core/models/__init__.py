"""
Domain models — Pydantic types for the package cache.

All models are re-exported here for convenient access:

    from src.core.models import PackageRef, CommandResult, ScriptOutcome
"""

from src.core.models.package import PackageRef
from src.core.models.results import (
    CaptureResult,
    CommandResult,
    RestoreReport,
    ScriptOutcome,
)
from src.core.models.settings import CacheSettings

__all__ = [
    # package.py
    "PackageRef",
    # results.py
    "CaptureResult",
    "CommandResult",
    "RestoreReport",
    "ScriptOutcome",
    # settings.py
    "CacheSettings",
]

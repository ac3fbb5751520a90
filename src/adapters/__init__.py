"""Executors the cache engine runs system commands through.

Public re-exports for convenient access.
"""

from src.adapters.base import Executor
from src.adapters.mock import MockCall, MockExecutor
from src.adapters.shell.command import ShellExecutor

__all__ = [
    "Executor",
    "MockCall",
    "MockExecutor",
    "ShellExecutor",
]

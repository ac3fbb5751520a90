"""
Shared test fixtures and configuration.
"""

from pathlib import Path

import pytest

from src.adapters.mock import MockExecutor
from src.core.services.pkg_cache.apt_index import AptPackageIndex
from src.core.services.pkg_cache.capture import ArchiveCapturer


@pytest.fixture
def cache_dir(tmp_path: Path) -> Path:
    """Return an empty cache directory."""
    path = tmp_path / "cache"
    path.mkdir()
    return path


@pytest.fixture
def fake_root(tmp_path: Path) -> Path:
    """Return a fake filesystem root with a dpkg info directory."""
    root = tmp_path / "root"
    (root / "var" / "lib" / "dpkg" / "info").mkdir(parents=True)
    return root


@pytest.fixture
def executor() -> MockExecutor:
    return MockExecutor()


@pytest.fixture
def index(executor: MockExecutor, tmp_path: Path) -> AptPackageIndex:
    return AptPackageIndex(executor, lists_dir=tmp_path / "apt-lists")


@pytest.fixture
def capturer(index: AptPackageIndex, cache_dir: Path, fake_root: Path) -> ArchiveCapturer:
    return ArchiveCapturer(index, cache_dir, root=str(fake_root), max_workers=2)

"""
End-to-end tests — key, install-and-cache, restore — against a fake
dpkg system driven by the mock executor.
"""

from pathlib import Path

import pytest

from src.adapters.mock import MockExecutor
from src.core.services.pkg_cache.apt_index import AptPackageIndex
from src.core.services.pkg_cache.capture import ArchiveCapturer
from src.core.services.pkg_cache.errors import (
    EmptyPackageListError,
    InvalidVersionError,
    TranscriptParseError,
    UnknownPackageError,
)
from src.core.services.pkg_cache.keys import CACHE_KEY_FILE, derive_cache_key
from src.core.use_cases.cache_key import prepare_cache_key
from src.core.use_cases.install import install_and_cache
from src.core.use_cases.restore import restore_cache
from tests.fake_system import (
    install_fake_package,
    register_apt_version,
    register_unknown_package,
)

TRANSCRIPT = """\
Reading package lists...
Unpacking libcurl4:amd64 (7.81.0) ...
Unpacking curl (7.81.0) ...
Unpacking jq (1.6) ...
Setting up jq (1.6) ...
"""


@pytest.fixture
def apt_system(executor: MockExecutor, fake_root: Path) -> MockExecutor:
    register_apt_version(executor, "curl", "7.81.0")
    register_apt_version(executor, "jq", "1.6")
    install_fake_package(fake_root, executor, "curl", {"/usr/bin/curl": "curl"})
    install_fake_package(
        fake_root, executor, "libcurl4", {"/usr/lib/x86_64-linux-gnu/libcurl.so.4": "lib"},
        postinst="#!/bin/sh\nldconfig\n", arch="amd64",
    )
    install_fake_package(fake_root, executor, "jq", {"/usr/bin/jq": "jq"})
    executor.set_response(["apt-get", "--yes", "install"], stdout=TRANSCRIPT)
    return executor


class TestPrepareCacheKey:
    def test_key_written(self, apt_system: MockExecutor, index: AptPackageIndex, cache_dir: Path):
        result = prepare_cache_key("jq, curl", "v1", cache_dir, index)

        assert result.normalized == "curl=7.81.0 jq=1.6"
        assert result.value == "curl=7.81.0 jq=1.6 @ v1 1"
        assert result.key == derive_cache_key("curl=7.81.0 jq=1.6", "v1")
        assert (cache_dir / CACHE_KEY_FILE).read_text().strip() == result.key

    def test_same_request_different_spelling(
        self, apt_system: MockExecutor, index: AptPackageIndex, cache_dir: Path
    ):
        a = prepare_cache_key("jq curl", "v1", cache_dir, index)
        b = prepare_cache_key("curl,\\\n jq", "v1", cache_dir, index)
        assert a.key == b.key

    def test_invalid_version_before_any_write(self, index: AptPackageIndex, tmp_path: Path):
        cache_dir = tmp_path / "new-cache"
        with pytest.raises(InvalidVersionError):
            prepare_cache_key("jq", "v 1", cache_dir, index)
        assert not cache_dir.exists()

    def test_empty_packages(self, index: AptPackageIndex, tmp_path: Path):
        with pytest.raises(EmptyPackageListError) as exc:
            prepare_cache_key(" , ", "v1", tmp_path / "c", index)
        assert exc.value.exit_code == 3
        assert not (tmp_path / "c").exists()

    def test_unknown_package(self, executor: MockExecutor, index: AptPackageIndex, tmp_path: Path):
        register_unknown_package(executor, "nope")
        with pytest.raises(UnknownPackageError):
            prepare_cache_key("nope", "v1", tmp_path / "c", index)
        assert not (tmp_path / "c" / CACHE_KEY_FILE).exists()


class TestInstallAndCache:
    def test_curl_jq_closure(
        self, apt_system: MockExecutor, index: AptPackageIndex,
        capturer: ArchiveCapturer, cache_dir: Path,
    ):
        report = install_and_cache("curl jq", cache_dir, index, capturer)

        assert (cache_dir / "manifest_main.log").read_text().splitlines() == [
            "curl=7.81.0", "jq=1.6",
        ]
        assert (cache_dir / "manifest_all.log").read_text().splitlines() == [
            "curl=7.81.0", "jq=1.6", "libcurl4=7.81.0",
        ]
        assert sorted(p.name for p in cache_dir.glob("*.tar")) == [
            "curl=7.81.0.tar", "jq=1.6.tar", "libcurl4=7.81.0.tar",
        ]
        assert (cache_dir / "install.log").read_text() == TRANSCRIPT
        assert report.captured == 3
        assert report.skipped == 0

    def test_rerun_writes_no_new_archives(
        self, apt_system: MockExecutor, index: AptPackageIndex,
        capturer: ArchiveCapturer, cache_dir: Path,
    ):
        install_and_cache("curl jq", cache_dir, index, capturer)
        mtimes = {p.name: p.stat().st_mtime_ns for p in cache_dir.glob("*.tar")}

        report = install_and_cache("jq,curl", cache_dir, index, capturer)

        assert report.captured == 0
        assert report.skipped == 3
        assert {p.name: p.stat().st_mtime_ns for p in cache_dir.glob("*.tar")} == mtimes

    def test_bad_transcript_aborts_before_capture(
        self, apt_system: MockExecutor, index: AptPackageIndex,
        capturer: ArchiveCapturer, cache_dir: Path,
    ):
        apt_system.set_response(
            ["apt-get", "--yes", "install"], stdout="Unpacking jq (1.6)\nUnpacking %%% malformed\n",
        )
        with pytest.raises(TranscriptParseError):
            install_and_cache("jq", cache_dir, index, capturer)
        assert list(cache_dir.glob("*.tar")) == []
        assert not (cache_dir / "manifest_all.log").exists()

    def test_empty_request(self, index: AptPackageIndex, capturer: ArchiveCapturer, cache_dir: Path):
        with pytest.raises(EmptyPackageListError):
            install_and_cache("", cache_dir, index, capturer)
        assert list(cache_dir.iterdir()) == []

    def test_nothing_unpacked_skips_all_manifest(
        self, apt_system: MockExecutor, index: AptPackageIndex,
        capturer: ArchiveCapturer, cache_dir: Path,
    ):
        apt_system.set_response(
            ["apt-get", "--yes", "install"], stdout="jq is already the newest version (1.6).\n",
        )
        report = install_and_cache("jq", cache_dir, index, capturer)
        assert report.closure == []
        assert report.all_manifest is None
        assert not (cache_dir / "manifest_all.log").exists()


class TestRoundTrip:
    def test_restore_reproduces_install(
        self, apt_system: MockExecutor, index: AptPackageIndex,
        capturer: ArchiveCapturer, cache_dir: Path, tmp_path: Path,
    ):
        install_and_cache("curl jq", cache_dir, index, capturer)
        apt_system.reset()

        fresh = tmp_path / "fresh-runner"
        fresh.mkdir()
        report = restore_cache(cache_dir, apt_system, root=str(fresh), execute_install_scripts=True)

        assert (fresh / "usr/bin/curl").read_text() == "curl"
        assert (fresh / "usr/lib/x86_64-linux-gnu/libcurl.so.4").is_file()
        assert report.scripts_executed == ["libcurl4"]
        assert sorted(report.scripts_missing) == ["curl", "jq"]
        assert apt_system.call_log[0].cmd[-1] == "configure"

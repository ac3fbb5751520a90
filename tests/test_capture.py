"""
Tests for archive capture.
"""

import os
import tarfile
from pathlib import Path

import pytest

from src.adapters.mock import MockExecutor
from src.adapters.shell.command import ShellExecutor
from src.core.models.package import PackageRef
from src.core.services.pkg_cache.apt_index import AptPackageIndex
from src.core.services.pkg_cache.capture import (
    ArchiveCapturer,
    archive_relpath,
    format_size,
)
from src.core.services.pkg_cache.errors import ArchiveWriteError
from tests.fake_system import install_dpkg_command, install_fake_package

JQ = PackageRef(name="jq", version="1.6")


def _members(path: Path) -> set[str]:
    with tarfile.open(path) as tar:
        return set(tar.getnames())


class TestArchiveRelpath:
    def test_strips_one_leading_slash(self):
        assert archive_relpath("/usr/bin/jq") == "usr/bin/jq"
        assert archive_relpath("//odd") == "/odd"
        assert archive_relpath("already/relative") == "already/relative"


class TestFormatSize:
    def test_units(self):
        assert format_size(512) == "512B"
        assert format_size(2048) == "2.0K"
        assert format_size(5 * 1024 * 1024) == "5.0M"


class TestCapture:
    def test_archives_owned_files_and_scripts(
        self, capturer: ArchiveCapturer, executor: MockExecutor, fake_root: Path
    ):
        install_fake_package(
            fake_root, executor, "jq",
            {"/usr/bin/jq": "binary", "/usr/share/doc/jq/copyright": "MIT"},
            preinst="#!/bin/sh\n", postinst="#!/bin/sh\n", arch="amd64",
        )
        result = capturer.capture(JQ)

        assert result.status == "captured"
        assert Path(result.path).name == "jq=1.6.tar"
        assert _members(Path(result.path)) == {
            "usr/bin/jq",
            "usr/share/doc/jq/copyright",
            "var/lib/dpkg/info/jq:amd64.preinst",
            "var/lib/dpkg/info/jq:amd64.postinst",
        }
        assert result.files == 4
        assert result.size_bytes > 0

    def test_directories_not_archived(
        self, capturer: ArchiveCapturer, executor: MockExecutor, fake_root: Path
    ):
        install_fake_package(fake_root, executor, "jq", {"/usr/bin/jq": "x"})
        names = _members(Path(capturer.capture(JQ).path))
        assert "usr/bin" not in names
        assert "." not in names

    def test_deleted_file_silently_excluded(
        self, capturer: ArchiveCapturer, executor: MockExecutor, fake_root: Path
    ):
        install_fake_package(
            fake_root, executor, "jq", {"/usr/bin/jq": "x", "/usr/lib/libjq.so.1": "y"},
        )
        (fake_root / "usr" / "lib" / "libjq.so.1").unlink()

        result = capturer.capture(JQ)
        assert _members(Path(result.path)) == {"usr/bin/jq"}

    def test_symlinks_kept_as_links(
        self, capturer: ArchiveCapturer, executor: MockExecutor, fake_root: Path
    ):
        install_fake_package(fake_root, executor, "jq", {"/usr/lib/libjq.so.1.0.4": "lib"})
        link = fake_root / "usr" / "lib" / "libjq.so.1"
        os.symlink("libjq.so.1.0.4", link)
        dangling = fake_root / "usr" / "lib" / "libjq.so"
        os.symlink("/nowhere/libjq.so", dangling)
        executor.set_response(
            ["dpkg", "-L", "jq"],
            stdout="/usr/lib/libjq.so.1.0.4\n/usr/lib/libjq.so.1\n/usr/lib/libjq.so\n",
        )

        result = capturer.capture(JQ)
        with tarfile.open(result.path) as tar:
            assert tar.getmember("usr/lib/libjq.so.1").issym()
            assert tar.getmember("usr/lib/libjq.so").linkname == "/nowhere/libjq.so"

    def test_unknown_to_dpkg_yields_scripts_only(
        self, capturer: ArchiveCapturer, executor: MockExecutor, fake_root: Path
    ):
        executor.set_failure(["dpkg", "-L", "jq"], error="not installed")
        (fake_root / "var/lib/dpkg/info/jq.postinst").write_text("#!/bin/sh\n")
        result = capturer.capture(JQ)
        assert _members(Path(result.path)) == {"var/lib/dpkg/info/jq.postinst"}

    def test_existing_archive_is_not_touched(
        self, capturer: ArchiveCapturer, executor: MockExecutor, cache_dir: Path
    ):
        existing = cache_dir / "jq=1.6.tar"
        existing.write_bytes(b"cached")
        before = existing.stat().st_mtime_ns

        result = capturer.capture(JQ)

        assert result.skipped
        assert existing.read_bytes() == b"cached"
        assert existing.stat().st_mtime_ns == before
        assert executor.call_count == 0
        assert sorted(p.name for p in cache_dir.iterdir()) == ["jq=1.6.tar"]

    def test_failed_write_leaves_no_archive(
        self, capturer: ArchiveCapturer, executor: MockExecutor, fake_root: Path,
        cache_dir: Path, monkeypatch: pytest.MonkeyPatch,
    ):
        install_fake_package(fake_root, executor, "jq", {"/usr/bin/jq": "x"})

        def boom(*args, **kwargs):
            raise OSError(28, "No space left on device")

        monkeypatch.setattr(tarfile.TarFile, "add", boom)

        with pytest.raises(ArchiveWriteError) as exc:
            capturer.capture(JQ)
        assert exc.value.exit_code == 8
        assert list(cache_dir.iterdir()) == []

    def test_custom_extension(self, index, cache_dir: Path, fake_root: Path):
        capturer = ArchiveCapturer(index, cache_dir, root=str(fake_root), archive_ext="tar.x")
        assert capturer.archive_path(JQ).name == "jq=1.6.tar.x"


class TestCaptureClosure:
    def test_one_archive_per_package(
        self, capturer: ArchiveCapturer, executor: MockExecutor, fake_root: Path, cache_dir: Path
    ):
        install_fake_package(fake_root, executor, "curl", {"/usr/bin/curl": "c"})
        install_fake_package(fake_root, executor, "libcurl4", {"/usr/lib/libcurl.so.4": "l"})
        closure = [
            PackageRef(name="libcurl4", version="7.81.0"),
            PackageRef(name="curl", version="7.81.0"),
        ]

        results = capturer.capture_closure(closure)

        assert [r.package for r in results] == closure
        assert sorted(p.name for p in cache_dir.glob("*.tar")) == [
            "curl=7.81.0.tar", "libcurl4=7.81.0.tar",
        ]

    def test_duplicate_entries_captured_once(
        self, capturer: ArchiveCapturer, executor: MockExecutor, fake_root: Path
    ):
        install_fake_package(fake_root, executor, "jq", {"/usr/bin/jq": "x"})
        results = capturer.capture_closure([JQ, JQ])
        assert len(results) == 1
        assert len(executor.calls_to("dpkg", "-L", "jq")) == 1

    def test_rerun_is_all_skipped(
        self, capturer: ArchiveCapturer, executor: MockExecutor, fake_root: Path
    ):
        install_fake_package(fake_root, executor, "jq", {"/usr/bin/jq": "x"})
        capturer.capture_closure([JQ])
        executor.reset()

        results = capturer.capture_closure([JQ])
        assert all(r.skipped for r in results)
        assert executor.call_count == 0

    def test_empty_closure(self, capturer: ArchiveCapturer):
        assert capturer.capture_closure([]) == []


class TestCaptureThroughShell:
    """Capture with a real ShellExecutor against a ``dpkg`` on PATH."""

    @pytest.fixture
    def shell_capturer(
        self, tmp_path: Path, cache_dir: Path, fake_root: Path, monkeypatch: pytest.MonkeyPatch
    ):
        def make(listing: bytes) -> ArchiveCapturer:
            bin_dir = tmp_path / "bin"
            install_dpkg_command(bin_dir, listing)
            monkeypatch.setenv("PATH", f"{bin_dir}{os.pathsep}{os.environ.get('PATH', '')}")
            index = AptPackageIndex(ShellExecutor(use_sudo=False), lists_dir=tmp_path / "lists")
            return ArchiveCapturer(index, cache_dir, root=str(fake_root), max_workers=1)

        return make

    def test_long_file_list_fully_archived(self, shell_capturer, fake_root: Path):
        owned = [
            f"/usr/share/bigpkg/a-fairly-long-directory-name/file-{i:05d}.txt"
            for i in range(3000)
        ]
        for path in owned:
            target = fake_root / path.lstrip("/")
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text("x")
        listing = "\n".join(owned) + "\n"
        assert len(listing) > 64 * 1024

        capturer = shell_capturer(listing.encode())
        result = capturer.capture(PackageRef(name="bigpkg", version="1"))

        assert result.files == 3000
        assert _members(Path(result.path)) == {archive_relpath(p) for p in owned}

    def test_non_utf8_file_name_archived(self, shell_capturer, fake_root: Path):
        raw = b"/usr/share/doc/pkg/caf\xe9.txt"
        target = fake_root / os.fsdecode(raw.lstrip(b"/"))
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text("menu")

        capturer = shell_capturer(raw + b"\n")
        result = capturer.capture(PackageRef(name="pkg", version="1"))

        assert result.files == 1
        with tarfile.open(result.path) as tar:
            assert [os.fsencode(n) for n in tar.getnames()] == [raw.lstrip(b"/")]

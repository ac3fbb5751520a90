"""
CLI commands for the package cache.

Thin wrappers over ``src.core.use_cases``. Every fatal engine error is
printed as one line and mapped to its own exit code.
"""

from __future__ import annotations

import json
import sys
from collections.abc import Callable
from pathlib import Path

import click

from src.adapters.base import Executor
from src.core.config.loader import ConfigError, load_settings
from src.core.models.settings import CacheSettings
from src.core.services.pkg_cache.errors import PackageCacheError


def _make_executor(settings: CacheSettings) -> Executor:
    from src.adapters.shell.command import ShellExecutor

    return ShellExecutor(use_sudo=settings.use_sudo, timeout=settings.command_timeout)


def _load(ctx: click.Context, **overrides: object) -> CacheSettings:
    return load_settings(ctx.obj.get("config_path"), **overrides)


def _run_guarded(fn: Callable[[], None]) -> None:
    """Run a command body, turning engine errors into exit codes."""
    try:
        fn()
    except (PackageCacheError, ConfigError) as e:
        click.secho("aborted", fg="red", err=True)
        click.secho(str(e), fg="red", err=True)
        sys.exit(e.exit_code)


def _packages_arg(packages: tuple[str, ...]) -> str:
    return " ".join(packages)


_cache_dir_option = click.option(
    "--cache-dir", "cache_dir", type=click.Path(file_okay=False, path_type=Path),
    default=None, help="Cache directory (default: settings).",
)
_json_option = click.option(
    "--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.",
)


# ── Key ─────────────────────────────────────────────────────────


@click.command()
@click.argument("packages", nargs=-1)
@click.option("--cache-version", "version", default="", help="Cache version tag (no spaces).")
@click.option("--no-refresh", is_flag=True, help="Skip refreshing stale apt lists.")
@_cache_dir_option
@_json_option
@click.pass_context
def key(
    ctx: click.Context,
    packages: tuple[str, ...],
    version: str,
    no_refresh: bool,
    cache_dir: Path | None,
    as_json: bool,
) -> None:
    """Validate a package request and write its cache key."""
    from src.core.services.pkg_cache.apt_index import AptPackageIndex
    from src.core.use_cases.cache_key import prepare_cache_key

    def body() -> None:
        settings = _load(ctx, cache_dir=cache_dir)
        index = AptPackageIndex(_make_executor(settings), install_command=settings.install_command)
        result = prepare_cache_key(
            _packages_arg(packages),
            version,
            settings.cache_dir,
            index,
            refresh_lists=not no_refresh,
            lists_max_age_minutes=settings.apt_lists_max_age_minutes,
        )
        if as_json:
            click.echo(json.dumps(result.to_dict(), indent=2))
            return
        click.echo(result.key)

    _run_guarded(body)


# ── Install ─────────────────────────────────────────────────────


@click.command()
@click.argument("packages", nargs=-1)
@_cache_dir_option
@_json_option
@click.pass_context
def install(
    ctx: click.Context,
    packages: tuple[str, ...],
    cache_dir: Path | None,
    as_json: bool,
) -> None:
    """Install packages with apt and capture them into the cache."""
    from src.core.services.pkg_cache.apt_index import AptPackageIndex
    from src.core.services.pkg_cache.capture import ArchiveCapturer
    from src.core.use_cases.install import install_and_cache

    def body() -> None:
        settings = _load(ctx, cache_dir=cache_dir)
        index = AptPackageIndex(_make_executor(settings), install_command=settings.install_command)
        capturer = ArchiveCapturer(
            index,
            settings.cache_dir,
            root=settings.root_dir,
            archive_ext=settings.archive_ext,
            max_workers=settings.max_workers,
        )
        report = install_and_cache(_packages_arg(packages), settings.cache_dir, index, capturer)
        if as_json:
            click.echo(json.dumps(report.to_dict(), indent=2))
            return
        click.secho(
            f"Cached {len(report.closure)} package(s): "
            f"{report.captured} captured, {report.skipped} already cached",
            fg="green",
        )

    _run_guarded(body)


# ── Restore ─────────────────────────────────────────────────────


@click.command()
@click.option(
    "--execute-install-scripts/--no-execute-install-scripts",
    "execute_scripts", default=None, help="Re-run each package's postinst.",
)
@click.option("--root", "root_dir", default=None, help="Restore under this root instead of /.")
@_cache_dir_option
@_json_option
@click.pass_context
def restore(
    ctx: click.Context,
    execute_scripts: bool | None,
    root_dir: str | None,
    cache_dir: Path | None,
    as_json: bool,
) -> None:
    """Unpack cached packages onto the filesystem."""
    from src.core.use_cases.restore import restore_cache

    def body() -> None:
        settings = _load(
            ctx,
            cache_dir=cache_dir,
            root_dir=root_dir,
            execute_install_scripts=execute_scripts,
        )
        report = restore_cache(
            settings.cache_dir,
            _make_executor(settings),
            root=settings.root_dir,
            execute_install_scripts=settings.execute_install_scripts,
            archive_ext=settings.archive_ext,
        )
        if as_json:
            click.echo(json.dumps(report.to_dict(), indent=2))
            return
        click.secho(f"Restored {len(report.archives)} package(s)", fg="green")
        if report.scripts_failed:
            click.secho(
                f"   postinst failed (ignored): {', '.join(report.scripts_failed)}",
                fg="yellow",
            )

    _run_guarded(body)


# ── Parse ───────────────────────────────────────────────────────


@click.command()
@click.argument("transcript", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@_json_option
def parse(transcript: Path, as_json: bool) -> None:
    """List the packages an install transcript unpacked."""
    from src.core.services.pkg_cache.transcript import read_transcript

    def body() -> None:
        closure = read_transcript(transcript)
        if as_json:
            click.echo(json.dumps([str(p) for p in closure], indent=2))
            return
        for package in closure:
            click.echo(str(package))

    _run_guarded(body)

"""
apt-pkg-cache — CLI entrypoint.

Usage:
    python -m src.main --help
    python -m src.main key --cache-version v1 curl jq
    python -m src.main install curl jq
    python -m src.main restore --execute-install-scripts
"""

from __future__ import annotations

import json
import os
import sys
from pathlib import Path

import click

from src import __version__
from src.core.observability.logging_config import setup_logging


def _console_level(debug: bool, verbose: bool, quiet: bool) -> str:
    """Flags beat APTCACHE_LOG_LEVEL; the most verbose flag wins."""
    for flag, name in ((debug, "DEBUG"), (verbose, "INFO"), (quiet, "ERROR")):
        if flag:
            return name
    return os.environ.get("APTCACHE_LOG_LEVEL", "WARNING")


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(version=__version__, prog_name="aptcache")
@click.option("-v", "--verbose", is_flag=True, help="Log each pipeline step.")
@click.option("-q", "--quiet", is_flag=True, help="Only log errors.")
@click.option("--debug", is_flag=True, help="Log every command run.")
@click.option(
    "-c", "--config", "config_path",
    type=click.Path(dir_okay=False, path_type=Path), default=None,
    help="Path to aptcache.yml (default: search upward from cwd).",
)
@click.pass_context
def cli(ctx: click.Context, verbose: bool, quiet: bool, debug: bool, config_path: Path | None) -> None:
    """apt-pkg-cache — cache apt installs for repeatable CI runs."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    setup_logging(
        level=_console_level(debug, verbose, quiet),
        log_file=os.environ.get("APTCACHE_LOG_FILE"),
        log_file_level=os.environ.get("APTCACHE_LOG_FILE_LEVEL"),
    )


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def config(ctx: click.Context, as_json: bool) -> None:
    """Show the effective cache settings."""
    from src.core.config.loader import ConfigError, load_settings

    try:
        settings = load_settings(ctx.obj.get("config_path"))
    except ConfigError as e:
        click.secho(f"❌ {e}", fg="red", err=True)
        sys.exit(e.exit_code)

    data = settings.model_dump(mode="json")
    if as_json:
        click.echo(json.dumps(data, indent=2))
        return

    click.secho("⚙️  Cache settings:", fg="cyan", bold=True)
    for name, value in data.items():
        click.echo(f"   {name:<26} {value}")


# ── Register pipeline commands from src/ui/cli/ ───────────────────

from src.ui.cli.cache import install, key, parse, restore

cli.add_command(key)
cli.add_command(install)
cli.add_command(restore)
cli.add_command(parse)


if __name__ == "__main__":
    cli()

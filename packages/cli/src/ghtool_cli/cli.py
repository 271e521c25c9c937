"""CLI entry point for ghtool (`ght`).

Commands:
  test: failing jest tests of the current branch's pull request
  lint: eslint issues
  build: tsc errors
  all: every configured category at once
"""

from __future__ import annotations

import importlib.metadata
import logging
import sqlite3

import click
from rich.console import Console
from rich.logging import RichHandler

from ghtool_cli.commands.checks import all_cmd, build_cmd, lint_cmd, test_cmd

logger = logging.getLogger(__name__)


def _build_store(config: dict):
    """Instantiate the configured log cache from .ghtool.yml settings.

    Store selection:
      cache: sqlite → SQLiteLogStore (cache_path, or $XDG_CACHE_HOME/ghtool/logs.db)
      cache: memory → MemoryLogStore (this invocation only)
      cache: none   → NoOpLogStore

    This factory lives in cli.py so neither ghtool_core nor ghtool_store
    know about the config format.
    """
    from ghtool_store.noop import NoOpLogStore

    backend = config.get("cache", "sqlite")

    if backend == "sqlite":
        from ghtool_core.config import default_cache_path
        from ghtool_store.sqlite import SQLiteLogStore

        db_path = config.get("cache_path") or default_cache_path()
        try:
            return SQLiteLogStore(db_path=db_path)
        except (OSError, sqlite3.Error) as e:
            logger.warning("Cannot open log cache at %s (%s). Continuing without a cache.", db_path, e)
            return NoOpLogStore()

    if backend == "memory":
        from ghtool_store.memory import MemoryLogStore

        return MemoryLogStore()

    return NoOpLogStore()


def _configure_logging(verbosity: int) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity > 1:
        level = logging.DEBUG
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=verbosity > 1)],
        force=True,
    )
    # urllib3 is chatty at DEBUG; keep it one level quieter than ours.
    logging.getLogger("urllib3").setLevel(max(level, logging.INFO))


@click.group()
@click.version_option(
    version=importlib.metadata.version("ghtool"),
    prog_name="ght",
)
@click.option(
    "--config",
    "config_path",
    default=".ghtool.yml",
    show_default=True,
    help="Path to the configuration file.",
    envvar="GHTOOL_CONFIG",
)
@click.option(
    "--repo",
    default=None,
    help="Repository as owner/name or host/owner/name. Defaults to the origin remote.",
)
@click.option("--branch", default=None, help="Branch whose pull request to inspect. Defaults to the current branch.")
@click.option("-v", "--verbose", count=True, help="Log progress (-v) or debug output (-vv) to stderr.")
@click.pass_context
def main(ctx: click.Context, config_path: str, repo: str | None, branch: str | None, verbose: int):
    """Show CI failures of the pull request for a git branch."""
    from ghtool_core.config import load_config
    from ghtool_core.errors import ConfigError

    _configure_logging(verbose)
    ctx.ensure_object(dict)

    try:
        config = load_config(config_path)
    except ConfigError as e:
        raise click.ClickException(str(e)) from e

    store = _build_store(config)
    ctx.obj["store"] = store
    ctx.obj["config"] = config
    ctx.obj["config_path"] = config_path
    ctx.obj["repo"] = repo
    ctx.obj["branch"] = branch
    ctx.call_on_close(store.close)


main.add_command(test_cmd)
main.add_command(lint_cmd)
main.add_command(build_cmd)
main.add_command(all_cmd)

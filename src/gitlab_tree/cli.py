"""Click CLI for gitlab-tree."""

import os
import time
from pathlib import Path
from typing import Callable, Optional

import click

from gitlab_tree import __version__
from gitlab_tree.cache import CacheStore, cache_is_valid
from gitlab_tree.config import (
    DEFAULT_CACHE_TTL_SECONDS,
    ConfigError,
    TreeConfig,
    default_cache_dir,
    default_cache_path,
    read_env_int_optional,
    read_env_optional,
)
from gitlab_tree.logging_config import setup_logging
from gitlab_tree.pipeline import IngestError, run_ingestion
from gitlab_tree.tree import TreeStore, project
from gitlab_tree.view import row_view


LOG_LEVELS = click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False)


def load_config(
    url: Optional[str] = None,
    token: Optional[str] = None,
    cache_ttl: Optional[int] = None,
) -> TreeConfig:
    """Build configuration from the environment, with command-line overrides.

    Configuration errors are reported once and stop the command.
    """
    overrides = {
        "GITLAB_URL": url,
        "GITLAB_TOKEN": token,
        "GITLAB_CACHE_TTL_SECONDS": None if cache_ttl is None else str(cache_ttl),
    }

    def reader(key: str) -> Optional[str]:
        value = overrides.get(key)
        return value if value is not None else os.environ.get(key)

    try:
        return TreeConfig.from_env(reader)
    except ConfigError as e:
        click.echo(f"Error: {e}", err=True)
        raise SystemExit(1)


def connection_options(f: Callable) -> Callable:
    """Options shared by the commands that talk to GitLab."""
    f = click.option(
        "--cache-ttl",
        type=click.IntRange(min=0),
        help="Cache lifetime in seconds (default: GITLAB_CACHE_TTL_SECONDS or 300)",
    )(f)
    f = click.option(
        "--token", "-t", envvar="GITLAB_TOKEN", help="GitLab personal access token"
    )(f)
    f = click.option(
        "--url", "-u", envvar="GITLAB_URL", help="GitLab instance URL (default: https://gitlab.com)"
    )(f)
    return f


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name="gitlab-tree")
@click.pass_context
def cli(ctx: click.Context) -> None:
    """gitlab-tree - browse GitLab groups and projects as a tree.

    Reads GITLAB_URL and GITLAB_TOKEN (plus optional GITLAB_* filters)
    from the environment.

    Quick start:
        gitlab-tree               Launch the interactive browser
        gitlab-tree dump          Print the tree to stdout
        gitlab-tree cache info    Show the snapshot cache status
    """
    if ctx.invoked_subcommand is None:
        ctx.invoke(browse)


@cli.command()
@connection_options
@click.option("--log-file", type=click.Path(dir_okay=False, path_type=Path), help="Log file path")
@click.option("--log-level", type=LOG_LEVELS, default="INFO", show_default=True)
def browse(
    url: Optional[str],
    token: Optional[str],
    cache_ttl: Optional[int],
    log_file: Optional[Path],
    log_level: str,
) -> None:
    """Launch the interactive tree browser.

    Keyboard shortcuts:
        q         - Quit
        r         - Refresh (refetch from GitLab)
        j/k, ↑/↓  - Move
        l/→       - Expand, or enter the first child
        h/←       - Collapse, or go to the parent
        gg / G    - Jump to top / bottom
        y         - Copy URL
        o         - Open in browser
        /         - Search (Enter applies, Esc clears)
    """
    config = load_config(url, token, cache_ttl)
    setup_logging(log_level, log_file or default_cache_dir() / "gitlab-tree.log")

    from gitlab_tree.sinks import build_clipboard
    from gitlab_tree.tui import run_tui

    run_tui(config, clipboard=build_clipboard())


@cli.command()
@connection_options
@click.option("--expand-all", "-a", is_flag=True, help="Expand every group")
@click.option("--search", "-s", help="Fuzzy filter on names")
@click.option("--refresh", is_flag=True, help="Ignore the cache and fetch live data")
@click.option("--log-level", type=LOG_LEVELS, default="WARNING", show_default=True)
def dump(
    url: Optional[str],
    token: Optional[str],
    cache_ttl: Optional[int],
    expand_all: bool,
    search: Optional[str],
    refresh: bool,
    log_level: str,
) -> None:
    """Print the catalog tree without starting the UI."""
    config = load_config(url, token, cache_ttl)
    setup_logging(log_level)

    try:
        result = run_ingestion(config, use_cache=not refresh)
    except IngestError as e:
        click.echo(f"Error: load error: {e}", err=True)
        raise SystemExit(1)

    store = TreeStore.from_snapshot(result.snapshot)
    if expand_all:
        store.expand_all()

    for row in project(store, search):
        click.echo(row_view(store, row).text)
    click.echo(result.status, err=True)


@cli.group()
def cache() -> None:
    """Inspect or clear the snapshot cache."""
    pass


def _cache_store() -> CacheStore:
    try:
        path = read_env_optional(os.environ.get, "GITLAB_CACHE_PATH")
        ttl = read_env_int_optional(os.environ.get, "GITLAB_CACHE_TTL_SECONDS")
    except ConfigError as e:
        click.echo(f"Error: {e}", err=True)
        raise SystemExit(1)
    return CacheStore(
        Path(path).expanduser() if path else default_cache_path(),
        DEFAULT_CACHE_TTL_SECONDS if ttl is None else ttl,
    )


@cache.command("info")
def cache_info() -> None:
    """Show cache location, age and contents."""
    store = _cache_store()
    click.echo(f"Cache file: {store.path}")

    snapshot = store.read()
    if snapshot is None:
        click.echo("Status: missing")
        return

    now = time.time()
    age = max(0, int(now) - snapshot.created_at)
    valid = cache_is_valid(snapshot.created_at, store.ttl_seconds, now)
    click.echo(f"Status: {'valid' if valid else 'expired'}")
    click.echo(f"Age: {age}s (ttl {store.ttl_seconds}s)")
    click.echo(snapshot.summary())


@cache.command("clear")
def cache_clear() -> None:
    """Delete the cached snapshot."""
    store = _cache_store()
    if store.clear():
        click.echo(f"✓ Removed {store.path}")
    else:
        click.echo("No cache to remove.")

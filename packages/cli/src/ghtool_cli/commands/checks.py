"""test / lint / build / all commands: report failing checks of a branch's pull request."""

from __future__ import annotations

import contextlib
import signal
import threading

import click
from rich.console import Console

from ghtool_core.categories import Category, CategoryMatcher
from ghtool_core.config import apply_overrides
from ghtool_core.errors import AuthError, ConfigError, GhtoolError
from ghtool_core.gh.logs import JobLogDownloader
from ghtool_core.gh.pull_request import api_base_url, get_default_branch, get_github, get_repo
from ghtool_core.runner import run_checks
from ghtool_core.utils.git import RepoRef, get_current_branch, get_remote
from ghtool_core.waiter import CancelToken

from ghtool_cli.render import render_report

console = Console()


def _resolve_repo(repo: str | None) -> RepoRef:
    if repo is None:
        return get_remote()
    parts = repo.split("/")
    if len(parts) not in (2, 3) or not all(parts):
        raise click.UsageError(f"--repo must look like owner/name or host/owner/name, got {repo!r}.")
    if len(parts) == 3:
        return RepoRef(hostname=parts[0], owner=parts[1], name=parts[2])

    # Without a host, use the origin remote's, so Enterprise checkouts stay on their server.
    try:
        hostname = get_remote().hostname
    except ConfigError:
        hostname = "github.com"
    return RepoRef(hostname=hostname, owner=parts[0], name=parts[1])


def _requested_categories(matcher: CategoryMatcher, categories: list[Category], config_path: str) -> list[Category]:
    if not categories:
        # `all` means whatever is configured.
        if not matcher.enabled_categories:
            raise click.UsageError(f"No test, lint or build section found in {config_path}.")
        return matcher.enabled_categories
    for category in categories:
        if category not in matcher.enabled_categories:
            raise click.UsageError(
                f"No {category.value} section found in {config_path}. Add one, for example:\n\n"
                f"{category.value}:\n  job_pattern: \"^{category.value.capitalize()}\"\n  tool: ..."
            )
    return categories


@contextlib.contextmanager
def _cancel_on_interrupt(cancel: CancelToken):
    """Turn the first Ctrl-C into a cancellation; a second one interrupts for real."""
    if threading.current_thread() is not threading.main_thread():
        yield
        return

    def handler(signum, frame):
        if cancel.is_cancelled:
            raise KeyboardInterrupt
        console.print("[yellow]Cancelling... (press Ctrl-C again to abort)[/yellow]")
        cancel.cancel()

    previous = signal.signal(signal.SIGINT, handler)
    try:
        yield
    finally:
        signal.signal(signal.SIGINT, previous)


def _run(ctx: click.Context, categories: list[Category], files_only: bool, wait: bool, timeout: int | None):
    from ghtool_cli.auth import resolve_github_token

    obj = ctx.obj
    try:
        config = apply_overrides(obj["config"], {"wait_timeout": timeout})
        matcher = CategoryMatcher.from_config(config)
    except ConfigError as e:
        raise click.ClickException(str(e)) from e
    categories = _requested_categories(matcher, categories, obj.get("config_path", ".ghtool.yml"))

    try:
        repo_ref = _resolve_repo(obj.get("repo"))
        token = resolve_github_token(repo_ref.hostname)
        if not token:
            raise AuthError()

        gh = get_github(token, base_url=api_base_url(repo_ref.hostname))
        branch = obj.get("branch")
        if branch is None:
            branch = get_current_branch()
            default_branch = get_default_branch(get_repo(gh, repo_ref.slug))
            if branch == default_branch:
                raise click.UsageError(
                    f"You are on the default branch ({default_branch}). Check out a PR branch or pass --branch."
                )

        downloader = JobLogDownloader(
            token, repo_ref.owner, repo_ref.name, base_url=api_base_url(repo_ref.hostname)
        )
        cancel = CancelToken()
        with _cancel_on_interrupt(cancel):
            report = run_checks(
                gh,
                repo_ref.slug,
                branch,
                categories,
                config,
                downloader=downloader,
                wait=wait,
                cancel=cancel,
                store=obj.get("store"),
            )
    except GhtoolError as e:
        raise click.ClickException(str(e)) from e

    render_report(report, categories, files_only=files_only, console=console)


def _checks_command(name: str, categories: list[Category], help_text: str) -> click.Command:
    @click.command(name, help=help_text)
    @click.option("--files", "-f", "files_only", is_flag=True, help="Print only the paths of files with issues.")
    @click.option("--wait", "-w", is_flag=True, help="Wait for pending checks to finish first.")
    @click.option(
        "--timeout",
        type=click.IntRange(min=1),
        default=None,
        help="Seconds to wait before giving up. Overrides wait_timeout.",
    )
    @click.pass_context
    def command(ctx, files_only: bool, wait: bool, timeout: int | None):
        _run(ctx, categories, files_only, wait, timeout)

    return command


test_cmd = _checks_command("test", [Category.TEST], "Show failing tests of the current branch's pull request.")
lint_cmd = _checks_command("lint", [Category.LINT], "Show lint issues of the current branch's pull request.")
build_cmd = _checks_command("build", [Category.BUILD], "Show build errors of the current branch's pull request.")
all_cmd = _checks_command("all", [], "Show failures of every configured category.")

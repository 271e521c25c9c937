"""One ghtool invocation: branch in, report out."""

from __future__ import annotations

import logging
from concurrent.futures import CancelledError, ThreadPoolExecutor, as_completed
from typing import Callable, Optional, Sequence

from rich.console import Console

from ghtool_core.aggregator import JobOutcome, Report, build_report
from ghtool_core.categories import CATEGORY_PRIORITY, Category, CategoryMatcher, Tool
from ghtool_core.errors import ConfigError, LogDownloadError, NoCheckRunsFound, OperationCancelled
from ghtool_core.gh.check_runs import CheckRunFetcher
from ghtool_core.gh.pull_request import get_repo, resolve_pull_request
from ghtool_core.log_fetcher import LogFetcher
from ghtool_core.models import CheckRun, CheckRunSet, PullRequestState
from ghtool_core.parsers.base import get_parser
from ghtool_core.waiter import CancelToken, CheckWaiter, WaitStatus

# Progress only; stdout carries the report.
console = Console(stderr=True)
logger = logging.getLogger(__name__)


def _pull_request_states(config: dict) -> tuple[PullRequestState, ...]:
    names = config.get("pull_request_states") or [s.value for s in PullRequestState]
    try:
        return tuple(PullRequestState(name) for name in names)
    except ValueError as e:
        choices = ", ".join(s.value for s in PullRequestState)
        raise ConfigError(f"pull_request_states: {e}. Choose from: {choices}.") from None


def _process_job(fetcher: LogFetcher, run: CheckRun, tool: Tool, cancel: CancelToken) -> JobOutcome:
    try:
        text = fetcher.fetch(run, cancel)
    except LogDownloadError as e:
        logger.warning("%s", e)
        return JobOutcome(run, error=e.reason)
    return JobOutcome(run, parse_result=get_parser(tool).parse(text))


def collect_job_outcomes(
    jobs: Sequence[tuple[CheckRun, Tool]],
    fetcher: LogFetcher,
    max_workers: int = 4,
    cancel: Optional[CancelToken] = None,
) -> dict[int, JobOutcome]:
    """Fetch and parse logs for `jobs` on a bounded thread pool.

    Returns outcomes keyed by check run id. One job failing, for whatever
    reason, is recorded on its outcome and never stops the others.
    """
    cancel = cancel or CancelToken()
    outcomes: dict[int, JobOutcome] = {}
    if not jobs:
        return outcomes

    with ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="ghtool-log") as pool:
        futures = {pool.submit(_process_job, fetcher, run, tool, cancel): run for run, tool in jobs}
        for future in as_completed(futures):
            run = futures[future]
            try:
                outcome = future.result()
            except (OperationCancelled, CancelledError):
                outcome = JobOutcome(run, error="cancelled")
            except Exception as e:
                logger.exception("Processing log of %s failed", run.name)
                outcome = JobOutcome(run, error=str(e))
            outcomes[run.id] = outcome

            if cancel.is_cancelled:
                for pending in futures:
                    pending.cancel()
    return outcomes


def _print_poll(check_runs: CheckRunSet) -> None:
    runs = check_runs.all_runs()
    done = sum(1 for run in runs if run.is_completed)
    console.print(f"[dim]{done}/{len(runs)} check run(s) completed[/dim]")


def run_checks(
    gh,
    repo_slug: str,
    branch: str,
    categories: Sequence[Category],
    config: dict,
    downloader: Callable,
    wait: bool = False,
    cancel: Optional[CancelToken] = None,
    store=None,
    clock=None,
) -> Report:
    """Resolve the branch's pull request and report on its failing checks.

    `downloader` takes (job_id, cancel) and returns raw log bytes.
    `store` is the persistent log cache (a BaseLogStore) or None.
    """
    cancel = cancel or CancelToken()
    categories = [c for c in CATEGORY_PRIORITY if c in set(categories)]

    # Configuration problems surface before any network activity.
    matcher = CategoryMatcher.from_config(config)
    tools = {c: matcher.config_for(c).tool for c in categories}
    states = _pull_request_states(config)

    pull_request = resolve_pull_request(gh, repo_slug, branch, states)
    console.print(
        f"[cyan]{repo_slug}#{pull_request.number}[/cyan] ({pull_request.head_ref_name} @ {pull_request.head_sha[:7]})"
    )

    fetcher = CheckRunFetcher(get_repo(gh, repo_slug), pull_request.head_sha, matcher)

    def fetch_relevant() -> CheckRunSet:
        return fetcher.fetch().for_categories(categories)

    wait_status: Optional[WaitStatus] = None
    if wait:
        waiter = CheckWaiter(
            fetch_relevant,
            poll_interval=config["poll_interval"],
            timeout=config["wait_timeout"],
            clock=clock,
            on_poll=_print_poll,
        )
        result = waiter.wait(cancel)
        check_runs, wait_status = result.check_runs, result.status
    else:
        check_runs = fetch_relevant()

    if not len(check_runs):
        if wait_status == WaitStatus.CANCELLED:
            return build_report(check_runs, {}, pull_request, wait_status)
        patterns = {c.value: matcher.config_for(c).job_pattern.pattern for c in categories}
        raise NoCheckRunsFound(categories, patterns)

    jobs = [
        (run, tools[category]) for category in categories for run in check_runs.runs_for(category) if run.is_failing
    ]
    if jobs:
        console.print(f"Fetching logs for {len(jobs)} failing job(s)...")

    log_fetcher = LogFetcher(downloader, store=store, namespace=repo_slug)
    max_workers = int(config["max_concurrent_downloads"])
    outcomes = collect_job_outcomes(jobs, log_fetcher, max_workers=max_workers, cancel=cancel)
    return build_report(check_runs, outcomes, pull_request, wait_status)

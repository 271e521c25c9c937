"""List the check runs of a pull request's head commit."""

from __future__ import annotations

import logging

import requests
from github import GithubException

from ghtool_core.categories import CategoryMatcher
from ghtool_core.errors import CheckRunFetchError
from ghtool_core.models import CheckConclusion, CheckRun, CheckRunSet, CheckStatus

logger = logging.getLogger(__name__)


def to_check_run(run) -> CheckRun:
    """Snapshot a PyGithub CheckRun into our immutable model."""
    try:
        status = CheckStatus(run.status)
    except ValueError:
        logger.debug("Unknown check status %r for %s, treating as pending", run.status, run.name)
        status = CheckStatus.PENDING
    conclusion = None
    if run.conclusion:
        try:
            conclusion = CheckConclusion(run.conclusion)
        except ValueError:
            logger.debug("Unknown conclusion %r for %s", run.conclusion, run.name)
            conclusion = CheckConclusion.FAILURE
    return CheckRun(
        id=run.id,
        name=run.name,
        status=status,
        conclusion=conclusion,
        url=run.html_url or run.details_url,
        created_at=run.started_at,
        completed_at=run.completed_at,
    )


class CheckRunFetcher:
    """Fetches and classifies every check run of one commit.

    Iterating PyGithub's PaginatedList walks all pages lazily, so a failure
    on any page surfaces inside the loop and aborts the whole listing.
    """

    def __init__(self, repo, head_sha: str, matcher: CategoryMatcher):
        self._repo = repo
        self._head_sha = head_sha
        self._matcher = matcher

    def fetch(self) -> CheckRunSet:
        logger.info("Fetching check runs for %s", self._head_sha[:7])
        classified = []
        try:
            commit = self._repo.get_commit(self._head_sha)
            for raw in commit.get_check_runs(filter="latest"):
                run = to_check_run(raw)
                category = self._matcher.classify(run.name)
                if category is None:
                    logger.debug("Ignoring check run %r (no matching category)", run.name)
                    continue
                classified.append((category, run))
        except (GithubException, requests.RequestException) as e:
            raise CheckRunFetchError(f"Could not list check runs for {self._head_sha[:7]}: {e}") from e

        result = CheckRunSet.from_runs(classified)
        logger.info("Got %d matching check run(s)", len(result))
        return result

from __future__ import annotations

import itertools
import logging

from github import Github, GithubException

from ghtool_core.errors import GhtoolError, NoPullRequestFound
from ghtool_core.models import PullRequest, PullRequestState, RepositoryOwner

logger = logging.getLogger(__name__)

# Newest candidates only; a branch rarely has more than a handful of PRs.
_MAX_CANDIDATES = 30

GITHUB_API_URL = "https://api.github.com"


def api_base_url(hostname: str | None) -> str:
    """REST root for github.com or a GitHub Enterprise Server host."""
    if not hostname or hostname == "github.com":
        return GITHUB_API_URL
    return f"https://{hostname}/api/v3"


def get_github(token: str, base_url: str = GITHUB_API_URL) -> Github:
    return Github(token, base_url=base_url)


def get_repo(gh: Github, repo_name: str):
    return gh.get_repo(repo_name)


def get_default_branch(repo) -> str:
    return repo.default_branch


def to_pull_request(pr) -> PullRequest:
    """Snapshot a PyGithub PullRequest into our immutable model."""
    if pr.merged:
        state = PullRequestState.MERGED
    elif pr.state == "closed":
        state = PullRequestState.CLOSED
    else:
        state = PullRequestState.OPEN

    head_repo = pr.head.repo
    # head.repo is None when the fork has been deleted.
    is_cross_repository = head_repo is None or head_repo.full_name != pr.base.repo.full_name

    owner = None
    if pr.head.user is not None:
        owner = RepositoryOwner(id=pr.head.user.id, login=pr.head.user.login)

    return PullRequest(
        number=pr.number,
        id=pr.node_id,
        head_ref_name=pr.head.ref,
        head_sha=pr.head.sha,
        base_ref_name=pr.base.ref,
        state=state,
        is_cross_repository=is_cross_repository,
        head_repository_owner=owner,
        created_at=pr.created_at,
    )


def select_pull_request(candidates: list[PullRequest]) -> PullRequest | None:
    """Prefer a same-repository PR over a fork PR, then the most recently created."""
    if not candidates:
        return None
    newest_first = sorted(candidates, key=lambda pr: pr.created_at.timestamp() if pr.created_at else 0, reverse=True)
    # sorted() is stable, so the newest-first order survives within each group.
    return sorted(newest_first, key=lambda pr: pr.is_cross_repository)[0]


def search_pull_requests(gh: Github, repo_name: str, branch: str):
    """Pull requests whose head ref is `branch`, newest first, including fork PRs."""
    query = f"repo:{repo_name} is:pr head:{branch}"
    for issue in gh.search_issues(query, sort="created", order="desc"):
        yield issue.as_pull_request()


def list_branch_pull_requests(gh: Github, repo_name: str, branch: str):
    """Same-repository pull requests for `branch`, newest first.

    The pulls listing is not subject to search index lag, so it still finds
    a PR opened moments ago. It cannot see fork PRs.
    """
    owner = repo_name.split("/")[0]
    repo = get_repo(gh, repo_name)
    return repo.get_pulls(state="all", head=f"{owner}:{branch}", sort="created", direction="desc")


def _candidates(raw_prs, branch: str, states) -> list[PullRequest]:
    candidates = []
    for raw in itertools.islice(raw_prs, _MAX_CANDIDATES):
        pr = to_pull_request(raw)
        # Search matches head:<branch> loosely; keep exact ref matches only.
        if pr.head_ref_name != branch:
            continue
        if pr.state not in states:
            logger.debug("Skipping PR #%d in state %s", pr.number, pr.state.value)
            continue
        candidates.append(pr)
    return candidates


def resolve_pull_request(
    gh: Github,
    repo_name: str,
    branch: str,
    states: tuple[PullRequestState, ...] = tuple(PullRequestState),
) -> PullRequest:
    logger.info("Resolving pull request for %s@%s", repo_name, branch)
    try:
        candidates = _candidates(search_pull_requests(gh, repo_name, branch), branch, states)
        if not candidates:
            logger.debug("Search found no PR for %s, listing pulls of %s", branch, repo_name)
            candidates = _candidates(list_branch_pull_requests(gh, repo_name, branch), branch, states)
    except GithubException as e:
        raise GhtoolError(f"Could not query pull requests for {repo_name}: {e}") from e

    selected = select_pull_request(candidates)
    if selected is None:
        raise NoPullRequestFound(repo_name, branch)
    logger.info("Resolved %s@%s to PR #%d", repo_name, branch, selected.number)
    return selected

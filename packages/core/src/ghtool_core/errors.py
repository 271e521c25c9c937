"""Error taxonomy for ghtool.

Only resolution-level failures (auth, config, no pull request, no matching
check runs) abort a whole run. Per-job failures such as LogDownloadError are
recorded on the report section for that job and never stop other jobs.
"""

from __future__ import annotations


class GhtoolError(Exception):
    """Base class for every error ghtool raises on purpose."""


class AuthError(GhtoolError):
    """No usable GitHub credential is available."""

    def __init__(self, message: str = "No GitHub token found."):
        super().__init__(f"{message} Set GITHUB_TOKEN or run `gh auth login` first.")


class ConfigError(GhtoolError):
    """Invalid configuration. Raised before any network activity."""


class NoPullRequestFound(GhtoolError):
    def __init__(self, repo: str, branch: str):
        self.repo = repo
        self.branch = branch
        super().__init__(f"No pull request found for branch {branch!r} in {repo}.")


class NoCheckRunsFound(GhtoolError):
    def __init__(self, categories, patterns: dict | None = None):
        self.categories = list(categories)
        names = ", ".join(c.value for c in self.categories)
        detail = ""
        if patterns:
            detail = " matching " + ", ".join(f"/{p}/" for p in patterns.values())
        super().__init__(f"No {names} jobs found{detail}.")


class CheckRunFetchError(GhtoolError):
    """Listing check runs failed. A failed page aborts the whole listing."""


class LogDownloadError(GhtoolError):
    def __init__(self, job_id: int, reason: str):
        self.job_id = job_id
        self.reason = reason
        super().__init__(f"Could not download log for job {job_id}: {reason}")


class OperationCancelled(GhtoolError):
    """Cancellation was observed while waiting on the network or a coalesced download."""

"""Data model shared by the resolver, fetcher, waiter, parsers and aggregator.

Everything here is an immutable snapshot. Check runs only change by being
fetched again, never by local mutation.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Iterable, Mapping, Optional, Union

if TYPE_CHECKING:
    from ghtool_core.categories import Category

_FAR_FUTURE = datetime.max.replace(tzinfo=timezone.utc)


class PullRequestState(str, Enum):
    OPEN = "open"
    CLOSED = "closed"
    MERGED = "merged"


@dataclass(frozen=True)
class RepositoryOwner:
    id: int
    login: str
    name: Optional[str] = None


@dataclass(frozen=True)
class PullRequest:
    number: int
    id: str
    head_ref_name: str
    head_sha: str
    base_ref_name: str
    state: PullRequestState
    is_cross_repository: bool
    head_repository_owner: Optional[RepositoryOwner] = None
    created_at: Optional[datetime] = None


class CheckStatus(str, Enum):
    QUEUED = "queued"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    WAITING = "waiting"
    REQUESTED = "requested"
    PENDING = "pending"


class CheckConclusion(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"
    NEUTRAL = "neutral"
    CANCELLED = "cancelled"
    SKIPPED = "skipped"
    TIMED_OUT = "timed_out"
    ACTION_REQUIRED = "action_required"
    STALE = "stale"
    STARTUP_FAILURE = "startup_failure"


_PASSING_CONCLUSIONS = {CheckConclusion.SUCCESS, CheckConclusion.NEUTRAL, CheckConclusion.SKIPPED}


@dataclass(frozen=True)
class CheckRun:
    id: int
    name: str
    status: CheckStatus
    conclusion: Optional[CheckConclusion] = None
    url: Optional[str] = None
    created_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @property
    def is_completed(self) -> bool:
        return self.status == CheckStatus.COMPLETED

    @property
    def is_failing(self) -> bool:
        """Completed with anything other than a passing or neutral conclusion."""
        return self.is_completed and self.conclusion not in _PASSING_CONCLUSIONS

    @property
    def sort_key(self) -> tuple:
        # Runs that have not started yet sort last; ids break ties (they are monotonic).
        return (self.created_at or _FAR_FUTURE, self.id)


@dataclass(frozen=True)
class CheckRunSet:
    """Check runs grouped by category, each group in creation order."""

    by_category: Mapping["Category", tuple] = field(default_factory=dict)

    @classmethod
    def from_runs(cls, classified: Iterable[tuple["Category", CheckRun]]) -> "CheckRunSet":
        groups: dict = {}
        for category, run in classified:
            groups.setdefault(category, []).append(run)
        return cls({c: tuple(sorted(runs, key=lambda r: r.sort_key)) for c, runs in groups.items()})

    def runs_for(self, category: "Category") -> tuple:
        return self.by_category.get(category, ())

    def all_runs(self) -> list[CheckRun]:
        return [run for runs in self.by_category.values() for run in runs]

    def all_completed(self) -> bool:
        return all(run.is_completed for run in self.all_runs())

    def for_categories(self, categories: Iterable["Category"]) -> "CheckRunSet":
        wanted = set(categories)
        return CheckRunSet({c: runs for c, runs in self.by_category.items() if c in wanted and runs})

    def __len__(self) -> int:
        return sum(len(runs) for runs in self.by_category.values())


@dataclass(frozen=True)
class JobRef:
    """Back-reference from an issue to the job that produced it."""

    name: str
    url: Optional[str] = None


@dataclass(frozen=True)
class TestFailure:
    __test__ = False  # not a pytest test class

    file: str
    message: str
    test_name: Optional[str] = None
    snippet: Optional[str] = None
    job: Optional[JobRef] = None


@dataclass(frozen=True)
class LintIssue:
    file: str
    line: int
    col: int
    severity: str
    rule: str
    message: str
    job: Optional[JobRef] = None


@dataclass(frozen=True)
class BuildError:
    file: str
    line: int
    col: int
    message: str
    code: Optional[str] = None
    job: Optional[JobRef] = None


Issue = Union[TestFailure, LintIssue, BuildError]


@dataclass(frozen=True)
class ParseResult:
    issues: tuple = ()
    skipped_lines: int = 0

    @property
    def is_empty(self) -> bool:
        """The EmptyResult outcome: the log parsed cleanly but nothing was recognized."""
        return not self.issues

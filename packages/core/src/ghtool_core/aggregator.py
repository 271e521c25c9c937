"""Combine check runs and their parsed logs into an ordered report."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from enum import Enum
from typing import Mapping, Optional

from ghtool_core.categories import CATEGORY_PRIORITY, Category
from ghtool_core.models import CheckRun, CheckRunSet, JobRef, ParseResult, PullRequest
from ghtool_core.waiter import WaitStatus


class SectionStatus(str, Enum):
    ISSUES = "issues"
    EMPTY_RESULT = "empty_result"
    PASSED = "passed"
    PENDING = "pending"
    DOWNLOAD_FAILED = "download_failed"


@dataclass(frozen=True)
class JobOutcome:
    """What happened when fetching and parsing one failing job's log."""

    check_run: CheckRun
    parse_result: Optional[ParseResult] = None
    error: Optional[str] = None


@dataclass(frozen=True)
class ReportSection:
    category: Category
    check_run: CheckRun
    status: SectionStatus
    issues: tuple = ()
    skipped_lines: int = 0
    error: Optional[str] = None


@dataclass(frozen=True)
class Report:
    sections: tuple = ()
    pull_request: Optional[PullRequest] = None
    wait_status: Optional[WaitStatus] = None

    def sections_for(self, category: Category) -> list[ReportSection]:
        return [s for s in self.sections if s.category == category]

    def failed_jobs(self) -> list[ReportSection]:
        return [s for s in self.sections if s.status not in (SectionStatus.PASSED, SectionStatus.PENDING)]

    def files(self) -> list[str]:
        """Unique files with issues, in report order."""
        seen: dict[str, None] = {}
        for section in self.sections:
            for issue in section.issues:
                seen.setdefault(issue.file, None)
        return list(seen)

    @property
    def has_issues(self) -> bool:
        return any(s.issues for s in self.sections)

    @property
    def pending(self) -> list[ReportSection]:
        return [s for s in self.sections if s.status == SectionStatus.PENDING]


def _section(category: Category, run: CheckRun, outcome: Optional[JobOutcome]) -> ReportSection:
    if not run.is_completed:
        return ReportSection(category, run, SectionStatus.PENDING)
    if not run.is_failing:
        return ReportSection(category, run, SectionStatus.PASSED)
    if outcome is None or outcome.error is not None or outcome.parse_result is None:
        error = outcome.error if outcome is not None and outcome.error else "Log was not fetched"
        return ReportSection(category, run, SectionStatus.DOWNLOAD_FAILED, error=error)

    result = outcome.parse_result
    if result.is_empty:
        return ReportSection(category, run, SectionStatus.EMPTY_RESULT, skipped_lines=result.skipped_lines)

    job = JobRef(name=run.name, url=run.url)
    issues = tuple(dataclasses.replace(issue, job=job) for issue in result.issues)
    return ReportSection(category, run, SectionStatus.ISSUES, issues=issues, skipped_lines=result.skipped_lines)


def build_report(
    check_runs: CheckRunSet,
    outcomes: Mapping[int, JobOutcome],
    pull_request: Optional[PullRequest] = None,
    wait_status: Optional[WaitStatus] = None,
) -> Report:
    """Order is category priority, then each run's creation order.

    `outcomes` is keyed by check run id, so the order in which downloads
    finished has no influence on the report.
    """
    sections = []
    for category in CATEGORY_PRIORITY:
        for run in check_runs.runs_for(category):
            sections.append(_section(category, run, outcomes.get(run.id)))
    return Report(sections=tuple(sections), pull_request=pull_request, wait_status=wait_status)

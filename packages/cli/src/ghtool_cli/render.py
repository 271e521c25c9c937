"""Terminal rendering of a Report."""

from __future__ import annotations

from itertools import groupby
from typing import Sequence

from rich.console import Console
from rich.markup import escape

from ghtool_core.aggregator import Report, ReportSection, SectionStatus
from ghtool_core.categories import Category
from ghtool_core.models import BuildError, LintIssue, TestFailure
from ghtool_core.waiter import WaitStatus

_SEVERITY_COLOR = {"error": "red", "warning": "yellow"}

_NOUNS = {
    Category.TEST: "failing tests",
    Category.LINT: "lint issues",
    Category.BUILD: "build errors",
}


def _print_job_header(section: ReportSection, console: Console) -> None:
    run = section.check_run
    console.print(f"\n[bold]{escape(run.name)}[/bold]")
    if run.url:
        console.print(f"[dim]{run.url}[/dim]")


def _print_test_failures(issues: Sequence[TestFailure], console: Console) -> None:
    for path, failures in groupby(issues, key=lambda f: f.file):
        console.print(f"\n[bold red]FAIL[/bold red] [cyan]{escape(path)}[/cyan]")
        for failure in failures:
            if failure.test_name:
                console.print(f"  [bold red]●[/bold red] {escape(failure.test_name)}")
            body = failure.snippet or failure.message
            for line in body.splitlines():
                console.print(f"    {escape(line)}", highlight=False)


def _print_lint_issues(issues: Sequence[LintIssue], console: Console) -> None:
    for path, file_issues in groupby(issues, key=lambda i: i.file):
        console.print(f"\n[cyan]{escape(path)}[/cyan]")
        for issue in file_issues:
            color = _SEVERITY_COLOR.get(issue.severity, "white")
            rule = f"  [dim]{escape(issue.rule)}[/dim]" if issue.rule else ""
            console.print(
                f"  {issue.line}:{issue.col}  [{color}]{issue.severity}[/{color}]  {escape(issue.message)}{rule}",
                highlight=False,
            )


def _print_build_errors(issues: Sequence[BuildError], console: Console) -> None:
    for issue in issues:
        code = f"[dim]{issue.code}[/dim] " if issue.code else ""
        console.print(
            f"[cyan]{escape(issue.file)}[/cyan]({issue.line},{issue.col}): {code}{escape(issue.message)}",
            highlight=False,
        )


def _print_section(section: ReportSection, console: Console) -> None:
    if section.status == SectionStatus.PASSED:
        return
    _print_job_header(section, console)

    if section.status == SectionStatus.PENDING:
        console.print("[dim]Still running, results may be incomplete.[/dim]")
    elif section.status == SectionStatus.DOWNLOAD_FAILED:
        console.print(f"[red]Could not fetch the log: {escape(section.error or 'unknown error')}[/red]")
    elif section.status == SectionStatus.EMPTY_RESULT:
        console.print(
            f"[yellow]The job failed but no {_NOUNS[section.category]} were recognized in its log "
            f"({section.skipped_lines} line(s) skipped). Open the job for details.[/yellow]"
        )
    elif section.category == Category.TEST:
        _print_test_failures(section.issues, console)
    elif section.category == Category.LINT:
        _print_lint_issues(section.issues, console)
    else:
        _print_build_errors(section.issues, console)


def render_report(
    report: Report,
    categories: Sequence[Category],
    files_only: bool = False,
    console: Console | None = None,
) -> None:
    console = console or Console()

    if files_only:
        for path in report.files():
            console.print(path, highlight=False, markup=False)
        return

    for section in report.sections:
        _print_section(section, console)

    if report.wait_status == WaitStatus.TIMEOUT:
        console.print(f"\n[yellow]Gave up waiting; {len(report.pending)} check run(s) still pending.[/yellow]")
    elif report.wait_status == WaitStatus.CANCELLED:
        console.print("\n[yellow]Cancelled. Results are partial.[/yellow]")

    if not report.failed_jobs() and not report.pending and report.sections:
        names = ", ".join(c.value for c in categories)
        console.print(f"[green]All {names} checks passed.[/green]")

"""Shared machinery for the line-oriented log parsers.

A parser sees the log one line at a time, with the GitHub Actions
timestamp prefix already removed. It accumulates issues and a count of
lines it could not place. Malformed input is never an error.
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod

from ghtool_core.categories import Tool
from ghtool_core.models import ParseResult

# 2023-06-14T20:22:39.1727281Z followed by one space
_TIMESTAMP = re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}(?:\.\d+)?Z\s?")


def strip_timestamp(line: str) -> str:
    return _TIMESTAMP.sub("", line, count=1)


class BaseLogParser(ABC):
    # Drop exact repeats of an issue, keeping the first occurrence.
    unique_issues = False

    def parse(self, text: str) -> ParseResult:
        self._issues: list = []
        self._skipped = 0
        self._reset()
        for raw_line in text.splitlines():
            self._feed(strip_timestamp(raw_line))
        self._finish()
        issues = _unique(self._issues) if self.unique_issues else self._issues
        return ParseResult(issues=tuple(issues), skipped_lines=self._skipped)

    def _skip(self, line: str) -> None:
        if line.strip():
            self._skipped += 1

    def _reset(self) -> None:
        """Clear per-parse state. Called at the start of every parse()."""

    @abstractmethod
    def _feed(self, line: str) -> None:
        """Consume one timestamp-free line."""

    def _finish(self) -> None:
        """Flush whatever structure is still open at end of input."""


def _unique(issues: list) -> list:
    seen = set()
    result = []
    for issue in issues:
        if issue in seen:
            continue
        seen.add(issue)
        result.append(issue)
    return result


def get_parser(tool: Tool) -> BaseLogParser:
    """Return a fresh parser for the configured tool."""
    if tool == Tool.JEST:
        from ghtool_core.parsers.jest import JestLogParser

        return JestLogParser()

    if tool == Tool.ESLINT:
        from ghtool_core.parsers.eslint import EslintLogParser

        return EslintLogParser()

    if tool == Tool.TSC:
        from ghtool_core.parsers.tsc import TscLogParser

        return TscLogParser()

    raise ValueError(f"No parser for tool {tool!r}")

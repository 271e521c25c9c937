"""Jest output parser.

A failing suite looks like this in a job log::

     FAIL  src/test2.test.ts
      test2
        ✕ fails (5 ms)

      ● test2 › fails

        expect(received).toBe(expected) // Object.is equality
        ...
     PASS  src/other.test.ts

The column where ``FAIL`` starts is the left edge of jest's output. Anything
before it is a prefix added by whatever ran jest (docker-compose prints the
service name there). The block runs until a line has a non-blank character
at that column again.
"""

from __future__ import annotations

import re
import textwrap
from typing import Optional

from ghtool_core.models import TestFailure
from ghtool_core.parsers.base import BaseLogParser

_FAIL_LINE = re.compile(r"\bFAIL\s+(?P<path>[\w.@-]*/[\w./@-]*)")
_TEST_HEADER = "●"
_NO_DETAIL = "Test suite failed"
_CONSOLE_SECTION = "Console"


class JestLogParser(BaseLogParser):
    # Jest repeats every failure under "Summary of all failing tests".
    unique_issues = True

    def _reset(self) -> None:
        self._col: Optional[int] = None
        self._path = ""
        self._lines: list[str] = []

    def _feed(self, line: str) -> None:
        if self._col is not None:
            if len(line) > self._col and not line[self._col].isspace():
                self._close_block()
            else:
                self._lines.append(line[self._col :])
                return

        match = _FAIL_LINE.search(line)
        if match:
            self._col = match.start()
            self._path = match["path"]
            self._lines = []
        else:
            self._skip(line)

    def _finish(self) -> None:
        if self._col is not None:
            self._close_block()

    def _close_block(self) -> None:
        self._issues.extend(_failures_in_block(self._path, self._lines))
        self._col = None
        self._lines = []


def _failures_in_block(path: str, lines: list[str]) -> list[TestFailure]:
    headers = [i for i, line in enumerate(lines) if line.lstrip().startswith(_TEST_HEADER)]
    preamble = lines[: headers[0]] if headers else lines

    failures = []
    for n, start in enumerate(headers):
        end = headers[n + 1] if n + 1 < len(headers) else len(lines)
        test_name = lines[start].strip()[len(_TEST_HEADER) :].strip()
        if test_name == _CONSOLE_SECTION:
            # Captured console output, not a failing test.
            continue
        detail = _trim_blank(lines[start + 1 : end])
        message = next((line.strip() for line in detail if line.strip()), test_name)
        snippet = textwrap.dedent("\n".join(detail)) if detail else None
        failures.append(TestFailure(file=path, message=message, test_name=test_name, snippet=snippet))

    if not failures:
        message = next((line.strip() for line in preamble if line.strip()), _NO_DETAIL)
        return [TestFailure(file=path, message=message)]
    return failures


def _trim_blank(lines: list[str]) -> list[str]:
    start, end = 0, len(lines)
    while start < end and not lines[start].strip():
        start += 1
    while end > start and not lines[end - 1].strip():
        end -= 1
    return lines[start:end]

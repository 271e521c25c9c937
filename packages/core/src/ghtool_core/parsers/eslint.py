"""ESLint stylish-formatter output parser.

::

    /root_path/project/src/file_1.ts
    ##[warning]  1:42  warning  Missing return type on function  @typescript-eslint/explicit-module-boundary-types
    ##[error]    1:13  error    'fs' is defined but never used      @typescript-eslint/no-unused-vars

    /root_path/project/src/file_2.ts
    ...

A header is a line ending in an absolute path. Its column is where the
group's content starts, so prefixes such as a package name printed by a
monorepo task runner are cut off consistently for the whole group.
"""

from __future__ import annotations

import re
from typing import Optional

from ghtool_core.models import LintIssue
from ghtool_core.parsers.base import BaseLogParser

_HEADER = re.compile(r"(?:^|\s)(?P<path>/[\w.@+-]*(?:/[\w.@+-]+)+)$")
_ISSUE = re.compile(r"(?:^|[\s\]])(?P<line>\d+):(?P<col>\d+)\s+(?P<severity>warning|error)\s+(?P<rest>.*?)\s*$")
# Message and rule are separated by two or more spaces.
_COLUMN_GAP = re.compile(r"\s{2,}")


class EslintLogParser(BaseLogParser):
    def _reset(self) -> None:
        self._file: Optional[str] = None
        self._col = 0

    def _feed(self, line: str) -> None:
        if self._file is not None:
            content = line[self._col :]
            if not content.strip():
                self._file = None
                return
            issue = _ISSUE.search(content)
            if issue:
                self._issues.append(self._to_issue(issue))
                return

        header = _HEADER.search(line.rstrip())
        if header:
            self._col = header.start("path")
            self._file = header["path"]
            return

        self._skip(line)

    def _to_issue(self, match: re.Match) -> LintIssue:
        parts = _COLUMN_GAP.split(match["rest"])
        if len(parts) >= 2:
            message, rule = "  ".join(parts[:-1]), parts[-1]
        else:
            # Parsing errors carry no rule.
            message, rule = parts[0], ""
        return LintIssue(
            file=self._file,
            line=int(match["line"]),
            col=int(match["col"]),
            severity=match["severity"],
            rule=rule,
            message=message,
        )

"""TypeScript compiler output parser.

Every diagnostic sits on one line, possibly behind a ``##[error]`` tag or a
task-runner prefix::

    ##[error]@owner/package:typecheck: src/index.ts(63,7): error TS1117: An object literal ...

Indented continuation lines (overload explanations) are not attached to
the preceding error; they count as skipped.
"""

from __future__ import annotations

import re

from ghtool_core.models import BuildError
from ghtool_core.parsers.base import BaseLogParser

_TSC_ERROR = re.compile(
    r"(?P<path>[\w.@/-]+)\((?P<line>\d+),(?P<col>\d+)\):\s+error\s+(?P<code>[A-Z]+\d+):\s*(?P<message>.*)$"
)


class TscLogParser(BaseLogParser):
    def _feed(self, line: str) -> None:
        match = _TSC_ERROR.search(line.rstrip())
        if match is None:
            self._skip(line)
            return
        self._issues.append(
            BuildError(
                file=match["path"],
                line=int(match["line"]),
                col=int(match["col"]),
                message=match["message"].strip(),
                code=match["code"],
            )
        )

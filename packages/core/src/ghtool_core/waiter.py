"""Poll check runs until they are all completed, a deadline passes, or the user cancels.

The loop is driven by an injectable clock so tests can fast-forward time,
and by a CancelToken so an interrupt stops polling without waiting out the
current sleep.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from ghtool_core.errors import CheckRunFetchError
from ghtool_core.models import CheckRunSet

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 10.0
DEFAULT_TIMEOUT = 30 * 60.0


class CancelToken:
    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def wait(self, timeout: float) -> bool:
        """Block up to `timeout` seconds. Returns True if cancelled meanwhile."""
        return self._event.wait(timeout)


class SystemClock:
    def now(self) -> float:
        return time.monotonic()

    def sleep(self, seconds: float, cancel: CancelToken) -> bool:
        return cancel.wait(seconds)


class WaitStatus(str, Enum):
    COMPLETED = "completed"
    TIMEOUT = "timeout"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class WaitResult:
    status: WaitStatus
    check_runs: CheckRunSet
    polls: int


def merge_snapshot(previous: Optional[CheckRunSet], fresh: CheckRunSet) -> CheckRunSet:
    """Take the fresh listing, except where a run would move backwards.

    A completed run reported as not completed again contradicts the API
    contract; keep the prior state and log the anomaly.
    """
    if previous is None:
        return fresh
    completed = {run.id: run for run in previous.all_runs() if run.is_completed}
    merged = {}
    for category, runs in fresh.by_category.items():
        kept = []
        for run in runs:
            prior = completed.get(run.id)
            if prior is not None and not run.is_completed:
                logger.warning(
                    "Check run %s (%d) regressed from completed to %s; keeping completed state",
                    run.name,
                    run.id,
                    run.status.value,
                )
                run = prior
            kept.append(run)
        merged[category] = tuple(kept)
    return CheckRunSet(merged)


class CheckWaiter:
    def __init__(
        self,
        fetch: Callable[[], CheckRunSet],
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        timeout: float = DEFAULT_TIMEOUT,
        clock=None,
        on_poll: Optional[Callable[[CheckRunSet], None]] = None,
    ):
        self._fetch = fetch
        self._poll_interval = poll_interval
        self._timeout = timeout
        self._clock = clock or SystemClock()
        self._on_poll = on_poll

    def wait(self, cancel: Optional[CancelToken] = None) -> WaitResult:
        cancel = cancel or CancelToken()
        deadline = self._clock.now() + self._timeout
        snapshot: Optional[CheckRunSet] = None
        last_error: Optional[CheckRunFetchError] = None
        polls = 0

        while True:
            if cancel.is_cancelled:
                return self._finish(WaitStatus.CANCELLED, snapshot, polls, last_error)

            polls += 1
            try:
                fresh = self._fetch()
            except CheckRunFetchError as e:
                # Transient failures are retried by the next poll.
                logger.warning("Poll %d failed: %s", polls, e)
                last_error = e
            else:
                snapshot = merge_snapshot(snapshot, fresh)
                if self._on_poll is not None:
                    self._on_poll(snapshot)
                if snapshot.all_completed():
                    logger.info("All %d check run(s) completed after %d poll(s)", len(snapshot), polls)
                    return WaitResult(WaitStatus.COMPLETED, snapshot, polls)

            remaining = deadline - self._clock.now()
            if remaining <= 0:
                logger.info("Gave up waiting after %d poll(s)", polls)
                return self._finish(WaitStatus.TIMEOUT, snapshot, polls, last_error)

            if self._clock.sleep(min(self._poll_interval, remaining), cancel):
                return self._finish(WaitStatus.CANCELLED, snapshot, polls, last_error)

    @staticmethod
    def _finish(status, snapshot, polls, last_error) -> WaitResult:
        if snapshot is None:
            if status == WaitStatus.TIMEOUT and last_error is not None:
                # Nothing was ever fetched; there is no snapshot to report on.
                raise last_error
            snapshot = CheckRunSet()
        return WaitResult(status, snapshot, polls)

"""Cached, de-duplicating job log fetch.

Lookup order is in-process memo, then the persistent store, then the
network. A job's log never changes once its check run has completed, so
completed logs are cached forever; logs of runs that are still going are
returned but not cached.

Concurrent callers asking for the same job share one download. The first
caller becomes the owner and publishes the result through a Future; the
others wait on it while watching their CancelToken.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Callable, Optional

from ghtool_core.errors import LogDownloadError, OperationCancelled
from ghtool_core.models import CheckRun
from ghtool_core.utils.ansi import decode_log
from ghtool_core.waiter import CancelToken

logger = logging.getLogger(__name__)

# How often a caller waiting on someone else's download re-checks its cancel token.
_AWAIT_TICK = 0.1


def cache_key(namespace: str, run: CheckRun) -> str:
    conclusion = run.conclusion.value if run.conclusion else "none"
    return f"job-log:{namespace}:{run.id}:{conclusion}"


class LogFetcher:
    def __init__(
        self,
        download: Callable[[int, Optional[CancelToken]], bytes],
        store=None,
        namespace: str = "",
    ):
        """
        Args:
            download: callable taking (job_id, cancel) and returning raw log bytes.
            store:    a BaseLogStore, or None to keep logs in memory only.
            namespace: usually "owner/name", so job ids of different repos never collide.
        """
        self._download = download
        self._store = store
        self._namespace = namespace
        self._lock = threading.Lock()
        self._memo: dict[str, str] = {}
        self._in_flight: dict[int, Future] = {}

    def fetch(self, run: CheckRun, cancel: Optional[CancelToken] = None) -> str:
        cancel = cancel or CancelToken()
        key = cache_key(self._namespace, run)
        cacheable = run.is_completed

        if cacheable:
            cached = self._lookup(key)
            if cached is not None:
                return cached

        last_error: Optional[Exception] = None
        for attempt in range(2):
            if cancel.is_cancelled:
                raise OperationCancelled(f"Fetching log for {run.name} cancelled")

            with self._lock:
                if cacheable and key in self._memo:
                    return self._memo[key]
                future = self._in_flight.get(run.id)
                is_owner = future is None
                if is_owner:
                    future = Future()
                    self._in_flight[run.id] = future

            if is_owner:
                return self._download_as_owner(run, key, cacheable, future, cancel)

            logger.debug("Waiting on in-flight download of job %d", run.id)
            try:
                return self._await(future, cancel)
            except (LogDownloadError, OperationCancelled) as e:
                if cancel.is_cancelled:
                    raise OperationCancelled(f"Fetching log for {run.name} cancelled") from e
                with self._lock:
                    if self._in_flight.get(run.id) is future:
                        del self._in_flight[run.id]
                # The owner died; the retry makes this caller the new owner.
                logger.debug("In-flight download of job %d failed (%s), attempt %d", run.id, e, attempt + 1)
                last_error = e

        raise last_error

    def _lookup(self, key: str) -> Optional[str]:
        with self._lock:
            if key in self._memo:
                logger.debug("Memo hit for %s", key)
                return self._memo[key]

        if self._store is None:
            return None
        try:
            data = self._store.get(key)
        except Exception as e:
            logger.warning("Log cache read failed for %s: %s", key, e)
            return None
        if data is None:
            logger.debug("Cache miss for %s", key)
            return None

        logger.debug("Cache hit for %s", key)
        text = data.decode("utf-8", errors="replace")
        with self._lock:
            self._memo[key] = text
        return text

    def _download_as_owner(self, run: CheckRun, key: str, cacheable: bool, future: Future, cancel: CancelToken) -> str:
        logger.info("Downloading log for %s (job %d)", run.name, run.id)
        try:
            data = self._download(run.id, cancel)
            if cancel.is_cancelled:
                raise OperationCancelled(f"Download of job {run.id} log cancelled")
            text = decode_log(data)
        except BaseException as e:
            with self._lock:
                self._in_flight.pop(run.id, None)
            future.set_exception(e)
            raise

        if cacheable:
            self._save(key, text)
        with self._lock:
            if cacheable:
                self._memo[key] = text
            self._in_flight.pop(run.id, None)
        future.set_result(text)
        return text

    def _save(self, key: str, text: str) -> None:
        if self._store is None:
            return
        try:
            self._store.put(key, text.encode("utf-8"))
        except Exception as e:
            logger.warning("Could not cache log %s: %s", key, e)

    @staticmethod
    def _await(future: Future, cancel: CancelToken) -> str:
        while True:
            try:
                return future.result(timeout=_AWAIT_TICK)
            except FutureTimeoutError:
                if cancel.is_cancelled:
                    raise OperationCancelled("Cancelled while waiting on a shared download") from None

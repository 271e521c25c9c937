"""Job log download over the Actions REST API.

PyGithub has no accessor for job logs, so this goes through requests
directly. The endpoint answers with a redirect to the raw text, which
requests follows.
"""

from __future__ import annotations

import logging
from typing import Optional

import requests

from ghtool_core.errors import LogDownloadError, OperationCancelled
from ghtool_core.waiter import CancelToken

logger = logging.getLogger(__name__)

_CHUNK_SIZE = 64 * 1024


class JobLogDownloader:
    """Callable that returns the raw bytes of one job's log."""

    def __init__(
        self,
        token: str,
        owner: str,
        repo: str,
        session: Optional[requests.Session] = None,
        base_url: str = "https://api.github.com",
        timeout: float = 30,
    ):
        self._owner = owner
        self._repo = repo
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._session = session or requests.Session()
        self._session.headers.update(
            {
                "Authorization": f"token {token}",
                "Accept": "application/vnd.github+json",
                "X-GitHub-Api-Version": "2022-11-28",
                "User-Agent": "ghtool",
            }
        )

    def url_for(self, job_id: int) -> str:
        return f"{self._base_url}/repos/{self._owner}/{self._repo}/actions/jobs/{job_id}/logs"

    def __call__(self, job_id: int, cancel: Optional[CancelToken] = None) -> bytes:
        url = self.url_for(job_id)
        logger.debug("GET %s", url)
        chunks = []
        try:
            with self._session.get(url, stream=True, timeout=self._timeout) as response:
                response.raise_for_status()
                for chunk in response.iter_content(chunk_size=_CHUNK_SIZE):
                    if cancel is not None and cancel.is_cancelled:
                        raise OperationCancelled(f"Download of job {job_id} log cancelled")
                    if chunk:
                        chunks.append(chunk)
        except requests.HTTPError as e:
            status = e.response.status_code if e.response is not None else "?"
            raise LogDownloadError(job_id, f"HTTP {status}") from e
        except requests.RequestException as e:
            raise LogDownloadError(job_id, str(e)) from e

        data = b"".join(chunks)
        logger.debug("Downloaded %d bytes for job %d", len(data), job_id)
        return data

"""Repository discovery from the local git checkout."""

from __future__ import annotations

import logging
import re
import subprocess
from dataclasses import dataclass
from typing import Optional

from ghtool_core.errors import ConfigError

logger = logging.getLogger(__name__)

# git@github.com:owner/name.git
_SSH_REMOTE = re.compile(r"^(?:ssh://)?[\w.-]+@(?P<host>[\w.-]+)[:/](?P<owner>[\w.-]+)/(?P<name>[\w.-]+?)(?:\.git)?/?$")
# https://github.com/owner/name(.git)
_HTTPS_REMOTE = re.compile(
    r"^https?://(?:[^@/]+@)?(?P<host>[\w.-]+)(?::\d+)?/(?P<owner>[\w.-]+)/(?P<name>[\w.-]+?)(?:\.git)?/?$"
)


@dataclass(frozen=True)
class RepoRef:
    hostname: str
    owner: str
    name: str

    @property
    def slug(self) -> str:
        return f"{self.owner}/{self.name}"

    def __str__(self) -> str:
        return f"{self.hostname}/{self.owner}/{self.name}"


def parse_remote_url(url: str) -> RepoRef:
    url = url.strip()
    for pattern in (_HTTPS_REMOTE, _SSH_REMOTE):
        match = pattern.match(url)
        if match:
            return RepoRef(hostname=match["host"], owner=match["owner"], name=match["name"])
    raise ConfigError(f"Cannot parse git remote URL {url!r}. Pass --repo owner/name instead.")


def _git(args: list[str], cwd: Optional[str]) -> str:
    try:
        result = subprocess.run(["git", *args], cwd=cwd, capture_output=True, text=True, timeout=10)
    except (FileNotFoundError, subprocess.TimeoutExpired) as e:
        raise ConfigError(f"Could not run git: {e}") from e
    if result.returncode != 0:
        raise ConfigError(f"git {' '.join(args)} failed: {result.stderr.strip() or 'unknown error'}")
    return result.stdout.strip()


def get_remote(path: Optional[str] = None, remote: str = "origin") -> RepoRef:
    url = _git(["remote", "get-url", remote], path)
    logger.debug("Remote %s is %s", remote, url)
    return parse_remote_url(url)


def get_current_branch(path: Optional[str] = None) -> str:
    branch = _git(["rev-parse", "--abbrev-ref", "HEAD"], path)
    if branch == "HEAD":
        raise ConfigError("HEAD is detached. Pass --branch explicitly.")
    return branch

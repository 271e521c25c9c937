"""GitHub token resolution with gh CLI fallback.

ghtool never stores a credential of its own. It borrows one:

  1. GITHUB_TOKEN environment variable (CI / explicit override)
  2. `gh auth token` for the remote's host (the GitHub CLI session)
"""

from __future__ import annotations

import logging
import os
import subprocess

logger = logging.getLogger(__name__)


def resolve_github_token(hostname: str | None = None) -> str | None:
    """Return a GitHub token or None if no source has one.

    Never raises. The caller turns None into an AuthError.
    """
    token = os.environ.get("GITHUB_TOKEN")
    if token:
        return token

    # gh keeps one session per host; ask for the one matching the remote.
    command = ["gh", "auth", "token"]
    if hostname and hostname != "github.com":
        command += ["--hostname", hostname]
    try:
        result = subprocess.run(command, capture_output=True, text=True, timeout=5)
    except (FileNotFoundError, subprocess.TimeoutExpired) as e:
        logger.debug("gh auth token unavailable: %s", e)
        return None

    if result.returncode == 0:
        gh_token = result.stdout.strip()
        if gh_token:
            logger.debug("Resolved GitHub token via gh CLI session.")
            return gh_token
    return None

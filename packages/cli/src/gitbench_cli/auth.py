"""GitHub token resolution with gh CLI fallback.

Resolution order (stops at first success):
  1. GITHUB_TOKEN environment variable (injected by GitHub Actions)
  2. `gh auth token` (GitHub CLI session, works after `gh auth login`)
"""

from __future__ import annotations

import logging
import os
import subprocess
from typing import Mapping

logger = logging.getLogger(__name__)


def resolve_github_token(environ: Mapping[str, str] | None = None) -> str | None:
    """Return a GitHub token or None if no source is available.

    Never raises: commenting is optional, so callers decide what a missing
    token means.
    """
    env = os.environ if environ is None else environ
    token = env.get("GITHUB_TOKEN")
    if token:
        return token

    try:
        result = subprocess.run(
            ["gh", "auth", "token"],
            capture_output=True,
            text=True,
            timeout=5,
        )
        if result.returncode == 0:
            gh_token = result.stdout.strip()
            if gh_token:
                logger.debug("Resolved GitHub token via gh CLI session.")
                return gh_token
    except (FileNotFoundError, subprocess.TimeoutExpired):
        # gh is not installed or timed out.
        pass

    return None

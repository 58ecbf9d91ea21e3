"""CI platform variables, read once at the CLI boundary.

Nothing below the CLI reads the environment; these values are passed down
explicitly.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping

from gitbench_core.gh.commit_comment import commit_url

from gitbench_cli.auth import resolve_github_token

DEFAULT_SERVER_URL = "https://github.com"


@dataclass(frozen=True)
class CiEnvironment:
    token: str | None = None
    repository: str | None = None  # "owner/name"
    sha: str | None = None
    server_url: str = DEFAULT_SERVER_URL
    is_actions: bool = False

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None, token: str | None = None) -> CiEnvironment:
        """Build from GITHUB_* variables; an explicit ``token`` wins over every other source."""
        env = os.environ if environ is None else environ
        return cls(
            token=token or resolve_github_token(env),
            repository=env.get("GITHUB_REPOSITORY") or None,
            sha=env.get("GITHUB_SHA") or None,
            server_url=env.get("GITHUB_SERVER_URL") or DEFAULT_SERVER_URL,
            is_actions=env.get("GITHUB_ACTIONS") == "true",
        )

    @property
    def repo_url(self) -> str | None:
        if not self.repository:
            return None
        return f"{self.server_url.rstrip('/')}/{self.repository}"

    def commit_url(self, sha: str) -> str | None:
        if not self.repository:
            return None
        return commit_url(self.server_url, self.repository, sha)

from __future__ import annotations

import re

from github import Github, GithubException

from gitbench_core.errors import RemoteError

_NOREPLY_SUFFIX = "@users.noreply.github.com"
_MAX_HANDLE_LEN = 39  # GitHub's username length limit
_SSH_PREFIX_RE = re.compile(r"^(?:ssh://)?git@github\.com[:/]")


class CommitCommentService:
    """Posts a rendered benchmark report as a comment on a commit.

    Only success/failure and the comment URL matter to callers; anything
    the GitHub API raises is surfaced as RemoteError.
    """

    def __init__(self, repo_slug: str, token: str):
        self._repo_slug = repo_slug
        self._gh = Github(token)

    def post_comment(self, revision_id: str, body: str) -> str:
        try:
            commit = self._gh.get_repo(self._repo_slug).get_commit(revision_id)
            comment = commit.create_comment(body)
        except GithubException as e:
            raise RemoteError(f"Failed to comment on {self._repo_slug}@{revision_id[:7]}: {e}") from e
        return comment.html_url


def parse_github_repo(text: str) -> tuple[str, str]:
    """Split a repository reference into (owner, name).

    Accepts "owner/repo", HTTPS URLs, SSH remotes and "github.com/owner/repo".
    """
    repo = text.strip().removesuffix(".git")

    if "://" not in repo and "@" not in repo and "github.com" not in repo:
        parts = repo.split("/")
        if len(parts) == 2 and all(parts):
            return parts[0], parts[1]

    path = None
    if _SSH_PREFIX_RE.match(repo):
        path = _SSH_PREFIX_RE.sub("", repo)
    elif "github.com/" in repo:
        path = repo.split("github.com/", 1)[1]

    if path:
        parts = [p for p in path.split("/") if p]
        if len(parts) >= 2:
            return parts[0], parts[1]

    raise RemoteError(f"Could not parse GitHub repository from: {text}")


def commit_url(server_url: str, repo_slug: str, sha: str) -> str:
    owner, name = parse_github_repo(repo_slug)
    return f"{server_url.rstrip('/')}/{owner}/{name}/commit/{sha}"


def commit_url_from_remote(remote_url: str | None, sha: str) -> str | None:
    """Build a github.com commit link from an ``origin`` URL, or None for non-GitHub remotes."""
    if not remote_url or "github.com" not in remote_url:
        return None
    try:
        return commit_url("https://github.com", remote_url, sha)
    except RemoteError:
        return None


def extract_github_username(email: str | None, name: str) -> str | None:
    """Guess the GitHub handle of a commit author.

    Noreply addresses ("alice@…" or "12345+alice@users.noreply.github.com")
    carry the handle; otherwise a name without spaces is assumed to be one.
    """
    if email and email.endswith(_NOREPLY_SUFFIX):
        local = email.split("@", 1)[0]
        return local.split("+", 1)[1] if "+" in local else local

    if name and " " not in name and len(name) <= _MAX_HANDLE_LEN:
        return name
    return None

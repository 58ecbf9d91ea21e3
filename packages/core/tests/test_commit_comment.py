"""Tests for GitHub commit comments and repository URL helpers."""

from unittest.mock import MagicMock

import pytest
from github import GithubException

from gitbench_core.errors import RemoteError
from gitbench_core.gh.commit_comment import (
    CommitCommentService,
    commit_url,
    commit_url_from_remote,
    extract_github_username,
    parse_github_repo,
)

SHA = "a" * 40


class TestCommitCommentService:
    def test_posts_comment_and_returns_url(self, mocker):
        gh_cls = mocker.patch("gitbench_core.gh.commit_comment.Github")
        comment = MagicMock(html_url="https://github.com/owner/repo/commit/aaa#commitcomment-1")
        commit = gh_cls.return_value.get_repo.return_value.get_commit.return_value
        commit.create_comment.return_value = comment

        url = CommitCommentService("owner/repo", "tok").post_comment(SHA, "body")

        gh_cls.assert_called_once_with("tok")
        gh_cls.return_value.get_repo.assert_called_once_with("owner/repo")
        gh_cls.return_value.get_repo.return_value.get_commit.assert_called_once_with(SHA)
        commit.create_comment.assert_called_once_with("body")
        assert url == comment.html_url

    def test_api_error_becomes_remote_error(self, mocker):
        gh_cls = mocker.patch("gitbench_core.gh.commit_comment.Github")
        gh_cls.return_value.get_repo.side_effect = GithubException(404, {"message": "Not Found"}, None)

        with pytest.raises(RemoteError, match="owner/repo@aaaaaaa"):
            CommitCommentService("owner/repo", "tok").post_comment(SHA, "body")


class TestParseGithubRepo:
    @pytest.mark.parametrize(
        "text",
        [
            "owner/repo",
            "https://github.com/owner/repo",
            "https://github.com/owner/repo.git",
            "https://github.com/owner/repo/",
            "git@github.com:owner/repo.git",
            "ssh://git@github.com/owner/repo.git",
            "github.com/owner/repo",
        ],
    )
    def test_valid(self, text):
        assert parse_github_repo(text) == ("owner", "repo")

    @pytest.mark.parametrize("text", ["", "owner", "https://github.com/owner", "a/b/c"])
    def test_invalid(self, text):
        with pytest.raises(RemoteError):
            parse_github_repo(text)


class TestCommitUrls:
    def test_commit_url(self):
        assert commit_url("https://github.com/", "owner/repo", SHA) == f"https://github.com/owner/repo/commit/{SHA}"

    def test_enterprise_server(self):
        assert commit_url("https://ghe.example.com", "o/r", SHA).startswith("https://ghe.example.com/o/r/")

    def test_from_github_remote(self):
        assert commit_url_from_remote("git@github.com:owner/repo.git", SHA) == (
            f"https://github.com/owner/repo/commit/{SHA}"
        )

    @pytest.mark.parametrize("remote", [None, "", "https://gitlab.com/owner/repo.git", "/srv/git/repo.git"])
    def test_non_github_remote(self, remote):
        assert commit_url_from_remote(remote, SHA) is None


class TestExtractGithubUsername:
    def test_noreply_with_id(self):
        assert extract_github_username("12345+alice@users.noreply.github.com", "Alice Smith") == "alice"

    def test_noreply_plain(self):
        assert extract_github_username("alice@users.noreply.github.com", "Alice Smith") == "alice"

    def test_single_word_name(self):
        assert extract_github_username("alice@example.com", "alice") == "alice"

    def test_name_with_spaces(self):
        assert extract_github_username("alice@example.com", "Alice Smith") is None

    def test_no_email(self):
        assert extract_github_username(None, "bob") == "bob"

    def test_name_too_long(self):
        assert extract_github_username(None, "x" * 40) is None

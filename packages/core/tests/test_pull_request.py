"""Tests for the GitHub host adapter and diff reconstruction."""

from unittest.mock import MagicMock

import pytest

from prsift_core.diff import DiffIndex
from prsift_core.gh.pull_request import GitHubHost, build_unified_diff
from prsift_core.models import ChangedFile, PullRequestInfo

SHA = "a" * 40


def _file(filename, status="modified", patch="@@ -1,2 +1,3 @@\n a\n+b\n c", previous_filename=None, adds=1, dels=0):
    f = MagicMock()
    f.filename = filename
    f.status = status
    f.patch = patch
    f.previous_filename = previous_filename
    f.additions = adds
    f.deletions = dels
    return f


def _host(files=()):
    client = MagicMock()
    repo = client.get_repo.return_value
    pr = repo.get_pull.return_value
    pr.title = "Fix bug"
    pr.body = None
    pr.head.sha = SHA
    pr.get_files.return_value = list(files)
    return GitHubHost("token", client=client), client, repo, pr


class TestBuildUnifiedDiff:
    def test_modified_file(self):
        diff = build_unified_diff([_file("src/app.py")])
        assert diff == (
            "diff --git a/src/app.py b/src/app.py\n"
            "--- a/src/app.py\n"
            "+++ b/src/app.py\n"
            "@@ -1,2 +1,3 @@\n a\n+b\n c\n"
        )

    def test_added_and_removed_files(self):
        diff = build_unified_diff(
            [
                _file("new.py", status="added", patch="@@ -0,0 +1 @@\n+x"),
                _file("old.py", status="removed", patch="@@ -1 +0,0 @@\n-x"),
            ]
        )
        assert "--- /dev/null\n+++ b/new.py" in diff
        assert "--- a/old.py\n+++ /dev/null" in diff

    def test_renamed_file_uses_previous_name(self):
        diff = build_unified_diff([_file("b.py", status="renamed", previous_filename="a.py")])
        assert diff.startswith("diff --git a/a.py b/b.py\n--- a/a.py\n+++ b/b.py\n")

    def test_binary_file_without_patch_has_headers_only(self):
        diff = build_unified_diff([_file("logo.png", patch=None)])
        assert "@@" not in diff
        assert DiffIndex.build(diff).to_dict() == {}

    def test_no_files(self):
        assert build_unified_diff([]) == ""

    def test_reconstructed_diff_indexes_each_file(self):
        files = [
            _file("a.py"),
            _file("b.py", patch="@@ -10,2 +10,2 @@\n-old\n+new\n same"),
            _file("gone.py", status="removed", patch="@@ -1 +0,0 @@\n-x"),
        ]
        index = DiffIndex.build(build_unified_diff(files))
        assert index.to_dict() == {"a.py": [[1, 3]], "b.py": [[10, 11]]}


class TestGitHubHost:
    def test_get_pr(self):
        host, client, repo, pr = _host()
        info = host.get_pr("acme", "api", 5)
        assert info == PullRequestInfo(title="Fix bug", body="", head_sha=SHA)
        client.get_repo.assert_called_once_with("acme/api")
        repo.get_pull.assert_called_once_with(5)

    def test_repo_is_cached(self):
        host, client, _, _ = _host()
        host.get_pr("acme", "api", 5)
        host.get_diff("acme", "api", 5)
        client.get_repo.assert_called_once()

    def test_get_diff(self):
        host, _, _, _ = _host([_file("a.py")])
        assert host.get_diff("acme", "api", 5).startswith("diff --git a/a.py b/a.py\n")

    def test_get_changed_files(self):
        host, _, _, _ = _host([_file("a.py", adds=3, dels=1), _file("b.py", status="added", adds=9)])
        assert host.get_changed_files("acme", "api", 5) == [
            ChangedFile("a.py", "modified", 3, 1),
            ChangedFile("b.py", "added", 9, 0),
        ]

    def test_get_file_content_at_ref(self):
        host, _, repo, _ = _host()
        repo.get_contents.return_value.decoded_content = "héllo\n".encode()
        assert host.get_file_content("acme", "api", "src/a.py", SHA) == "héllo\n"
        repo.get_contents.assert_called_once_with("src/a.py", ref=SHA)

    def test_get_file_content_directory_raises(self):
        host, _, repo, _ = _host()
        repo.get_contents.return_value = [MagicMock(), MagicMock()]
        with pytest.raises(IsADirectoryError):
            host.get_file_content("acme", "api", "src", SHA)

    def test_create_review_posts_once(self):
        host, _, repo, pr = _host()
        comments = [{"path": "a.py", "body": "**INFO**: x", "line": 2, "side": "RIGHT"}]
        host.create_review("acme", "api", 5, SHA, "Summary", "COMMENT", comments)
        pr.create_review.assert_called_once_with(
            commit=repo.get_commit.return_value,
            body="Summary",
            event="COMMENT",
            comments=comments,
        )
        repo.get_commit.assert_called_once_with(SHA)

    def test_errors_propagate(self):
        host, _, repo, _ = _host()
        repo.get_pull.side_effect = RuntimeError("404")
        with pytest.raises(RuntimeError):
            host.get_pr("acme", "api", 5)

    def test_timeout_bounds_github_client(self, mocker):
        github_cls = mocker.patch("prsift_core.gh.pull_request.Github")
        GitHubHost("token", timeout=42.5)
        github_cls.assert_called_once_with("token", timeout=43)

    def test_no_timeout_uses_client_default(self, mocker):
        github_cls = mocker.patch("prsift_core.gh.pull_request.Github")
        GitHubHost("token")
        github_cls.assert_called_once_with("token")

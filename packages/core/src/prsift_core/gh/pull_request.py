from __future__ import annotations

import logging
import math

from github import Github

from prsift_core.models import ChangedFile, PullRequestInfo

logger = logging.getLogger(__name__)


def get_repo(client: Github, owner: str, repo: str):
    return client.get_repo(f"{owner}/{repo}")


def build_unified_diff(files) -> str:
    """Reassemble a PR's unified diff from the per-file patches GitHub returns.

    Files without a patch (binary, or too large for the API) contribute only
    their headers, so they get no commentable lines.
    """
    parts: list[str] = []
    for f in files:
        old_path = getattr(f, "previous_filename", None) or f.filename
        parts.append(f"diff --git a/{old_path} b/{f.filename}")
        parts.append("--- /dev/null" if f.status == "added" else f"--- a/{old_path}")
        parts.append("+++ /dev/null" if f.status == "removed" else f"+++ b/{f.filename}")
        if f.patch:
            parts.append(f.patch.rstrip("\n"))
    return "\n".join(parts) + ("\n" if parts else "")


class GitHubHost:
    """Hosting collaborator: every GitHub call the review pipeline makes.

    Methods raise whatever PyGithub raises. The pipeline wraps those errors
    with the operation and PR it was working on. ``timeout`` (seconds) caps
    every request; the CLI passes the run deadline.
    """

    def __init__(self, token: str, client: Github | None = None, timeout: float | None = None):
        if client is None:
            client = Github(token, timeout=math.ceil(timeout)) if timeout is not None else Github(token)
        self._gh = client
        self._repos: dict[str, object] = {}

    def _repo(self, owner: str, repo: str):
        key = f"{owner}/{repo}"
        if key not in self._repos:
            self._repos[key] = get_repo(self._gh, owner, repo)
        return self._repos[key]

    def _pull(self, owner: str, repo: str, number: int):
        return self._repo(owner, repo).get_pull(number)

    def get_pr(self, owner: str, repo: str, number: int) -> PullRequestInfo:
        pr = self._pull(owner, repo, number)
        return PullRequestInfo(title=pr.title or "", body=pr.body or "", head_sha=pr.head.sha)

    def get_diff(self, owner: str, repo: str, number: int) -> str:
        return build_unified_diff(self._pull(owner, repo, number).get_files())

    def get_changed_files(self, owner: str, repo: str, number: int) -> list[ChangedFile]:
        return [
            ChangedFile(path=f.filename, status=f.status, additions=f.additions, deletions=f.deletions)
            for f in self._pull(owner, repo, number).get_files()
        ]

    def get_file_content(self, owner: str, repo: str, path: str, ref: str) -> str:
        contents = self._repo(owner, repo).get_contents(path, ref=ref)
        if isinstance(contents, list):
            raise IsADirectoryError(f"{path} is a directory")
        return contents.decoded_content.decode("utf-8", errors="replace")

    def create_review(
        self,
        owner: str,
        repo: str,
        number: int,
        commit_id: str,
        body: str,
        event: str,
        comments: list[dict],
    ):
        this_repo = self._repo(owner, repo)
        pr = this_repo.get_pull(number)
        review = pr.create_review(
            commit=this_repo.get_commit(commit_id),
            body=body,
            event=event,
            comments=comments,
        )
        logger.debug("Created review %s on %s/%s#%d", getattr(review, "id", None), owner, repo, number)
        return review

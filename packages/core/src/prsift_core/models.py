"""Value types shared by every review stage.

All of these are created fresh per pipeline run and thrown away after
submission. Nothing here holds a reference to a collaborator.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field

SEVERITIES = ("error", "warning", "info")


@dataclass(frozen=True)
class Finding:
    """A single AI-proposed review issue."""

    file: str
    line_start: int
    line_end: int
    severity: str
    message: str
    suggested_fix: str = ""

    @classmethod
    def from_dict(cls, data: dict) -> Finding:
        """Build a Finding from model output, tolerating loose types."""
        severity = str(data.get("severity") or "info").lower()
        if severity not in SEVERITIES:
            severity = "info"
        line_end = _as_int(data.get("line_end"))
        line_start = _as_int(data.get("line_start"), default=line_end)
        return cls(
            file=str(data.get("file") or ""),
            line_start=line_start,
            line_end=line_end,
            severity=severity,
            message=str(data.get("message") or ""),
            suggested_fix=str(data.get("suggestion") or data.get("suggested_fix") or ""),
        )

    def to_dict(self) -> dict:
        """Serialize with the same keys the model submits findings in."""
        data = asdict(self)
        data["suggestion"] = data.pop("suggested_fix")
        return data


def _as_int(value, default: int = 0) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _as_bool(value) -> bool:
    # Only an explicit true counts; "false", "0", None and the like do not approve.
    if isinstance(value, bool):
        return value
    return isinstance(value, str) and value.strip().lower() == "true"


@dataclass(frozen=True)
class LineRange:
    """Inclusive run of new-file line numbers present in a hunk."""

    start: int
    end: int

    def __contains__(self, line: int) -> bool:
        return self.start <= line <= self.end


@dataclass
class JudgedFinding:
    finding: Finding
    score: float = 1.0
    reasoning: str = ""
    improvement_notes: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class CommentPayload:
    """Inline review comment in the shape the hosting API expects."""

    file: str
    body: str
    line: int
    side: str = "RIGHT"
    start_line: int | None = None
    start_side: str | None = None

    def to_api(self) -> dict:
        payload = {"path": self.file, "body": self.body, "line": self.line, "side": self.side}
        if self.start_line is not None:
            payload["start_line"] = self.start_line
            payload["start_side"] = self.start_side
        return payload


@dataclass
class ReviewDraft:
    summary: str
    event: str  # "APPROVE" | "COMMENT"
    inline_comments: list[CommentPayload] = field(default_factory=list)
    fallback_findings: list[Finding] = field(default_factory=list)
    fallback_text: str = ""
    body: str = ""


@dataclass(frozen=True)
class PullRequestInfo:
    title: str
    body: str
    head_sha: str


@dataclass(frozen=True)
class ChangedFile:
    path: str
    status: str
    additions: int = 0
    deletions: int = 0


@dataclass(frozen=True)
class ReviewRequest:
    """Everything the generation backend needs to review one PR."""

    repo_id: str
    title: str
    description: str
    file_summary: str
    diff_text: str


@dataclass
class ReviewResult:
    summary: str
    findings: list[Finding] = field(default_factory=list)
    approved: bool = False

    @classmethod
    def from_dict(cls, data: dict) -> ReviewResult:
        raw = data.get("findings")
        if raw is None:
            raw = data.get("suggestions") or []
        return cls(
            summary=str(data.get("summary") or ""),
            findings=[Finding.from_dict(item) for item in raw if isinstance(item, dict)],
            approved=_as_bool(data.get("approved")),
        )

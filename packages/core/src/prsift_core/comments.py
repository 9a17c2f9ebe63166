"""Turn findings into inline review comments or review-body fallback text."""

from __future__ import annotations

from dataclasses import dataclass

from prsift_core.diff import DiffIndex
from prsift_core.models import CommentPayload, Finding

_FENCE = "```"
_FALLBACK_HEADING = "## Additional Suggestions (outside diff context)"


@dataclass(frozen=True)
class Inline:
    comment: CommentPayload


@dataclass(frozen=True)
class Fallback:
    finding: Finding


def extract_code(text: str) -> str:
    """Return the code inside the last fenced block of ``text``.

    Models sometimes wrap a suggested fix in markdown fences even when asked
    for raw code. A GitHub ```suggestion block cannot contain another fence,
    so the innermost code is pulled out. Text without a completed, non-empty
    block is returned unchanged.
    """
    if _FENCE not in text:
        return text

    last_block: list[str] | None = None
    current: list[str] = []
    in_block = False
    for line in text.split("\n"):
        if line.strip().startswith(_FENCE):
            if in_block:
                last_block = current
            current = []
            in_block = not in_block
            continue
        if in_block:
            current.append(line)

    if not last_block:
        return text
    return "\n".join(last_block)


def format_comment_body(finding: Finding) -> str:
    body = f"**{finding.severity.upper()}**: {finding.message}"
    if finding.suggested_fix:
        body += f"\n\n```suggestion\n{extract_code(finding.suggested_fix)}\n```"
    return body


def place_finding(finding: Finding, index: DiffIndex) -> Inline | Fallback:
    """Decide whether ``finding`` can be posted inline.

    The comment anchors on ``line_end``. A multi-line range is kept only when
    ``line_start`` is also in the diff; otherwise it narrows to one line.
    """
    if not index.contains(finding.file, finding.line_end):
        return Fallback(finding)

    start_line = None
    start_side = None
    if (
        finding.line_start != finding.line_end
        and finding.line_start > 0
        and index.contains(finding.file, finding.line_start)
    ):
        start_line = finding.line_start
        start_side = "RIGHT"

    return Inline(
        CommentPayload(
            file=finding.file,
            body=format_comment_body(finding),
            line=finding.line_end,
            side="RIGHT",
            start_line=start_line,
            start_side=start_side,
        )
    )


def partition_findings(findings: list[Finding], index: DiffIndex) -> tuple[list[CommentPayload], list[Finding]]:
    """Split findings into inline comments and fallback entries, keeping order."""
    inline: list[CommentPayload] = []
    fallback: list[Finding] = []
    for finding in findings:
        placement = place_finding(finding, index)
        if isinstance(placement, Inline):
            inline.append(placement.comment)
        else:
            fallback.append(placement.finding)
    return inline, fallback


def render_fallback_section(findings: list[Finding]) -> str:
    if not findings:
        return ""
    lines = [f"{_FALLBACK_HEADING}\n"]
    for i, f in enumerate(findings, 1):
        lines.append(f"### {i}. `{f.file}` (lines {f.line_start}-{f.line_end}) - {f.severity.upper()}\n")
        entry = f.message
        if f.suggested_fix:
            entry += f"\n\n{_FENCE}\n{extract_code(f.suggested_fix)}\n{_FENCE}"
        lines.append(entry + "\n")
    return "\n".join(lines)


def compose_review_body(summary: str, fallback_findings: list[Finding]) -> str:
    """AI summary, then the out-of-diff findings when there are any."""
    section = render_fallback_section(fallback_findings)
    if not section:
        return summary
    return f"{summary}\n\n---\n\n{section}"

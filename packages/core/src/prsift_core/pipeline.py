"""Core PR review orchestration.

One run walks fetch → generate → filter → place → decide → submit, strictly
in order. Nothing is posted until the single create_review call at the end,
so a failure or cancellation at any earlier point leaves the PR untouched.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable

from rich.console import Console
from rich.markup import escape

from prsift_core.cancel import CancelToken
from prsift_core.comments import compose_review_body, partition_findings, render_fallback_section
from prsift_core.config import ReviewSettings
from prsift_core.diff import DiffIndex
from prsift_core.errors import ConfigurationError, PrsiftError, TransportError
from prsift_core.models import ChangedFile, CommentPayload, Finding, ReviewDraft, ReviewRequest, ReviewResult
from prsift_core.providers.anthropic import AnthropicReviewer
from prsift_core.providers.gemini import GeminiReviewer
from prsift_core.providers.judge import make_judge
from prsift_core.quality import QualityReport, evaluate_findings

if TYPE_CHECKING:
    from prsift_core.gh.pull_request import GitHubHost
    from prsift_core.providers.base import BaseReviewer
    from prsift_core.providers.judge import BaseJudge

console = Console()
logger = logging.getLogger(__name__)


class Stage(str, Enum):
    FETCHING = "fetching"
    GENERATING = "generating"
    FILTERING = "filtering"
    PLACING = "placing"
    DECIDING = "deciding"
    SUBMITTING = "submitting"
    DONE = "done"


@dataclass
class PipelineOutcome:
    """What a run produced. ``submitted`` is False for dry runs."""

    repo_id: str
    pr_number: int
    head_sha: str
    result: ReviewResult
    quality: QualityReport
    draft: ReviewDraft
    submitted: bool = False
    review: Any = None
    stages: list[Stage] = field(default_factory=list)


def get_reviewer(settings: ReviewSettings, config: dict) -> BaseReviewer:
    if settings.provider == "claude":
        return AnthropicReviewer(
            api_key=config["anthropic_api_key"],
            model=settings.review_model,
            max_tool_turns=settings.max_tool_turns,
        )
    if settings.provider == "gemini":
        return GeminiReviewer(
            api_key=config["gemini_api_key"],
            model=settings.review_model,
            max_tool_turns=settings.max_tool_turns,
        )
    raise ConfigurationError(f"Unknown provider: {settings.provider!r}. Choose 'claude' or 'gemini'.")


def get_judge(settings: ReviewSettings, config: dict) -> BaseJudge | None:
    if not settings.judge.enabled:
        return None
    return make_judge(settings.judge.model, config)


def decide_event(approved: bool) -> str:
    """APPROVE or COMMENT, never REQUEST_CHANGES.

    GitHub rejects REQUEST_CHANGES when the token belongs to the PR author,
    which is the normal case for a bot reviewing its own automation's PRs.
    """
    return "APPROVE" if approved else "COMMENT"


def format_files(files: list[ChangedFile]) -> str:
    return "".join(f"- {f.path} ({f.status}, +{f.additions}/-{f.deletions})\n" for f in files)


def place_findings(quality: QualityReport, diff_text: str) -> tuple[list[CommentPayload], list[Finding]]:
    """Place surviving findings against a fresh DiffIndex built from the fetched diff."""
    return partition_findings(quality.findings, DiffIndex.build(diff_text))


def build_draft(
    result: ReviewResult,
    inline: list[CommentPayload],
    fallback: list[Finding],
    event: str,
) -> ReviewDraft:
    return ReviewDraft(
        summary=result.summary,
        event=event,
        inline_comments=inline,
        fallback_findings=fallback,
        fallback_text=render_fallback_section(fallback),
        body=compose_review_body(result.summary, fallback),
    )


def print_draft(outcome: PipelineOutcome, judge_enabled: bool = False) -> None:
    """Print the composed review to the terminal without posting it."""
    _severity_color = {"error": "red", "warning": "yellow", "info": "blue"}
    result = outcome.result
    draft = outcome.draft

    console.print("\n[bold]=== Review Summary ===[/bold]")
    console.print(result.summary, markup=False)
    console.print(f"\nApproved: {result.approved}")
    console.print(f"Findings: {len(result.findings)}")

    if outcome.quality.judged:
        console.print("\n[bold]=== Findings ===[/bold]")
    for i, judged in enumerate(outcome.quality.judged, 1):
        f = judged.finding
        color = _severity_color.get(f.severity, "white")
        score = escape(f" [score: {judged.score:.2f}]") if judge_enabled else ""
        console.print(
            f"\n[{i}] [bold cyan]{escape(f.file)}[/bold cyan]:{f.line_start}-{f.line_end} "
            f"([{color}]{f.severity}[/{color}]){score}",
            highlight=False,
        )
        console.print(f"    {f.message}", markup=False)
        if f.suggested_fix:
            console.print(f"    Suggestion: {f.suggested_fix}", markup=False)
        if judge_enabled and judged.reasoning:
            console.print(f"    Judge reasoning: {judged.reasoning}", markup=False)

    console.print(
        f"\n[bold]{len(draft.inline_comments)} inline comment(s), "
        f"{len(draft.fallback_findings)} outside the diff, event {draft.event}.[/bold]"
    )


class ReviewPipeline:
    """Sequences one review delivery for one pull request.

    The pipeline owns no state between runs; every run builds its own
    DiffIndex, draft and intermediate lists.
    """

    def __init__(
        self,
        host: GitHubHost | None,
        reviewer: BaseReviewer,
        settings: ReviewSettings,
        judge: BaseJudge | None = None,
    ):
        self.host = host
        self.reviewer = reviewer
        self.settings = settings
        self.judge = judge

    def _enter(self, stages: list[Stage], stage: Stage) -> None:
        logger.debug("Entering stage %s", stage.value)
        stages.append(stage)

    def _call(self, stage: Stage, operation: str, target: str, cancel: CancelToken, fn: Callable, *args):
        cancel.check(stage.value)
        try:
            return fn(*args)
        except PrsiftError:
            raise
        except Exception as e:
            raise TransportError(stage.value, operation, target, e) from e

    def run(self, owner: str, repo: str, number: int, cancel: CancelToken | None = None) -> PipelineOutcome:
        """Run every stage and return the outcome.

        Raises ConfigurationError before any network call, TransportError when
        a collaborator fails, and ReviewCancelled when ``cancel`` fires.
        """
        if self.host is None:
            raise ConfigurationError("GitHub host not set.")
        if not owner or not repo or not number or number <= 0:
            raise ConfigurationError("owner, repo and a positive PR number are required.")
        if self.settings.judge.enabled and self.judge is None:
            raise ConfigurationError("Judging is enabled but no judge is configured.")

        cancel = cancel if cancel is not None else CancelToken(self.settings.timeout)
        repo_id = f"{owner}/{repo}"
        target = f"{repo_id}#{number}"
        stages: list[Stage] = []

        # Fetching
        self._enter(stages, Stage.FETCHING)
        console.print(f"Fetching PR {target}...")
        pr = self._call(Stage.FETCHING, "fetch PR metadata", target, cancel, self.host.get_pr, owner, repo, number)
        diff_text = self._call(
            Stage.FETCHING, "fetch PR diff", target, cancel, self.host.get_diff, owner, repo, number
        )
        files = self._call(
            Stage.FETCHING, "fetch PR files", target, cancel, self.host.get_changed_files, owner, repo, number
        )
        logger.info("Fetched %s: %d file(s), %d diff chars", target, len(files), len(diff_text))

        # Generating
        self._enter(stages, Stage.GENERATING)
        console.print(f"Reviewing {len(files)} changed file(s) with {self.settings.provider}...")
        request = ReviewRequest(
            repo_id=repo_id,
            title=pr.title,
            description=pr.body,
            file_summary=format_files(files),
            diff_text=diff_text,
        )

        def read_file(path: str) -> str:
            cancel.check(Stage.GENERATING.value)
            return self.host.get_file_content(owner, repo, path, pr.head_sha)

        result = self._call(
            Stage.GENERATING,
            "generate review for",
            target,
            cancel,
            lambda: self.reviewer.generate(request, read_file, cancel, self.settings.prompt_template),
        )
        logger.info("Review generated: %d finding(s), approved=%s", len(result.findings), result.approved)

        # Filtering
        self._enter(stages, Stage.FILTERING)
        quality = evaluate_findings(result.findings, self.settings.judge, self.judge, self.settings.rubric, cancel)
        if quality.filtered_count:
            console.print(
                f"[yellow]Judge filtered {quality.filtered_count} low-quality finding(s) "
                f"(threshold: {self.settings.judge.min_score:.2f})[/yellow]"
            )

        # Placing
        self._enter(stages, Stage.PLACING)
        inline, fallback = place_findings(quality, diff_text)

        # Deciding
        self._enter(stages, Stage.DECIDING)
        draft = build_draft(result, inline, fallback, decide_event(result.approved))
        logger.info(
            "Placed %d inline comment(s), %d fallback finding(s); event %s",
            len(draft.inline_comments),
            len(draft.fallback_findings),
            draft.event,
        )

        outcome = PipelineOutcome(
            repo_id=repo_id,
            pr_number=number,
            head_sha=pr.head_sha,
            result=result,
            quality=quality,
            draft=draft,
            stages=stages,
        )

        if self.settings.dry_run:
            print_draft(outcome, judge_enabled=self.settings.judge.enabled)
            console.print("\n[yellow]Dry-run mode: review not posted to GitHub.[/yellow]")
            return outcome

        # Submitting
        self._enter(stages, Stage.SUBMITTING)
        outcome.review = self._call(
            Stage.SUBMITTING,
            "post review to",
            target,
            cancel,
            self.host.create_review,
            owner,
            repo,
            number,
            pr.head_sha,
            draft.body,
            draft.event,
            [c.to_api() for c in draft.inline_comments],
        )
        outcome.submitted = True
        self._enter(stages, Stage.DONE)
        console.print(
            f"[green]Review posted: {draft.event}. {len(draft.inline_comments)} inline comment(s), "
            f"{len(draft.fallback_findings)} in the review body.[/green]"
        )
        return outcome

"""Best-effort quality filter for review findings.

Each finding is scored by a judge, one at a time in input order. Findings
below the threshold are dropped. A judge failure never drops a finding and
never stops the batch: the finding is kept with a perfect score.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from prsift_core.errors import ConfigurationError, ReviewCancelled
from prsift_core.models import Finding, JudgedFinding

if TYPE_CHECKING:
    from prsift_core.cancel import CancelToken
    from prsift_core.providers.judge import BaseJudge

logger = logging.getLogger(__name__)

DEFAULT_JUDGE_MODEL = "gemini-2.5-flash"
DEFAULT_MIN_SCORE = 0.5
JUDGE_FAILED_REASONING = "Judge evaluation failed"

QUALITY_RUBRIC = """Evaluate this code review suggestion on the following criteria:

1. **Accuracy**: Is the issue correctly identified? Is the technical assessment correct?
2. **Actionability**: Is the suggestion specific enough to act on? Does it provide clear guidance?
3. **Value**: Does this issue matter? Is it worth the developer's time to address?
4. **Clarity**: Is the message clear and easy to understand?

A score of 1.0 means the suggestion is excellent: accurate, actionable, valuable, and clear.
A score of 0.5 means the suggestion is mediocre: partially correct or not very actionable.
A score of 0.0 means the suggestion is poor: incorrect, unclear, or not valuable.

Consider whether this is something a senior developer would flag in a real code review."""


@dataclass(frozen=True)
class JudgeConfig:
    enabled: bool = False
    model: str = DEFAULT_JUDGE_MODEL
    min_score: float = DEFAULT_MIN_SCORE


@dataclass
class QualityReport:
    judged: list[JudgedFinding] = field(default_factory=list)
    kept_count: int = 0
    filtered_count: int = 0
    failed_count: int = 0

    @property
    def findings(self) -> list[Finding]:
        return [j.finding for j in self.judged]


def _pass_through(findings: list[Finding]) -> QualityReport:
    judged = [JudgedFinding(finding=f, score=1.0) for f in findings]
    return QualityReport(judged=judged, kept_count=len(judged))


def evaluate_findings(
    findings: list[Finding],
    config: JudgeConfig,
    judge: BaseJudge | None = None,
    rubric: str = QUALITY_RUBRIC,
    cancel: CancelToken | None = None,
) -> QualityReport:
    """Score and filter findings. Identity transform when judging is disabled."""
    if not config.enabled or not findings:
        return _pass_through(findings)
    if judge is None:
        raise ConfigurationError("Judging is enabled but no judge is configured.")

    logger.info("Evaluating %d finding(s) with %s (min score %.2f)", len(findings), config.model, config.min_score)
    report = QualityReport()

    for i, finding in enumerate(findings, 1):
        if cancel is not None:
            cancel.check("filtering")
        candidate = json.dumps(finding.to_dict(), indent=2)
        try:
            judgement = judge.judge(candidate, rubric, cancel=cancel)
        except ReviewCancelled:
            raise
        except Exception as e:
            logger.warning(
                "Judge evaluation failed for finding %d (%s), keeping it: %s",
                i,
                finding.file,
                e,
            )
            report.judged.append(JudgedFinding(finding=finding, score=1.0, reasoning=JUDGE_FAILED_REASONING))
            report.kept_count += 1
            report.failed_count += 1
            continue

        logger.info(
            "Finding %d %s:%d (%s) scored %.2f",
            i,
            finding.file,
            finding.line_end,
            finding.severity,
            judgement.score,
        )
        if judgement.score < config.min_score:
            logger.info("Filtering low-quality finding on %s: %s", finding.file, judgement.reasoning)
            report.filtered_count += 1
            continue

        report.judged.append(
            JudgedFinding(
                finding=finding,
                score=judgement.score,
                reasoning=judgement.reasoning,
                improvement_notes=list(judgement.improvement_notes),
            )
        )
        report.kept_count += 1

    logger.info(
        "Judge evaluation complete: %d total, %d kept, %d filtered",
        len(findings),
        report.kept_count,
        report.filtered_count,
    )
    return report

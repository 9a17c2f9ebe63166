"""Quality-judging backends.

A judge scores one candidate text against a rubric and returns a score in
[0, 1] with its reasoning. Judges run in standalone mode: there is no
reference answer, only the candidate and the rubric.

Like the review providers, subclasses implement only ``__init__`` and
``_call_api``. Prompting and response parsing are shared here.
"""

from __future__ import annotations

import json
import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from prsift_core.errors import ConfigurationError, JudgeError

if TYPE_CHECKING:
    from prsift_core.cancel import CancelToken

logger = logging.getLogger(__name__)

STANDALONE_MODE = "standalone"


@dataclass(frozen=True)
class Judgement:
    score: float
    reasoning: str = ""
    improvement_notes: list[str] = field(default_factory=list)


class BaseJudge(ABC):
    MAX_TOKENS: int = 1024
    TEMPERATURE: float = 0.0

    def __init__(self, model: str):
        self.model = model

    def judge(
        self,
        candidate_text: str,
        rubric: str,
        mode: str = STANDALONE_MODE,
        cancel: CancelToken | None = None,
    ) -> Judgement:
        """Score ``candidate_text`` against ``rubric``. Raises JudgeError on bad output.

        The API call is bounded by the time ``cancel`` has left.
        """
        if mode != STANDALONE_MODE:
            raise JudgeError(f"Unsupported judge mode: {mode!r}")
        raw = self._call_api(self._build_system_prompt(rubric), self._build_user_prompt(candidate_text), cancel)
        return self._parse(raw)

    @abstractmethod
    def _call_api(self, system_prompt: str, user_prompt: str, cancel: CancelToken | None = None) -> str:
        """Make one API call and return the raw text. Should raise on failure."""

    def _build_system_prompt(self, rubric: str) -> str:
        return f"""You are an impartial judge grading a single candidate answer.
There is no reference answer; grade the candidate on its own merits.

## Criterion
{rubric}

Respond with **only** a JSON object:
{{"score": <number between 0.0 and 1.0>, "reasoning": "<one or two sentences>", "suggestions": ["<how the candidate could be improved>", ...]}}"""  # noqa: E501

    def _build_user_prompt(self, candidate_text: str) -> str:
        return f"## Candidate\n{candidate_text}"

    def _parse(self, raw: str) -> Judgement:
        cleaned = re.sub(r"^```(?:json)?\s*", "", (raw or "").strip())
        cleaned = re.sub(r"\s*```$", "", cleaned.strip())
        try:
            data = json.loads(cleaned)
        except json.JSONDecodeError as e:
            raise JudgeError(f"{self.__class__.__name__}: judgement is not valid JSON: {raw[:200]!r}") from e
        if not isinstance(data, dict):
            raise JudgeError(f"{self.__class__.__name__}: judgement is not a JSON object")

        try:
            score = float(data["score"])
        except (KeyError, TypeError, ValueError) as e:
            raise JudgeError(f"{self.__class__.__name__}: judgement has no numeric score") from e
        if not 0.0 <= score <= 1.0:
            raise JudgeError(f"{self.__class__.__name__}: score {score} is outside [0, 1]")

        notes = data.get("suggestions") or []
        if isinstance(notes, str):
            notes = [notes]
        return Judgement(
            score=score,
            reasoning=str(data.get("reasoning") or ""),
            improvement_notes=[str(n) for n in notes],
        )


def make_judge(model: str, config: dict) -> BaseJudge:
    """Pick the judge backend from the model identifier."""
    if model.startswith("claude"):
        from prsift_core.providers.anthropic import AnthropicJudge

        key = config.get("anthropic_api_key")
        if not key:
            raise ConfigurationError("ANTHROPIC_API_KEY is required for a Claude judge model.")
        return AnthropicJudge(api_key=key, model=model)

    from prsift_core.providers.gemini import GeminiJudge

    key = config.get("gemini_api_key")
    if not key:
        raise ConfigurationError("GEMINI_API_KEY is required for a Gemini judge model.")
    return GeminiJudge(api_key=key, model=model)

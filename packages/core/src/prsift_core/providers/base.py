"""Base reviewer implementing the Template Method pattern.

All providers share the same review algorithm:
    generate() → _build_system_prompt() + _build_user_prompt()
               → _run_tools()   ← only this differs per provider
               → _parse_result()

Subclasses implement two things only:
  - __init__: validate and store the SDK client
  - _run_tools: drive one tool-calling conversation until the model calls
    submit_result, answering read_file calls along the way

Prompt construction, the read_file handler and result parsing live here so
every provider satisfies the same contract.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Callable
from xml.sax.saxutils import escape

from prsift_core.errors import ReviewCancelled
from prsift_core.models import ReviewRequest, ReviewResult
from prsift_core.prompts import REVIEW_PROMPT

if TYPE_CHECKING:
    from prsift_core.cancel import CancelToken

logger = logging.getLogger(__name__)

# Fetches the full content of a file at the PR head; raises on failure.
FileReader = Callable[[str], str]

_MAX_TOOL_TURNS = 20
_MAX_TOKENS = 16000


class GenerationError(RuntimeError):
    """The model finished without submitting a usable review."""


class BaseReviewer(ABC):
    MODEL: str = ""
    TEMPERATURE: float = 0.1
    MAX_TOKENS: int = _MAX_TOKENS
    MAX_TOOL_TURNS: int = _MAX_TOOL_TURNS

    def __init__(self, model: str | None = None, max_tool_turns: int | None = None):
        self.model = model or self.MODEL
        if max_tool_turns is not None:
            self.MAX_TOOL_TURNS = max_tool_turns

    # ------------------------------------------------------------------ #
    # Public interface                                                     #
    # ------------------------------------------------------------------ #

    def generate(
        self,
        request: ReviewRequest,
        read_file: FileReader,
        cancel: CancelToken | None = None,
        prompt_template: str = REVIEW_PROMPT,
    ) -> ReviewResult:
        """Review a whole PR and return the submitted result.

        ``read_file`` is exposed to the model as the read_file tool and may be
        called any number of times before the model submits.
        """
        system = self._build_system_prompt()
        user = self._build_user_prompt(request, prompt_template)
        submitted = self._run_tools(system, user, read_file, cancel)
        return self._parse_result(submitted)

    # ------------------------------------------------------------------ #
    # Abstract — implement in each provider                               #
    # ------------------------------------------------------------------ #

    @abstractmethod
    def _run_tools(
        self,
        system_prompt: str,
        user_prompt: str,
        read_file: FileReader,
        cancel: CancelToken | None,
    ) -> dict:
        """Run the tool loop and return the submit_result arguments.

        Should raise on API failure, and GenerationError when the model stops
        or runs out of turns without calling submit_result.
        """

    # ------------------------------------------------------------------ #
    # Shared implementations                                               #
    # ------------------------------------------------------------------ #

    def _build_system_prompt(self) -> str:
        return (
            "You are a strict and precise senior code reviewer. "
            "Always finish by calling the submit_result tool; never answer in plain text."
        )

    def _build_user_prompt(self, request: ReviewRequest, prompt_template: str) -> str:
        pr_info = (
            f"<repository>{escape(request.repo_id)}</repository>\n"
            f"<title>{escape(request.title)}</title>\n"
            f"<description>{escape(request.description)}</description>"
        )
        return prompt_template.format(
            pr_info=f"<pr_info>\n{pr_info}\n</pr_info>",
            files=f"<files><![CDATA[\n{request.file_summary}]]></files>",
            diff=f"<diff><![CDATA[\n{request.diff_text}]]></diff>",
        )

    def _handle_read_file(self, args: dict, read_file: FileReader) -> dict:
        """Answer one read_file call. Failures go back to the model, not the caller."""
        path = args.get("path") if isinstance(args, dict) else None
        if not path or not isinstance(path, str):
            return {"error": "missing required parameter: path"}
        try:
            content = read_file(path)
        except ReviewCancelled:
            raise
        except Exception as e:
            logger.debug("read_file %s failed: %s", path, e)
            return {"error": f"failed to read file {path}: {e}"}
        logger.debug("read_file %s (%d chars)", path, len(content))
        return {"content": content, "path": path}

    def _check(self, cancel: CancelToken | None) -> None:
        if cancel is not None:
            cancel.check("generating")

    def _parse_result(self, submitted: dict) -> ReviewResult:
        if not isinstance(submitted, dict):
            raise GenerationError(f"{self.__class__.__name__}: submit_result arguments are not an object")
        return ReviewResult.from_dict(submitted)

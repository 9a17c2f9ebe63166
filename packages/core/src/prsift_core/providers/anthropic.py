from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING

from prsift_core.providers.base import BaseReviewer, FileReader, GenerationError
from prsift_core.providers.judge import BaseJudge
from prsift_core.prompts import (
    READ_FILE_DESCRIPTION,
    READ_FILE_SCHEMA,
    READ_FILE_TOOL,
    SUBMIT_DESCRIPTION,
    SUBMIT_SCHEMA,
    SUBMIT_TOOL,
)

if TYPE_CHECKING:
    from prsift_core.cancel import CancelToken

logger = logging.getLogger(__name__)

_TOOLS = [
    {"name": READ_FILE_TOOL, "description": READ_FILE_DESCRIPTION, "input_schema": READ_FILE_SCHEMA},
    {"name": SUBMIT_TOOL, "description": SUBMIT_DESCRIPTION, "input_schema": SUBMIT_SCHEMA},
]


def _make_client(api_key: str):
    try:
        from anthropic import Anthropic
    except ImportError:
        raise ImportError(
            "The 'anthropic' package is required for this provider. " "Install it with: pip install anthropic"
        )
    return Anthropic(api_key=api_key)


def _timeout_kwargs(cancel: CancelToken | None) -> dict:
    remaining = cancel.remaining() if cancel is not None else None
    return {"timeout": remaining} if remaining is not None else {}


class AnthropicReviewer(BaseReviewer):
    MODEL = "claude-opus-4-5"
    # Low temperature keeps line numbers and tool arguments stable between runs.
    TEMPERATURE = 0.1

    def __init__(self, api_key: str, model: str | None = None, max_tool_turns: int | None = None):
        super().__init__(model=model, max_tool_turns=max_tool_turns)
        self.client = _make_client(api_key)

    def _run_tools(
        self,
        system_prompt: str,
        user_prompt: str,
        read_file: FileReader,
        cancel: CancelToken | None,
    ) -> dict:
        # Imported here because the anthropic package is optional;
        # __init__ already validated it is installed.
        from anthropic.types import ToolUseBlock

        messages: list[dict] = [{"role": "user", "content": user_prompt}]
        for turn in range(1, self.MAX_TOOL_TURNS + 1):
            self._check(cancel)
            response = self.client.messages.create(
                model=self.model,
                system=system_prompt,
                messages=messages,
                tools=_TOOLS,
                temperature=self.TEMPERATURE,
                max_tokens=self.MAX_TOKENS,
                **_timeout_kwargs(cancel),
            )
            tool_uses = [block for block in response.content if isinstance(block, ToolUseBlock)]
            for block in tool_uses:
                if block.name == SUBMIT_TOOL:
                    logger.debug("submit_result received on turn %d", turn)
                    return dict(block.input)
            if not tool_uses:
                raise GenerationError(f"model stopped ({response.stop_reason}) without calling {SUBMIT_TOOL}")

            messages.append({"role": "assistant", "content": response.content})
            results = []
            for block in tool_uses:
                if block.name == READ_FILE_TOOL:
                    payload = self._handle_read_file(block.input, read_file)
                else:
                    payload = {"error": f"unknown tool: {block.name}"}
                results.append(
                    {
                        "type": "tool_result",
                        "tool_use_id": block.id,
                        "content": json.dumps(payload),
                        "is_error": "error" in payload,
                    }
                )
            messages.append({"role": "user", "content": results})

        raise GenerationError(f"no {SUBMIT_TOOL} call after {self.MAX_TOOL_TURNS} turns")


class AnthropicJudge(BaseJudge):
    def __init__(self, api_key: str, model: str):
        super().__init__(model)
        self.client = _make_client(api_key)

    def _call_api(self, system_prompt: str, user_prompt: str, cancel: CancelToken | None = None) -> str:
        from anthropic.types import TextBlock

        response = self.client.messages.create(
            model=self.model,
            system=system_prompt,
            messages=[{"role": "user", "content": user_prompt}],
            temperature=self.TEMPERATURE,
            max_tokens=self.MAX_TOKENS,
            **_timeout_kwargs(cancel),
        )
        text_blocks = [block.text for block in response.content if isinstance(block, TextBlock)]
        return "".join(text_blocks).strip()

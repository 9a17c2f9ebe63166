from __future__ import annotations

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


def _make_client(api_key: str):
    # google-genai, not the legacy google-generativeai package.
    try:
        from google import genai
    except ImportError:
        raise ImportError(
            "The 'google-genai' package is required for this provider. " "Install it with: pip install google-genai"
        )
    return genai.Client(api_key=api_key)


def _http_options(cancel: CancelToken | None):
    """Per-request HTTP options bounding the call by the time ``cancel`` has left."""
    remaining = cancel.remaining() if cancel is not None else None
    if remaining is None:
        return None
    from google.genai import types

    # HttpOptions.timeout is in milliseconds.
    return types.HttpOptions(timeout=max(1, int(remaining * 1000)))


class GeminiReviewer(BaseReviewer):
    MODEL = "gemini-2.5-flash"
    TEMPERATURE = 0.1

    def __init__(self, api_key: str, model: str | None = None, max_tool_turns: int | None = None):
        super().__init__(model=model, max_tool_turns=max_tool_turns)
        self.client = _make_client(api_key)

    def _config(self, system_prompt: str):
        from google.genai import types

        declarations = [
            types.FunctionDeclaration(
                name=READ_FILE_TOOL,
                description=READ_FILE_DESCRIPTION,
                parameters_json_schema=READ_FILE_SCHEMA,
            ),
            types.FunctionDeclaration(
                name=SUBMIT_TOOL,
                description=SUBMIT_DESCRIPTION,
                parameters_json_schema=SUBMIT_SCHEMA,
            ),
        ]
        return types.GenerateContentConfig(
            system_instruction=system_prompt,
            temperature=self.TEMPERATURE,
            max_output_tokens=self.MAX_TOKENS,
            tools=[types.Tool(function_declarations=declarations)],
            # Tool calls are answered by _run_tools, not by the SDK.
            automatic_function_calling=types.AutomaticFunctionCallingConfig(disable=True),
        )

    def _run_tools(
        self,
        system_prompt: str,
        user_prompt: str,
        read_file: FileReader,
        cancel: CancelToken | None,
    ) -> dict:
        from google.genai import types

        config = self._config(system_prompt)
        contents = [types.Content(role="user", parts=[types.Part.from_text(text=user_prompt)])]
        for turn in range(1, self.MAX_TOOL_TURNS + 1):
            self._check(cancel)
            response = self.client.models.generate_content(
                model=self.model,
                contents=contents,
                config=config.model_copy(update={"http_options": _http_options(cancel)}),
            )
            calls = response.function_calls or []
            for call in calls:
                if call.name == SUBMIT_TOOL:
                    logger.debug("submit_result received on turn %d", turn)
                    return dict(call.args or {})
            if not calls:
                raise GenerationError(f"model stopped without calling {SUBMIT_TOOL}")

            contents.append(response.candidates[0].content)
            parts = []
            for call in calls:
                if call.name == READ_FILE_TOOL:
                    payload = self._handle_read_file(call.args or {}, read_file)
                else:
                    payload = {"error": f"unknown tool: {call.name}"}
                parts.append(types.Part.from_function_response(name=call.name, response=payload))
            contents.append(types.Content(role="user", parts=parts))

        raise GenerationError(f"no {SUBMIT_TOOL} call after {self.MAX_TOOL_TURNS} turns")


class GeminiJudge(BaseJudge):
    def __init__(self, api_key: str, model: str):
        super().__init__(model)
        self.client = _make_client(api_key)

    def _call_api(self, system_prompt: str, user_prompt: str, cancel: CancelToken | None = None) -> str:
        from google.genai import types

        response = self.client.models.generate_content(
            model=self.model,
            contents=user_prompt,
            config=types.GenerateContentConfig(
                system_instruction=system_prompt,
                temperature=self.TEMPERATURE,
                max_output_tokens=self.MAX_TOKENS,
                response_mime_type="application/json",
                http_options=_http_options(cancel),
            ),
        )
        return (response.text or "").strip()

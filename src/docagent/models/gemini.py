"""Gemini provider (Google AI Studio generateContent API)."""

from __future__ import annotations

import json
import threading
from typing import Any

import httpx

from docagent.models.base import LLMResponse, ToolCall, ToolSchema
from docagent.models.http import HttpProvider
from docagent.util.logging import get_logger, mask_api_key


logger = get_logger(__name__)

# Finish reasons that end the turn with a synthesized explanation. The texts
# are chosen so the response classifier recognizes them.
_SYNTHESIZED_FINISH = {
    "MALFORMED_FUNCTION_CALL": (
        "I encountered an error while trying to call a function. "
        "Let me try a different approach."
    ),
    "MAX_TOKENS": (
        "I reached the maximum response length. "
        "Please try breaking this into smaller tasks."
    ),
    "SAFETY": "My response was filtered due to safety policies. Please rephrase your request.",
    "RECITATION": (
        "My response was filtered due to potential copyright issues. "
        "Please rephrase your request."
    ),
}


class GeminiProvider(HttpProvider):
    """Gemini models are unstable with tool calling, so the larger budget is the default."""

    name = "Gemini"

    def __init__(
        self,
        api_key: str,
        model: str = "gemini-2.5-pro",
        endpoint: str = "https://generativelanguage.googleapis.com/v1beta",
        max_output_tokens: int = 4096,
        timeout_seconds: float = 60,
        transport: httpx.BaseTransport | None = None,
        backoff_seconds: float = 1.0,
        unstable: bool = True,
    ) -> None:
        super().__init__(
            timeout_seconds=timeout_seconds,
            transport=transport,
            backoff_seconds=backoff_seconds,
            unstable=unstable,
        )
        self.api_key = api_key
        self.model = model
        self.endpoint = endpoint.rstrip("/")
        self.max_output_tokens = max_output_tokens
        logger.debug("Creating Gemini provider with model: %s, endpoint: %s", model, self.endpoint)
        logger.debug("API key (masked for security): %s", mask_api_key(api_key))

    def _request_payload(self, prompt: str, tools: list[ToolSchema]) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {"maxOutputTokens": self.max_output_tokens},
        }
        if tools:
            payload["tools"] = [
                {
                    "functionDeclarations": [
                        {
                            "name": tool.name,
                            "description": tool.description,
                            "parameters": tool.parameters,
                        }
                        for tool in tools
                    ]
                }
            ]
        return payload

    def generate_response(
        self,
        prompt: str,
        tools: list[ToolSchema],
        cancel: threading.Event | None = None,
    ) -> LLMResponse:
        url = f"{self.endpoint}/models/{self.model}:generateContent"
        headers = {"Content-Type": "application/json", "X-goog-api-key": self.api_key}
        data = self._post_json(url, self._request_payload(prompt, tools), headers, cancel)
        candidates = data.get("candidates") or []
        logger.debug("Gemini response - candidates count: %d", len(candidates))
        if not candidates:
            return LLMResponse()
        return _parse_candidate(candidates[0])


def _parse_candidate(candidate: dict[str, Any]) -> LLMResponse:
    finish_reason = candidate.get("finishReason") or ""
    response = LLMResponse()
    if finish_reason in _SYNTHESIZED_FINISH:
        logger.debug("Gemini finish reason %s, synthesizing response text", finish_reason)
        response.finished = True
        response.content = _SYNTHESIZED_FINISH[finish_reason]
    elif finish_reason:
        # STOP and unknown reasons both end the turn.
        response.finished = True

    text_parts: list[str] = []
    parts = (candidate.get("content") or {}).get("parts") or []
    for part in parts:
        text = part.get("text")
        if text:
            text_parts.append(text)
        function_call = part.get("functionCall")
        if function_call:
            response.tool_calls.append(
                ToolCall(
                    id=f"call_{len(response.tool_calls)}",
                    name=function_call.get("name", ""),
                    arguments=json.dumps(function_call.get("args") or {}, ensure_ascii=False),
                )
            )
    if text_parts and not response.content:
        response.content = "\n".join(text_parts)
    return response

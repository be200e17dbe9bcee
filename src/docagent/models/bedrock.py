"""Amazon Bedrock provider using bearer API keys."""

from __future__ import annotations

import json
import threading
from typing import Any

import httpx

from docagent.models.base import LLMResponse, ToolCall, ToolSchema
from docagent.models.http import HttpProvider
from docagent.util.logging import get_logger, mask_api_key


logger = get_logger(__name__)

FINISHED_STOP_REASONS = {"end_turn", "stop_sequence"}


class BedrockProvider(HttpProvider):
    name = "Amazon Bedrock"

    def __init__(
        self,
        api_key: str,
        region: str = "us-east-1",
        model: str = "anthropic.claude-3-5-sonnet-20240620-v1:0",
        endpoint: str | None = None,
        max_tokens: int = 4096,
        timeout_seconds: float = 60,
        transport: httpx.BaseTransport | None = None,
        backoff_seconds: float = 1.0,
        unstable: bool = False,
    ) -> None:
        super().__init__(
            timeout_seconds=timeout_seconds,
            transport=transport,
            backoff_seconds=backoff_seconds,
            unstable=unstable,
        )
        self.api_key = api_key
        self.region = region
        self.model = model
        self.endpoint = (endpoint or f"https://bedrock-runtime.{region}.amazonaws.com").rstrip("/")
        self.max_tokens = max_tokens
        logger.debug(
            "Creating Bedrock provider with model: %s, region: %s, endpoint: %s",
            model,
            region,
            self.endpoint,
        )
        logger.debug("API key (masked for security): %s", mask_api_key(api_key))

    def _request_payload(self, prompt: str, tools: list[ToolSchema]) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "messages": [{"role": "user", "content": prompt}],
            "max_tokens": self.max_tokens,
        }
        if tools:
            payload["tools"] = [
                {
                    "name": tool.name,
                    "description": tool.description,
                    "input_schema": tool.parameters,
                }
                for tool in tools
            ]
        return payload

    def generate_response(
        self,
        prompt: str,
        tools: list[ToolSchema],
        cancel: threading.Event | None = None,
    ) -> LLMResponse:
        url = f"{self.endpoint}/model/{self.model}/invoke"
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.api_key}",
            "X-Region": self.region,
        }
        data = self._post_json(url, self._request_payload(prompt, tools), headers, cancel)
        stop_reason = data.get("stop_reason")
        tool_calls = []
        for index, raw in enumerate(data.get("tool_calls") or []):
            arguments = raw.get("input")
            if not isinstance(arguments, str):
                arguments = json.dumps(arguments or {}, ensure_ascii=False)
            tool_calls.append(
                ToolCall(id=raw.get("id") or f"call_{index}", name=raw.get("name", ""), arguments=arguments)
            )
        logger.debug("Bedrock response - stop_reason: %s, tool calls: %d", stop_reason, len(tool_calls))
        content = data.get("content")
        return LLMResponse(
            content=content if isinstance(content, str) else "",
            tool_calls=tool_calls,
            finished=stop_reason in FINISHED_STOP_REASONS,
        )

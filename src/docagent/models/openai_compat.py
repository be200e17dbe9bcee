"""OpenAI-compatible provider for local LLM servers (Ollama, LocalAI, vLLM)."""

from __future__ import annotations

import json
import threading
from typing import Any
from urllib.parse import urlparse, urlunparse

import httpx

from docagent.models.base import LLMResponse, ToolCall, ToolSchema
from docagent.models.http import HttpProvider
from docagent.util.logging import get_logger, mask_api_key


logger = get_logger(__name__)


class OpenAICompatProvider(HttpProvider):
    """HTTP client for OpenAI-compatible chat/completions."""

    name = "Local LLM"

    def __init__(
        self,
        base_url: str = "http://localhost:11434",
        model: str = "llama2",
        api_key: str | None = None,
        max_tokens: int = 4096,
        temperature: float = 0.7,
        timeout_seconds: float = 120,
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
        normalized = base_url.strip()
        if not normalized.startswith(("http://", "https://")):
            normalized = f"http://{normalized}"
        self.base_url = normalized.rstrip("/")
        self.model = model
        self.api_key = api_key
        self.max_tokens = max_tokens
        self.temperature = temperature
        logger.debug("Creating %s provider with model: %s, endpoint: %s", self.name, model, self.base_url)
        if api_key:
            logger.debug("API key (masked for security): %s", mask_api_key(api_key))

    def _build_url(self) -> str:
        parsed = urlparse(self.base_url)
        path = parsed.path or ""
        if path in {"", "/"}:
            base_path = "/v1"
        else:
            base_path = path.rstrip("/")
            segments = [segment for segment in base_path.split("/") if segment]
            if "v1" not in segments:
                base_path = f"{base_path}/v1"
        if base_path.endswith("/chat/completions"):
            final_path = base_path
        else:
            final_path = f"{base_path}/chat/completions"
        return urlunparse(parsed._replace(path=final_path, params="", query="", fragment=""))

    def _request_payload(self, prompt: str, tools: list[ToolSchema]) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "model": self.model,
            "messages": [{"role": "user", "content": prompt}],
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
            "stream": False,
        }
        if tools:
            payload["tools"] = [tool.openai() for tool in tools]
            payload["tool_choice"] = "auto"
        return payload

    def generate_response(
        self,
        prompt: str,
        tools: list[ToolSchema],
        cancel: threading.Event | None = None,
    ) -> LLMResponse:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        data = self._post_json(self._build_url(), self._request_payload(prompt, tools), headers, cancel)
        choices = data.get("choices") or []
        logger.debug("%s response - choices count: %d", self.name, len(choices))
        if not choices:
            return LLMResponse()
        choice = choices[0]
        message = choice.get("message") or {}
        content = message.get("content")
        tool_calls: list[ToolCall] = []
        for index, raw in enumerate(message.get("tool_calls") or []):
            function = raw.get("function") or {}
            arguments = function.get("arguments")
            if not isinstance(arguments, str):
                arguments = "{}" if arguments is None else json.dumps(arguments, ensure_ascii=False)
            tool_calls.append(
                ToolCall(
                    id=raw.get("id") or f"call_{index}",
                    name=function.get("name", ""),
                    arguments=arguments,
                )
            )
        finish_reason = choice.get("finish_reason")
        logger.debug("%s response - finish_reason: %s, tool calls: %d", self.name, finish_reason, len(tool_calls))
        return LLMResponse(
            content=content if isinstance(content, str) else "",
            tool_calls=tool_calls,
            finished=finish_reason == "stop",
        )

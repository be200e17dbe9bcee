"""Mock provider for offline testing."""

from __future__ import annotations

import threading

from docagent.models.base import BaseProvider, LLMResponse, ToolSchema


class MockProvider(BaseProvider):
    """Deterministic provider that replays scripted responses.

    Once the script is exhausted it keeps returning ``fallback`` (a finished,
    empty response unless overridden).
    """

    name = "Mock"

    def __init__(
        self,
        scripted: list[LLMResponse] | None = None,
        fallback: LLMResponse | None = None,
        unstable: bool = False,
    ) -> None:
        super().__init__(unstable=unstable)
        self._scripted = list(scripted or [])
        self.fallback = fallback or LLMResponse(content="Done.", finished=True)
        self.prompts: list[str] = []
        self.calls = 0

    def generate_response(
        self,
        prompt: str,
        tools: list[ToolSchema],
        cancel: threading.Event | None = None,
    ) -> LLMResponse:
        self._check_cancelled(cancel)
        self.calls += 1
        self.prompts.append(prompt)
        if self._scripted:
            return self._scripted.pop(0)
        return self.fallback.model_copy(deep=True)

"""Base provider interfaces."""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from typing import Any

from pydantic import BaseModel, Field


class TransportError(RuntimeError):
    """Raised when a provider cannot be reached or returns an unusable payload."""


class ProviderCancelled(TransportError):
    """Raised when the caller cancelled the request."""


class ToolCall(BaseModel):
    id: str = ""
    name: str
    arguments: str = "{}"


class LLMResponse(BaseModel):
    content: str = ""
    tool_calls: list[ToolCall] = Field(default_factory=list)
    finished: bool = False


class ToolSchema(BaseModel):
    name: str
    description: str
    parameters: dict[str, Any]

    def openai(self) -> dict[str, Any]:
        """Return the OpenAI function-tool shape."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters,
            },
        }


class BaseProvider(ABC):
    """Abstract LLM provider.

    ``unstable`` marks providers that are known to need a larger iteration
    budget; it is fixed at construction.
    """

    name: str = "provider"

    def __init__(self, unstable: bool = False) -> None:
        self.unstable = unstable

    @abstractmethod
    def generate_response(
        self,
        prompt: str,
        tools: list[ToolSchema],
        cancel: threading.Event | None = None,
    ) -> LLMResponse:
        """Send the rendered conversation and return the model response."""
        raise NotImplementedError

    def _check_cancelled(self, cancel: threading.Event | None) -> None:
        if cancel is not None and cancel.is_set():
            raise ProviderCancelled(f"{self.name} request cancelled")

"""Base tool definitions."""

from __future__ import annotations

import json
from abc import ABC, abstractmethod

from pydantic import BaseModel, ValidationError

from docagent.models.base import ToolSchema
from docagent.safety.sandbox import AccessDenied


class ToolResult(BaseModel):
    content: str = ""
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class Tool(ABC):
    """Abstract tool.

    ``invoke`` never raises for domain failures: argument decoding problems and
    filesystem errors come back as ``ToolResult.error`` so the model can see
    them and try again.
    """

    name: str
    description: str
    input_schema: type[BaseModel]

    @abstractmethod
    def execute(self, data: BaseModel) -> ToolResult:
        """Execute the tool with validated input."""
        raise NotImplementedError

    def invoke(self, arguments: str) -> ToolResult:
        try:
            payload = json.loads(arguments or "{}")
        except json.JSONDecodeError as exc:
            return ToolResult(error=f"failed to parse arguments: {exc}")
        try:
            data = self.input_schema.model_validate(payload)
        except ValidationError as exc:
            return ToolResult(error=f"failed to parse arguments: {_describe(exc)}")
        try:
            return self.execute(data)
        except AccessDenied as exc:
            return ToolResult(error=str(exc))
        except OSError as exc:
            return ToolResult(error=f"{exc.__class__.__name__}: {exc.strerror or exc}")
        except ValueError as exc:
            return ToolResult(error=f"invalid argument: {exc}")

    def schema(self) -> ToolSchema:
        parameters = self.input_schema.model_json_schema()
        parameters.pop("title", None)
        for prop in parameters.get("properties", {}).values():
            prop.pop("title", None)
        return ToolSchema(name=self.name, description=self.description, parameters=parameters)


def _describe(exc: ValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(item) for item in error.get("loc", ())) or "arguments"
        parts.append(f"{location}: {error.get('msg')}")
    return "; ".join(parts)

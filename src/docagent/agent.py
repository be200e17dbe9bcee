"""Core agent loop."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from enum import Enum

from docagent.models.base import BaseProvider, LLMResponse, ProviderCancelled, ToolCall, TransportError
from docagent.safety.policy import SafetyPolicy
from docagent.tools.base import ToolResult
from docagent.tools.registry import ToolRegistry
from docagent.util.logging import get_logger, redact


logger = get_logger(__name__)

MAX_ITERATIONS_MESSAGE = "Task did not complete within maximum iterations"
CONTINUE_NUDGE = (
    "Please complete the task or use the available tools to gather the information you need. "
    "If the task is complete, please indicate that you are finished."
)


class AgentError(RuntimeError):
    """Raised when the provider fails; the task cannot continue."""


class TaskCancelled(AgentError):
    """Raised when the caller's cancellation event is set."""


class UnknownToolError(LookupError):
    pass


class EntryKind(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"
    TOOL_RESULT = "tool_result"


_PROMPT_LABELS = {
    EntryKind.USER: "Human",
    EntryKind.ASSISTANT: "Assistant",
    EntryKind.TOOL_RESULT: "Tool Result",
}


@dataclass(frozen=True)
class ConversationEntry:
    kind: EntryKind
    text: str


@dataclass
class TaskResult:
    success: bool
    final_content: str
    conversation: list[ConversationEntry] = field(default_factory=list)


def render_prompt(conversation: list[ConversationEntry]) -> str:
    """Flatten the transcript into the prompt text sent to the provider."""
    return "".join(f"{_PROMPT_LABELS[entry.kind]}: {entry.text}\n\n" for entry in conversation)


class Agent:
    """Runs one task: alternate provider calls and tool dispatch until the model finishes."""

    def __init__(
        self,
        provider: BaseProvider,
        registry: ToolRegistry,
        policy: SafetyPolicy | None = None,
    ) -> None:
        self.provider = provider
        self.registry = registry
        self.policy = policy or SafetyPolicy()

    @property
    def max_iterations(self) -> int:
        return self.policy.iterations_for(self.provider)

    def execute_task(self, prompt: str, cancel: threading.Event | None = None) -> TaskResult:
        conversation: list[ConversationEntry] = [ConversationEntry(EntryKind.USER, prompt)]
        schemas = self.registry.schemas()
        max_iterations = self.max_iterations
        logger.info(
            "Agent task started (provider=%s, max_iterations=%d).",
            self.provider.name,
            max_iterations,
        )
        for iteration in range(max_iterations):
            self._check_cancelled(cancel)
            try:
                response = self.provider.generate_response(render_prompt(conversation), schemas, cancel)
            except ProviderCancelled as exc:
                raise TaskCancelled("task cancelled") from exc
            except TransportError as exc:
                raise AgentError(f"failed to get LLM response: {exc}") from exc
            self._check_cancelled(cancel)
            self._log_response(iteration, response)
            conversation.append(ConversationEntry(EntryKind.ASSISTANT, response.content))

            if response.tool_calls:
                for call in response.tool_calls:
                    self._check_cancelled(cancel)
                    conversation.append(ConversationEntry(EntryKind.TOOL_RESULT, self._dispatch(call)))
            elif response.finished:
                logger.info("Agent task finished after %d iteration(s).", iteration + 1)
                return TaskResult(success=True, final_content=response.content, conversation=conversation)
            else:
                conversation.append(ConversationEntry(EntryKind.USER, CONTINUE_NUDGE))

        logger.info("Agent task exhausted %d iterations.", max_iterations)
        return TaskResult(success=False, final_content=MAX_ITERATIONS_MESSAGE, conversation=conversation)

    def _dispatch(self, call: ToolCall) -> str:
        try:
            result = self._execute_tool(call)
        except Exception as exc:  # noqa: BLE001
            logger.info("Tool %s failed: %s", call.name, redact(str(exc)))
            return f"Tool {call.name} failed: {exc}"
        if result.error is not None:
            logger.info("Tool %s error: %s", call.name, redact(result.error))
            return f"Tool {call.name} error: {result.error}"
        logger.debug("Tool %s result: %d characters", call.name, len(result.content))
        return f"Tool {call.name} result: {result.content}"

    def _execute_tool(self, call: ToolCall) -> ToolResult:
        tool = self.registry.get(call.name)
        if tool is None:
            raise UnknownToolError(f"tool not found: {call.name}")
        logger.info("Executing tool %s (id=%s).", call.name, call.id or "none")
        return tool.invoke(call.arguments)

    def _check_cancelled(self, cancel: threading.Event | None) -> None:
        if cancel is not None and cancel.is_set():
            raise TaskCancelled("task cancelled")

    def _log_response(self, iteration: int, response: LLMResponse) -> None:
        logger.debug(
            "Iteration %d: content=%d chars, tool_calls=%d, finished=%s",
            iteration + 1,
            len(response.content),
            len(response.tool_calls),
            response.finished,
        )
        for call in response.tool_calls:
            logger.debug("Tool call %s name=%s args=%s", call.id, call.name, redact(call.arguments))

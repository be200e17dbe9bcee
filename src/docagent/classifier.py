"""Classification of free-text agent output.

Provider stop reasons are vendor specific and unreliable, so the final text of
a task is matched against phrase tables instead. Token-limit phrases win over
error phrases, and an error phrase is ignored when the most recent tool
results show a successful write.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Sequence

from docagent.agent import ConversationEntry, EntryKind, MAX_ITERATIONS_MESSAGE

PHRASE_TABLE_VERSION = "1"

TOKEN_LIMIT_PHRASES = (
    "I reached the maximum response length",
    "maximum response length",
    "reached the token limit",
    "response is too long",
    "breaking this into smaller tasks",
    "due to length constraints",
    "response length limit",
    "token limit reached",
    "output limit exceeded",
    "maximum length exceeded",
)

ERROR_PHRASES = (
    "I encountered an error",
    "I'm experiencing an error",
    "I cannot complete",
    "I'm unable to complete",
    "Something went wrong",
    "There was an error",
    "I'm having trouble",
    "I failed to",
    "Error occurred",
    MAX_ITERATIONS_MESSAGE,
)

TOOL_SUCCESS_MARKERS = (
    "✅ success",
    "successfully wrote",
    "completed successfully",
)

TOOL_FAILURE_MARKERS = (
    "❌ error",
    "failed:",
    "access denied",
)

RECENT_TOOL_WINDOW = 5


class ResponseKind(str, Enum):
    CONTINUE = "continue"
    TOKEN_LIMIT = "token_limit"
    ERROR = "error"


@dataclass(frozen=True)
class PhraseTable:
    version: str = PHRASE_TABLE_VERSION
    token_limit: tuple[str, ...] = TOKEN_LIMIT_PHRASES
    errors: tuple[str, ...] = ERROR_PHRASES
    tool_success: tuple[str, ...] = TOOL_SUCCESS_MARKERS
    tool_failure: tuple[str, ...] = TOOL_FAILURE_MARKERS


DEFAULT_PHRASES = PhraseTable()


def _contains_any(text: str, phrases: Sequence[str]) -> bool:
    lowered = text.lower()
    return any(phrase.lower() in lowered for phrase in phrases)


def is_token_limit_message(text: str, phrases: PhraseTable = DEFAULT_PHRASES) -> bool:
    return _contains_any(text, phrases.token_limit)


def is_error_response(text: str, phrases: PhraseTable = DEFAULT_PHRASES) -> bool:
    """Error phrase present and not a token-limit message. Ignores tool history."""
    return is_task_result_error(text, None, phrases)


def has_recent_successful_tools(
    conversation: Sequence[ConversationEntry],
    phrases: PhraseTable = DEFAULT_PHRASES,
    window: int = RECENT_TOOL_WINDOW,
) -> bool:
    """True when, within the last ``window`` entries, a tool success is newer than any tool failure."""
    for entry in reversed(conversation[-window:]):
        if entry.kind is not EntryKind.TOOL_RESULT:
            continue
        if _contains_any(entry.text, phrases.tool_success):
            return True
        if _contains_any(entry.text, phrases.tool_failure):
            return False
    return False


def is_task_result_error(
    text: str,
    conversation: Sequence[ConversationEntry] | None,
    phrases: PhraseTable = DEFAULT_PHRASES,
) -> bool:
    if not text.strip():
        return False
    if is_token_limit_message(text, phrases):
        return False
    if not _contains_any(text, phrases.errors):
        return False
    if conversation is not None and has_recent_successful_tools(conversation, phrases):
        return False
    return True


def classify(
    text: str,
    conversation: Sequence[ConversationEntry] | None = None,
    phrases: PhraseTable = DEFAULT_PHRASES,
) -> ResponseKind:
    if is_token_limit_message(text, phrases):
        return ResponseKind.TOKEN_LIMIT
    if is_task_result_error(text, conversation, phrases):
        return ResponseKind.ERROR
    return ResponseKind.CONTINUE

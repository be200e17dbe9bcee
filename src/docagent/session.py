"""Documentation session: runs the agent, classifies its output and manages the README lifecycle.

The session never talks to the terminal. Each agent run ends in a
``DecisionPoint`` listing the actions available; a driver (interactive or
non-interactive) picks one and hands it back through ``apply``.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol, Sequence

from docagent.agent import Agent, AgentError, TaskResult
from docagent.classifier import DEFAULT_PHRASES, PhraseTable, ResponseKind, classify
from docagent.preserve import DEFAULT_MARKERS, MarkerPair, validate_preserved_sections
from docagent.prompts import PromptBuilder
from docagent.safety.policy import SafetyPolicy
from docagent.safety.sandbox import SandboxLayout
from docagent.util.logging import get_logger


logger = get_logger(__name__)


class SessionError(RuntimeError):
    """Raised on invalid session transitions."""


class SessionFailed(SessionError):
    """Raised when the session ends without a usable document."""


class SessionAborted(SessionError):
    """Raised when the user gives up after an agent error."""


class SessionState(str, Enum):
    INIT = "init"
    WORKING = "working"
    AWAITING_USER = "awaiting_user"
    FINALIZED = "finalized"
    RESTORED = "restored"
    FAILED = "failed"


class Action(str, Enum):
    ACCEPT = "Accept and finalize"
    REQUEST_CHANGES = "Request changes"
    CANCEL = "Cancel"
    RETRY = "Try again"
    EXIT = "Exit"


class DecisionKind(str, Enum):
    REVIEW = "review"
    UNCHANGED = "unchanged"
    ERROR = "error"


_ACTIONS = {
    DecisionKind.REVIEW: (Action.ACCEPT, Action.REQUEST_CHANGES, Action.CANCEL),
    DecisionKind.UNCHANGED: (Action.RETRY, Action.EXIT),
    DecisionKind.ERROR: (Action.RETRY, Action.EXIT),
}


@dataclass
class DecisionPoint:
    kind: DecisionKind
    message: str
    result: TaskResult
    document: str | None = None
    warnings: list[str] = field(default_factory=list)

    @property
    def actions(self) -> tuple[Action, ...]:
        return _ACTIONS[self.kind]

    @property
    def default(self) -> Action:
        return self.actions[0]


class DocumentationSession:
    def __init__(
        self,
        agent: Agent,
        layout: SandboxLayout,
        prompts: PromptBuilder | None = None,
        policy: SafetyPolicy | None = None,
        phrases: PhraseTable = DEFAULT_PHRASES,
        markers: Sequence[MarkerPair] = DEFAULT_MARKERS,
    ) -> None:
        self.agent = agent
        self.layout = layout
        self.prompts = prompts or PromptBuilder(layout.package_root, layout.target_relpath)
        self.policy = policy or agent.policy
        self.phrases = phrases
        self.markers = markers
        self.state = SessionState.INIT
        self.original_document: str | None = None
        self.current_prompt = ""
        self.pending: DecisionPoint | None = None

    def start(self) -> None:
        """Back up the current document and prepare the initial prompt."""
        self._require(SessionState.INIT)
        self.original_document = self.read_document()
        if self.original_document is None:
            logger.info("No existing %s found, a new one will be created.", self.layout.target_relpath)
        else:
            logger.info(
                "Backed up original %s (%d characters).",
                self.layout.target_relpath,
                len(self.original_document),
            )
        self.current_prompt = self.prompts.initial()
        self.state = SessionState.WORKING

    def step(self, cancel: threading.Event | None = None) -> DecisionPoint:
        """Run the agent until its output needs a decision."""
        self._require(SessionState.WORKING)
        recoveries = 0
        while True:
            try:
                result = self.agent.execute_task(self.current_prompt, cancel)
            except AgentError:
                self.restore()
                self.state = SessionState.FAILED
                raise
            kind = classify(result.final_content, result.conversation, self.phrases)
            if kind is ResponseKind.TOKEN_LIMIT and recoveries < self.policy.max_limit_recoveries:
                recoveries += 1
                logger.info("Agent hit token limits, switching to section-based generation.")
                self.current_prompt = self.prompts.limit_hit()
                continue
            break
        if kind is ResponseKind.CONTINUE:
            decision = self._decide(result)
        else:
            decision = DecisionPoint(
                kind=DecisionKind.ERROR,
                message="Error detected in LLM response.",
                result=result,
            )
        self.pending = decision
        self.state = SessionState.AWAITING_USER
        return decision

    def apply(self, action: Action, feedback: str | None = None) -> SessionState:
        """Carry out the user's choice for the pending decision."""
        self._require(SessionState.AWAITING_USER)
        decision = self.pending
        if decision is None or action not in decision.actions:
            raise SessionError(f"action {action.value!r} is not available")
        if action is Action.ACCEPT:
            logger.info("Documentation accepted (%s).", self.layout.target_relpath)
            self.state = SessionState.FINALIZED
        elif action is Action.REQUEST_CHANGES:
            if not feedback or not feedback.strip():
                raise SessionError("requested changes must not be empty")
            self.current_prompt = self.prompts.revision(feedback)
            self.state = SessionState.WORKING
        elif action is Action.RETRY:
            if decision.kind is DecisionKind.ERROR:
                self.current_prompt = self.prompts.error_retry()
            else:
                self.current_prompt = self.prompts.not_written()
            self.state = SessionState.WORKING
        else:
            self.restore()
            self.state = SessionState.RESTORED
        self.pending = None
        return self.state

    def force_retry(self) -> None:
        """Retry with the explicit instruction to write the document, whatever the last outcome."""
        self._require(SessionState.AWAITING_USER)
        self.current_prompt = self.prompts.not_written()
        self.pending = None
        self.state = SessionState.WORKING

    def fail(self, reason: str) -> SessionFailed:
        self.restore()
        self.pending = None
        self.state = SessionState.FAILED
        return SessionFailed(reason)

    def abort(self) -> None:
        """Undo the session's changes from any unfinished state.

        Before ``start`` has taken the backup there is nothing to undo.
        """
        if self.state in {SessionState.INIT, SessionState.FINALIZED, SessionState.RESTORED, SessionState.FAILED}:
            return
        self.restore()
        self.pending = None
        self.state = SessionState.RESTORED

    def read_document(self) -> str | None:
        try:
            return self.layout.target_path.read_bytes().decode("utf-8", errors="surrogateescape")
        except FileNotFoundError:
            return None

    def document_changed(self) -> bool:
        current = self.read_document()
        if current is None:
            return False
        if self.original_document is None:
            return current != ""
        return current != self.original_document

    def restore(self) -> None:
        """Put the target back exactly as it was before the session."""
        target = self.layout.target_path
        if self.original_document is not None:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(self.original_document.encode("utf-8", errors="surrogateescape"))
            logger.info("Restored original %s (%d characters).", self.layout.target_relpath, len(self.original_document))
            return
        try:
            target.unlink()
        except FileNotFoundError:
            return
        logger.info("Removed created %s.", self.layout.target_relpath)

    def _decide(self, result: TaskResult) -> DecisionPoint:
        if not self.document_changed():
            return DecisionPoint(
                kind=DecisionKind.UNCHANGED,
                message=f"{self.layout.target_name} file wasn't updated. What would you like to do?",
                result=result,
            )
        document = self.read_document()
        warnings: list[str] = []
        if self.original_document is not None and document is not None:
            warnings = validate_preserved_sections(self.original_document, document, self.markers)
        for warning in warnings:
            logger.warning(warning)
        return DecisionPoint(
            kind=DecisionKind.REVIEW,
            message="What would you like to do?",
            result=result,
            document=document,
            warnings=warnings,
        )

    def _require(self, state: SessionState) -> None:
        if self.state is not state:
            raise SessionError(f"session is {self.state.value}, expected {state.value}")


class UserInterface(Protocol):
    def notify(self, message: str) -> None:
        ...

    def show_decision(self, decision: DecisionPoint) -> None:
        ...

    def choose(self, decision: DecisionPoint) -> Action:
        ...

    def ask_changes(self) -> str | None:
        ...


def run_interactive(
    session: DocumentationSession,
    ui: UserInterface,
    cancel: threading.Event | None = None,
) -> SessionState:
    if session.state is SessionState.INIT:
        session.start()
    while True:
        ui.notify("LLM agent is working...")
        decision = session.step(cancel)
        ui.show_decision(decision)
        while True:
            action = ui.choose(decision)
            if action is not Action.REQUEST_CHANGES:
                state = session.apply(action)
                break
            changes = ui.ask_changes()
            if changes is None or not changes.strip():
                ui.notify("No changes specified.")
                continue
            state = session.apply(action, changes)
            break
        if state is SessionState.FINALIZED:
            return state
        if state is SessionState.RESTORED:
            if decision.kind is DecisionKind.ERROR:
                raise SessionAborted("user chose to exit due to LLM error")
            return state


def run_non_interactive(
    session: DocumentationSession,
    cancel: threading.Event | None = None,
) -> SessionState:
    """Accept the first changed document; otherwise retry once, then fail."""
    if session.state is SessionState.INIT:
        session.start()
    retried = False
    while True:
        decision = session.step(cancel)
        if decision.kind is DecisionKind.REVIEW:
            return session.apply(Action.ACCEPT)
        if retried:
            reason = f"failed to create {session.layout.target_name} after two attempts"
            if decision.kind is DecisionKind.ERROR:
                reason = f"LLM agent encountered an error: {decision.result.final_content}"
            raise session.fail(reason)
        logger.info("Agent outcome was %s, trying again with specific instructions.", decision.kind.value)
        retried = True
        session.force_retry()

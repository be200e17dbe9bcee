"""Terminal front end for interactive documentation sessions."""

from __future__ import annotations

import sys
from typing import Callable, TextIO

from docagent.session import Action, DecisionKind, DecisionPoint


END_OF_CHANGES = "."


class ConsoleUI:
    """Prompts on a text stream; input and output are injectable for tests."""

    def __init__(
        self,
        input_func: Callable[[str], str] = input,
        out: TextIO | None = None,
    ) -> None:
        self.input_func = input_func
        self.out = out or sys.stdout

    def _print(self, text: str = "") -> None:
        print(text, file=self.out)

    def notify(self, message: str) -> None:
        self._print(message)

    def confirm(self, question: str, default: bool = True) -> bool:
        hint = "Y/n" if default else "y/N"
        try:
            answer = self.input_func(f"{question} [{hint}] ").strip().lower()
        except EOFError:
            return False
        if not answer:
            return default
        return answer in {"y", "yes"}

    def show_decision(self, decision: DecisionPoint) -> None:
        if decision.kind is DecisionKind.REVIEW and decision.document is not None:
            lines = decision.document.count("\n") + (0 if decision.document.endswith("\n") else 1)
            self._print(f"Generated documentation ({lines} lines, {len(decision.document)} characters):")
            self._print("=" * 60)
            self._print(decision.document.rstrip("\n"))
            self._print("=" * 60)
            for warning in decision.warnings:
                self._print(f"Warning: {warning}")
        elif decision.kind is DecisionKind.ERROR:
            self._print("The LLM agent reported an error:")
            self._print(decision.result.final_content)
        elif decision.result.final_content:
            self._print("Agent response:")
            self._print(decision.result.final_content)
        self._print(decision.message)

    def choose(self, decision: DecisionPoint) -> Action:
        actions = decision.actions
        for number, action in enumerate(actions, start=1):
            marker = " (default)" if action is decision.default else ""
            self._print(f"  {number}. {action.value}{marker}")
        while True:
            try:
                answer = self.input_func("Choice: ").strip()
            except EOFError:
                return Action.CANCEL if Action.CANCEL in actions else Action.EXIT
            if not answer:
                return decision.default
            if answer.isdigit() and 1 <= int(answer) <= len(actions):
                return actions[int(answer) - 1]
            for action in actions:
                if answer.lower() == action.value.lower():
                    return action
            self._print(f"Please enter a number between 1 and {len(actions)}.")

    def ask_changes(self) -> str | None:
        self._print(f"Describe the changes you want. Finish with a line containing only '{END_OF_CHANGES}'.")
        lines: list[str] = []
        while True:
            try:
                line = self.input_func("> ")
            except EOFError:
                break
            if line.strip() == END_OF_CHANGES:
                break
            lines.append(line)
        text = "\n".join(lines).strip()
        return text or None

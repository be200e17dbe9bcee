"""Safety policy configuration."""

from __future__ import annotations

from dataclasses import dataclass

from docagent.models.base import BaseProvider


@dataclass
class SafetyPolicy:
    max_iterations: int = 15
    unstable_max_iterations: int = 20
    max_limit_recoveries: int = 3

    def iterations_for(self, provider: BaseProvider) -> int:
        if provider.unstable:
            return self.unstable_max_iterations
        return self.max_iterations

"""Result types for stack orchestration."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Tuple

from stackwright.orchestration.differ import Difference
from stackwright.remote.base import RemoteStackState


class OutcomeKind(Enum):
    """How a single stack settled."""

    UNCHANGED = "unchanged"  # live state already matches, nothing issued
    APPLIED = "applied"  # mutating call tracked to completion
    SKIPPED = "skipped"  # diff-only or change-set run, nothing applied
    FAILED = "failed"


@dataclass
class StackOutcome:
    """Outcome for one stack in a run."""

    stack_name: str
    kind: OutcomeKind
    state: RemoteStackState | None = None
    changes: List[Difference] = field(default_factory=list)
    change_set_id: str | None = None
    error: BaseException | None = None

    @property
    def outputs(self) -> Mapping[str, str]:
        """Outputs of the stack as of this outcome; empty when it does not exist."""
        return self.state.outputs if self.state is not None else {}

    @classmethod
    def unchanged(cls, name: str, state: RemoteStackState | None) -> StackOutcome:
        return cls(stack_name=name, kind=OutcomeKind.UNCHANGED, state=state)

    @classmethod
    def applied(
        cls, name: str, state: RemoteStackState | None, changes: List[Difference] | None = None
    ) -> StackOutcome:
        return cls(stack_name=name, kind=OutcomeKind.APPLIED, state=state, changes=changes or [])

    @classmethod
    def skipped(
        cls,
        name: str,
        state: RemoteStackState | None,
        changes: List[Difference],
        change_set_id: str | None = None,
    ) -> StackOutcome:
        return cls(
            stack_name=name,
            kind=OutcomeKind.SKIPPED,
            state=state,
            changes=changes,
            change_set_id=change_set_id,
        )

    @classmethod
    def failed(cls, name: str, error: BaseException) -> StackOutcome:
        return cls(stack_name=name, kind=OutcomeKind.FAILED, error=error)


@dataclass
class RunReport:
    """Result of one orchestration run across all selected stacks."""

    action: str
    outcomes: Dict[str, StackOutcome] = field(default_factory=dict)
    duration_seconds: float = 0.0

    @property
    def failures(self) -> List[Tuple[str, BaseException]]:
        """(stack name, cause) for every failed stack."""
        return [
            (name, outcome.error)
            for name, outcome in self.outcomes.items()
            if outcome.kind is OutcomeKind.FAILED and outcome.error is not None
        ]

    @property
    def failed_count(self) -> int:
        return len(self.failures)

    @property
    def success(self) -> bool:
        """Whether every stack settled without errors."""
        return self.failed_count == 0

    def count(self, kind: OutcomeKind) -> int:
        return sum(1 for outcome in self.outcomes.values() if outcome.kind is kind)

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON output."""
        return {
            "action": self.action,
            "duration_seconds": round(self.duration_seconds, 3),
            "success": self.success,
            "failed": self.failed_count,
            "stacks": {
                name: {
                    "outcome": outcome.kind.value,
                    "status": outcome.state.status if outcome.state else None,
                    "changes": len(outcome.changes),
                    "change_set_id": outcome.change_set_id,
                    "error": str(outcome.error) if outcome.error else None,
                }
                for name, outcome in self.outcomes.items()
            },
        }


class ResultCollector:
    """Aggregates per-stack outcomes as they settle."""

    def __init__(self, action: str) -> None:
        self._report = RunReport(action=action)

    def record(self, outcome: StackOutcome) -> None:
        """Record a settled stack."""
        self._report.outcomes[outcome.stack_name] = outcome

    def record_error(self, stack_name: str, error: BaseException) -> None:
        """Record a stack failure."""
        self.record(StackOutcome.failed(stack_name, error))

    def finalize(self, duration: float) -> RunReport:
        """Return the final report with duration set."""
        self._report.duration_seconds = duration
        return self._report

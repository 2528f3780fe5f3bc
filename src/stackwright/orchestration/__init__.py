"""Orchestration package: dependency-ordered stack lifecycles."""

from stackwright.orchestration.differ import DiffKind, Difference, StackSnapshot, StateDiffer
from stackwright.orchestration.executor import OrchestrationExecutor
from stackwright.orchestration.graph import DependencyGraph
from stackwright.orchestration.lifecycle import (
    AsyncioScheduler,
    LifecycleStateMachine,
    Phase,
    Scheduler,
    classify_status,
)
from stackwright.orchestration.parameters import ParameterResolver
from stackwright.orchestration.results import (
    OutcomeKind,
    ResultCollector,
    RunReport,
    StackOutcome,
)
from stackwright.orchestration.tasks import TaskCache

__all__ = [
    "AsyncioScheduler",
    "DependencyGraph",
    "DiffKind",
    "Difference",
    "LifecycleStateMachine",
    "OrchestrationExecutor",
    "OutcomeKind",
    "ParameterResolver",
    "Phase",
    "ResultCollector",
    "RunReport",
    "Scheduler",
    "StackOutcome",
    "StackSnapshot",
    "StateDiffer",
    "TaskCache",
    "classify_status",
]

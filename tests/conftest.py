"""Root test configuration."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Mapping

import pytest
import structlog
from stackwright.core.errors import NoChangesError
from stackwright.declarations import Declarations
from stackwright.remote.base import (
    ChangeSetState,
    OperationHandle,
    RemoteStackState,
    StackEvent,
    StackResource,
)

GONE = "GONE"


def pytest_configure(config):
    """Configure structlog for tests to suppress debug/info output."""
    logging.basicConfig(level=logging.WARNING, force=True)
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.processors.add_log_level,
            structlog.processors.format_exc_info,
            structlog.dev.ConsoleRenderer(),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )


class ImmediateScheduler:
    """Scheduler that records requested sleeps and only yields to the loop."""

    def __init__(self) -> None:
        self.sleeps: list[float] = []

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        await asyncio.sleep(0)


class FakeStackClient:
    """In-memory provisioning API driven by scripted status sequences.

    Each mutating call starts an operation whose statuses are handed out one
    per ``describe`` of the stack. ``GONE`` makes the stack disappear.
    Every call is appended to ``calls`` as ``(operation, stack name)``.
    """

    def __init__(self) -> None:
        self.stacks: dict[str, RemoteStackState] = {}
        self.templates: dict[str, dict[str, Any]] = {}
        self.events_by_stack: dict[str, list[StackEvent]] = {}
        self.resources: dict[str, list[StackResource]] = {}
        self.calls: list[tuple[str, str]] = []
        self.submitted: dict[str, dict[str, Any]] = {}
        self._scripts: dict[str, list[str]] = {}
        self._outputs: dict[str, dict[str, str]] = {}
        self._reasons: dict[str, str] = {}
        self._active: dict[str, list[str]] = {}
        self._failures: dict[tuple[str, str], BaseException] = {}
        self._change_sets: dict[str, list[str]] = {}

    # setup helpers

    def add_stack(
        self,
        name: str,
        status: str = "CREATE_COMPLETE",
        *,
        parameters: Mapping[str, str] | None = None,
        outputs: Mapping[str, str] | None = None,
        template: Mapping[str, Any] | None = None,
    ) -> None:
        self.stacks[name] = RemoteStackState(
            name=name,
            status=status,
            stack_id=f"id-{name}",
            parameters=dict(parameters or {}),
            outputs=dict(outputs or {}),
        )
        if template is not None:
            self.templates[name] = dict(template)

    def script(self, name: str, *statuses: str, reason: str | None = None) -> None:
        """Statuses the next operation on ``name`` reports while polled."""
        self._scripts[name] = list(statuses)
        if reason:
            self._reasons[name] = reason

    def set_outputs(self, name: str, outputs: Mapping[str, str]) -> None:
        """Outputs the stack exposes once its operation finishes."""
        self._outputs[name] = dict(outputs)

    def fail(self, operation: str, name: str, error: BaseException) -> None:
        self._failures[(operation, name)] = error

    def add_event(self, name: str, event_id: str, status: str, resource: str = "Resource") -> None:
        """Prepend an event; the event list is newest first."""
        event = StackEvent(event_id=event_id, logical_resource_id=resource, resource_status=status)
        self.events_by_stack.setdefault(name, []).insert(0, event)

    def script_change_set(self, name: str, *statuses: str) -> None:
        self._change_sets[name] = list(statuses)

    def mutations(self) -> list[tuple[str, str]]:
        return [call for call in self.calls if call[0] in ("create", "update", "delete")]

    def index(self, operation: str, name: str) -> int:
        return self.calls.index((operation, name))

    # internals

    def _resolve(self, target: str) -> str:
        return target[3:] if target.startswith("id-") else target

    def _check(self, operation: str, name: str) -> None:
        error = self._failures.get((operation, name))
        if error is not None:
            raise error

    def _start(self, name: str, default: list[str]) -> None:
        self._active[name] = self._scripts.pop(name, default)

    # RemoteStackClient

    async def describe(self, name: str) -> RemoteStackState | None:
        name = self._resolve(name)
        self.calls.append(("describe", name))
        await asyncio.sleep(0)
        self._check("describe", name)

        pending = self._active.get(name)
        if pending:
            status = pending.pop(0)
            if not pending:
                del self._active[name]
                self.calls.append(("settled", name))
            if status == GONE:
                self.stacks.pop(name, None)
                return None
            current = self.stacks.get(name) or RemoteStackState(
                name=name, status=status, stack_id=f"id-{name}"
            )
            outputs = current.outputs
            if status.endswith("_COMPLETE") and name in self._outputs:
                outputs = self._outputs[name]
            self.stacks[name] = RemoteStackState(
                name=name,
                status=status,
                stack_id=current.stack_id,
                status_reason=self._reasons.get(name),
                parameters=current.parameters,
                outputs=outputs,
            )
        return self.stacks.get(name)

    async def get_template(self, name: str) -> dict[str, Any] | None:
        self.calls.append(("get_template", name))
        return self.templates.get(name)

    async def create(self, name, parameters, template, tags, policy, *, on_failure=None):
        self.calls.append(("create", name))
        self._check("create", name)
        self.submitted[name] = {
            "parameters": dict(parameters),
            "tags": dict(tags),
            "policy": policy,
            "on_failure": on_failure,
        }
        self.stacks[name] = RemoteStackState(
            name=name, status="CREATE_IN_PROGRESS", stack_id=f"id-{name}", parameters=dict(parameters)
        )
        self.templates[name] = dict(template)
        self._start(name, ["CREATE_IN_PROGRESS", "CREATE_COMPLETE"])
        return OperationHandle(stack_name=name, stack_id=f"id-{name}")

    async def update(self, name, parameters, template, tags, policy):
        self.calls.append(("update", name))
        self._check("update", name)
        self.submitted[name] = {"parameters": dict(parameters), "tags": dict(tags), "policy": policy}
        self._start(name, ["UPDATE_IN_PROGRESS", "UPDATE_COMPLETE"])
        return OperationHandle(stack_name=name, stack_id=f"id-{name}")

    async def delete(self, name: str) -> OperationHandle:
        self.calls.append(("delete", name))
        self._check("delete", name)
        self._start(name, ["DELETE_IN_PROGRESS", GONE])
        return OperationHandle(stack_name=name, stack_id=f"id-{name}")

    async def events(self, name: str) -> list[StackEvent]:
        return list(self.events_by_stack.get(self._resolve(name), []))

    async def list_resources(self, name: str) -> list[StackResource]:
        self.calls.append(("list_resources", name))
        return list(self.resources.get(name, []))

    async def create_change_set(self, name, change_set_name, parameters, template, tags):
        self.calls.append(("create_change_set", name))
        self.submitted[name] = {"change_set_name": change_set_name, "parameters": dict(parameters)}
        return OperationHandle(
            stack_name=name, stack_id=f"id-{name}", change_set_id=f"arn:{change_set_name}"
        )

    async def describe_change_set(self, name: str, change_set_id: str) -> ChangeSetState:
        statuses = self._change_sets.setdefault(name, ["CREATE_PENDING", "CREATE_COMPLETE"])
        status = statuses.pop(0) if len(statuses) > 1 else statuses[0]
        return ChangeSetState(change_set_id=change_set_id, status=status)

    async def validate_template(self, template: Mapping[str, Any]) -> dict[str, Any]:
        return {"Parameters": [{"ParameterKey": k} for k in template.get("Parameters", {})]}


def make_template(*parameters: str) -> dict[str, Any]:
    return {
        "Parameters": {name: {"Type": "String"} for name in parameters},
        "Resources": {"Bucket": {"Type": "AWS::S3::Bucket"}},
    }


@pytest.fixture
def fake_client():
    return FakeStackClient()


@pytest.fixture
def scheduler():
    return ImmediateScheduler()


@pytest.fixture
def template():
    """Factory for minimal templates declaring the given parameters."""
    return make_template


@pytest.fixture
def declare():
    """Factory building Declarations from a plain ``stacks`` mapping."""

    def _declare(stacks: Mapping[str, Any], defaults: Mapping[str, Any] | None = None) -> Declarations:
        document: dict[str, Any] = {"stacks": dict(stacks)}
        if defaults is not None:
            document["config"] = {"defaults": dict(defaults)}
        return Declarations.from_document(document)

    return _declare

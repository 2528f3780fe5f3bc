from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Mapping, Protocol, Sequence


@dataclass(frozen=True)
class StackEvent:
    """A single entry from a stack's event stream."""

    event_id: str
    logical_resource_id: str
    resource_status: str
    timestamp: datetime | None = None
    resource_type: str | None = None
    status_reason: str | None = None

    @property
    def failed(self) -> bool:
        return self.resource_status.endswith("_FAILED")


@dataclass(frozen=True)
class RemoteStackState:
    """Snapshot of a stack as known to the provisioning API."""

    name: str
    status: str
    stack_id: str | None = None
    status_reason: str | None = None
    parameters: Mapping[str, str] = field(default_factory=dict)
    outputs: Mapping[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class StackResource:
    """Summary of one resource owned by a stack."""

    resource_type: str
    logical_resource_id: str
    physical_resource_id: str | None = None


@dataclass(frozen=True)
class OperationHandle:
    """Reference returned by a mutating call, used to track it to completion."""

    stack_name: str
    stack_id: str | None = None
    change_set_id: str | None = None

    @property
    def target(self) -> str:
        """Identifier to poll; the id survives deletion, the name does not."""
        return self.stack_id or self.stack_name


@dataclass(frozen=True)
class ChangeSetState:
    change_set_id: str
    status: str
    status_reason: str | None = None


class RemoteStackClient(Protocol):
    """Contract for the provisioning API consumed by the orchestration core.

    Lookups return ``None`` when the stack does not exist; every other
    failure is raised.
    """

    async def describe(self, name: str) -> RemoteStackState | None:
        ...

    async def get_template(self, name: str) -> dict[str, Any] | None:
        ...

    async def create(
        self,
        name: str,
        parameters: Mapping[str, str],
        template: Mapping[str, Any],
        tags: Mapping[str, str],
        policy: Mapping[str, Any] | None,
        *,
        on_failure: str | None = None,
    ) -> OperationHandle:
        ...

    async def update(
        self,
        name: str,
        parameters: Mapping[str, str],
        template: Mapping[str, Any],
        tags: Mapping[str, str],
        policy: Mapping[str, Any] | None,
    ) -> OperationHandle:
        ...

    async def delete(self, name: str) -> OperationHandle:
        ...

    async def events(self, name: str) -> Sequence[StackEvent]:
        """Return the stack's events, newest first."""
        ...

    async def list_resources(self, name: str) -> list[StackResource]:
        ...

    async def create_change_set(
        self,
        name: str,
        change_set_name: str,
        parameters: Mapping[str, str],
        template: Mapping[str, Any],
        tags: Mapping[str, str],
    ) -> OperationHandle:
        ...

    async def describe_change_set(self, name: str, change_set_id: str) -> ChangeSetState:
        ...

    async def validate_template(self, template: Mapping[str, Any]) -> dict[str, Any]:
        ...

"""
Per-stack lifecycle tracking.

A mutating call is submitted once and then polled until the stack reaches a
terminal status:

    PENDING -> IN_PROGRESS (re-entered every tick) -> COMPLETE | FAILED

Each tick fetches the stack status before its events. Fetching events first
could show the final events of a transition whose status snapshot is still
stale, and the last events of the real terminal transition would be lost.
"""

from __future__ import annotations

import asyncio
from enum import Enum
from typing import Awaitable, Callable, List, Protocol, Sequence

import structlog

from stackwright.core.errors import (
    RemoteOperationError,
    StackFailedError,
    UnknownStatusError,
)
from stackwright.remote.base import (
    ChangeSetState,
    OperationHandle,
    RemoteStackClient,
    RemoteStackState,
    StackEvent,
)

DEFAULT_POLL_INTERVAL = 5.0

IN_PROGRESS_STATUSES = frozenset(
    {
        "CREATE_IN_PROGRESS",
        "ROLLBACK_IN_PROGRESS",
        "DELETE_IN_PROGRESS",
        "UPDATE_IN_PROGRESS",
        "UPDATE_COMPLETE_CLEANUP_IN_PROGRESS",
        "UPDATE_ROLLBACK_IN_PROGRESS",
        "UPDATE_ROLLBACK_COMPLETE_CLEANUP_IN_PROGRESS",
    }
)

COMPLETE_STATUSES = frozenset(
    {
        "CREATE_COMPLETE",
        "ROLLBACK_COMPLETE",
        "DELETE_COMPLETE",
        "UPDATE_COMPLETE",
        "UPDATE_ROLLBACK_COMPLETE",
    }
)

FAILED_STATUSES = frozenset(
    {
        "CREATE_FAILED",
        "ROLLBACK_FAILED",
        "DELETE_FAILED",
        "UPDATE_FAILED",
        "UPDATE_ROLLBACK_FAILED",
    }
)

CHANGE_SET_IN_PROGRESS = frozenset({"CREATE_PENDING", "CREATE_IN_PROGRESS"})
CHANGE_SET_COMPLETE = frozenset({"CREATE_COMPLETE", "DELETE_COMPLETE"})
CHANGE_SET_FAILED = frozenset({"FAILED"})


class Phase(Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETE = "complete"
    FAILED = "failed"


def classify_status(status: str) -> Phase | None:
    """Map a provider status onto a lifecycle phase; None if unrecognized."""
    if status in IN_PROGRESS_STATUSES:
        return Phase.IN_PROGRESS
    if status in COMPLETE_STATUSES:
        return Phase.COMPLETE
    if status in FAILED_STATUSES:
        return Phase.FAILED
    return None


def classify_change_set_status(status: str) -> Phase | None:
    if status in CHANGE_SET_IN_PROGRESS:
        return Phase.IN_PROGRESS
    if status in CHANGE_SET_COMPLETE:
        return Phase.COMPLETE
    if status in CHANGE_SET_FAILED:
        return Phase.FAILED
    return None


def events_since(events: Sequence[StackEvent], low_water_mark: str | None) -> List[StackEvent]:
    """Events newer than the mark, oldest first.

    ``events`` is newest first; scanning stops at the mark.
    """
    fresh: List[StackEvent] = []
    for event in events:
        if event.event_id == low_water_mark:
            break
        fresh.append(event)
    fresh.reverse()
    return fresh


class Scheduler(Protocol):
    """Timer used between polls."""

    async def sleep(self, seconds: float) -> None:
        ...


class AsyncioScheduler:
    async def sleep(self, seconds: float) -> None:
        await asyncio.sleep(seconds)


Submit = Callable[[], Awaitable[OperationHandle]]


class LifecycleStateMachine:
    """Drives one mutating operation on one stack to a terminal state.

    There is no cancellation: once submitted, an operation is tracked until
    the provider reports a terminal status.
    """

    def __init__(
        self,
        client: RemoteStackClient,
        stack_name: str,
        *,
        scheduler: Scheduler | None = None,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        logger: structlog.stdlib.BoundLogger | None = None,
    ) -> None:
        self._client = client
        self.stack_name = stack_name
        self._scheduler = scheduler or AsyncioScheduler()
        self._poll_interval = poll_interval
        self._log = (logger or structlog.get_logger()).bind(stack=stack_name)
        self.phase = Phase.PENDING
        self.low_water_mark: str | None = None
        self.ticks = 0

    def _transition(self, phase: Phase) -> None:
        if phase is not self.phase:
            self._log.debug("lifecycle_transition", from_phase=self.phase.value, to_phase=phase.value)
        self.phase = phase

    async def run(self, submit: Submit, *, deleting: bool = False) -> RemoteStackState:
        """Submit a stack operation and poll it to completion.

        Returns the final stack state on a ``*_COMPLETE`` status. Raises
        StackFailedError on a ``*_FAILED`` status and UnknownStatusError on
        anything unrecognized.
        """
        # the mark must predate the mutating call
        self.low_water_mark = await self._newest_event_id(self.stack_name)
        self._log.debug("low_water_mark_captured", event_id=self.low_water_mark)

        try:
            handle = await submit()
        except Exception:
            self._transition(Phase.FAILED)
            raise

        self._transition(Phase.IN_PROGRESS)
        return await self._poll_stack(handle, deleting=deleting)

    async def _newest_event_id(self, target: str) -> str | None:
        events = await self._client.events(target)
        return events[0].event_id if events else None

    async def _poll_stack(self, handle: OperationHandle, *, deleting: bool) -> RemoteStackState:
        target = handle.target
        while True:
            await self._scheduler.sleep(self._poll_interval)
            self.ticks += 1

            state = await self._client.describe(target)
            events = await self._client.events(target)
            self._emit(events_since(events, self.low_water_mark))
            if events:
                self.low_water_mark = events[0].event_id

            if state is None:
                if deleting:
                    self._transition(Phase.COMPLETE)
                    return RemoteStackState(
                        name=self.stack_name, status="DELETE_COMPLETE", stack_id=handle.stack_id
                    )
                self._transition(Phase.FAILED)
                raise RemoteOperationError(
                    f"Stack {self.stack_name} disappeared while in progress",
                    stack_name=self.stack_name,
                )

            phase = classify_status(state.status)
            self._log.debug("stack_status", status=state.status, tick=self.ticks)

            if phase is Phase.IN_PROGRESS:
                self._transition(Phase.IN_PROGRESS)
                continue
            if phase is Phase.COMPLETE:
                self._transition(Phase.COMPLETE)
                return state

            self._transition(Phase.FAILED)
            if phase is Phase.FAILED:
                raise StackFailedError(
                    f"Stack failed: {state.status_reason}",
                    stack_name=self.stack_name,
                    code=state.status,
                    reason=state.status_reason,
                )
            raise UnknownStatusError(state.status, state.status_reason, stack_name=self.stack_name)

    def _emit(self, events: Sequence[StackEvent]) -> None:
        for event in events:
            fields = {
                "event_id": event.event_id,
                "resource": event.logical_resource_id,
                "resource_type": event.resource_type,
                "status": event.resource_status,
                "reason": event.status_reason,
            }
            if event.failed:
                self._log.error("stack_event", **fields)
            else:
                self._log.info("stack_event", **fields)

    async def run_change_set(self, submit: Submit) -> ChangeSetState:
        """Submit a change set and poll it until it is ready or fails."""
        try:
            handle = await submit()
        except Exception:
            self._transition(Phase.FAILED)
            raise
        if not handle.change_set_id:
            self._transition(Phase.FAILED)
            raise RemoteOperationError(
                "Change set was not created", stack_name=self.stack_name
            )

        self._transition(Phase.IN_PROGRESS)
        while True:
            await self._scheduler.sleep(self._poll_interval)
            self.ticks += 1
            change_set = await self._client.describe_change_set(
                self.stack_name, handle.change_set_id
            )
            phase = classify_change_set_status(change_set.status)
            self._log.debug(
                "change_set_status", change_set=change_set.change_set_id, status=change_set.status
            )

            if phase is Phase.IN_PROGRESS:
                continue
            if phase is Phase.COMPLETE:
                self._transition(Phase.COMPLETE)
                return change_set

            self._transition(Phase.FAILED)
            if phase is Phase.FAILED:
                raise StackFailedError(
                    f"Change set failed: {change_set.status_reason}",
                    stack_name=self.stack_name,
                    code=change_set.status,
                    reason=change_set.status_reason,
                )
            raise UnknownStatusError(
                change_set.status, change_set.status_reason, stack_name=self.stack_name
            )

"""
Orchestration of stack runs.

Every selected stack gets one lazily created task per run. Tasks start
together; ordering comes from a task awaiting the tasks of the stacks it
depends on (or, when destroying, the stacks that depend on it). Failures
stay with the failing stack and its dependents, and every task is awaited
to settlement before the run reports.
"""

from __future__ import annotations

import asyncio
import time
import uuid
from typing import Awaitable, Callable, Dict, Iterable, Mapping

import structlog

from stackwright.core.errors import (
    DependencyResolutionError,
    NoChangesError,
    OrchestrationError,
    RemoteOperationError,
)
from stackwright.declarations import Declarations, StackDeclaration
from stackwright.orchestration.differ import StackSnapshot, StateDiffer
from stackwright.orchestration.graph import DependencyGraph
from stackwright.orchestration.lifecycle import (
    DEFAULT_POLL_INTERVAL,
    LifecycleStateMachine,
    Scheduler,
)
from stackwright.orchestration.parameters import ParameterResolver
from stackwright.orchestration.results import ResultCollector, RunReport, StackOutcome
from stackwright.orchestration.tasks import TaskCache
from stackwright.remote.base import RemoteStackClient, RemoteStackState, StackResource

ROLLBACK_COMPLETE = "ROLLBACK_COMPLETE"


class _Run:
    """State scoped to a single orchestration run."""

    def __init__(
        self,
        client: RemoteStackClient,
        declarations: Declarations,
        graph: DependencyGraph,
        log: structlog.stdlib.BoundLogger,
        stack_fn: Callable[[_Run, str], Awaitable[StackOutcome]],
    ) -> None:
        self.client = client
        self.declarations = declarations
        self.graph = graph
        self.log = log
        self.describes: TaskCache[RemoteStackState | None] = TaskCache(client.describe)
        self.tasks: TaskCache[StackOutcome] = TaskCache(lambda name: stack_fn(self, name))
        self.resolver = ParameterResolver(declarations.defaults, self.describe, logger=log)

    async def describe(self, name: str) -> RemoteStackState | None:
        return await self.describes.get(name)

    async def settled(self, name: str, upstream: Iterable[str]) -> Dict[str, StackOutcome]:
        """Wait for the given stacks' tasks; any failure blocks ``name``."""
        results: Dict[str, StackOutcome] = {}
        for other in upstream:
            self.log.debug("waiting_on_stack", stack=name, waiting_on=other)
            try:
                results[other] = await self.tasks.get(other)
            except Exception as exc:
                raise DependencyResolutionError(name, other, exc) from exc
        return results


class OrchestrationExecutor:
    """Applies, creates and destroys selected stacks against a provider."""

    def __init__(
        self,
        client: RemoteStackClient,
        *,
        scheduler: Scheduler | None = None,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        differ: StateDiffer | None = None,
        logger: structlog.stdlib.BoundLogger | None = None,
    ) -> None:
        self._client = client
        self._scheduler = scheduler
        self._poll_interval = poll_interval
        self._differ = differ or StateDiffer()
        self._logger = logger or structlog.get_logger()

    def _machine(self, name: str, log: structlog.stdlib.BoundLogger) -> LifecycleStateMachine:
        return LifecycleStateMachine(
            self._client,
            name,
            scheduler=self._scheduler,
            poll_interval=self._poll_interval,
            logger=log,
        )

    def _start(
        self,
        action: str,
        declarations: Declarations,
        selected_names: Iterable[str] | None,
        stack_fn: Callable[[_Run, str], Awaitable[StackOutcome]],
    ) -> _Run:
        # validation happens before any remote call
        graph = DependencyGraph.build(declarations, selected_names)
        log = self._logger.bind(run_id=uuid.uuid4().hex[:12], action=action)
        log.info("run_started", stacks=list(graph.selected))
        return _Run(self._client, declarations, graph, log, stack_fn)

    async def _settle(self, action: str, run: _Run) -> RunReport:
        start = time.monotonic()
        collector = ResultCollector(action)
        names = run.graph.topological_order()

        results = await asyncio.gather(
            *(run.tasks.get(name) for name in names), return_exceptions=True
        )
        for name, result in zip(names, results):
            if isinstance(result, BaseException):
                run.log.error(
                    "stack_failed",
                    stack=name,
                    error_type=type(result).__name__,
                    error=str(result),
                )
                collector.record_error(name, result)
            else:
                collector.record(result)

        report = collector.finalize(time.monotonic() - start)
        run.log.info(
            "run_finished",
            duration=round(report.duration_seconds, 3),
            failed=report.failed_count,
        )
        if not report.success:
            raise OrchestrationError(action, report)
        return report

    # apply

    async def apply(
        self,
        declarations: Declarations,
        selected_names: Iterable[str] | None = None,
        *,
        diff_only: bool = False,
        change_set: bool = False,
    ) -> RunReport:
        """Bring every selected stack in line with its declaration.

        With ``diff_only`` nothing is mutated; differences are reported as
        skipped outcomes. With ``change_set``, existing stacks get a change
        set instead of an update.
        """

        async def stack_fn(run: _Run, name: str) -> StackOutcome:
            return await self._apply_stack(run, name, diff_only=diff_only, change_set=change_set)

        action = "plan" if diff_only else "apply"
        run = self._start(action, declarations, selected_names, stack_fn)
        return await self._settle(action, run)

    async def _apply_stack(
        self, run: _Run, name: str, *, diff_only: bool, change_set: bool
    ) -> StackOutcome:
        declaration = run.declarations[name]
        log = run.log.bind(stack=name)

        upstream, live = await asyncio.gather(
            run.settled(name, run.graph.scheduled_dependencies(name)),
            run.describe(name),
            return_exceptions=True,
        )
        # dependency failures take precedence over describe failures
        for result in (upstream, live):
            if isinstance(result, BaseException):
                raise result
        parameters = await run.resolver.resolve(declaration, upstream)

        # a stack whose first create rolled back only exists to be purged
        absent = live is None or live.status == ROLLBACK_COMPLETE
        live_snapshot = StackSnapshot(
            parameters={} if absent else dict(live.parameters),
            template=None if absent else await self._client.get_template(name),
        )
        changes = self._differ.diff(live_snapshot, StackSnapshot(parameters, declaration.template))

        if changes is None:
            log.info("stack_unchanged")
            return StackOutcome.unchanged(name, live)

        log.info("stack_changes_detected", changes=len(changes))
        if diff_only:
            return StackOutcome.skipped(name, live, changes)

        if live is not None and live.status == ROLLBACK_COMPLETE:
            log.info("deleting_failed_stack", status=live.status, stack_id=live.stack_id)
            await self._machine(name, log).run(lambda: self._client.delete(name), deleting=True)
            log.info("failed_stack_deleted")
            live = None

        if live is None:
            state = await self._create(name, declaration, parameters, log)
            return StackOutcome.applied(name, state, changes)

        if change_set:
            change_set_name = f"cs-{uuid.uuid4()}"
            log.info("change_set_create_started", change_set=change_set_name)
            ready = await self._machine(name, log).run_change_set(
                lambda: self._client.create_change_set(
                    name, change_set_name, parameters, declaration.template, declaration.tags
                )
            )
            log.info("change_set_created", change_set=ready.change_set_id)
            return StackOutcome.skipped(name, live, changes, change_set_id=ready.change_set_id)

        log.info("stack_update_started")
        try:
            state = await self._machine(name, log).run(
                lambda: self._client.update(
                    name, parameters, declaration.template, declaration.tags, declaration.policy
                )
            )
        except NoChangesError:
            log.info("stack_unchanged", reason="provider reported no updates")
            return StackOutcome.unchanged(name, live)

        _expect_status(name, state, "UPDATE_COMPLETE", "update")
        log.info("stack_update_complete", status=state.status)
        return StackOutcome.applied(name, state, changes)

    async def _create(
        self,
        name: str,
        declaration: StackDeclaration,
        parameters: Mapping[str, str],
        log: structlog.stdlib.BoundLogger,
        *,
        on_failure: str | None = None,
    ) -> RemoteStackState:
        log.info("stack_create_started")
        state = await self._machine(name, log).run(
            lambda: self._client.create(
                name,
                parameters,
                declaration.template,
                declaration.tags,
                declaration.policy,
                on_failure=on_failure,
            )
        )
        _expect_status(name, state, "CREATE_COMPLETE", "create")
        log.info("stack_create_complete", status=state.status)
        return state

    # create

    async def create(
        self,
        declarations: Declarations,
        selected_names: Iterable[str] | None = None,
    ) -> RunReport:
        """Create selected stacks without diffing; failed creates are deleted."""

        async def stack_fn(run: _Run, name: str) -> StackOutcome:
            declaration = run.declarations[name]
            log = run.log.bind(stack=name)
            upstream = await run.settled(name, run.graph.scheduled_dependencies(name))
            parameters = await run.resolver.resolve(declaration, upstream)
            state = await self._create(name, declaration, parameters, log, on_failure="DELETE")
            return StackOutcome.applied(name, state)

        run = self._start("create", declarations, selected_names, stack_fn)
        return await self._settle("create", run)

    # destroy

    async def destroy(
        self,
        declarations: Declarations,
        selected_names: Iterable[str] | None = None,
    ) -> RunReport:
        """Delete selected stacks, dependents before the stacks they depend on."""

        async def stack_fn(run: _Run, name: str) -> StackOutcome:
            return await self._destroy_stack(run, name, depended_by[name])

        run = self._start("destroy", declarations, selected_names, stack_fn)
        depended_by = run.graph.invert()
        run.log.debug("dependencies_inverted", depended_by=depended_by)
        return await self._settle("destroy", run)

    async def _destroy_stack(
        self, run: _Run, name: str, depended_by: Iterable[str]
    ) -> StackOutcome:
        log = run.log.bind(stack=name)
        await run.settled(name, depended_by)

        live = await self._client.describe(name)
        if live is None:
            log.info("stack_already_absent")
            return StackOutcome.unchanged(name, None)

        log.info("stack_delete_started", stack_id=live.stack_id)
        state = await self._machine(name, log).run(
            lambda: self._client.delete(name), deleting=True
        )
        _expect_status(name, state, "DELETE_COMPLETE", "delete")
        log.info("stack_deleted")
        return StackOutcome.applied(name, state)

    async def preview_destroy(
        self,
        declarations: Declarations,
        selected_names: Iterable[str] | None = None,
    ) -> Dict[str, list[StackResource]]:
        """List the resources each selected stack would take down with it."""
        graph = DependencyGraph.build(declarations, selected_names)
        names = list(graph.selected)
        listings = await asyncio.gather(*(self._client.list_resources(name) for name in names))
        return dict(zip(names, listings))


def _expect_status(name: str, state: RemoteStackState, expected: str, action: str) -> None:
    if state.status != expected:
        raise RemoteOperationError(
            f"Failed to {action} stack {name}: {state.status}",
            stack_name=name,
            code=state.status,
            reason=state.status_reason,
        )

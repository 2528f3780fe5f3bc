"""Layered parameter resolution for a single stack."""

from __future__ import annotations

from typing import Awaitable, Callable, Mapping

import structlog

from stackwright.core.errors import DependencyResolutionError
from stackwright.declarations import StackDeclaration
from stackwright.orchestration.results import OutcomeKind, StackOutcome
from stackwright.remote.base import RemoteStackState

Describe = Callable[[str], Awaitable[RemoteStackState | None]]


class ParameterResolver:
    """Merges defaults, dependency outputs and explicit stack parameters.

    Later layers win: defaults, then each dependency's outputs in
    ``dependsOn`` order, then the stack's own parameters. The result only
    keeps keys the stack's template declares.
    """

    def __init__(
        self,
        defaults: Mapping[str, str],
        describe: Describe,
        *,
        logger: structlog.stdlib.BoundLogger | None = None,
    ) -> None:
        self._defaults = dict(defaults)
        self._describe = describe
        self._log = logger or structlog.get_logger()

    async def resolve(
        self,
        stack: StackDeclaration,
        results_so_far: Mapping[str, StackOutcome],
    ) -> dict[str, str]:
        """Resolve the final parameter set for ``stack``.

        ``results_so_far`` holds settled outcomes of dependencies that are
        part of this run; any other dependency is read live from the
        provider.
        """
        parameters = dict(self._defaults)

        for dependency in stack.depends_on:
            outputs = await self._dependency_outputs(stack.name, dependency, results_so_far)
            parameters.update(outputs)

        parameters.update(stack.parameters)

        declared = stack.template_parameters
        resolved = {key: value for key, value in parameters.items() if key in declared}
        self._log.debug(
            "parameters_resolved",
            stack=stack.name,
            parameters=sorted(resolved),
            dropped=sorted(set(parameters) - set(resolved)),
        )
        return resolved

    async def _dependency_outputs(
        self,
        stack_name: str,
        dependency: str,
        results_so_far: Mapping[str, StackOutcome],
    ) -> Mapping[str, str]:
        outcome = results_so_far.get(dependency)
        if outcome is not None:
            if outcome.kind is OutcomeKind.FAILED:
                raise DependencyResolutionError(
                    stack_name, dependency, outcome.error or "dependency failed"
                )
            return outcome.outputs

        try:
            state = await self._describe(dependency)
        except Exception as exc:
            raise DependencyResolutionError(stack_name, dependency, exc) from exc

        if state is None:
            raise DependencyResolutionError(stack_name, dependency, "stack does not exist")
        return state.outputs

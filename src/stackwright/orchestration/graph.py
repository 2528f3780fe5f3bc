"""Dependency graph over declared stacks."""

from __future__ import annotations

from typing import Iterable

from stackwright.core.errors import DependencyCycleError, UnknownStackError
from stackwright.declarations import Declarations


class DependencyGraph:
    """Directed graph of ``dependsOn`` edges, restricted to a selection.

    Stacks outside the selection may still be referenced as dependencies;
    they are read from the provider instead of being scheduled.
    """

    def __init__(self, declarations: Declarations, selected: Iterable[str]) -> None:
        self._declarations = declarations
        self._selected = tuple(dict.fromkeys(selected))
        self._selected_set = frozenset(self._selected)

    @classmethod
    def build(
        cls,
        declarations: Declarations,
        selected_names: Iterable[str] | None = None,
    ) -> DependencyGraph:
        """Validate a selection and build its graph.

        An empty selection means every declared stack. Raises
        UnknownStackError naming every unknown stack, whether it was
        selected directly or reached through ``dependsOn``, and
        DependencyCycleError when the selected stacks form a loop.
        """
        selected = list(selected_names or []) or declarations.names()

        unknown = [name for name in selected if name not in declarations]
        visited: set[str] = set()
        pending = [name for name in selected if name in declarations]
        while pending:
            name = pending.pop()
            if name in visited:
                continue
            visited.add(name)
            for dep in declarations[name].depends_on:
                if dep in declarations:
                    pending.append(dep)
                else:
                    unknown.append(dep)

        if unknown:
            raise UnknownStackError(unknown)

        graph = cls(declarations, selected)
        cycle = graph.find_cycle()
        if cycle:
            raise DependencyCycleError(cycle)
        return graph

    @property
    def selected(self) -> tuple[str, ...]:
        return self._selected

    def __contains__(self, name: object) -> bool:
        return name in self._selected_set

    def dependencies(self, name: str) -> tuple[str, ...]:
        """Every stack ``name`` depends on, in declaration order."""
        return self._declarations[name].depends_on

    def scheduled_dependencies(self, name: str) -> tuple[str, ...]:
        """Dependencies of ``name`` that are part of this run."""
        return tuple(dep for dep in self.dependencies(name) if dep in self._selected_set)

    def find_cycle(self) -> list[str] | None:
        """Return one dependency loop among the selected stacks, if any."""
        visiting: list[str] = []
        done: set[str] = set()

        def visit(node: str) -> list[str] | None:
            if node in visiting:
                return visiting[visiting.index(node):] + [node]
            if node in done:
                return None
            visiting.append(node)
            for dep in self.scheduled_dependencies(node):
                cycle = visit(dep)
                if cycle:
                    return cycle
            visiting.pop()
            done.add(node)
            return None

        for name in self._selected:
            cycle = visit(name)
            if cycle:
                return cycle
        return None

    def topological_order(self) -> list[str]:
        """Selected stacks ordered so each follows everything it depends on.

        Unrelated stacks are ordered by name; the order is stable but not
        significant.
        """
        indegree = {name: len(self.scheduled_dependencies(name)) for name in self._selected}
        dependents = self.invert()

        ready = sorted(name for name, count in indegree.items() if count == 0)
        order: list[str] = []
        while ready:
            name = ready.pop(0)
            order.append(name)
            for dependent in dependents[name]:
                indegree[dependent] -= 1
                if indegree[dependent] == 0:
                    ready.append(dependent)
            ready.sort()

        if len(order) != len(self._selected):
            raise DependencyCycleError(self.find_cycle() or sorted(set(self._selected) - set(order)))
        return order

    def invert(self) -> dict[str, tuple[str, ...]]:
        """Map each selected stack to the selected stacks that depend on it."""
        depended_by: dict[str, list[str]] = {name: [] for name in self._selected}
        for name in self._selected:
            for dep in self.scheduled_dependencies(name):
                depended_by[dep].append(name)
        return {name: tuple(values) for name, values in depended_by.items()}

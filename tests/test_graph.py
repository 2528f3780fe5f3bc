"""Tests for the stack dependency graph."""

import pytest
from stackwright.core.errors import DependencyCycleError, UnknownStackError
from stackwright.orchestration import DependencyGraph


@pytest.fixture
def chain(declare):
    return declare(
        {
            "a": {},
            "b": {"dependsOn": ["a"]},
            "c": {"dependsOn": ["b"]},
            "d": {},
        }
    )


class TestBuild:
    def test_empty_selection_means_all_stacks(self, chain):
        graph = DependencyGraph.build(chain)
        assert set(graph.selected) == {"a", "b", "c", "d"}

        graph = DependencyGraph.build(chain, [])
        assert set(graph.selected) == {"a", "b", "c", "d"}

    def test_selection_is_kept(self, chain):
        graph = DependencyGraph.build(chain, ["c"])
        assert graph.selected == ("c",)
        assert "c" in graph
        assert "b" not in graph

    def test_unknown_selected_names_are_all_reported(self, chain):
        with pytest.raises(UnknownStackError) as exc_info:
            DependencyGraph.build(chain, ["zeta", "a", "alpha"])

        assert exc_info.value.names == ["alpha", "zeta"]
        assert str(exc_info.value) == "Unknown stacks: alpha,zeta"

    def test_unknown_dependency_is_reported(self, declare):
        declarations = declare({"a": {"dependsOn": ["ghost"]}, "b": {"dependsOn": ["a"]}})

        with pytest.raises(UnknownStackError) as exc_info:
            DependencyGraph.build(declarations, ["b"])

        assert exc_info.value.names == ["ghost"]

    def test_cycle_is_rejected(self, declare):
        declarations = declare(
            {"a": {"dependsOn": ["c"]}, "b": {"dependsOn": ["a"]}, "c": {"dependsOn": ["b"]}}
        )

        with pytest.raises(DependencyCycleError) as exc_info:
            DependencyGraph.build(declarations)

        cycle = exc_info.value.cycle
        assert cycle[0] == cycle[-1]
        assert set(cycle) == {"a", "b", "c"}

    def test_self_dependency_is_a_cycle(self, declare):
        with pytest.raises(DependencyCycleError):
            DependencyGraph.build(declare({"a": {"dependsOn": ["a"]}}))

    def test_cycle_outside_selection_is_ignored(self, declare):
        declarations = declare(
            {"a": {"dependsOn": ["b"]}, "b": {"dependsOn": ["a"]}, "c": {}}
        )

        graph = DependencyGraph.build(declarations, ["c"])

        assert graph.selected == ("c",)


class TestOrdering:
    def test_topological_order_respects_dependencies(self, chain):
        order = DependencyGraph.build(chain).topological_order()

        assert order.index("a") < order.index("b") < order.index("c")
        assert set(order) == {"a", "b", "c", "d"}

    def test_scheduled_dependencies_are_limited_to_selection(self, chain):
        graph = DependencyGraph.build(chain, ["b", "c"])

        assert graph.dependencies("b") == ("a",)
        assert graph.scheduled_dependencies("b") == ()
        assert graph.scheduled_dependencies("c") == ("b",)

    def test_invert(self, declare):
        declarations = declare(
            {
                "net": {},
                "db": {"dependsOn": ["net"]},
                "web": {"dependsOn": ["net", "db"]},
            }
        )

        depended_by = DependencyGraph.build(declarations).invert()

        assert depended_by == {"net": ("db", "web"), "db": ("web",), "web": ()}

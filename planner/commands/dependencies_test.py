"""Unit tests for dependency resolution."""

from __future__ import annotations

import pytest

from planner.commands.dependencies import dependency_edges, resolve
from planner.commands.ordering import order_key_from_cmp
from planner.commands.selection import build
from planner.filters.filter_set import FilterSet
from planner.filters.predicates import AnyFilter, EqualityFilter, NameFilter
from planner.model.command import Command
from planner.model.errors import DependencyError, ErrorKind
from planner.model.tree import TestNode, TestTree


def _canonical_tree(
    deps: dict[str, list[str]] | None = None,
    orders: dict[str, int] | None = None,
) -> TestTree:
    """Root{A{A1,A2,A3}, B{B1}} with optional dependencies and orders."""
    deps = deps or {}
    orders = orders or {}

    def node(name: str, children: list[dict] | None = None) -> dict:
        return {
            "id": name,
            "name": name,
            "order": orders.get(name, 0),
            "depends_on": deps.get(name, []),
            "children": children or [],
        }

    return TestTree.from_manifest({
        "root": node("Root", [
            node("A", [node("A1"), node("A2"), node("A3")]),
            node("B", [node("B1")]),
        ]),
    })


def _plan(tree: TestTree, **kwargs) -> Command:
    root = build(tree, FilterSet.of(AnyFilter()))
    assert root is not None
    return resolve(root, **kwargs)


def _structure(root: Command) -> list[str]:
    return [c.name for c in root.pre_order()]


def _assert_dependency(root: Command, source: str, target: str) -> None:
    command = root.find(source)
    assert command is not None
    assert target in command.dependency_ids
    assert root.find(target) in command.dependencies


# --- Validation Tests ---

class TestInvalidDependencies:
    """Edges that can never be satisfied are rejected."""

    def test_self_dependency(self):
        with pytest.raises(DependencyError, match="on itself") as exc_info:
            _plan(_canonical_tree({"A": ["A"]}))
        assert exc_info.value.kind == ErrorKind.SELF_DEPENDENCY
        assert exc_info.value.test_ids == ("A",)

    def test_dependency_on_ancestor(self):
        with pytest.raises(DependencyError, match="own ancestor") as exc_info:
            _plan(_canonical_tree({"A1": ["Root"]}))
        assert exc_info.value.kind == ErrorKind.ANCESTOR_DEPENDENCY
        assert exc_info.value.test_ids == ("A1", "Root")

    def test_dependency_on_descendant(self):
        with pytest.raises(DependencyError, match="own descendant") as exc_info:
            _plan(_canonical_tree({"Root": ["A2"]}))
        assert exc_info.value.kind == ErrorKind.ANCESTOR_DEPENDENCY

    def test_dependency_on_parent(self):
        with pytest.raises(DependencyError, match="own ancestor"):
            _plan(_canonical_tree({"B1": ["B"]}))

    def test_is_a_value_error(self):
        with pytest.raises(ValueError):
            _plan(_canonical_tree({"A": ["A"]}))


class TestCycles:
    """Cycles are detected at the common ancestor."""

    def test_siblings(self):
        with pytest.raises(DependencyError, match="cycle") as exc_info:
            _plan(_canonical_tree({"A": ["B"], "B": ["A"]}))
        assert exc_info.value.kind == ErrorKind.CYCLIC_DEPENDENCY
        assert exc_info.value.test_ids == ("Root", "A", "B")

    def test_cousins(self):
        with pytest.raises(DependencyError) as exc_info:
            _plan(_canonical_tree({"A1": ["B1"], "B1": ["A1"]}))
        assert exc_info.value.kind == ErrorKind.CYCLIC_DEPENDENCY

    def test_both_common_ancestors(self):
        """A1 -> B and B1 -> A project onto a two-node cycle at Root."""
        with pytest.raises(DependencyError) as exc_info:
            _plan(_canonical_tree({"A1": ["B"], "B1": ["A"]}))
        assert exc_info.value.kind == ErrorKind.CYCLIC_DEPENDENCY
        assert exc_info.value.test_ids[0] == "Root"

    def test_single_common_ancestor(self):
        with pytest.raises(DependencyError) as exc_info:
            _plan(_canonical_tree({"A1": ["B"], "B1": ["A1"]}))
        assert exc_info.value.kind == ErrorKind.CYCLIC_DEPENDENCY

    def test_three_participants(self):
        with pytest.raises(DependencyError, match="A1 -> A2 -> A3 -> A1") as exc_info:
            _plan(_canonical_tree({"A1": ["A2"], "A2": ["A3"], "A3": ["A1"]}))
        assert exc_info.value.test_ids == ("A", "A1", "A2", "A3")

    def test_cycle_participants_exclude_blocked_siblings(self):
        """A sibling waiting on the cycle is not reported as part of it."""
        with pytest.raises(DependencyError) as exc_info:
            _plan(_canonical_tree({"A1": ["A2"], "A2": ["A1"], "A3": ["A1"]}))
        assert exc_info.value.test_ids == ("A", "A1", "A2")


# --- Ordering Tests ---

class TestDependencyOrdering:
    """Dependencies reorder siblings and their ancestors."""

    def test_sibling_dependency(self):
        root = _plan(_canonical_tree({"A": ["B"]}))
        assert _structure(root) == ["Root", "B", "B1", "A", "A1", "A2", "A3"]
        assert {c.name for c in root.pre_order() if c.is_explicit} == {"Root"}
        _assert_dependency(root, "A", "B")

    def test_dependencies_among_siblings(self):
        root = _plan(_canonical_tree({"A2": ["A1", "A3"], "A3": ["A1"]}))
        assert _structure(root) == ["Root", "A", "A1", "A3", "A2", "B", "B1"]
        _assert_dependency(root, "A2", "A1")
        _assert_dependency(root, "A2", "A3")
        _assert_dependency(root, "A3", "A1")

    def test_cousin_dependencies_reorder_parents(self):
        root = _plan(_canonical_tree({"A1": ["A2"], "A2": ["B1"], "A3": ["A1"]}))
        assert _structure(root) == ["Root", "B", "B1", "A", "A2", "A1", "A3"]
        _assert_dependency(root, "A1", "A2")
        _assert_dependency(root, "A2", "B1")
        _assert_dependency(root, "A3", "A1")

    def test_dependency_on_nephew(self):
        root = _plan(_canonical_tree({"A": ["B1"]}))
        assert _structure(root) == ["Root", "B", "B1", "A", "A1", "A2", "A3"]
        _assert_dependency(root, "A", "B1")

    def test_dependency_on_aunt(self):
        root = _plan(_canonical_tree({"A2": ["B"]}))
        assert _structure(root) == ["Root", "B", "B1", "A", "A1", "A2", "A3"]
        _assert_dependency(root, "A2", "B")

    def test_duplicate_edges_collapse(self):
        root = _plan(_canonical_tree({"A": ["B", "B"]}))
        assert root.find("A").dependency_ids == ("B",)

    def test_dependencies_precede_dependents_in_pre_order(self):
        root = _plan(_canonical_tree({"A1": ["A2"], "A2": ["B1"], "A3": ["A1"]}))
        position = {c.id: i for i, c in enumerate(root.pre_order())}
        for command in root.pre_order():
            for dep in command.dependencies:
                assert position[dep.id] < position[command.id]


class TestOrderTieBreaking:
    """Independent siblings are ordered by (order, name)."""

    def test_independent_tests_sorted_by_order(self):
        tree = _canonical_tree(orders={"A": 1, "A1": 2, "A2": 0, "A3": 1, "B": 0, "B1": 0})
        assert _structure(_plan(tree)) == ["Root", "B", "B1", "A", "A2", "A3", "A1"]

    def test_same_order_sorted_by_name(self):
        tree = TestTree.from_manifest({
            "root": {"id": "Root", "name": "Root", "children": [
                {"id": "B", "name": "B", "children": [{"id": "B1", "name": "B1"}]},
                {"id": "A", "name": "A", "children": [
                    {"id": "A3", "name": "A3"},
                    {"id": "A1", "name": "A1"},
                    {"id": "A2", "name": "A2"},
                ]},
            ]},
        })
        assert _structure(_plan(tree)) == ["Root", "A", "A1", "A2", "A3", "B", "B1"]

    def test_dependent_tests_sorted_by_order(self):
        tree = _canonical_tree(
            deps={"A2": ["A1", "A3"]},
            orders={"A": 1, "A1": 2, "A2": 0, "A3": 1, "B": 0, "B1": 0},
        )
        assert _structure(_plan(tree)) == ["Root", "B", "B1", "A", "A3", "A1", "A2"]

    def test_duplicate_names_keep_declared_order(self):
        tree = TestTree.from_manifest({
            "root": {"id": "r", "name": "r", "children": [
                {"id": "second", "name": "same"},
                {"id": "first", "name": "same"},
            ]},
        })
        assert [c.id for c in _plan(tree).pre_order()] == ["r", "second", "first"]

    def test_injected_order_key(self):
        def by_name_descending(a: TestNode, b: TestNode) -> int:
            return (a.name < b.name) - (a.name > b.name)

        root = _plan(_canonical_tree(), order_key=order_key_from_cmp(by_name_descending))
        assert _structure(root) == ["Root", "B", "B1", "A", "A3", "A2", "A1"]

    def test_explicit_flags_untouched(self):
        tree = _canonical_tree({"A": ["B"]})
        selected = build(tree, FilterSet.of(NameFilter(EqualityFilter("A2"))))
        root = resolve(selected)
        assert {c.name for c in root.pre_order() if c.is_explicit} == {"Root", "A", "A2"}


# --- Excluded Dependency Tests ---

class TestExcludedDependencies:
    """Dependencies on tests removed by selection."""

    def test_dropped_by_default(self):
        tree = _canonical_tree({"A2": ["B1"]})
        selected = build(tree, FilterSet.of(NameFilter(EqualityFilter("A2"))))
        root = resolve(selected)
        assert _structure(root) == ["Root", "A", "A2"]
        assert root.find("A2").dependency_ids == ()

    def test_error_policy(self):
        tree = _canonical_tree({"A2": ["B1"]})
        selected = build(tree, FilterSet.of(NameFilter(EqualityFilter("A2"))))
        with pytest.raises(DependencyError, match="not selected") as exc_info:
            resolve(selected, excluded_dependencies="error")
        assert exc_info.value.kind == ErrorKind.EXCLUDED_DEPENDENCY
        assert exc_info.value.test_ids == ("A2", "B1")

    def test_unknown_policy(self):
        with pytest.raises(ValueError, match="Unknown excluded dependency policy"):
            _plan(_canonical_tree(), excluded_dependencies="ignore")

    def test_invalid_edge_from_pruned_test_ignored(self):
        """Only edges between selected tests are validated."""
        tree = _canonical_tree({"B1": ["Root"]})
        selected = build(tree, FilterSet.of(NameFilter(EqualityFilter("A"))))
        root = resolve(selected)
        assert _structure(root) == ["Root", "A", "A1", "A2", "A3"]


# --- Explicit Edge Tests ---

class TestExplicitEdges:
    """Edges passed directly instead of read from the tests."""

    def test_dependency_edges_in_pre_order(self):
        tree = _canonical_tree({"B1": ["A1"], "A3": ["B", "A1"]})
        selected = build(tree, FilterSet.empty())
        assert list(dependency_edges(selected)) == [
            ("A3", "B"), ("A3", "A1"), ("B1", "A1"),
        ]

    def test_edges_override_declared_dependencies(self):
        tree = _canonical_tree({"A": ["B"]})
        selected = build(tree, FilterSet.empty())
        root = resolve(selected, edges=[("B", "A")])
        assert _structure(root) == ["Root", "A", "A1", "A2", "A3", "B", "B1"]
        assert root.find("A").dependency_ids == ()
        assert root.find("B").dependency_ids == ("A",)


# --- Determinism Tests ---

class TestDeterminism:
    def test_idempotent(self):
        deps = {"A1": ["A2"], "A2": ["B1"], "A3": ["A1"]}
        first = _plan(_canonical_tree(deps))
        second = _plan(_canonical_tree(deps))
        assert first == second
        assert _structure(first) == _structure(second)

    def test_resolving_twice_is_stable(self):
        root = _plan(_canonical_tree({"A": ["B"]}))
        assert resolve(root) == root

    def test_input_tree_not_modified(self):
        tree = _canonical_tree({"A": ["B"]})
        selected = build(tree, FilterSet.empty())
        resolve(selected)
        assert _structure(selected) == ["Root", "A", "A1", "A2", "A3", "B", "B1"]

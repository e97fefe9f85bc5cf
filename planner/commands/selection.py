"""Selection and pruning of the test tree.

Walks the test tree once, asking the selector for a verdict on each node,
and produces a pruned Command tree with explicit flags:

- Exclude prunes the node and its whole subtree.
- Include makes the node a match root. The node and its ancestors are
  explicit. Its whole subtree rides along, non-explicit, without further
  selector calls (only the node itself when the filter is exact).
- Indeterminate keeps the node only if some child was kept.

A filter set with no rules includes the whole tree and marks nothing
explicit. A filter set with only exclusion rules behaves the same way,
except that excluded subtrees are pruned. Nothing can match such a set,
so the exact flag does not apply to it.

Children keep their declared order here; dependency resolution reorders
them afterwards. The walk recurses once per level of the tree (see
planner.model.tree.MAX_DEPTH).
"""

from __future__ import annotations

from typing import Any, Protocol

from planner.filters.filter_set import FilterSetSelector, Verdict
from planner.model.command import Command
from planner.model.tree import TestNode, TestTree


class FilterConfiguration(Protocol):
    @property
    def is_empty(self) -> bool: ...

    @property
    def has_inclusion_rules(self) -> bool: ...


class Selector(Protocol):
    def evaluate(self, node: TestNode, config: Any) -> Verdict: ...


def build(
    tree: TestTree,
    filter_set: FilterConfiguration,
    exact_filter: bool = False,
    selector: Selector | None = None,
) -> Command | None:
    """Build the pruned command tree for a filter.

    Args:
        tree: The test tree.
        filter_set: Filter configuration handed to the selector.
        exact_filter: If True, a match includes only the matched test
            and not its descendants.
        selector: Evaluates a test against the filter configuration.
            Defaults to FilterSetSelector.

    Returns:
        The root command, or None if no tests were selected.
    """
    if selector is None:
        selector = FilterSetSelector()

    if filter_set.is_empty:
        return _include_subtree(tree, tree.root)
    if not filter_set.has_inclusion_rules:
        return _exclude_only(tree, tree.root, filter_set, selector)
    return _select(tree, tree.root, filter_set, exact_filter, selector)


def _include_subtree(tree: TestTree, node: TestNode) -> Command:
    children = tuple(
        _include_subtree(tree, child) for child in tree.children_of(node.id)
    )
    return Command(test=node, is_explicit=False, children=children)


def _exclude_only(
    tree: TestTree,
    node: TestNode,
    filter_set: FilterConfiguration,
    selector: Selector,
) -> Command | None:
    if selector.evaluate(node, filter_set) == Verdict.EXCLUDE:
        return None

    children: list[Command] = []
    for child in tree.children_of(node.id):
        command = _exclude_only(tree, child, filter_set, selector)
        if command is not None:
            children.append(command)
    return Command(test=node, is_explicit=False, children=tuple(children))


def _select(
    tree: TestTree,
    node: TestNode,
    filter_set: FilterConfiguration,
    exact_filter: bool,
    selector: Selector,
) -> Command | None:
    verdict = selector.evaluate(node, filter_set)

    if verdict == Verdict.EXCLUDE:
        return None

    if verdict == Verdict.INCLUDE:
        if exact_filter:
            return Command(test=node, is_explicit=True)
        children = tuple(
            _include_subtree(tree, child) for child in tree.children_of(node.id)
        )
        return Command(test=node, is_explicit=True, children=children)

    included: list[Command] = []
    for child in tree.children_of(node.id):
        command = _select(tree, child, filter_set, exact_filter, selector)
        if command is not None:
            included.append(command)

    if not included:
        return None

    # Lies on the path to a match if any kept child does
    is_explicit = any(c.is_explicit for c in included)
    return Command(test=node, is_explicit=is_explicit, children=tuple(included))

"""Builds the ordered, validated command tree for a test run."""

from __future__ import annotations

from planner.commands.dependencies import DROP, resolve
from planner.commands.ordering import OrderKey, default_order_key
from planner.commands.selection import FilterConfiguration, Selector, build
from planner.model.command import Command
from planner.model.tree import TestTree


def build_commands(
    tree: TestTree,
    filter_set: FilterConfiguration,
    exact_filter: bool = False,
    selector: Selector | None = None,
    order_key: OrderKey = default_order_key,
    excluded_dependencies: str = DROP,
) -> Command | None:
    """Select tests with a filter and order them by their dependencies.

    Args:
        tree: The test tree.
        filter_set: Filter configuration handed to the selector.
        exact_filter: If True, a match does not pull in its descendants.
        selector: Evaluates tests against the filter configuration.
        order_key: Sort key for independent siblings.
        excluded_dependencies: "drop" or "error" for dependencies on
            tests that were not selected.

    Returns:
        The root command of the execution plan, or None if no tests
        were selected.

    Raises:
        DependencyError: If the selected tests' dependencies are invalid
            or cyclic.
    """
    root = build(tree, filter_set, exact_filter=exact_filter, selector=selector)
    if root is None:
        return None
    return resolve(
        root,
        order_key=order_key,
        excluded_dependencies=excluded_dependencies,
    )

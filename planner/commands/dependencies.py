"""Dependency resolution over a command tree.

Execution walks the command tree in pre-order, so a dependency between two
tests in different branches is really a constraint between the branches.
Each edge "X depends on Y" is projected onto the lowest common ancestor L
of X and Y: the child of L leading to X must run after the child of L
leading to Y. Every sibling group is then topologically sorted, breaking
ties with the order key.

Validation is all-or-nothing: a self dependency, a dependency between a
test and its ancestor or descendant, or a cycle among siblings raises
DependencyError and no tree is returned.

The resolved tree is rebuilt recursively, one call per level.
"""

from __future__ import annotations

import heapq
from typing import Iterable, Iterator

from planner.commands.ordering import OrderKey, default_order_key
from planner.model.command import Command
from planner.model.errors import DependencyError, ErrorKind
from planner.model.tree import ancestor_chain

DROP = "drop"
ERROR = "error"

VALID_EXCLUDED_DEPENDENCY_POLICIES = frozenset({DROP, ERROR})


def dependency_edges(root: Command) -> Iterator[tuple[str, str]]:
    """Yield (test id, dependency id) pairs declared by tests in the tree.

    Commands are visited in pre-order, dependencies in declaration order.
    """
    for command in root.pre_order():
        for dep_id in command.test.dependencies:
            yield command.id, dep_id


def resolve(
    root: Command,
    edges: Iterable[tuple[str, str]] | None = None,
    order_key: OrderKey = default_order_key,
    excluded_dependencies: str = DROP,
) -> Command:
    """Order a command tree so every test runs after its dependencies.

    Args:
        root: Root of the pruned command tree.
        edges: (test id, dependency id) pairs. Defaults to the
            dependencies declared by the tests in the tree.
        order_key: Sort key for independent siblings.
        excluded_dependencies: What to do with an edge whose target is
            not in the command tree: "drop" ignores it, "error" raises.

    Returns:
        A new command tree with reordered children and resolved
        dependencies.

    Raises:
        DependencyError: If the dependencies cannot be satisfied.
        ValueError: If excluded_dependencies is not a known policy.
    """
    if excluded_dependencies not in VALID_EXCLUDED_DEPENDENCY_POLICIES:
        raise ValueError(
            f"Unknown excluded dependency policy: {excluded_dependencies}"
        )

    commands: dict[str, Command] = {}
    parent_of: dict[str, str | None] = {root.id: None}
    for command in root.pre_order():
        commands[command.id] = command
        for child in command.children:
            parent_of[child.id] = command.id

    if edges is None:
        edges = dependency_edges(root)

    # Validate every edge before projecting any of them
    dependencies: dict[str, dict[str, None]] = {}
    chains: list[tuple[list[str], list[str]]] = []
    for source, target in edges:
        if source not in commands:
            continue
        if target not in commands:
            if excluded_dependencies == ERROR:
                raise DependencyError(
                    ErrorKind.EXCLUDED_DEPENDENCY,
                    (source, target),
                    f"Test '{source}' depends on '{target}' which was not selected.",
                )
            continue
        if source == target:
            raise DependencyError(
                ErrorKind.SELF_DEPENDENCY,
                (source,),
                f"Test '{source}' has an invalid dependency on itself.",
            )

        source_chain = ancestor_chain(parent_of, source)
        target_chain = ancestor_chain(parent_of, target)
        if target in source_chain:
            raise DependencyError(
                ErrorKind.ANCESTOR_DEPENDENCY,
                (source, target),
                f"Test '{source}' has an invalid dependency on its own ancestor '{target}'.",
            )
        if source in target_chain:
            raise DependencyError(
                ErrorKind.ANCESTOR_DEPENDENCY,
                (source, target),
                f"Test '{source}' has an invalid dependency on its own descendant '{target}'.",
            )

        dependencies.setdefault(source, {})[target] = None
        chains.append((source_chain, target_chain))

    # ancestor id -> child id -> sibling ids it must run after
    sibling_dependencies: dict[str, dict[str, dict[str, None]]] = {}
    for source_chain, target_chain in chains:
        depth = 0
        while source_chain[depth] == target_chain[depth]:
            depth += 1
        ancestor = source_chain[depth - 1]
        later, earlier = source_chain[depth], target_chain[depth]
        if later != earlier:
            sibling_dependencies.setdefault(ancestor, {}).setdefault(later, {})[earlier] = None

    child_order: dict[str, list[Command]] = {}
    for command in root.pre_order():
        if len(command.children) > 1:
            child_order[command.id] = _sort_children(
                command, sibling_dependencies.get(command.id, {}), order_key
            )
        else:
            child_order[command.id] = list(command.children)

    built: dict[str, Command] = {}

    def rebuild(command: Command) -> Command:
        children = tuple(rebuild(child) for child in child_order[command.id])
        dep_ids = tuple(dependencies.get(command.id, {}))
        # Post-order: every dependency sits in an earlier sibling branch
        result = Command(
            test=command.test,
            is_explicit=command.is_explicit,
            children=children,
            dependencies=tuple(built[d] for d in dep_ids),
            dependency_ids=dep_ids,
        )
        built[command.id] = result
        return result

    return rebuild(root)


def _sort_children(
    parent: Command,
    constraints: dict[str, dict[str, None]],
    order_key: OrderKey,
) -> list[Command]:
    """Topologically sort a sibling group (Kahn's algorithm).

    Among the children whose predecessors have all been emitted, the one
    with the smallest order key goes next; declared position breaks
    remaining ties.

    Raises:
        DependencyError: If the constraints contain a cycle.
    """
    children = {child.id: child for child in parent.children}
    position = {child.id: i for i, child in enumerate(parent.children)}

    remaining: dict[str, int] = {}
    successors: dict[str, list[str]] = {child_id: [] for child_id in children}
    for child_id in children:
        predecessors = constraints.get(child_id, {})
        remaining[child_id] = len(predecessors)
        for predecessor in predecessors:
            successors[predecessor].append(child_id)

    heap: list[tuple[object, int, str]] = []

    def push(child_id: str) -> None:
        heapq.heappush(
            heap, (order_key(children[child_id].test), position[child_id], child_id)
        )

    for child_id, count in remaining.items():
        if count == 0:
            push(child_id)

    result: list[Command] = []
    while heap:
        _, _, child_id = heapq.heappop(heap)
        result.append(children[child_id])
        for successor in successors[child_id]:
            remaining[successor] -= 1
            if remaining[successor] == 0:
                push(successor)

    if len(result) != len(children):
        emitted = {c.id for c in result}
        cycle = _find_cycle(
            [c for c in children if c not in emitted], constraints, position
        )
        names = [children[c].name for c in cycle]
        raise DependencyError(
            ErrorKind.CYCLIC_DEPENDENCY,
            [parent.id] + cycle[:-1],
            f"Found a test dependency cycle among the children of "
            f"'{parent.name}': {' -> '.join(names)}",
        )

    return result


def _find_cycle(
    stuck: list[str],
    constraints: dict[str, dict[str, None]],
    position: dict[str, int],
) -> list[str]:
    """Extract one cycle from the children Kahn's algorithm could not emit.

    Every stuck child has at least one stuck predecessor, so following
    predecessors must revisit a child.

    Returns:
        Child ids forming the cycle, first id repeated at the end.
    """
    stuck_set = set(stuck)
    current = min(stuck, key=position.__getitem__)
    path: list[str] = []
    seen: dict[str, int] = {}
    while current not in seen:
        seen[current] = len(path)
        path.append(current)
        candidates = [p for p in constraints.get(current, {}) if p in stuck_set]
        current = min(candidates, key=position.__getitem__)
    return path[seen[current]:] + [current]

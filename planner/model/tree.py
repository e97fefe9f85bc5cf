"""Test tree data structures.

Provides TestNode (one immutable node of the declared test hierarchy) and
TestTree (an arena of nodes addressed by id, with a parent index computed
once at construction for ancestor-chain queries).

Selection and dependency resolution walk the tree recursively, so trees
must stay well within the interpreter's recursion limit. Manifests nested
more than MAX_DEPTH levels are rejected.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Iterator, Mapping

# Deepest nesting accepted from a manifest
MAX_DEPTH = 256


@dataclass(frozen=True)
class TestNode:
    """A single test, fixture or container in the test hierarchy."""

    id: str
    name: str
    order: int = 0
    children: tuple[str, ...] = ()
    dependencies: tuple[str, ...] = ()
    namespace: str = ""
    metadata: Mapping[str, tuple[str, ...]] = field(default_factory=dict, compare=False)

    # Not a pytest test class despite the name
    __test__ = False


def ancestor_chain(parent_of: Mapping[str, str | None], node_id: str) -> list[str]:
    """Walk a parent index from a node up to the root.

    Args:
        parent_of: Mapping of node id to parent id (None for the root).
        node_id: Node to start from.

    Returns:
        Node ids from the root down to and including node_id.
    """
    chain: list[str] = []
    current: str | None = node_id
    while current is not None:
        chain.append(current)
        current = parent_of[current]
    chain.reverse()
    return chain


class TestTree:
    """Arena of TestNodes rooted at a single node.

    Nodes reference their children and dependencies by id. There are no
    back-pointers; ``parent_of`` is derived once from the children lists.
    """

    __test__ = False

    def __init__(self, nodes: Iterable[TestNode], root_id: str) -> None:
        self.nodes: dict[str, TestNode] = {}
        for node in nodes:
            if node.id in self.nodes:
                raise ValueError(f"Duplicate test id: {node.id}")
            self.nodes[node.id] = node

        if root_id not in self.nodes:
            raise ValueError(f"Root test not found: {root_id}")
        self.root_id = root_id

        self.parent_of: dict[str, str | None] = {root_id: None}
        for node in self.nodes.values():
            for child_id in node.children:
                if child_id not in self.nodes:
                    raise ValueError(
                        f"Test '{node.id}' has unknown child '{child_id}'"
                    )
                if child_id == root_id:
                    raise ValueError(f"Root test '{root_id}' cannot be a child")
                if child_id in self.parent_of:
                    raise ValueError(
                        f"Test '{child_id}' has more than one parent"
                    )
                self.parent_of[child_id] = node.id

        unreachable = [n for n in self.nodes if n not in self.parent_of]
        if unreachable:
            raise ValueError(
                f"Tests not reachable from root: {', '.join(sorted(unreachable))}"
            )

        for node in self.nodes.values():
            for dep_id in node.dependencies:
                if dep_id not in self.nodes:
                    raise ValueError(
                        f"Test '{node.id}' depends on unknown test '{dep_id}'"
                    )

    @property
    def root(self) -> TestNode:
        return self.nodes[self.root_id]

    def get(self, node_id: str) -> TestNode:
        return self.nodes[node_id]

    def children_of(self, node_id: str) -> list[TestNode]:
        return [self.nodes[c] for c in self.nodes[node_id].children]

    def ancestors(self, node_id: str) -> list[str]:
        """Ids from the root down to and including node_id."""
        return ancestor_chain(self.parent_of, node_id)

    def pre_order(self) -> Iterator[TestNode]:
        """Iterate nodes depth-first, parents before children."""
        stack = [self.root_id]
        while stack:
            node = self.nodes[stack.pop()]
            yield node
            stack.extend(reversed(node.children))

    def __len__(self) -> int:
        return len(self.nodes)

    @classmethod
    def from_manifest(cls, manifest: dict[str, Any]) -> TestTree:
        """Construct a TestTree from a parsed manifest.

        The manifest holds a nested ``root`` node. Each node dict has a
        ``name`` and optionally ``id`` (defaults to the slash-joined names
        of its ancestors and itself), ``order``, ``namespace``,
        ``metadata``, ``depends_on`` (ids) and ``children``.

        Manifest parsing, selection and command tree rebuilding recurse
        once per level, so nesting is limited to MAX_DEPTH levels.

        Args:
            manifest: Dict with a 'root' key.

        Returns:
            A fully constructed TestTree.

        Raises:
            ValueError: If the manifest is malformed, nested too deeply
                or references unknown tests.
        """
        root_data = manifest.get("root")
        if not isinstance(root_data, dict):
            raise ValueError("Manifest is missing a 'root' test")

        nodes: list[TestNode] = []

        def visit(data: Any, parent_path: str, depth: int) -> str:
            location = parent_path or "<root>"
            if not isinstance(data, dict):
                raise ValueError(
                    f"Test under '{location}' must be a mapping, "
                    f"got {type(data).__name__}"
                )
            if depth > MAX_DEPTH:
                raise ValueError(
                    f"Test under '{location}' is nested more than {MAX_DEPTH} levels deep"
                )
            name = data.get("name")
            if not name:
                raise ValueError(f"Test under '{location}' has no name")
            path = f"{parent_path}/{name}" if parent_path else str(name)
            node_id = str(data.get("id", path))

            try:
                order = int(data.get("order", 0))
            except (TypeError, ValueError):
                raise ValueError(
                    f"Test '{node_id}' has an invalid order: {data.get('order')!r}"
                )
            metadata_data = data.get("metadata") or {}
            if not isinstance(metadata_data, dict):
                raise ValueError(f"Test '{node_id}' metadata must be a mapping")
            depends_on = _list_field(data, "depends_on", node_id)

            child_ids = tuple(
                visit(child, path, depth + 1)
                for child in _list_field(data, "children", node_id)
            )
            metadata: dict[str, tuple[str, ...]] = {}
            for key, value in metadata_data.items():
                if isinstance(value, (list, tuple)):
                    metadata[key] = tuple(str(v) for v in value)
                else:
                    metadata[key] = (str(value),)

            nodes.append(TestNode(
                id=node_id,
                name=str(name),
                order=order,
                children=child_ids,
                dependencies=tuple(str(d) for d in depends_on),
                namespace=str(data.get("namespace", "")),
                metadata=metadata,
            ))
            return node_id

        root_id = visit(root_data, "", 1)
        return cls(nodes, root_id)


def _list_field(data: dict[str, Any], key: str, node_id: str) -> list[Any]:
    """Read an optional list-valued manifest field."""
    value = data.get(key)
    if value is None:
        return []
    if not isinstance(value, (list, tuple)):
        raise ValueError(f"Test '{node_id}' {key} must be a list")
    return list(value)

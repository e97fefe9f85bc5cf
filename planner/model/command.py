"""Command tree: the validated, ordered execution plan.

A Command wraps one TestNode. Commands form a tree (each command has one
parent); dependencies are cross-links to other commands in the same tree
and are not additional parent edges.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator

from planner.model.tree import TestNode


@dataclass(frozen=True)
class Command:
    """One node of the execution plan."""

    test: TestNode
    is_explicit: bool = False
    children: tuple[Command, ...] = ()
    # Compared through dependency_ids to keep equality a tree walk
    dependencies: tuple[Command, ...] = field(default=(), compare=False, repr=False)
    dependency_ids: tuple[str, ...] = ()

    @property
    def id(self) -> str:
        return self.test.id

    @property
    def name(self) -> str:
        return self.test.name

    def pre_order(self) -> Iterator[Command]:
        """Iterate commands in execution order, parents before children."""
        stack: list[Command] = [self]
        while stack:
            command = stack.pop()
            yield command
            stack.extend(reversed(command.children))

    def all_commands(self) -> list[Command]:
        return list(self.pre_order())

    def find(self, test_id: str) -> Command | None:
        """Find the command wrapping the test with the given id."""
        for command in self.pre_order():
            if command.id == test_id:
                return command
        return None

    def __len__(self) -> int:
        return sum(1 for _ in self.pre_order())

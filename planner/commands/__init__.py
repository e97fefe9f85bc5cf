"""Command tree construction: selection, dependency resolution and ordering."""

from planner.commands.dependencies import dependency_edges, resolve
from planner.commands.factory import build_commands
from planner.commands.ordering import default_order_key, order_key_from_cmp
from planner.commands.selection import build

__all__ = [
    "build",
    "build_commands",
    "default_order_key",
    "dependency_edges",
    "order_key_from_cmp",
    "resolve",
]

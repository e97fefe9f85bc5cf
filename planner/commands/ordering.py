"""Sibling ordering keys.

Independent siblings run by ascending Order, then by Name. The key is
injected into dependency resolution so the tie-break rule can be
swapped and tested on its own.
"""

from __future__ import annotations

import functools
from typing import Any, Callable

from planner.model.tree import TestNode

OrderKey = Callable[[TestNode], Any]


def default_order_key(node: TestNode) -> tuple[int, str]:
    """Sort key for sibling tests: (order, name)."""
    return (node.order, node.name)


def order_key_from_cmp(cmp: Callable[[TestNode, TestNode], int]) -> OrderKey:
    """Adapt a two-argument comparator into an order key."""
    return functools.cmp_to_key(cmp)

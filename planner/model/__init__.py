"""Test model: input test tree, output command tree and validation errors."""

from planner.model.command import Command
from planner.model.errors import DependencyError, ErrorKind
from planner.model.tree import TestNode, TestTree, ancestor_chain

__all__ = [
    "Command",
    "DependencyError",
    "ErrorKind",
    "TestNode",
    "TestTree",
    "ancestor_chain",
]

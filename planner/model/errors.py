"""Errors raised while validating test dependencies."""

from __future__ import annotations

from enum import Enum
from typing import Iterable


class ErrorKind(str, Enum):
    """Kind of dependency validation failure."""

    SELF_DEPENDENCY = "self_dependency"
    ANCESTOR_DEPENDENCY = "ancestor_dependency"
    CYCLIC_DEPENDENCY = "cyclic_dependency"
    EXCLUDED_DEPENDENCY = "excluded_dependency"


class DependencyError(ValueError):
    """A test plan could not be ordered because of its dependencies.

    Attributes:
        kind: What went wrong.
        test_ids: Ids of the offending tests. For a cycle the first id is
            the common ancestor whose children could not be ordered,
            followed by the children taking part in the cycle.
    """

    def __init__(self, kind: ErrorKind, test_ids: Iterable[str], message: str) -> None:
        super().__init__(message)
        self.kind = kind
        self.test_ids: tuple[str, ...] = tuple(test_ids)

"""Filter sets and the default selector.

A FilterSet is an ordered list of inclusion and exclusion rules. Evaluating
a test against it yields a tri-state Verdict: the first rule whose filter
matches decides (Include or Exclude); if none matches the verdict is
Indeterminate.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable

from planner.filters.predicates import Filter, evaluate
from planner.model.tree import TestNode

INCLUSION = "include"
EXCLUSION = "exclude"

VALID_RULE_KINDS = frozenset({INCLUSION, EXCLUSION})


class Verdict(str, Enum):
    """Outcome of evaluating one test against a filter configuration."""

    INCLUDE = "include"
    EXCLUDE = "exclude"
    INDETERMINATE = "indeterminate"


@dataclass(frozen=True)
class FilterRule:
    kind: str
    filter: Filter

    def __post_init__(self) -> None:
        if self.kind not in VALID_RULE_KINDS:
            raise ValueError(f"Unknown filter rule kind: {self.kind}")


@dataclass(frozen=True)
class FilterSet:
    """Ordered inclusion and exclusion rules."""

    rules: tuple[FilterRule, ...] = ()

    @classmethod
    def empty(cls) -> FilterSet:
        return cls()

    @classmethod
    def of(cls, filter: Filter) -> FilterSet:
        """Filter set with a single inclusion rule."""
        return cls((FilterRule(INCLUSION, filter),))

    @classmethod
    def from_rules(cls, rules: Iterable[FilterRule]) -> FilterSet:
        return cls(tuple(rules))

    @property
    def is_empty(self) -> bool:
        return not self.rules

    @property
    def has_inclusion_rules(self) -> bool:
        return any(rule.kind == INCLUSION for rule in self.rules)

    def evaluate(self, node: TestNode) -> Verdict:
        for rule in self.rules:
            if evaluate(rule.filter, node):
                return Verdict.INCLUDE if rule.kind == INCLUSION else Verdict.EXCLUDE
        return Verdict.INDETERMINATE


class FilterSetSelector:
    """Default selector: evaluates a test against a FilterSet."""

    def evaluate(self, node: TestNode, filter_set: FilterSet) -> Verdict:
        return filter_set.evaluate(node)

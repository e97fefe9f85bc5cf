"""Filter predicates over tests and strings.

Filters form a closed set of frozen dataclasses. String filters
(EqualityFilter, RegexFilter) match values; node filters (IdFilter,
NameFilter, NamespaceFilter, MetadataFilter) pick a value off a TestNode
and hand it to a string filter. AnyFilter, NoneFilter, AndFilter,
OrFilter and NotFilter combine either kind.

Everything is evaluated by the single recursive ``evaluate`` function.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Union

from planner.model.tree import TestNode


@dataclass(frozen=True)
class AnyFilter:
    """Matches everything."""


@dataclass(frozen=True)
class NoneFilter:
    """Matches nothing."""


@dataclass(frozen=True)
class EqualityFilter:
    value: str


@dataclass(frozen=True)
class RegexFilter:
    pattern: str
    ignore_case: bool = False

    def compile(self) -> re.Pattern[str]:
        return re.compile(self.pattern, re.IGNORECASE if self.ignore_case else 0)


@dataclass(frozen=True)
class IdFilter:
    value_filter: Filter


@dataclass(frozen=True)
class NameFilter:
    value_filter: Filter


@dataclass(frozen=True)
class NamespaceFilter:
    value_filter: Filter


@dataclass(frozen=True)
class MetadataFilter:
    """Matches if any value stored under ``key`` matches."""

    key: str
    value_filter: Filter


@dataclass(frozen=True)
class AndFilter:
    filters: tuple[Filter, ...]


@dataclass(frozen=True)
class OrFilter:
    filters: tuple[Filter, ...]


@dataclass(frozen=True)
class NotFilter:
    filter: Filter


Filter = Union[
    AnyFilter,
    NoneFilter,
    EqualityFilter,
    RegexFilter,
    IdFilter,
    NameFilter,
    NamespaceFilter,
    MetadataFilter,
    AndFilter,
    OrFilter,
    NotFilter,
]


def evaluate(filter: Filter, subject: TestNode | str) -> bool:
    """Evaluate a filter against a test node or a string value.

    Args:
        filter: The filter to evaluate.
        subject: A TestNode for node filters, a string for value filters.
            Combinators accept either.

    Returns:
        True if the subject matches.

    Raises:
        TypeError: If a filter is applied to the wrong kind of subject.
        re.error: If a RegexFilter holds an invalid pattern.
    """
    if isinstance(filter, AnyFilter):
        return True
    if isinstance(filter, NoneFilter):
        return False
    if isinstance(filter, AndFilter):
        return all(evaluate(f, subject) for f in filter.filters)
    if isinstance(filter, OrFilter):
        return any(evaluate(f, subject) for f in filter.filters)
    if isinstance(filter, NotFilter):
        return not evaluate(filter.filter, subject)

    if isinstance(filter, (EqualityFilter, RegexFilter)):
        if not isinstance(subject, str):
            raise TypeError(f"{type(filter).__name__} applies to strings only")
        if isinstance(filter, EqualityFilter):
            return subject == filter.value
        return filter.compile().search(subject) is not None

    if not isinstance(subject, TestNode):
        raise TypeError(f"{type(filter).__name__} applies to tests only")
    if isinstance(filter, IdFilter):
        return evaluate(filter.value_filter, subject.id)
    if isinstance(filter, NameFilter):
        return evaluate(filter.value_filter, subject.name)
    if isinstance(filter, NamespaceFilter):
        return evaluate(filter.value_filter, subject.namespace)
    if isinstance(filter, MetadataFilter):
        values = subject.metadata.get(filter.key, ())
        return any(evaluate(filter.value_filter, v) for v in values)

    raise TypeError(f"Unknown filter type: {type(filter).__name__}")


def _format_value(value: str, delimiter: str = "'") -> str:
    escaped = value.replace("\\", "\\\\").replace(delimiter, "\\" + delimiter)
    return f"{delimiter}{escaped}{delimiter}"


def format_filter(filter: Filter) -> str:
    """Render a filter in filter expression syntax.

    Filters produced by the parser render back into expressions that
    parse into equivalent filters.
    """
    if isinstance(filter, AnyFilter):
        return "*"
    if isinstance(filter, NoneFilter):
        return "not *"
    if isinstance(filter, EqualityFilter):
        return _format_value(filter.value)
    if isinstance(filter, RegexFilter):
        suffix = "i" if filter.ignore_case else ""
        return _format_value(filter.pattern, "/") + suffix
    if isinstance(filter, (IdFilter, NameFilter, NamespaceFilter, MetadataFilter)):
        if isinstance(filter, IdFilter):
            key = "Id"
        elif isinstance(filter, NameFilter):
            key = "Name"
        elif isinstance(filter, NamespaceFilter):
            key = "Namespace"
        else:
            key = _format_value(filter.key)
        value_filter = filter.value_filter
        if isinstance(value_filter, OrFilter) and all(
            isinstance(f, (EqualityFilter, RegexFilter)) for f in value_filter.filters
        ):
            values = ", ".join(format_filter(f) for f in value_filter.filters)
        else:
            values = format_filter(value_filter)
        return f"{key}: {values}"
    if isinstance(filter, AndFilter):
        return "(" + " and ".join(format_filter(f) for f in filter.filters) + ")"
    if isinstance(filter, OrFilter):
        return "(" + " or ".join(format_filter(f) for f in filter.filters) + ")"
    if isinstance(filter, NotFilter):
        return "not " + format_filter(filter.filter)
    raise TypeError(f"Unknown filter type: {type(filter).__name__}")

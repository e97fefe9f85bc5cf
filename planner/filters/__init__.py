"""Test filters: predicates, filter sets, the default selector and the expression parser."""

from planner.filters.filter_set import (
    EXCLUSION,
    INCLUSION,
    FilterRule,
    FilterSet,
    FilterSetSelector,
    Verdict,
)
from planner.filters.parser import FilterParseError, parse_filter, parse_filter_set
from planner.filters.predicates import (
    AndFilter,
    AnyFilter,
    EqualityFilter,
    Filter,
    IdFilter,
    MetadataFilter,
    NameFilter,
    NamespaceFilter,
    NoneFilter,
    NotFilter,
    OrFilter,
    RegexFilter,
    evaluate,
    format_filter,
)

__all__ = [
    "EXCLUSION",
    "INCLUSION",
    "AndFilter",
    "AnyFilter",
    "EqualityFilter",
    "Filter",
    "FilterParseError",
    "FilterRule",
    "FilterSet",
    "FilterSetSelector",
    "IdFilter",
    "MetadataFilter",
    "NameFilter",
    "NamespaceFilter",
    "NoneFilter",
    "NotFilter",
    "OrFilter",
    "RegexFilter",
    "Verdict",
    "evaluate",
    "format_filter",
    "parse_filter",
    "parse_filter_set",
]

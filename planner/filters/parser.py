"""Filter expression lexer and parser.

Grammar::

    filter-set  := [rule-kind] or-expr (rule-kind or-expr)*
    rule-kind   := 'include' | 'exclude'
    or-expr     := and-expr ('or' and-expr)*
    and-expr    := not-expr ('and' not-expr)*
    not-expr    := 'not' not-expr | '(' or-expr ')' | simple
    simple      := '*' | key ':' value (',' value)*
    value       := word | quoted-word | '/' regex '/' ['i']

Keywords are case-insensitive. Words may be quoted with ' or "; a
backslash escapes any of " ' / , \\ inside a word. The keys Id, Name and
Namespace select the matching test attribute; any other key matches a
metadata entry.

Examples::

    Name: A2, B
    Namespace: Payments and not Category: slow
    include Name: /^Login/i exclude Id: 'Suite/Login/Flaky'
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from planner.filters.filter_set import EXCLUSION, INCLUSION, FilterRule, FilterSet
from planner.filters.predicates import (
    AndFilter,
    AnyFilter,
    EqualityFilter,
    Filter,
    IdFilter,
    MetadataFilter,
    NameFilter,
    NamespaceFilter,
    NotFilter,
    OrFilter,
    RegexFilter,
)

COLON = "colon"
LEFT_BRACKET = "left_bracket"
RIGHT_BRACKET = "right_bracket"
COMMA = "comma"
STAR = "star"
WORD = "word"
REGEX_WORD = "regex_word"
CASE_INSENSITIVE = "case_insensitive"
AND = "and"
OR = "or"
NOT = "not"
INCLUDE = "include"
EXCLUDE = "exclude"

_SINGLE_CHARACTER_TOKENS = {
    ":": COLON,
    "(": LEFT_BRACKET,
    ")": RIGHT_BRACKET,
    ",": COMMA,
    "*": STAR,
}
_RESERVED_WORDS = {
    "and": AND,
    "or": OR,
    "not": NOT,
    "include": INCLUDE,
    "exclude": EXCLUDE,
}
_ESCAPABLE_CHARACTERS = frozenset({'"', "'", "/", ",", "\\"})
_WORD_DELIMITERS = frozenset({'"', "'", "/"})
_ESCAPE = "\\"


class FilterParseError(ValueError):
    """A filter expression could not be parsed."""

    def __init__(self, message: str, position: int | None = None) -> None:
        if position is not None:
            message = f"{message} (at position {position})"
        super().__init__(message)
        self.position = position


@dataclass(frozen=True)
class Token:
    kind: str
    text: str | None
    position: int


def _is_word_char(c: str) -> bool:
    return c not in _SINGLE_CHARACTER_TOKENS and not c.isspace()


def tokenize(expr: str) -> list[Token]:
    """Split a filter expression into tokens.

    Raises:
        FilterParseError: On bad escapes or unterminated quoted words.
    """
    tokens: list[Token] = []
    pos = 0
    length = len(expr)

    while pos < length:
        c = expr[pos]
        if c.isspace():
            pos += 1
        elif c in _SINGLE_CHARACTER_TOKENS:
            tokens.append(Token(_SINGLE_CHARACTER_TOKENS[c], None, pos))
            pos += 1
        elif c in _WORD_DELIMITERS:
            start = pos
            pos += 1
            chars: list[str] = []
            while True:
                if pos >= length:
                    raise FilterParseError(f"Missing end delimiter {c}", start)
                ch = expr[pos]
                if ch == _ESCAPE:
                    pos += 1
                    if pos >= length:
                        raise FilterParseError("Missing escaped character", pos - 1)
                    if expr[pos] not in _ESCAPABLE_CHARACTERS:
                        raise FilterParseError(f"Cannot escape character {expr[pos]!r}", pos)
                    chars.append(expr[pos])
                    pos += 1
                elif ch == c:
                    pos += 1
                    break
                else:
                    chars.append(ch)
                    pos += 1
            kind = REGEX_WORD if c == "/" else WORD
            tokens.append(Token(kind, "".join(chars), start))
            if c == "/" and pos < length and expr[pos] == "i":
                tokens.append(Token(CASE_INSENSITIVE, None, pos))
                pos += 1
        else:
            start = pos
            chars = []
            while pos < length and _is_word_char(expr[pos]):
                ch = expr[pos]
                if ch == _ESCAPE:
                    pos += 1
                    if pos >= length:
                        raise FilterParseError("Missing escaped character", pos - 1)
                    if expr[pos] not in _ESCAPABLE_CHARACTERS:
                        raise FilterParseError(f"Cannot escape character {expr[pos]!r}", pos)
                    ch = expr[pos]
                chars.append(ch)
                pos += 1
            text = "".join(chars)
            reserved = _RESERVED_WORDS.get(text.lower())
            if reserved is not None and _ESCAPE not in expr[start:pos]:
                tokens.append(Token(reserved, None, start))
            else:
                tokens.append(Token(WORD, text, start))

    return tokens


class _Parser:
    def __init__(self, expr: str) -> None:
        self.expr = expr
        self.tokens = tokenize(expr)
        self.index = 0

    def peek(self) -> Token | None:
        if self.index < len(self.tokens):
            return self.tokens[self.index]
        return None

    def advance(self) -> Token:
        token = self.tokens[self.index]
        self.index += 1
        return token

    def expect(self, kind: str, what: str) -> Token:
        token = self.peek()
        if token is None or token.kind != kind:
            raise FilterParseError(f"{what} expected", self._position(token))
        return self.advance()

    def _position(self, token: Token | None) -> int:
        return token.position if token is not None else len(self.expr)

    def filter_set(self) -> FilterSet:
        rules: list[FilterRule] = []
        token = self.peek()
        while token is not None:
            if token.kind == INCLUDE:
                self.advance()
                kind = INCLUSION
            elif token.kind == EXCLUDE:
                self.advance()
                kind = EXCLUSION
            elif not rules:
                kind = INCLUSION
            else:
                raise FilterParseError(
                    "Filter rules must be separated by 'include' or 'exclude'",
                    token.position,
                )
            rules.append(FilterRule(kind, self.or_filter()))
            token = self.peek()
        return FilterSet(tuple(rules))

    def filter(self) -> Filter:
        if not self.tokens:
            raise FilterParseError("Filter expression is empty")
        result = self.or_filter()
        token = self.peek()
        if token is not None:
            raise FilterParseError("Unexpected trailing input", token.position)
        return result

    def or_filter(self) -> Filter:
        filters = [self.and_filter()]
        token = self.peek()
        while token is not None and token.kind == OR:
            self.advance()
            filters.append(self.and_filter())
            token = self.peek()
        return filters[0] if len(filters) == 1 else OrFilter(tuple(filters))

    def and_filter(self) -> Filter:
        filters = [self.not_filter()]
        token = self.peek()
        while token is not None and token.kind == AND:
            self.advance()
            filters.append(self.not_filter())
            token = self.peek()
        return filters[0] if len(filters) == 1 else AndFilter(tuple(filters))

    def not_filter(self) -> Filter:
        token = self.peek()
        if token is not None and token.kind == NOT:
            self.advance()
            return NotFilter(self.not_filter())
        if token is not None and token.kind == LEFT_BRACKET:
            self.advance()
            result = self.or_filter()
            self.expect(RIGHT_BRACKET, "')'")
            return result
        return self.simple_filter()

    def simple_filter(self) -> Filter:
        token = self.peek()
        if token is not None and token.kind == STAR:
            self.advance()
            return AnyFilter()
        if token is None or token.kind not in (WORD, REGEX_WORD):
            raise FilterParseError("Filter expression expected", self._position(token))

        key = self.advance().text or ""
        self.expect(COLON, "':'")
        values = [self.value()]
        token = self.peek()
        while token is not None and token.kind == COMMA:
            self.advance()
            values.append(self.value())
            token = self.peek()
        value_filter = values[0] if len(values) == 1 else OrFilter(tuple(values))

        lowered = key.lower()
        if lowered == "id":
            return IdFilter(value_filter)
        if lowered == "name":
            return NameFilter(value_filter)
        if lowered == "namespace":
            return NamespaceFilter(value_filter)
        return MetadataFilter(key, value_filter)

    def value(self) -> Filter:
        token = self.peek()
        if token is not None and token.kind == REGEX_WORD:
            self.advance()
            ignore_case = False
            modifier = self.peek()
            if modifier is not None and modifier.kind == CASE_INSENSITIVE:
                self.advance()
                ignore_case = True
            regex = RegexFilter(token.text or "", ignore_case)
            try:
                regex.compile()
            except re.error as e:
                raise FilterParseError(f"Invalid regular expression: {e}", token.position)
            return regex
        if token is not None and token.kind == WORD:
            self.advance()
            return EqualityFilter(token.text or "")
        raise FilterParseError("Value expected", self._position(token))


def parse_filter_set(expr: str | None) -> FilterSet:
    """Parse a filter set expression.

    An empty or blank expression gives the empty filter set.

    Raises:
        FilterParseError: If the expression is malformed.
    """
    return _Parser(expr or "").filter_set()


def parse_filter(expr: str) -> Filter:
    """Parse a single filter expression.

    Raises:
        FilterParseError: If the expression is empty or malformed.
    """
    return _Parser(expr).filter()

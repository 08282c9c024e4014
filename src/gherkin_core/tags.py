"""Boolean tag filter expressions.

Grammar, lowest precedence first:
    or_expr   := and_expr ('or' and_expr)*
    and_expr  := not_expr ('and' not_expr)*
    not_expr  := 'not' not_expr | primary
    primary   := '@tag' | '(' or_expr ')'
"""

from __future__ import annotations

from collections.abc import Collection, Iterable, Iterator
from dataclasses import dataclass
from enum import Enum

from gherkin_core.errors import GherkinError
from gherkin_core.models import Pickle, PickleTag


class TagFilterErrorKind(Enum):
    EMPTY_EXPRESSION = "emptyExpression"
    UNEXPECTED_TOKEN = "unexpectedToken"
    UNEXPECTED_END_OF_EXPRESSION = "unexpectedEndOfExpression"
    MISSING_CLOSING_PARENTHESIS = "missingClosingParenthesis"


class TagFilterError(GherkinError):
    """Raised when a tag filter expression is malformed."""

    def __init__(
        self,
        kind: TagFilterErrorKind,
        token: str | None = None,
        position: int | None = None,
    ) -> None:
        self.kind = kind
        self.token = token
        self.position = position
        super().__init__(self._describe())

    def _describe(self) -> str:
        if self.kind == TagFilterErrorKind.EMPTY_EXPRESSION:
            return "Tag filter expression is empty"
        if self.kind == TagFilterErrorKind.UNEXPECTED_TOKEN:
            return f'Unexpected token "{self.token}" at position {self.position}'
        if self.kind == TagFilterErrorKind.UNEXPECTED_END_OF_EXPRESSION:
            return "Tag filter expression ended unexpectedly"
        return "Missing closing parenthesis in tag filter expression"


# ── Expression tree ──────────────────────────────────────────────────

TagSet = Collection[str | PickleTag]


@dataclass(frozen=True)
class TagAtom:
    name: str

    def evaluate(self, tags: TagSet) -> bool:
        for tag in tags:
            if (tag.name if isinstance(tag, PickleTag) else tag) == self.name:
                return True
        return False


@dataclass(frozen=True)
class Not:
    operand: TagNode

    def evaluate(self, tags: TagSet) -> bool:
        return not self.operand.evaluate(tags)


@dataclass(frozen=True)
class And:
    left: TagNode
    right: TagNode

    def evaluate(self, tags: TagSet) -> bool:
        return self.left.evaluate(tags) and self.right.evaluate(tags)


@dataclass(frozen=True)
class Or:
    left: TagNode
    right: TagNode

    def evaluate(self, tags: TagSet) -> bool:
        return self.left.evaluate(tags) or self.right.evaluate(tags)


TagNode = TagAtom | Not | And | Or

_KEYWORDS = ("not", "and", "or")


@dataclass(frozen=True)
class _Token:
    value: str
    position: int

    @property
    def is_tag(self) -> bool:
        return self.value.startswith("@")


def _tokenize(expression: str) -> list[_Token]:
    tokens: list[_Token] = []
    i = 0
    while i < len(expression):
        char = expression[i]
        if char.isspace():
            i += 1
        elif char in "()":
            tokens.append(_Token(char, i))
            i += 1
        elif char == "@":
            start = i
            i += 1
            while i < len(expression) and not expression[i].isspace() and expression[i] not in "()":
                i += 1
            if i - start == 1:
                raise TagFilterError(TagFilterErrorKind.UNEXPECTED_TOKEN, "@", start)
            tokens.append(_Token(expression[start:i], start))
        elif char.isalpha():
            start = i
            while i < len(expression) and expression[i].isalpha():
                i += 1
            word = expression[start:i]
            if word not in _KEYWORDS:
                raise TagFilterError(TagFilterErrorKind.UNEXPECTED_TOKEN, word, start)
            tokens.append(_Token(word, start))
        else:
            raise TagFilterError(TagFilterErrorKind.UNEXPECTED_TOKEN, char, i)
    return tokens


class _Parser:
    def __init__(self, tokens: list[_Token]) -> None:
        self.tokens = tokens
        self.pos = 0

    def _peek(self) -> _Token | None:
        return self.tokens[self.pos] if self.pos < len(self.tokens) else None

    def _accept(self, value: str) -> bool:
        token = self._peek()
        if token is not None and token.value == value:
            self.pos += 1
            return True
        return False

    def parse(self) -> TagNode:
        node = self._or()
        token = self._peek()
        if token is not None:
            raise TagFilterError(TagFilterErrorKind.UNEXPECTED_TOKEN, token.value, token.position)
        return node

    def _or(self) -> TagNode:
        node = self._and()
        while self._accept("or"):
            node = Or(node, self._and())
        return node

    def _and(self) -> TagNode:
        node = self._not()
        while self._accept("and"):
            node = And(node, self._not())
        return node

    def _not(self) -> TagNode:
        if self._accept("not"):
            return Not(self._not())
        return self._primary()

    def _primary(self) -> TagNode:
        token = self._peek()
        if token is None:
            raise TagFilterError(TagFilterErrorKind.UNEXPECTED_END_OF_EXPRESSION)
        if token.is_tag:
            self.pos += 1
            return TagAtom(token.value)
        if token.value == "(":
            self.pos += 1
            node = self._or()
            if not self._accept(")"):
                raise TagFilterError(TagFilterErrorKind.MISSING_CLOSING_PARENTHESIS)
            return node
        raise TagFilterError(TagFilterErrorKind.UNEXPECTED_TOKEN, token.value, token.position)


class TagFilter:
    """A parsed tag expression, evaluated against a pickle's tag names."""

    def __init__(self, expression: str) -> None:
        tokens = _tokenize(expression)
        if not tokens:
            raise TagFilterError(TagFilterErrorKind.EMPTY_EXPRESSION)
        self.expression = expression
        self.root = _Parser(tokens).parse()

    @classmethod
    def parse(cls, expression: str) -> TagFilter:
        return cls(expression)

    def matches(self, tags: Iterable[str | PickleTag]) -> bool:
        if not isinstance(tags, Collection):
            tags = tuple(tags)
        return self.root.evaluate(tags)

    def matches_pickle(self, pickle: Pickle) -> bool:
        return self.root.evaluate(pickle.tags)

    def select(self, pickles: Iterable[Pickle]) -> Iterator[Pickle]:
        """Lazily yield the pickles whose tags satisfy the filter."""
        return (pickle for pickle in pickles if self.matches_pickle(pickle))

    def __eq__(self, other: object) -> bool:
        return isinstance(other, TagFilter) and self.root == other.root

    def __hash__(self) -> int:
        return hash(self.root)

    def __str__(self) -> str:
        return self.expression

    def __repr__(self) -> str:
        return f"TagFilter({self.expression!r})"

"""Cucumber Expressions and the parameter type registry.

An expression such as ``I have {int} cucumber(s) in my belly/stomach``
compiles to an anchored regular expression with exactly one capture group
per ``{placeholder}``, left to right. Matching yields the raw captured
substrings; the engine never converts them to other types.

Syntax:
    {name}     parameter of a registered type ({} is the anonymous type)
    (text)     optional text
    a/b        alternation, bound to one whitespace-free run of text
    \\x        literal x, for any of { } ( ) / \\
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from enum import Enum
from functools import lru_cache
from types import MappingProxyType

from gherkin_core.errors import GherkinError

ESCAPABLE = "{}()/\\"


class ExpressionErrorKind(Enum):
    EMPTY_EXPRESSION = "emptyExpression"
    UNTERMINATED_PARAMETER = "unterminatedParameter"
    UNTERMINATED_OPTIONAL = "unterminatedOptional"
    UNKNOWN_PARAMETER_TYPE = "unknownParameterType"
    EMPTY_ALTERNATIVE = "emptyAlternative"
    PARAMETER_IN_ALTERNATION = "parameterInAlternation"
    PARAMETER_IN_OPTIONAL = "parameterInOptional"
    EMPTY_OPTIONAL = "emptyOptional"
    NESTED_OPTIONAL = "nestedOptional"
    INVALID_REGEX = "invalidRegex"


_MESSAGES = {
    ExpressionErrorKind.EMPTY_EXPRESSION: "Expression must not be empty",
    ExpressionErrorKind.UNTERMINATED_PARAMETER: "Unterminated parameter",
    ExpressionErrorKind.UNTERMINATED_OPTIONAL: "Unterminated optional text",
    ExpressionErrorKind.UNKNOWN_PARAMETER_TYPE: "Unknown parameter type",
    ExpressionErrorKind.EMPTY_ALTERNATIVE: "Empty alternative in alternation",
    ExpressionErrorKind.PARAMETER_IN_ALTERNATION: "Parameters are not allowed in alternation",
    ExpressionErrorKind.PARAMETER_IN_OPTIONAL: "Parameters are not allowed in optional text",
    ExpressionErrorKind.EMPTY_OPTIONAL: "Optional text must not be empty",
    ExpressionErrorKind.NESTED_OPTIONAL: "Optional text cannot be nested",
    ExpressionErrorKind.INVALID_REGEX: "Invalid regular expression",
}


class ExpressionError(GherkinError):
    """Raised when a step pattern cannot be compiled."""

    def __init__(self, kind: ExpressionErrorKind, expression: str, detail: str = "") -> None:
        self.kind = kind
        self.expression = expression
        self.detail = detail
        message = f"{_MESSAGES[kind]} in '{expression}'"
        if detail:
            message += f": {detail}"
        super().__init__(message)


# ── Parameter types ──────────────────────────────────────────────────


@dataclass(frozen=True)
class ParameterType:
    name: str
    regexps: tuple[str, ...]
    builtin: bool = False
    strip_quotes: bool = False

    @property
    def pattern(self) -> str:
        """One capture group around every alternative."""
        return "(" + "|".join(self.regexps) + ")"

    def raw_value(self, captured: str) -> str:
        if self.strip_quotes and len(captured) >= 2 and captured[0] == captured[-1] and captured[0] in "\"'":
            return captured[1:-1]
        return captured


@dataclass(frozen=True)
class ParameterTypeDescriptor:
    """A custom parameter type as supplied by configuration."""

    name: str
    patterns: tuple[str, ...] = field(default_factory=tuple)

    @classmethod
    def of(cls, name: str, pattern: str) -> ParameterTypeDescriptor:
        return cls(name, (pattern,))

    @classmethod
    def any_of(cls, name: str, patterns: Iterable[str]) -> ParameterTypeDescriptor:
        return cls(name, tuple(patterns))


BUILTIN_TYPES = (
    ParameterType("int", (r"-?\d+",), builtin=True),
    ParameterType("float", (r"-?\d*\.?\d+",), builtin=True),
    ParameterType("string", (r'"[^"]*"', r"'[^']*'"), builtin=True, strip_quotes=True),
    ParameterType("word", (r"[^\s]+",), builtin=True),
    ParameterType("", (r".*",), builtin=True),
)


def non_capturing(regex: str) -> str:
    """Rewrite capturing groups as non-capturing ones.

    Named groups lose their name; lookarounds and other ``(?`` forms are
    left untouched. Escapes and character classes are skipped.
    """
    out: list[str] = []
    in_class = False
    i = 0
    while i < len(regex):
        char = regex[i]
        if char == "\\" and i + 1 < len(regex):
            out.append(regex[i:i + 2])
            i += 2
            continue
        if in_class:
            if char == "]":
                in_class = False
        elif char == "[":
            in_class = True
            # a "]" right after "[" or "[^" is literal
            out.append(char)
            i += 1
            if i < len(regex) and regex[i] == "^":
                out.append("^")
                i += 1
            if i < len(regex) and regex[i] == "]":
                out.append("]")
                i += 1
            continue
        elif char == "(" and regex.startswith("?P<", i + 1):
            out.append("(?:")
            i = regex.index(">", i) + 1
            continue
        elif char == "(" and not regex.startswith("?", i + 1):
            out.append("(?:")
            i += 1
            continue
        out.append(char)
        i += 1
    return "".join(out)


class ParameterTypeRegistry:
    """Read-only lookup of parameter types by name.

    Built-in types always win over custom types with the same name; among
    custom types the first registration of a name is kept.
    """

    def __init__(self, descriptors: Iterable[ParameterTypeDescriptor] = ()) -> None:
        types: dict[str, ParameterType] = {t.name: t for t in BUILTIN_TYPES}
        for descriptor in descriptors:
            if descriptor.name in types:
                continue
            patterns = tuple(non_capturing(p) for p in descriptor.patterns)
            for original in descriptor.patterns:
                try:
                    re.compile(original)
                except re.error as exc:
                    raise ExpressionError(
                        ExpressionErrorKind.INVALID_REGEX,
                        original,
                        f"parameter type '{descriptor.name}': {exc}",
                    ) from exc
            types[descriptor.name] = ParameterType(descriptor.name, patterns)
        self._types = MappingProxyType(types)

    def lookup(self, name: str) -> ParameterType | None:
        return self._types.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self._types

    @property
    def names(self) -> list[str]:
        return list(self._types)

    @property
    def custom_names(self) -> list[str]:
        return [name for name, t in self._types.items() if not t.builtin]


@lru_cache(maxsize=None)
def default_registry() -> ParameterTypeRegistry:
    """Registry holding only the built-in types."""
    return ParameterTypeRegistry()


# ── Expression tokens ────────────────────────────────────────────────


@dataclass(frozen=True)
class Text:
    value: str


@dataclass(frozen=True)
class Whitespace:
    value: str


@dataclass(frozen=True)
class OptionalText:
    value: str


@dataclass(frozen=True)
class Parameter:
    name: str


@dataclass(frozen=True)
class AlternationMark:
    pass


@dataclass(frozen=True)
class Alternation:
    alternatives: tuple[tuple[Text | OptionalText, ...], ...]


ExpressionNode = Text | Whitespace | OptionalText | Parameter | Alternation


def _read_until(expression: str, start: int, close: str) -> tuple[str, int] | None:
    """Unescaped text from ``start`` up to ``close``; None if unterminated."""
    chars: list[str] = []
    i = start
    while i < len(expression):
        char = expression[i]
        if char == "\\" and i + 1 < len(expression) and expression[i + 1] in ESCAPABLE:
            chars.append("\\" + expression[i + 1])
            i += 2
            continue
        if char == close:
            return "".join(chars), i
        chars.append(char)
        i += 1
    return None


def _unescape(text: str) -> str:
    return re.sub(r"\\([{}()/\\])", r"\1", text)


def tokenize_expression(expression: str) -> list[Text | Whitespace | OptionalText | Parameter | AlternationMark]:
    """Split an expression into flat tokens."""
    tokens: list[Text | Whitespace | OptionalText | Parameter | AlternationMark] = []
    buffer: list[str] = []

    def flush() -> None:
        if buffer:
            tokens.append(Text("".join(buffer)))
            buffer.clear()

    i = 0
    while i < len(expression):
        char = expression[i]
        if char == "\\" and i + 1 < len(expression) and expression[i + 1] in ESCAPABLE:
            buffer.append(expression[i + 1])
            i += 2
        elif char.isspace():
            flush()
            start = i
            while i < len(expression) and expression[i].isspace():
                i += 1
            tokens.append(Whitespace(expression[start:i]))
        elif char == "{":
            flush()
            found = _read_until(expression, i + 1, "}")
            if found is None:
                raise ExpressionError(ExpressionErrorKind.UNTERMINATED_PARAMETER, expression)
            name, end = found
            tokens.append(Parameter(_unescape(name).strip()))
            i = end + 1
        elif char == "(":
            flush()
            found = _read_until(expression, i + 1, ")")
            if found is None:
                raise ExpressionError(ExpressionErrorKind.UNTERMINATED_OPTIONAL, expression)
            raw, end = found
            literal = re.sub(r"\\.", "", raw)
            if "{" in literal:
                raise ExpressionError(ExpressionErrorKind.PARAMETER_IN_OPTIONAL, expression)
            if "(" in literal:
                raise ExpressionError(ExpressionErrorKind.NESTED_OPTIONAL, expression)
            if not raw:
                raise ExpressionError(ExpressionErrorKind.EMPTY_OPTIONAL, expression)
            tokens.append(OptionalText(_unescape(raw)))
            i = end + 1
        elif char == "/":
            flush()
            tokens.append(AlternationMark())
            i += 1
        else:
            buffer.append(char)
            i += 1
    flush()
    return tokens


def parse_expression(expression: str) -> list[ExpressionNode]:
    """Group flat tokens into nodes, folding alternations.

    An alternation spans the run of tokens between two whitespace tokens.
    """
    tokens = tokenize_expression(expression)
    nodes: list[ExpressionNode] = []
    run: list[Text | OptionalText | Parameter | AlternationMark] = []

    def close_run() -> None:
        if not any(isinstance(t, AlternationMark) for t in run):
            nodes.extend(run)  # type: ignore[arg-type]
            run.clear()
            return
        alternatives: list[tuple[Text | OptionalText, ...]] = []
        current: list[Text | OptionalText] = []
        for token in run + [AlternationMark()]:
            if isinstance(token, AlternationMark):
                if not current:
                    raise ExpressionError(ExpressionErrorKind.EMPTY_ALTERNATIVE, expression)
                alternatives.append(tuple(current))
                current = []
            elif isinstance(token, Parameter):
                raise ExpressionError(ExpressionErrorKind.PARAMETER_IN_ALTERNATION, expression)
            else:
                current.append(token)
        nodes.append(Alternation(tuple(alternatives)))
        run.clear()

    for token in tokens:
        if isinstance(token, Whitespace):
            close_run()
            nodes.append(token)
        else:
            run.append(token)
    close_run()
    return nodes


@dataclass(frozen=True)
class ExpressionMatch:
    raw_arguments: list[str]
    parameter_type_names: list[str]


class CucumberExpression:
    """A compiled Cucumber Expression."""

    def __init__(self, source: str, registry: ParameterTypeRegistry | None = None) -> None:
        if not source:
            raise ExpressionError(ExpressionErrorKind.EMPTY_EXPRESSION, source)
        self.source = source
        self.registry = registry or default_registry()
        self._parameter_types: list[ParameterType] = []
        self.pattern = "^" + "".join(self._compile(n) for n in parse_expression(source)) + "$"
        try:
            self.regex = re.compile(self.pattern)
        except re.error as exc:
            raise ExpressionError(ExpressionErrorKind.INVALID_REGEX, source, str(exc)) from exc

    @property
    def parameter_type_names(self) -> list[str]:
        return [t.name for t in self._parameter_types]

    @property
    def parameter_count(self) -> int:
        return len(self._parameter_types)

    def _compile(self, node: ExpressionNode) -> str:
        if isinstance(node, (Text, Whitespace)):
            return re.escape(node.value)
        if isinstance(node, OptionalText):
            return f"(?:{re.escape(node.value)})?"
        if isinstance(node, Parameter):
            parameter_type = self.registry.lookup(node.name)
            if parameter_type is None:
                raise ExpressionError(
                    ExpressionErrorKind.UNKNOWN_PARAMETER_TYPE, self.source, f"{{{node.name}}}"
                )
            self._parameter_types.append(parameter_type)
            return parameter_type.pattern
        alternatives = ("".join(self._compile(part) for part in alt) for alt in node.alternatives)
        return "(?:" + "|".join(alternatives) + ")"

    def match(self, text: str) -> ExpressionMatch | None:
        found = self.regex.fullmatch(text)
        if found is None:
            return None
        groups: Sequence[str | None] = found.groups()
        return ExpressionMatch(
            raw_arguments=[
                parameter_type.raw_value(value or "")
                for parameter_type, value in zip(self._parameter_types, groups)
            ],
            parameter_type_names=self.parameter_type_names,
        )

    def __repr__(self) -> str:
        return f"CucumberExpression({self.source!r})"

"""Step matching with priority tiers and ambiguity detection.

Definitions are grouped into tiers by pattern kind: exact strings first,
then Cucumber Expressions, then raw regular expressions. Tiers are tried in
order and the first tier with any match decides:

* exactly one match  -> Matched
* two or more        -> Ambiguous (a result, not an error)
* no match anywhere  -> Undefined
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from gherkin_core.expressions import (
    CucumberExpression,
    ExpressionError,
    ExpressionErrorKind,
    ParameterTypeRegistry,
)
from gherkin_core.models import Location, PickleStep


class StepPatternKind(Enum):
    EXACT = "exact"
    EXPRESSION = "expression"
    REGEX = "regex"

    @property
    def priority(self) -> int:
        return _PRIORITIES[self]


_PRIORITIES = {
    StepPatternKind.EXACT: 0,
    StepPatternKind.EXPRESSION: 1,
    StepPatternKind.REGEX: 2,
}


@dataclass(frozen=True)
class StepDefinition:
    """A step pattern bound to an opaque handler reference."""

    pattern: str
    kind: StepPatternKind
    handler: Any = None
    source_location: Location | None = None

    @classmethod
    def exact(cls, pattern: str, handler: Any = None, source_location: Location | None = None) -> StepDefinition:
        return cls(pattern, StepPatternKind.EXACT, handler, source_location)

    @classmethod
    def expression(cls, pattern: str, handler: Any = None, source_location: Location | None = None) -> StepDefinition:
        return cls(pattern, StepPatternKind.EXPRESSION, handler, source_location)

    @classmethod
    def regex(cls, pattern: str, handler: Any = None, source_location: Location | None = None) -> StepDefinition:
        return cls(pattern, StepPatternKind.REGEX, handler, source_location)

    @property
    def priority(self) -> int:
        return self.kind.priority

    @property
    def description(self) -> str:
        text = f"/{self.pattern}/" if self.kind == StepPatternKind.REGEX else self.pattern
        if self.source_location is not None:
            text += f" (line {self.source_location.line})"
        return text


@dataclass(frozen=True)
class Matched:
    definition: StepDefinition
    arguments: list[str] = field(default_factory=list)

    @property
    def message(self) -> str:
        return f"Matched {self.definition.description}"


@dataclass(frozen=True)
class Undefined:
    text: str

    @property
    def message(self) -> str:
        return f'Undefined step: "{self.text}". No matching step definition was found.'


@dataclass(frozen=True)
class Ambiguous:
    text: str
    matches: list[Matched]

    @property
    def message(self) -> str:
        lines = [f'Ambiguous step: "{self.text}". Multiple definitions match:']
        lines.extend(f"  - {m.definition.description}" for m in self.matches)
        return "\n".join(lines)


StepMatchResult = Matched | Undefined | Ambiguous


@dataclass(frozen=True)
class _Compiled:
    definition: StepDefinition
    expression: CucumberExpression | None = None
    regex: re.Pattern[str] | None = None

    def match(self, text: str) -> list[str] | None:
        kind = self.definition.kind
        if kind == StepPatternKind.EXACT:
            return [] if text == self.definition.pattern else None
        if kind == StepPatternKind.EXPRESSION:
            found = self.expression.match(text)
            return found.raw_arguments if found is not None else None
        result = self.regex.fullmatch(text)
        if result is None:
            return None
        return [group for group in result.groups() if group is not None]


def _compile(definition: StepDefinition, registry: ParameterTypeRegistry | None) -> _Compiled:
    if definition.kind == StepPatternKind.EXPRESSION:
        return _Compiled(definition, expression=CucumberExpression(definition.pattern, registry))
    if definition.kind == StepPatternKind.REGEX:
        try:
            return _Compiled(definition, regex=re.compile(definition.pattern))
        except re.error as exc:
            raise ExpressionError(
                ExpressionErrorKind.INVALID_REGEX, definition.pattern, str(exc)
            ) from exc
    return _Compiled(definition)


class StepMatcher:
    """Resolves step text against a fixed set of step definitions.

    Every pattern is compiled up front, so a malformed expression or regex
    raises ExpressionError here rather than while matching.
    """

    def __init__(
        self,
        definitions: Iterable[StepDefinition],
        registry: ParameterTypeRegistry | None = None,
    ) -> None:
        self.definitions = list(definitions)
        self.registry = registry
        self._tiers: dict[StepPatternKind, list[_Compiled]] = {kind: [] for kind in StepPatternKind}
        for definition in self.definitions:
            self._tiers[definition.kind].append(_compile(definition, registry))

    def candidates(self, text: str, kind: StepPatternKind) -> list[Matched]:
        """All matches for ``text`` within one tier, in registration order."""
        matches: list[Matched] = []
        for compiled in self._tiers[kind]:
            arguments = compiled.match(text)
            if arguments is not None:
                matches.append(Matched(compiled.definition, arguments))
        return matches

    def match(self, step: PickleStep | str) -> StepMatchResult:
        text = step.text if isinstance(step, PickleStep) else step
        for kind in sorted(StepPatternKind, key=lambda k: k.priority):
            matches = self.candidates(text, kind)
            if len(matches) == 1:
                return matches[0]
            if matches:
                return Ambiguous(text, matches)
        return Undefined(text)

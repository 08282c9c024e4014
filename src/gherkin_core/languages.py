"""Localized Gherkin keyword tables.

The table is bundled as ``languages.yaml`` and loaded once per process.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import cached_property, lru_cache
from importlib import resources
from types import MappingProxyType
from typing import Any, Mapping

import yaml

from gherkin_core.models import StepKeywordType

DEFAULT_LANGUAGE = "en"
LANGUAGE_RESOURCE = "languages.yaml"

# Structural constructs in the order the lexer reports them.
STRUCTURAL_CONSTRUCTS = (
    "feature",
    "rule",
    "background",
    "scenarioOutline",
    "scenario",
    "examples",
)


@dataclass(frozen=True)
class GherkinLanguage:
    """Keywords for one dialect."""

    code: str
    name: str
    native: str
    feature: tuple[str, ...]
    rule: tuple[str, ...]
    background: tuple[str, ...]
    scenario: tuple[str, ...]
    scenario_outline: tuple[str, ...]
    examples: tuple[str, ...]
    given: tuple[str, ...]
    when: tuple[str, ...]
    then: tuple[str, ...]
    and_: tuple[str, ...]
    but: tuple[str, ...]

    def keywords_for(self, construct: str) -> tuple[str, ...]:
        if construct == "scenarioOutline":
            return self.scenario_outline
        return getattr(self, construct)

    @cached_property
    def structural_keywords(self) -> tuple[tuple[str, str], ...]:
        """(keyword, construct) pairs, longest keyword first."""
        pairs = [
            (keyword, construct)
            for construct in STRUCTURAL_CONSTRUCTS
            for keyword in self.keywords_for(construct)
        ]
        # sorted() is stable, so equal lengths keep construct order
        return tuple(sorted(pairs, key=lambda pair: len(pair[0]), reverse=True))

    @cached_property
    def step_keywords(self) -> tuple[str, ...]:
        """Every distinct step keyword, longest first."""
        seen: dict[str, None] = {}
        for keyword in self.given + self.when + self.then + self.and_ + self.but:
            seen.setdefault(keyword, None)
        return tuple(sorted(seen, key=len, reverse=True))

    def step_keyword_type(self, keyword: str) -> StepKeywordType:
        """Classify a step keyword as it appears on an AST step."""
        if keyword.strip() == "*":
            return StepKeywordType.UNKNOWN
        if keyword in self.given:
            return StepKeywordType.CONTEXT
        if keyword in self.when:
            return StepKeywordType.ACTION
        if keyword in self.then:
            return StepKeywordType.OUTCOME
        if keyword in self.and_ or keyword in self.but:
            return StepKeywordType.CONJUNCTION
        return StepKeywordType.UNKNOWN


def _keywords(raw: dict[str, Any], key: str) -> tuple[str, ...]:
    return tuple(str(k) for k in raw.get(key) or ())


def _build_language(code: str, raw: dict[str, Any]) -> GherkinLanguage:
    return GherkinLanguage(
        code=code,
        name=str(raw.get("name", code)),
        native=str(raw.get("native", code)),
        feature=_keywords(raw, "feature"),
        rule=_keywords(raw, "rule"),
        background=_keywords(raw, "background"),
        scenario=_keywords(raw, "scenario"),
        scenario_outline=_keywords(raw, "scenarioOutline"),
        examples=_keywords(raw, "examples"),
        given=_keywords(raw, "given"),
        when=_keywords(raw, "when"),
        then=_keywords(raw, "then"),
        and_=_keywords(raw, "and"),
        but=_keywords(raw, "but"),
    )


def load_languages(text: str) -> dict[str, GherkinLanguage]:
    """Build language records from YAML text."""
    raw = yaml.safe_load(text) or {}
    if not isinstance(raw, dict):
        raise ValueError("Language table must be a mapping of code to keywords")
    return {
        str(code): _build_language(str(code), entry)
        for code, entry in raw.items()
        if isinstance(entry, dict)
    }


@lru_cache(maxsize=None)
def languages() -> Mapping[str, GherkinLanguage]:
    """The bundled language table, read-only."""
    text = resources.files("gherkin_core").joinpath(LANGUAGE_RESOURCE).read_text(
        encoding="utf-8"
    )
    return MappingProxyType(load_languages(text))


def find_language(code: str) -> GherkinLanguage | None:
    return languages().get(code)


def get_language(code: str = DEFAULT_LANGUAGE) -> GherkinLanguage:
    language = find_language(code)
    if language is None:
        raise KeyError(f"Unsupported Gherkin language: {code!r}")
    return language


def supported_languages() -> list[str]:
    return sorted(languages())


def parse_language_directive(line: str) -> str | None:
    """Return the code of a ``# language: xx`` line, else None."""
    stripped = line.strip()
    if not stripped.startswith("#"):
        return None
    after_hash = stripped[1:].strip()
    if not after_hash.lower().startswith("language:"):
        return None
    return after_hash[len("language:"):].strip() or None


def detect_language_code(source: str) -> str | None:
    """Language code from a directive on the first non-empty line."""
    for line in source.split("\n"):
        if not line.strip():
            continue
        return parse_language_directive(line)
    return None

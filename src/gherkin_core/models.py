"""Core data models for gherkin-core.

The AST is strictly tree-shaped: containers own their children and nothing
points back up. Traceability goes through ``"line:column"`` node ids instead.
Pickles are self-contained copies and never reference AST nodes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


@dataclass(frozen=True, order=True)
class Location:
    """A 1-based position in a source document."""

    line: int
    column: int = 1

    @property
    def node_id(self) -> str:
        return f"{self.line}:{self.column}"


class StepKeywordType(Enum):
    """Semantic category of a step keyword."""

    CONTEXT = "context"
    ACTION = "action"
    OUTCOME = "outcome"
    CONJUNCTION = "conjunction"
    UNKNOWN = "unknown"


# ── AST ──────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Tag:
    location: Location
    name: str


@dataclass(frozen=True)
class Comment:
    location: Location
    text: str


@dataclass(frozen=True)
class TableCell:
    location: Location
    value: str


@dataclass(frozen=True)
class TableRow:
    location: Location
    cells: tuple[TableCell, ...] = ()

    @property
    def values(self) -> tuple[str, ...]:
        return tuple(cell.value for cell in self.cells)


@dataclass(frozen=True)
class DataTable:
    location: Location
    rows: tuple[TableRow, ...] = ()


@dataclass(frozen=True)
class DocString:
    location: Location
    content: str
    delimiter: str = '"""'
    media_type: str | None = None


@dataclass(frozen=True)
class Step:
    """A single Given/When/Then/And/But/* line with its optional argument."""

    location: Location
    keyword: str
    keyword_type: StepKeywordType
    text: str
    doc_string: DocString | None = None
    data_table: DataTable | None = None


@dataclass(frozen=True)
class Background:
    location: Location
    keyword: str
    name: str = ""
    description: str | None = None
    steps: tuple[Step, ...] = ()


@dataclass(frozen=True)
class Examples:
    location: Location
    keyword: str
    name: str | None = None
    description: str | None = None
    tags: tuple[Tag, ...] = ()
    table_header: TableRow | None = None
    table_body: tuple[TableRow, ...] = ()


@dataclass(frozen=True)
class Scenario:
    """A Scenario, or a Scenario Outline when ``outline`` is set."""

    location: Location
    keyword: str
    name: str
    description: str | None = None
    tags: tuple[Tag, ...] = ()
    steps: tuple[Step, ...] = ()
    examples: tuple[Examples, ...] = ()
    outline: bool = False


@dataclass(frozen=True)
class Rule:
    location: Location
    keyword: str
    name: str
    description: str | None = None
    tags: tuple[Tag, ...] = ()
    children: tuple[Background | Scenario, ...] = ()

    @property
    def background(self) -> Background | None:
        for child in self.children:
            if isinstance(child, Background):
                return child
        return None


@dataclass(frozen=True)
class Feature:
    location: Location
    keyword: str
    name: str
    language: str = "en"
    description: str | None = None
    tags: tuple[Tag, ...] = ()
    children: tuple[Background | Scenario | Rule, ...] = ()

    @property
    def background(self) -> Background | None:
        for child in self.children:
            if isinstance(child, Background):
                return child
        return None


@dataclass(frozen=True)
class GherkinDocument:
    feature: Feature | None = None
    comments: tuple[Comment, ...] = ()


# ── Pickles ──────────────────────────────────────────────────────────


@dataclass(frozen=True)
class PickleTag:
    name: str
    ast_node_id: str


@dataclass(frozen=True)
class PickleDocString:
    content: str
    media_type: str | None = None


@dataclass(frozen=True)
class PickleTable:
    rows: tuple[tuple[str, ...], ...] = ()


@dataclass(frozen=True)
class PickleStep:
    """A fully resolved step: placeholders substituted, argument copied."""

    id: str
    text: str
    type: StepKeywordType = StepKeywordType.UNKNOWN
    argument: PickleDocString | PickleTable | None = None
    ast_node_ids: tuple[str, ...] = ()


@dataclass(frozen=True)
class Pickle:
    """One executable scenario instance."""

    id: str
    uri: str
    name: str
    language: str
    tags: tuple[PickleTag, ...] = ()
    steps: tuple[PickleStep, ...] = ()
    ast_node_ids: tuple[str, ...] = field(default_factory=tuple)

    @property
    def tag_names(self) -> list[str]:
        return [tag.name for tag in self.tags]

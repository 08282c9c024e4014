"""Pickle compilation: flattens a GherkinDocument into executable pickles.

Each Scenario under the Feature, and each Scenario inside a Rule, becomes a
work item carrying its background chain and the Rule's tags. A plain Scenario
yields one pickle; a Scenario Outline yields one pickle per Examples row, in
document order. An outline without rows yields none.

The lazy path walks an explicit cursor (work item, Examples block, row) so
only the current row is materialized, no matter how large the tables are.
"""

from __future__ import annotations

import re
from collections.abc import Iterator, Mapping
from dataclasses import dataclass

from gherkin_core.models import (
    Background,
    DataTable,
    DocString,
    Examples,
    GherkinDocument,
    Pickle,
    PickleDocString,
    PickleStep,
    PickleTable,
    PickleTag,
    Rule,
    Scenario,
    Step,
    StepKeywordType,
    TableRow,
    Tag,
)

_PLACEHOLDER = re.compile(r"<([^<>]*)>")


def substitute(text: str, values: Mapping[str, str]) -> str:
    """Replace ``<name>`` placeholders with row values.

    Unknown names are left verbatim. Replacement values are not re-scanned.
    Text without ``<`` is returned unchanged (the same object).
    """
    if "<" not in text:
        return text
    return _PLACEHOLDER.sub(lambda m: values.get(m.group(1), m.group(0)), text)


@dataclass(frozen=True)
class _WorkItem:
    scenario: Scenario
    backgrounds: tuple[Background, ...]
    rule_tags: tuple[Tag, ...]


def _work_items(document: GherkinDocument) -> list[_WorkItem]:
    feature = document.feature
    if feature is None:
        return []

    items: list[_WorkItem] = []
    feature_bg = feature.background
    feature_chain = (feature_bg,) if feature_bg else ()
    for child in feature.children:
        if isinstance(child, Scenario):
            items.append(_WorkItem(child, feature_chain, ()))
        elif isinstance(child, Rule):
            rule_bg = child.background
            chain = feature_chain + ((rule_bg,) if rule_bg else ())
            for rule_child in child.children:
                if isinstance(rule_child, Scenario):
                    items.append(_WorkItem(rule_child, chain, child.tags))
    return items


def _pickle_tag(tag: Tag) -> PickleTag:
    return PickleTag(name=tag.name, ast_node_id=tag.location.node_id)


def _pickle_doc_string(doc_string: DocString, values: Mapping[str, str]) -> PickleDocString:
    return PickleDocString(
        content=substitute(doc_string.content, values),
        media_type=substitute(doc_string.media_type, values) if doc_string.media_type else None,
    )


def _pickle_table(table: DataTable, values: Mapping[str, str]) -> PickleTable:
    return PickleTable(rows=tuple(
        tuple(substitute(cell.value, values) for cell in row.cells)
        for row in table.rows
    ))


class PickleIterator(Iterator[Pickle]):
    """Single-consumer cursor over the pickles of one document."""

    def __init__(self, document: GherkinDocument, uri: str = "") -> None:
        feature = document.feature
        self.uri = uri
        self.language = feature.language if feature else "en"
        self.feature_tags = feature.tags if feature else ()
        self._items = _work_items(document)
        self._item_index = 0
        self._examples_index = 0
        self._row_index = 0
        self._next_id = 0

    def __iter__(self) -> PickleIterator:
        return self

    def __next__(self) -> Pickle:
        while self._item_index < len(self._items):
            item = self._items[self._item_index]
            scenario = item.scenario

            if not scenario.outline:
                self._item_index += 1
                return self._make_pickle(item, {}, None, ())

            found = self._next_row(scenario.examples)
            if found is not None:
                examples, row = found
                values = dict(zip(examples.table_header.values, row.values))
                return self._make_pickle(item, values, row, examples.tags)

            self._item_index += 1
            self._examples_index = 0
            self._row_index = 0
        raise StopIteration

    def _next_row(self, blocks: tuple[Examples, ...]) -> tuple[Examples, TableRow] | None:
        while self._examples_index < len(blocks):
            examples = blocks[self._examples_index]
            if examples.table_header is not None and self._row_index < len(examples.table_body):
                row = examples.table_body[self._row_index]
                self._row_index += 1
                return examples, row
            self._examples_index += 1
            self._row_index = 0
        return None

    def _new_id(self) -> str:
        self._next_id += 1
        return str(self._next_id)

    def _make_pickle(
        self,
        item: _WorkItem,
        values: Mapping[str, str],
        row: TableRow | None,
        examples_tags: tuple[Tag, ...],
    ) -> Pickle:
        scenario = item.scenario
        pickle_id = self._new_id()
        row_ids = (row.location.node_id,) if row is not None else ()

        tags = tuple(
            _pickle_tag(tag)
            for group in (self.feature_tags, item.rule_tags, scenario.tags, examples_tags)
            for tag in group
        )

        steps: list[PickleStep] = []
        previous = StepKeywordType.UNKNOWN
        for background in item.backgrounds:
            for step in background.steps:
                pickle_step, previous = self._make_step(step, values, (), previous)
                steps.append(pickle_step)
        for step in scenario.steps:
            pickle_step, previous = self._make_step(step, values, row_ids, previous)
            steps.append(pickle_step)

        return Pickle(
            id=pickle_id,
            uri=self.uri,
            name=substitute(scenario.name, values),
            language=self.language,
            tags=tags,
            steps=tuple(steps),
            ast_node_ids=(scenario.location.node_id,) + row_ids,
        )

    def _make_step(
        self,
        step: Step,
        values: Mapping[str, str],
        row_ids: tuple[str, ...],
        previous: StepKeywordType,
    ) -> tuple[PickleStep, StepKeywordType]:
        step_type = step.keyword_type
        if step_type == StepKeywordType.CONJUNCTION:
            step_type = previous
        elif step_type != StepKeywordType.UNKNOWN:
            previous = step_type

        argument: PickleDocString | PickleTable | None = None
        if step.doc_string is not None:
            argument = _pickle_doc_string(step.doc_string, values)
        elif step.data_table is not None:
            argument = _pickle_table(step.data_table, values)

        pickle_step = PickleStep(
            id=self._new_id(),
            text=substitute(step.text, values),
            type=step_type,
            argument=argument,
            ast_node_ids=(step.location.node_id,) + row_ids,
        )
        return pickle_step, previous


class PickleSequence:
    """Restartable lazy view over a document's pickles.

    Every call to ``iter()`` starts a fresh cursor with its own id counter,
    so each pass yields the same pickles as ``PickleCompiler.compile``.
    """

    def __init__(self, document: GherkinDocument, uri: str = "") -> None:
        self.document = document
        self.uri = uri

    def __iter__(self) -> PickleIterator:
        return PickleIterator(self.document, self.uri)


class PickleCompiler:
    """Compiles GherkinDocuments into pickles."""

    def compile(self, document: GherkinDocument, uri: str = "") -> list[Pickle]:
        return list(self.compile_sequence(document, uri))

    def compile_sequence(self, document: GherkinDocument, uri: str = "") -> PickleSequence:
        return PickleSequence(document, uri)


def compile_pickles(document: GherkinDocument, uri: str = "") -> list[Pickle]:
    """Eagerly compile every pickle of a document."""
    return PickleCompiler().compile(document, uri)


def compile_sequence(document: GherkinDocument, uri: str = "") -> PickleSequence:
    """Lazily compile the pickles of a document."""
    return PickleCompiler().compile_sequence(document, uri)

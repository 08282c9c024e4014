"""JSON export for Gherkin documents and pickles."""

from __future__ import annotations

import json
from collections.abc import Iterable
from typing import Any

from gherkin_core.models import (
    Background,
    DataTable,
    DocString,
    Examples,
    GherkinDocument,
    Pickle,
    PickleDocString,
    PickleStep,
    Rule,
    Scenario,
    Step,
    TableRow,
    Tag,
)


def _tags(tags: Iterable[Tag]) -> list[dict[str, Any]]:
    return [{"name": t.name, "id": t.location.node_id} for t in tags]


def _row(row: TableRow) -> dict[str, Any]:
    return {"id": row.location.node_id, "cells": list(row.values)}


def _doc_string(doc_string: DocString) -> dict[str, Any]:
    return {
        "delimiter": doc_string.delimiter,
        "mediaType": doc_string.media_type,
        "content": doc_string.content,
    }


def _data_table(table: DataTable) -> dict[str, Any]:
    return {"rows": [_row(r) for r in table.rows]}


def _step(step: Step) -> dict[str, Any]:
    data: dict[str, Any] = {
        "id": step.location.node_id,
        "keyword": step.keyword,
        "keywordType": step.keyword_type.value,
        "text": step.text,
    }
    if step.doc_string is not None:
        data["docString"] = _doc_string(step.doc_string)
    if step.data_table is not None:
        data["dataTable"] = _data_table(step.data_table)
    return data


def _examples(examples: Examples) -> dict[str, Any]:
    return {
        "id": examples.location.node_id,
        "keyword": examples.keyword,
        "name": examples.name,
        "tags": _tags(examples.tags),
        "tableHeader": _row(examples.table_header) if examples.table_header else None,
        "tableBody": [_row(r) for r in examples.table_body],
    }


def _child(child: Background | Scenario | Rule) -> dict[str, Any]:
    if isinstance(child, Background):
        return {"background": {
            "id": child.location.node_id,
            "keyword": child.keyword,
            "name": child.name,
            "description": child.description,
            "steps": [_step(s) for s in child.steps],
        }}
    if isinstance(child, Scenario):
        return {"scenario": {
            "id": child.location.node_id,
            "keyword": child.keyword,
            "name": child.name,
            "description": child.description,
            "tags": _tags(child.tags),
            "steps": [_step(s) for s in child.steps],
            "examples": [_examples(e) for e in child.examples],
        }}
    return {"rule": {
        "id": child.location.node_id,
        "keyword": child.keyword,
        "name": child.name,
        "description": child.description,
        "tags": _tags(child.tags),
        "children": [_child(c) for c in child.children],
    }}


def document_to_json(document: GherkinDocument) -> dict[str, Any]:
    """Export a GherkinDocument as a JSON-serializable dictionary."""
    feature = document.feature
    return {
        "feature": None if feature is None else {
            "id": feature.location.node_id,
            "keyword": feature.keyword,
            "name": feature.name,
            "language": feature.language,
            "description": feature.description,
            "tags": _tags(feature.tags),
            "children": [_child(c) for c in feature.children],
        },
        "comments": [
            {"id": c.location.node_id, "text": c.text} for c in document.comments
        ],
    }


def _pickle_step(step: PickleStep) -> dict[str, Any]:
    data: dict[str, Any] = {
        "id": step.id,
        "text": step.text,
        "type": step.type.value,
        "astNodeIds": list(step.ast_node_ids),
    }
    if isinstance(step.argument, PickleDocString):
        data["docString"] = {
            "content": step.argument.content,
            "mediaType": step.argument.media_type,
        }
    elif step.argument is not None:
        data["dataTable"] = [list(row) for row in step.argument.rows]
    return data


def pickles_to_json(pickles: Iterable[Pickle]) -> list[dict[str, Any]]:
    """Export pickles as a list of JSON-serializable dictionaries."""
    return [
        {
            "id": p.id,
            "uri": p.uri,
            "name": p.name,
            "language": p.language,
            "tags": [{"name": t.name, "astNodeId": t.ast_node_id} for t in p.tags],
            "steps": [_pickle_step(s) for s in p.steps],
            "astNodeIds": list(p.ast_node_ids),
        }
        for p in pickles
    ]


def export_json(data: Any, indent: int = 2) -> str:
    """Dump exported data as a JSON string."""
    return json.dumps(data, indent=indent, ensure_ascii=False)

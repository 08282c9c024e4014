"""Click CLI entry point for gherkin-core."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import click
import yaml

from gherkin_core import __version__
from gherkin_core.compiler import compile_sequence
from gherkin_core.config import (
    GherkinConfiguration,
    build_registry,
    build_tag_filter,
    is_initialized,
    load_config,
    save_config,
)
from gherkin_core.errors import GherkinError
from gherkin_core.exporters.json_export import document_to_json, export_json, pickles_to_json
from gherkin_core.expressions import ParameterTypeDescriptor
from gherkin_core.languages import get_language, supported_languages
from gherkin_core.matcher import Matched, StepDefinition, StepMatcher, Undefined
from gherkin_core.models import Pickle
from gherkin_core.parser import parse_file
from gherkin_core.tags import TagFilter

logger = logging.getLogger(__name__)

# UnicodeDecodeError and json.JSONDecodeError are ValueErrors.
_INPUT_ERRORS = (GherkinError, yaml.YAMLError, ValueError)


@click.group()
@click.version_option(version=__version__, prog_name="gherkin-core")
@click.option("--verbose", is_flag=True, default=False, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """Gherkin core: parse feature files, compile pickles, match steps."""
    if verbose:
        logging.basicConfig()
        logging.getLogger("gherkin_core").setLevel(logging.DEBUG)
    ctx.ensure_object(dict)
    ctx.obj["project_root"] = Path.cwd()


def _fail(ctx: click.Context, error: Exception) -> None:
    click.echo(f"Error: {error}")
    ctx.exit(1)


def _project_config(ctx: click.Context) -> GherkinConfiguration:
    project_root: Path = ctx.obj["project_root"]
    if is_initialized(project_root):
        return load_config(project_root)
    logger.debug("No config in %s; using defaults", project_root)
    return GherkinConfiguration()


@cli.command()
@click.pass_context
def init(ctx: click.Context) -> None:
    """Write a default .gherkin/config.json."""
    project_root: Path = ctx.obj["project_root"]
    if is_initialized(project_root):
        click.echo("Warning: Project is already initialized. Configuration left unchanged.")
        return
    path = save_config(GherkinConfiguration(), project_root)
    click.echo(f"Created: {path}")


@cli.command()
@click.argument("feature_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.pass_context
def parse(ctx: click.Context, feature_file: Path) -> None:
    """Print the parsed document as JSON."""
    try:
        document = parse_file(feature_file)
    except _INPUT_ERRORS as e:
        _fail(ctx, e)
        return
    click.echo(export_json(document_to_json(document)))


@cli.command()
@click.argument("feature_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--tags", "tag_expression", default=None, help="Tag filter expression")
@click.option("--uri", default=None, help="URI recorded on each pickle")
@click.option("--format", "fmt", type=click.Choice(["text", "json"]), default="text")
@click.pass_context
def pickles(
    ctx: click.Context,
    feature_file: Path,
    tag_expression: str | None,
    uri: str | None,
    fmt: str,
) -> None:
    """Compile a feature file and list its pickles."""
    try:
        selected = _selected_pickles(ctx, feature_file, tag_expression, uri)
    except _INPUT_ERRORS as e:
        _fail(ctx, e)
        return

    if fmt == "json":
        click.echo(export_json(pickles_to_json(selected)))
        return

    if not selected:
        click.echo("No pickles.")
        return
    for pickle in selected:
        label = f" [{' '.join(pickle.tag_names)}]" if pickle.tags else ""
        click.echo(f"{pickle.id}. {pickle.name}{label}")
        for step in pickle.steps:
            click.echo(f"     {step.text}")


def _selected_pickles(
    ctx: click.Context,
    feature_file: Path,
    tag_expression: str | None,
    uri: str | None,
) -> list[Pickle]:
    document = parse_file(feature_file)
    if tag_expression is not None:
        tag_filter: TagFilter | None = TagFilter(tag_expression)
    else:
        tag_filter = build_tag_filter(_project_config(ctx))
    sequence = compile_sequence(document, uri if uri is not None else str(feature_file))
    if tag_filter is None:
        return list(sequence)
    return list(tag_filter.select(sequence))


def load_step_definitions(path: Path) -> tuple[list[StepDefinition], list[ParameterTypeDescriptor]]:
    """Read step patterns and parameter types from a YAML file.

    Expected layout::

        exact: ["the app is running"]
        expression: ["I add {int} and {int}"]
        regex: ["^the result is (\\d+)$"]
        parameter_types:
          - name: color
            patterns: ["red", "blue"]
    """
    raw: dict[str, Any] = yaml.safe_load(path.read_text()) or {}
    definitions: list[StepDefinition] = []
    for pattern in raw.get("exact", []) or []:
        definitions.append(StepDefinition.exact(str(pattern)))
    for pattern in raw.get("expression", []) or []:
        definitions.append(StepDefinition.expression(str(pattern)))
    for pattern in raw.get("regex", []) or []:
        definitions.append(StepDefinition.regex(str(pattern)))
    descriptors: list[ParameterTypeDescriptor] = []
    for entry in raw.get("parameter_types", []) or []:
        if not isinstance(entry, dict) or "name" not in entry:
            raise ValueError(f"Parameter type without a name in {path}")
        patterns = [str(p) for p in entry.get("patterns", [])]
        descriptors.append(ParameterTypeDescriptor.any_of(str(entry["name"]), patterns))
    return definitions, descriptors


@cli.command()
@click.argument("feature_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--steps",
    "steps_file",
    required=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="YAML file with step patterns",
)
@click.option("--tags", "tag_expression", default=None, help="Tag filter expression")
@click.option("--dry-run", is_flag=True, default=False, help="Report without failing")
@click.pass_context
def match(
    ctx: click.Context,
    feature_file: Path,
    steps_file: Path,
    tag_expression: str | None,
    dry_run: bool,
) -> None:
    """Match every pickle step against step patterns.

    Exits 1 when a step is undefined or ambiguous, unless this is a dry run
    (the flag, or `dry_run` in the project config).
    """
    try:
        definitions, descriptors = load_step_definitions(steps_file)
        config = _project_config(ctx)
        registry = build_registry(config, descriptors)
        matcher = StepMatcher(definitions, registry)
        selected = _selected_pickles(ctx, feature_file, tag_expression, None)
    except _INPUT_ERRORS as e:
        _fail(ctx, e)
        return

    failures = 0
    for pickle in selected:
        click.echo(f"{pickle.name}")
        for step in pickle.steps:
            result = matcher.match(step.text)
            logger.debug("%s -> %s", step.text, type(result).__name__)
            if isinstance(result, Matched):
                args = f" {result.arguments}" if result.arguments else ""
                click.echo(f"  ok         {step.text} -> {result.definition.description}{args}")
            elif isinstance(result, Undefined):
                failures += 1
                click.echo(f"  undefined  {step.text}")
            else:
                failures += 1
                click.echo(f"  ambiguous  {step.text}")
                for m in result.matches:
                    click.echo(f"               - {m.definition.description}")

    dry_run = dry_run or config.dry_run
    suffix = " (dry run)" if dry_run else ""
    click.echo(f"\n{len(selected)} pickle(s), {failures} unmatched step(s){suffix}")
    if failures and not dry_run:
        ctx.exit(1)


@cli.command()
@click.argument("expression")
@click.argument("tag_names", nargs=-1)
@click.pass_context
def tags(ctx: click.Context, expression: str, tag_names: tuple[str, ...]) -> None:
    """Evaluate a tag filter expression against a set of tags."""
    try:
        tag_filter = TagFilter(expression)
    except GherkinError as e:
        _fail(ctx, e)
        return
    result = tag_filter.matches(tag_names)
    click.echo("match" if result else "no match")
    if not result:
        ctx.exit(1)


@cli.command()
def languages() -> None:
    """List the bundled Gherkin languages."""
    for code in supported_languages():
        language = get_language(code)
        click.echo(f"{code:<4} {language.name} ({language.native})")

"""Configuration management for gherkin-core projects."""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path

from gherkin_core.expressions import (
    BUILTIN_TYPES,
    ParameterTypeDescriptor,
    ParameterTypeRegistry,
)
from gherkin_core.languages import DEFAULT_LANGUAGE
from gherkin_core.tags import TagFilter

logger = logging.getLogger(__name__)

CONFIG_DIR = ".gherkin"
CONFIG_FILE = "config.json"


@dataclass
class GherkinConfiguration:
    """Project configuration for gherkin-core."""

    language: str = DEFAULT_LANGUAGE
    tag_filter: str | None = None
    dry_run: bool = False
    parameter_types: list[ParameterTypeDescriptor] = field(default_factory=list)


def _config_path(project_root: Path) -> Path:
    return project_root / CONFIG_DIR / CONFIG_FILE


def save_config(config: GherkinConfiguration, project_root: Path) -> Path:
    """Save project config to .gherkin/config.json. Returns the config path."""
    config_dir = project_root / CONFIG_DIR
    config_dir.mkdir(parents=True, exist_ok=True)
    path = _config_path(project_root)
    data = {
        "language": config.language,
        "tag_filter": config.tag_filter,
        "dry_run": config.dry_run,
        "parameter_types": [
            {"name": d.name, "patterns": list(d.patterns)} for d in config.parameter_types
        ],
    }
    path.write_text(json.dumps(data, indent=2) + "\n")
    return path


def load_config(project_root: Path) -> GherkinConfiguration:
    """Load project config from .gherkin/config.json."""
    path = _config_path(project_root)
    if not path.exists():
        raise FileNotFoundError(f"No config found at {path}")
    try:
        data = json.loads(path.read_text())
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid config at {path}: {e}") from e
    descriptors = []
    for entry in data.get("parameter_types", []):
        if "name" not in entry:
            raise ValueError(f"Parameter type without a name in {path}")
        descriptors.append(
            ParameterTypeDescriptor.any_of(entry["name"], entry.get("patterns", []))
        )
    logger.debug("Loaded %s with %d parameter type(s)", path, len(descriptors))
    return GherkinConfiguration(
        language=data.get("language", DEFAULT_LANGUAGE),
        tag_filter=data.get("tag_filter") or None,
        dry_run=data.get("dry_run", False),
        parameter_types=descriptors,
    )


def is_initialized(project_root: Path) -> bool:
    """Check if the project has a gherkin-core config."""
    return _config_path(project_root).exists()


def build_registry(
    config: GherkinConfiguration,
    extra: Iterable[ParameterTypeDescriptor] = (),
) -> ParameterTypeRegistry:
    """Build the parameter type registry for a run.

    Registration order: the config file's types in file order, then ``extra``
    (programmatic registrations) in the order given. The registry keeps the
    first type of each name and never lets a custom type replace a built-in.
    """
    ordered = list(config.parameter_types) + list(extra)
    builtin_names = {t.name for t in BUILTIN_TYPES}
    seen: set[str] = set()
    for descriptor in ordered:
        if descriptor.name in builtin_names:
            logger.warning(
                "Parameter type '%s' collides with a built-in type and is ignored",
                descriptor.name,
            )
        elif descriptor.name in seen:
            logger.warning(
                "Parameter type '%s' is already registered; keeping the first one",
                descriptor.name,
            )
        seen.add(descriptor.name)
    return ParameterTypeRegistry(ordered)


def build_tag_filter(config: GherkinConfiguration) -> TagFilter | None:
    """The configured tag filter, or None when every pickle runs."""
    if not config.tag_filter or not config.tag_filter.strip():
        return None
    return TagFilter(config.tag_filter)

"""
Project file loading and saving.

Projects are YAML or JSON documents holding ``tables``, ``relationships``
and ``referenceFiles`` (optionally wrapped in a ``state`` key). The format
is chosen by file extension.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Union

import yaml

from synth_forge.models import ProjectSchema, SchemaError

logger = logging.getLogger(__name__)

YAML_SUFFIXES = (".yaml", ".yml")


def _read_document(path: Path) -> Dict[str, Any]:
    with open(path, "r") as f:
        if path.suffix.lower() in YAML_SUFFIXES:
            data = yaml.safe_load(f)
        else:
            data = json.load(f)

    if not isinstance(data, dict):
        raise SchemaError(f"Project file {path} must contain a mapping")
    return data


def load_project(path: Union[str, Path], derive_links: bool = True) -> ProjectSchema:
    """
    Load a project schema from a YAML or JSON file.

    Args:
        path: Project file
        derive_links: Rewrite 1:1/1:N child columns to Linked rules

    Raises:
        SchemaError: If the file cannot be parsed into a schema
    """
    path = Path(path)
    try:
        data = _read_document(path)
        schema = ProjectSchema.from_dict(data, derive_links=derive_links)
    except SchemaError:
        raise
    except (yaml.YAMLError, json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
        raise SchemaError(f"Invalid project file {path}: {e}") from e

    logger.info(
        f"Loaded {len(schema.tables)} tables, {len(schema.relationships)} relationships "
        f"from {path}"
    )
    return schema


def save_project(schema: ProjectSchema, path: Union[str, Path]) -> Path:
    """Write a project schema as YAML or JSON."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    with open(path, "w") as f:
        if path.suffix.lower() in YAML_SUFFIXES:
            yaml.safe_dump(schema.to_dict(), f, sort_keys=False)
        else:
            json.dump(schema.to_dict(), f, indent=2)

    logger.info(f"Saved project to {path}")
    return path

"""
Schema manifest export.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional, Union

from synth_forge.models import GenerationMode, ProjectSchema

logger = logging.getLogger(__name__)


def build_schema_manifest(schema: ProjectSchema) -> Dict[str, Any]:
    """
    Describe a project: tables in generation order, their row settings,
    column strategies, relationships and configuration warnings.
    """
    tables = {}
    for position, table in enumerate(schema.generation_order()):
        settings = table.settings
        entry: Dict[str, Any] = {
            "id": table.id,
            "generation_position": position,
            "mode": settings.mode.value,
            "columns": [
                {
                    "name": col.name,
                    "type": col.data_type.value,
                    "strategy": col.rule.kind.value,
                }
                for col in table.columns
            ],
        }
        if settings.mode == GenerationMode.PER_PARENT:
            parent = schema.get_table(settings.driving_parent_table_id)
            entry["driving_parent"] = parent.name if parent else settings.driving_parent_table_id
            entry["rows_per_parent"] = [settings.min_per_parent, settings.max_per_parent]
        else:
            entry["fixed_count"] = settings.fixed_count
        tables[table.name] = entry

    relationships = []
    for rel in schema.relationships:
        source = schema.get_table(rel.source_table_id)
        target = schema.get_table(rel.target_table_id)
        relationships.append({
            "id": rel.id,
            "child": source.name if source else rel.source_table_id,
            "parent": target.name if target else rel.target_table_id,
            "cardinality": rel.cardinality.value,
        })

    return {
        "generated_at": datetime.now().isoformat(),
        "tables": tables,
        "relationships": relationships,
        "warnings": schema.validate(),
    }


def write_schema_manifest(
    schema: ProjectSchema,
    output_path: Union[str, Path],
    manifest: Optional[Dict[str, Any]] = None,
) -> Path:
    """Write the schema manifest as JSON."""
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    with open(output_path, "w") as f:
        json.dump(manifest or build_schema_manifest(schema), f, indent=2, default=str)

    logger.info(f"Wrote schema manifest to {output_path}")
    return output_path

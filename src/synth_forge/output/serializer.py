"""
CSV serialization of generated tables.
"""

from __future__ import annotations

import csv
import logging
from typing import TYPE_CHECKING

from synth_forge.models import Table

if TYPE_CHECKING:
    from synth_forge.generator.store import GeneratedStore

logger = logging.getLogger(__name__)


def csv_file_name(table: Table) -> str:
    return f"{table.name}.csv"


def serialize_table(table: Table, store: GeneratedStore) -> str:
    """
    Serialize a generated table to CSV text.

    Every field is quoted with embedded quotes doubled, rows are separated
    by ``\\n`` and there is no trailing newline. A table without columns
    serializes to an empty string.
    """
    if not table.columns:
        return ""

    df = store.to_dataframe(table)
    text = df.to_csv(index=False, quoting=csv.QUOTE_ALL, lineterminator="\n")
    if text.endswith("\n"):
        text = text[:-1]

    logger.debug(f"Serialized {len(df)} rows for {table.name}")
    return text

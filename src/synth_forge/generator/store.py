"""
Generated value store shared by all tables of one run.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Sequence, Tuple

import pandas as pd

from synth_forge.models import GeneratedStoreError, Table

logger = logging.getLogger(__name__)


class GeneratedStore:
    """
    TableId -> ColumnId -> ordered generated values.

    Each table is written exactly once, after which its columns are frozen
    into tuples and only read by descendant tables.
    """

    def __init__(self):
        self._data: Dict[str, Dict[str, Tuple[str, ...]]] = {}

    def put(self, table_id: str, columns: Dict[str, Sequence[str]]) -> None:
        """Freeze the generated columns of a table."""
        if table_id in self._data:
            raise GeneratedStoreError(f"Table {table_id} has already been generated")

        lengths = {len(values) for values in columns.values()}
        if len(lengths) > 1:
            raise GeneratedStoreError(
                f"Table {table_id} has inconsistent column lengths: {sorted(lengths)}"
            )

        self._data[table_id] = {col_id: tuple(values) for col_id, values in columns.items()}

    def has_table(self, table_id: Optional[str]) -> bool:
        return table_id in self._data

    def get_column(self, table_id: Optional[str], column_id: Optional[str]) -> Optional[Tuple[str, ...]]:
        """Generated values of a column, or None if not generated."""
        return self._data.get(table_id, {}).get(column_id)

    def row_count(self, table_id: str) -> int:
        columns = self._data.get(table_id)
        if not columns:
            return 0
        return len(next(iter(columns.values())))

    def table_ids(self) -> List[str]:
        return list(self._data.keys())

    def to_dataframe(self, table: Table) -> pd.DataFrame:
        """Generated table as a DataFrame with column names as headers."""
        columns = self._data.get(table.id, {})
        # Positional keys keep duplicate column names apart
        frame = pd.DataFrame(
            {position: list(columns.get(col.id, ())) for position, col in enumerate(table.columns)},
            dtype=object,
        )
        frame.columns = table.column_names
        return frame

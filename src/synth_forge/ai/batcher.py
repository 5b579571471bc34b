"""
AI content batching for a single table.

AI columns run after every non-AI column of the table is materialized.
They are ordered by their declared dependencies, grouped into waves of
equal dependency depth, and each wave is issued concurrently.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Dict, List, Optional, Sequence

from synth_forge.ai.service import ContentService
from synth_forge.models import (
    AI_ERROR_SENTINEL,
    AIDependencyCycleError,
    AIRule,
    Column,
    ContentServiceError,
    GenerationConfig,
    Table,
    is_ai_column,
)

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str], None]


def _ai_dependencies(table: Table, column: Column) -> List[str]:
    rule = column.rule
    if not isinstance(rule, AIRule):
        return []
    return [d for d in rule.dependency_column_ids if table.get_column(d) is not None]


def order_ai_columns(table: Table) -> List[Column]:
    """
    AI columns of a table, each after the AI columns it depends on.

    Raises:
        AIDependencyCycleError: If the declared dependencies form a cycle
    """
    ai_columns = {c.id: c for c in table.columns if is_ai_column(c)}
    order: List[Column] = []
    visited: set = set()
    visiting: List[str] = []

    def visit(col_id: str) -> None:
        if col_id in visited:
            return
        if col_id in visiting:
            cycle = visiting[visiting.index(col_id):] + [col_id]
            names = [table.get_column(c).name for c in cycle]
            raise AIDependencyCycleError(
                f"AI columns of {table.name} depend on each other in a cycle: {' -> '.join(names)}"
            )

        visiting.append(col_id)
        for dep in _ai_dependencies(table, ai_columns[col_id]):
            if dep in ai_columns:
                visit(dep)
        visiting.pop()

        visited.add(col_id)
        order.append(ai_columns[col_id])

    for col_id in ai_columns:
        visit(col_id)
    return order


def ai_waves(table: Table, ordered: Sequence[Column]) -> List[List[Column]]:
    """Group ordered AI columns by dependency depth."""
    depth: Dict[str, int] = {}
    for col in ordered:
        parents = [depth[d] for d in _ai_dependencies(table, col) if d in depth]
        depth[col.id] = max(parents) + 1 if parents else 0

    waves: List[List[Column]] = []
    for col in ordered:
        level = depth[col.id]
        while len(waves) <= level:
            waves.append([])
        waves[level].append(col)
    return waves


def fill_to_count(values: Sequence[str], count: int) -> List[str]:
    """Truncate or cyclically repeat ``values`` to exactly ``count`` items."""
    if not values:
        raise ContentServiceError("Empty result")
    return [values[i % len(values)] for i in range(count)]


def build_contexts(
    table: Table,
    column: Column,
    row_count: int,
    buffer: Dict[str, List[str]],
) -> List[str]:
    """Per-row ``"name: value"`` context strings for an AI column."""
    rule = column.rule
    deps: List[Column] = []
    for dep_id in rule.dependency_column_ids:
        dep = table.get_column(dep_id)
        if dep is None:
            logger.warning(f"{table.name}.{column.name}: unknown dependency column {dep_id}")
            continue
        deps.append(dep)

    if not deps:
        return [""] * row_count

    contexts = []
    for row in range(row_count):
        parts = []
        for dep in deps:
            values = buffer.get(dep.id, [])
            value = values[row] if row < len(values) else ""
            parts.append(f"{dep.name}: {value}")
        contexts.append("; ".join(parts))
    return contexts


class AIContentBatcher:
    """Fills the AI columns of a table through a content service."""

    def __init__(
        self,
        service: ContentService,
        config: Optional[GenerationConfig] = None,
        on_progress: Optional[ProgressCallback] = None,
    ):
        self.service = service
        self.config = config or GenerationConfig()
        self.on_progress = on_progress

    def _progress(self, message: str) -> None:
        if self.on_progress:
            self.on_progress(message)

    async def fill_table(
        self,
        table: Table,
        row_count: int,
        buffer: Dict[str, List[str]],
    ) -> None:
        """
        Generate every AI column of ``table`` into ``buffer``.

        Args:
            table: Table being generated
            row_count: Number of rows of the table
            buffer: Column id -> values, already holding all non-AI columns
        """
        ordered = order_ai_columns(table)
        if not ordered:
            return

        semaphore = asyncio.Semaphore(self.config.max_concurrent_ai_requests)

        for wave in ai_waves(table, ordered):
            results = await asyncio.gather(*[
                self._generate_column(table, col, row_count, buffer, semaphore)
                for col in wave
            ])
            for col, values in zip(wave, results):
                buffer[col.id] = values

    async def _generate_column(
        self,
        table: Table,
        column: Column,
        row_count: int,
        buffer: Dict[str, List[str]],
        semaphore: asyncio.Semaphore,
    ) -> List[str]:
        if row_count == 0:
            return []

        self._progress(f"Generating AI content for {table.name}.{column.name} ({row_count} items)...")

        rule = column.rule
        contexts = build_contexts(table, column, row_count, buffer)
        examples = list(column.sample_values[: self.config.ai_example_count])

        try:
            async with semaphore:
                values = await self.service.generate_batch(
                    rule.prompt, row_count, examples, contexts
                )
            if not isinstance(values, list):
                raise ContentServiceError("Invalid Format")
            return fill_to_count(values, row_count)
        except Exception as e:
            logger.error(f"AI generation failed for {table.name}.{column.name}: {e}")
            return [AI_ERROR_SENTINEL] * row_count

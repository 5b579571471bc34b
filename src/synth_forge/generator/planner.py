"""
Row planning: how many rows each table gets and which parent row drives them.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from synth_forge.generator.store import GeneratedStore
from synth_forge.models import GenerationMode, ProjectSchema, Table
from synth_forge.randomness import RandomSource

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GenerationJob:
    """A batch of rows, optionally attached to one driving parent row."""
    count: int
    driving_id: Optional[str] = None
    parent_row_index: Optional[int] = None
    orphaned: bool = False


@dataclass
class TablePlan:
    """Jobs planned for one table."""
    table_id: str
    jobs: List[GenerationJob] = field(default_factory=list)
    driving_parent_table_id: Optional[str] = None

    @property
    def total_rows(self) -> int:
        return sum(job.count for job in self.jobs)

    @property
    def is_orphaned(self) -> bool:
        return any(job.orphaned for job in self.jobs)


class RowPlanner:
    """
    Decides per table how many rows to generate.

    ``fixed`` tables get a single job. ``per_parent`` tables get one job per
    generated row of the driving parent, each with a random count in
    [min_per_parent, max_per_parent].
    """

    def __init__(
        self,
        schema: ProjectSchema,
        store: GeneratedStore,
        rng: RandomSource,
        default_fixed_count: int = 100,
    ):
        self.schema = schema
        self.store = store
        self.rng = rng
        self.default_fixed_count = default_fixed_count

    def plan(self, table: Table) -> TablePlan:
        settings = table.settings

        if settings.mode == GenerationMode.PER_PARENT:
            return self._plan_per_parent(table)

        count = self._fixed_count(table)
        return TablePlan(table_id=table.id, jobs=[GenerationJob(count=count)])

    def _fixed_count(self, table: Table) -> int:
        count = table.settings.fixed_count
        if count is None:
            count = self.default_fixed_count
        return max(int(count), 0)

    def _plan_per_parent(self, table: Table) -> TablePlan:
        settings = table.settings
        parent_id = settings.driving_parent_table_id
        driving_ids = self._driving_parent_ids(table)

        if driving_ids is None:
            count = self._fixed_count(table)
            logger.warning(
                f"Driving parent data not found for {table.name}; "
                f"generating {count} orphaned rows"
            )
            return TablePlan(
                table_id=table.id,
                jobs=[GenerationJob(count=count, orphaned=True)],
                driving_parent_table_id=parent_id,
            )

        low = max(settings.min_per_parent, 0)
        high = max(settings.max_per_parent, 0)
        if high < low:
            low, high = high, low

        jobs = []
        for parent_row_index, driving_id in enumerate(driving_ids):
            count = self.rng.randint(low, high)
            if count > 0:
                jobs.append(GenerationJob(
                    count=count,
                    driving_id=driving_id,
                    parent_row_index=parent_row_index,
                ))

        plan = TablePlan(table_id=table.id, jobs=jobs, driving_parent_table_id=parent_id)
        logger.info(
            f"Planned {plan.total_rows} rows for {table.name} "
            f"across {len(driving_ids)} parent rows"
        )
        return plan

    def _driving_parent_ids(self, table: Table) -> Optional[List[str]]:
        """Generated key values of the driving parent, or None if unavailable."""
        parent_id = table.settings.driving_parent_table_id
        if not parent_id:
            return None

        rel = self.schema.find_relationship(table.id, parent_id)
        if rel is None:
            return None

        values = self.store.get_column(parent_id, rel.target_column_id)
        if values is None:
            return None
        return list(values)

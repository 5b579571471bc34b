"""
Generation engine producing every table of a project.

Handles:
- Table ordering so parents are generated before their children
- Row planning and the row-major pass over non-AI columns
- AI column batching once the rest of the table is materialized
- CSV serialization into an archive writer
"""

from __future__ import annotations

import logging
from typing import Callable, Dict, Iterable, List, Optional

import pandas as pd

from synth_forge.ai.batcher import AIContentBatcher, order_ai_columns
from synth_forge.ai.service import ContentService, build_content_service
from synth_forge.generator.planner import RowPlanner
from synth_forge.generator.resolver import RowContext, ValueResolver, order_columns
from synth_forge.generator.store import GeneratedStore
from synth_forge.models import (
    GenerationConfig,
    ProjectSchema,
    ReferenceFile,
    Relationship,
    Table,
    is_ai_column,
)
from synth_forge.output.archive import Archive, ArchiveWriter, ZipArchiveWriter
from synth_forge.output.serializer import csv_file_name, serialize_table
from synth_forge.randomness import RandomSource

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str], None]


class Generator:
    """
    Generates synthetic data for a project schema.

    The generator:
    1. Orders tables so every relationship target precedes its sources
    2. Plans row counts per table (fixed or per driving parent row)
    3. Resolves non-AI columns row by row
    4. Fills AI columns through the content service
    5. Freezes the table in the store and writes its CSV to the archive
    """

    def __init__(
        self,
        schema: ProjectSchema,
        config: Optional[GenerationConfig] = None,
        content_service: Optional[ContentService] = None,
        archive_writer: Optional[ArchiveWriter] = None,
        rng: Optional[RandomSource] = None,
        on_progress: Optional[ProgressCallback] = None,
    ):
        """
        Initialize generator.

        Args:
            schema: Immutable project snapshot (1:1 and 1:N child columns
                without a configured link are rewritten to Linked rules)
            config: Generation configuration
            content_service: Service for AI columns (built from config when needed)
            archive_writer: Receives one CSV per table (in-memory zip by default)
            rng: Random source (seeded from config when omitted)
            on_progress: Callback for coarse progress messages
        """
        self.schema = schema.with_derived_links()
        self.config = config or GenerationConfig()
        self.rng = rng or RandomSource(self.config.seed)
        self.archive_writer = archive_writer or ZipArchiveWriter(self.config.archive_name)
        self.on_progress = on_progress
        self._content_service = content_service

        self.store = GeneratedStore()
        self.planner = RowPlanner(self.schema, self.store, self.rng, self.config.default_fixed_count)

    def _progress(self, message: str) -> None:
        if self.on_progress:
            self.on_progress(message)

    @property
    def content_service(self) -> ContentService:
        if self._content_service is None:
            self._content_service = build_content_service(self.config)
        return self._content_service

    async def run(self) -> Archive:
        """
        Generate every table and finalize the archive.

        Raises:
            Exception: Any fatal error, after the error progress message
        """
        try:
            return await self._run()
        except Exception as e:
            logger.error(f"Generation failed: {e}")
            self._progress("Error occurred during generation.")
            raise

    async def _run(self) -> Archive:
        self._progress("Planning generation strategy...")

        for warning in self.schema.validate():
            logger.warning(warning)

        order = self.schema.generation_order()
        logger.info(f"Generation order: {[t.name for t in order]}")

        # Reject cyclic AI dependencies before any table is generated
        for table in order:
            order_ai_columns(table)

        for table in order:
            await self._generate_table(table)

        self._progress("Zipping files...")
        archive = self.archive_writer.finalize()

        self._progress("Done!")
        return archive

    async def _generate_table(self, table: Table) -> None:
        self._progress(f"Processing table: {table.name}...")

        plan = self.planner.plan(table)
        columns = order_columns(table)
        buffer: Dict[str, List[str]] = {c.id: [] for c in columns}
        resolver = ValueResolver(
            self.schema, table, plan, self.store, self.rng, self.config.now, buffer
        )

        row_index = 0
        for job in plan.jobs:
            for _ in range(job.count):
                ctx = RowContext(row_index=row_index, job=job)
                for col in columns:
                    buffer[col.id].append(resolver.resolve(col, ctx))
                row_index += 1

        if any(is_ai_column(c) for c in table.columns):
            batcher = AIContentBatcher(self.content_service, self.config, self.on_progress)
            await batcher.fill_table(table, row_index, buffer)

        self.store.put(table.id, {c.id: buffer.get(c.id, []) for c in table.columns})
        self.archive_writer.write_file(csv_file_name(table), serialize_table(table, self.store))

        logger.info(f"Generated {row_index} rows for {table.name}")

    def get_generated_data(self) -> Dict[str, pd.DataFrame]:
        """Return all generated tables keyed by table name."""
        return {
            table.name: self.store.to_dataframe(table)
            for table in self.schema.tables
            if self.store.has_table(table.id)
        }


async def generate(
    tables: Iterable[Table],
    relationships: Iterable[Relationship] = (),
    reference_files: Iterable[ReferenceFile] = (),
    on_progress: Optional[ProgressCallback] = None,
    *,
    config: Optional[GenerationConfig] = None,
    content_service: Optional[ContentService] = None,
    archive_writer: Optional[ArchiveWriter] = None,
    rng: Optional[RandomSource] = None,
) -> Archive:
    """
    Generate synthetic data for the given tables.

    Child columns of 1:1 and 1:N relationships are filled from the parent
    unless they already carry a configured Linked or Random Record rule.
    Returns once every table's CSV has been written and the archive is
    finalized. On a fatal error ``on_progress`` receives
    "Error occurred during generation." and the error is re-raised.
    """
    schema = ProjectSchema(
        tables=tuple(tables),
        relationships=tuple(relationships),
        reference_files=tuple(reference_files),
    )
    generator = Generator(
        schema,
        config=config,
        content_service=content_service,
        archive_writer=archive_writer,
        rng=rng,
        on_progress=on_progress,
    )
    return await generator.run()

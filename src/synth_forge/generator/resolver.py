"""
Value resolution for non-AI columns.

Handles:
- Per-table column ordering so intra-row dependencies resolve first
- Strategy dispatch (copy, pattern, random, reference, linked, random record)
- Type-driven dates, durations and revisions
- Row-aligned and memoized parent-row linkage for foreign keys
"""

from __future__ import annotations

import logging
import re
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional, Set, Tuple

from synth_forge.generator.planner import GenerationJob, TablePlan
from synth_forge.generator.store import GeneratedStore
from synth_forge.generator.temporal import (
    after_created,
    apply_date_logic,
    duration_between,
    format_timestamp,
    is_created_name,
    is_modified_name,
    parse_timestamp,
    random_recent,
)
from synth_forge.models import (
    DEFAULT_RANDOM_OPTIONS,
    DEFAULT_REVISION_SCHEMA,
    MISSING_REF,
    MISSING_SOURCE_VAL,
    ORPHAN,
    UNCONFIGURED_LINK,
    Column,
    CopyRule,
    DataType,
    DateRule,
    DurationRule,
    LinkedRule,
    PatternRule,
    ProjectSchema,
    RandomRecordRule,
    RandomRule,
    ReferenceRule,
    RevisionRule,
    Table,
    is_ai_column,
)
from synth_forge.randomness import RandomSource

logger = logging.getLogger(__name__)

_HASH_RUN = re.compile(r"#+")
_LEADING_DIGITS = re.compile(r"\s*(\d+)")


@dataclass
class RowContext:
    """Per-row state passed explicitly into every resolver call."""
    row_index: int
    job: GenerationJob
    resolved_parent_indices: Dict[str, int] = field(default_factory=dict)


def render_pattern(pattern: str, row_index: int, rng: RandomSource) -> str:
    """
    Render an identifier pattern for a 0-based row index.

    ``UUID`` gives a random UUID and ``HEX-<n>`` n uppercase hex digits
    (the leading digits of n, 32 when there are none). Otherwise every run
    of ``#`` is replaced by the 1-based row number padded to the run's
    width, and patterns without ``#`` get the raw index appended.
    """
    if pattern == "UUID":
        return rng.uuid4()

    if pattern.startswith("HEX-"):
        match = _LEADING_DIGITS.match(pattern[4:].split("-")[0])
        length = int(match.group(1)) if match else 0
        return rng.hex_digits(length or 32)

    if "#" not in pattern:
        return f"{pattern}{row_index}"

    ordinal = str(row_index + 1)
    return _HASH_RUN.sub(lambda match: ordinal.zfill(len(match.group())), pattern)


def revision_tokens(revision_schema: Optional[str]) -> List[str]:
    tokens = [t.strip() for t in (revision_schema or DEFAULT_REVISION_SCHEMA).split(",")]
    tokens = [t for t in tokens if t]
    return tokens or [t.strip() for t in DEFAULT_REVISION_SCHEMA.split(",")]


def created_sibling(table: Table, column: Column) -> Optional[Column]:
    """The date column a "modified"/"updated" column must not precede."""
    if column.data_type != DataType.DATE or not is_modified_name(column.name):
        return None
    for other in table.columns:
        if other.id == column.id or other.data_type != DataType.DATE:
            continue
        if is_created_name(other.name) and not is_modified_name(other.name):
            return other
    return None


def _same_table(table: Table, table_id: Optional[str]) -> bool:
    return table_id is None or table_id == table.id


def column_dependencies(table: Table, column: Column) -> List[str]:
    """Ids of same-table columns that must be resolved before ``column``."""
    deps: List[str] = []
    rule = column.rule

    if isinstance(rule, DateRule):
        for table_id, column_id in rule.references():
            if _same_table(table, table_id):
                deps.append(column_id)
    elif isinstance(rule, DurationRule):
        for table_id, column_id in (
            (rule.start_table_id, rule.start_column_id),
            (rule.end_table_id, rule.end_column_id),
        ):
            if column_id and _same_table(table, table_id):
                deps.append(column_id)
    else:
        sibling = created_sibling(table, column)
        if sibling is not None:
            deps.append(sibling.id)

    known = {c.id for c in table.columns}
    return [d for d in deps if d in known and d != column.id]


def order_columns(table: Table) -> List[Column]:
    """
    Non-AI columns of a table in evaluation order.

    Stable with respect to column order; columns caught in a dependency
    cycle are appended in column order and read their missing inputs as
    unresolved.
    """
    columns = [c for c in table.columns if not is_ai_column(c)]
    ids = [c.id for c in columns]
    in_degree: Dict[str, int] = {c: 0 for c in ids}
    dependents: Dict[str, List[str]] = {c: [] for c in ids}

    for col in columns:
        for dep in column_dependencies(table, col):
            if dep in dependents:
                dependents[dep].append(col.id)
                in_degree[col.id] += 1

    queue = deque(c for c in ids if in_degree[c] == 0)
    order: List[str] = []
    while queue:
        node = queue.popleft()
        order.append(node)
        for child in dependents[node]:
            in_degree[child] -= 1
            if in_degree[child] == 0:
                queue.append(child)

    if len(order) != len(ids):
        placed = set(order)
        remaining = [c for c in ids if c not in placed]
        logger.warning(f"Cyclic column dependencies in {table.name}: {remaining}")
        order.extend(remaining)

    by_id = {c.id: c for c in columns}
    return [by_id[c] for c in order]


class ValueResolver:
    """
    Produces one string value per non-AI column for a row.

    Resolution is a pure function of the random source, the row context,
    values already resolved for the same row (``buffer``) and the frozen
    values of previously generated tables.
    """

    def __init__(
        self,
        schema: ProjectSchema,
        table: Table,
        plan: TablePlan,
        store: GeneratedStore,
        rng: RandomSource,
        now: datetime,
        buffer: Dict[str, List[str]],
    ):
        self.schema = schema
        self.table = table
        self.plan = plan
        self.store = store
        self.rng = rng
        self.now = now
        self.buffer = buffer
        self._created: Dict[str, Optional[Column]] = {
            c.id: created_sibling(table, c) for c in table.columns
        }
        self._reported: Set[Tuple[str, str]] = set()

    def resolve(self, column: Column, ctx: RowContext) -> str:
        rule = column.rule

        if isinstance(rule, LinkedRule):
            return self._resolve_linked(column, rule, ctx)
        if isinstance(rule, RandomRecordRule):
            return self._resolve_random_record(column, rule)
        if isinstance(rule, DurationRule) or column.data_type == DataType.DURATION:
            return self._resolve_duration(column, ctx)
        if isinstance(rule, DateRule) or column.data_type == DataType.DATE:
            return self._resolve_date(column, ctx)
        if isinstance(rule, RevisionRule) or column.data_type == DataType.REVISION:
            return self.rng.choice(revision_tokens(column.revision_schema))

        if isinstance(rule, PatternRule):
            return render_pattern(rule.pattern or "ID-#", ctx.row_index, self.rng)
        if isinstance(rule, RandomRule):
            return self._resolve_random(column, rule)
        if isinstance(rule, ReferenceRule):
            return self._resolve_reference(column, rule)
        if isinstance(rule, CopyRule):
            if not column.sample_values:
                return ""
            return column.sample_values[ctx.row_index % len(column.sample_values)]
        return ""

    # -- helpers -----------------------------------------------------------

    def _warn_once(self, column: Column, key: str, message: str) -> None:
        if (column.id, key) not in self._reported:
            self._reported.add((column.id, key))
            logger.warning(f"{self.table.name}.{column.name}: {message}")

    def _report(self, column: Column, sentinel: str, reason: str) -> str:
        """Log a configuration gap once per column, return its sentinel."""
        self._warn_once(column, sentinel, f"{reason}; writing {sentinel}")
        return sentinel

    def parent_row_index(self, table_id: str, ctx: RowContext) -> Optional[int]:
        """
        Row of a parent table that the current output row is attached to.

        The driving parent is row-aligned with the current job; any other
        parent gets one random row per output row, memoized in the context.
        """
        if table_id == self.plan.driving_parent_table_id and ctx.job.parent_row_index is not None:
            return ctx.job.parent_row_index

        if table_id in ctx.resolved_parent_indices:
            return ctx.resolved_parent_indices[table_id]

        count = self.store.row_count(table_id)
        if count == 0:
            return None
        index = self.rng.index(count)
        ctx.resolved_parent_indices[table_id] = index
        return index

    def read_value(
        self,
        table_id: Optional[str],
        column_id: Optional[str],
        ctx: RowContext,
    ) -> Optional[str]:
        """Value of a column for the current row, here or in a related table."""
        if not column_id:
            return None

        if _same_table(self.table, table_id):
            values = self.buffer.get(column_id)
            if values is None or ctx.row_index >= len(values):
                return None
            return values[ctx.row_index]

        values = self.store.get_column(table_id, column_id)
        if not values:
            return None
        index = self.parent_row_index(table_id, ctx)
        if index is None or index >= len(values):
            return None
        return values[index]

    # -- strategies ----------------------------------------------------------

    def _resolve_linked(self, column: Column, rule: LinkedRule, ctx: RowContext) -> str:
        if not rule.is_configured:
            return self._report(column, UNCONFIGURED_LINK, "link has no target")

        if ctx.job.orphaned and rule.linked_table_id == self.plan.driving_parent_table_id:
            return self._report(column, ORPHAN, "driving parent unavailable")

        values = self.store.get_column(rule.linked_table_id, rule.linked_column_id)
        if not values:
            return self._report(column, MISSING_SOURCE_VAL, "parent column has no generated data")

        index = self.parent_row_index(rule.linked_table_id, ctx)
        if index is None or index >= len(values):
            return self._report(column, MISSING_SOURCE_VAL, "parent row out of range")
        return values[index]

    def _resolve_random_record(self, column: Column, rule: RandomRecordRule) -> str:
        if not rule.is_configured:
            return self._report(column, UNCONFIGURED_LINK, "random record has no source")

        values = self.store.get_column(rule.linked_table_id, rule.linked_column_id)
        if not values:
            return self._report(column, MISSING_SOURCE_VAL, "source column has no generated data")
        return self.rng.choice(values)

    def _resolve_random(self, column: Column, rule: RandomRule) -> str:
        options = list(rule.options) or list(DEFAULT_RANDOM_OPTIONS)
        if not column.multi_value:
            return self.rng.choice(options)

        count = self.rng.randint(1, 3)
        picks = [self.rng.choice(options) for _ in range(count)]
        return (rule.delimiter or ",").join(dict.fromkeys(picks))

    def _resolve_reference(self, column: Column, rule: ReferenceRule) -> str:
        ref = self.schema.get_reference_file(rule.reference_file_id)
        if ref is None or not ref.values:
            return self._report(column, MISSING_REF, "reference file missing or empty")
        return self.rng.choice(ref.values)

    def _resolve_date(self, column: Column, ctx: RowContext) -> str:
        rule = column.rule

        if isinstance(rule, DateRule):
            first = parse_timestamp(self.read_value(rule.ref_table_1, rule.ref_column_1, ctx))
            second = parse_timestamp(self.read_value(rule.ref_table_2, rule.ref_column_2, ctx))
            try:
                value = apply_date_logic(rule, self.rng, self.now, first, second)
            except OverflowError:
                self._warn_once(column, "date_range", "date offset out of range; using a random recent date")
                value = random_recent(self.rng, self.now)
            return format_timestamp(value)

        sibling = self._created.get(column.id)
        if sibling is not None:
            created = parse_timestamp(self.read_value(self.table.id, sibling.id, ctx))
            return format_timestamp(after_created(self.rng, created, self.now))

        return format_timestamp(random_recent(self.rng, self.now))

    def _resolve_duration(self, column: Column, ctx: RowContext) -> str:
        rule = column.rule if isinstance(column.rule, DurationRule) else DurationRule()
        start = parse_timestamp(self.read_value(rule.start_table_id, rule.start_column_id, ctx))
        end = parse_timestamp(self.read_value(rule.end_table_id, rule.end_column_id, ctx))
        return str(duration_between(start, end, rule.unit))

"""Tests for row planning and the generated store."""

import pytest

from synth_forge.generator.planner import GenerationJob, RowPlanner
from synth_forge.generator.store import GeneratedStore
from synth_forge.models import (
    Column,
    GeneratedStoreError,
    GenerationMode,
    GenerationSettings,
    ProjectSchema,
    Relationship,
    Table,
)
from synth_forge.randomness import RandomSource


def _schema(child_settings, with_relationship=True):
    customers = Table(id="customers", name="Customers", columns=(Column(id="id", name="id"),))
    orders = Table(
        id="orders",
        name="Orders",
        columns=(Column(id="id", name="id"), Column(id="customer_id", name="customer_id")),
        settings=child_settings,
    )
    rels = ()
    if with_relationship:
        rels = (Relationship("r1", "orders", "customer_id", "customers", "id"),)
    return ProjectSchema(tables=(customers, orders), relationships=rels)


def _per_parent(low, high, fixed_count=100):
    return GenerationSettings(
        mode=GenerationMode.PER_PARENT,
        fixed_count=fixed_count,
        min_per_parent=low,
        max_per_parent=high,
        driving_parent_table_id="customers",
    )


class TestRowPlanner:
    """Tests for RowPlanner."""

    @pytest.fixture
    def store(self):
        store = GeneratedStore()
        store.put("customers", {"id": ["C1", "C2", "C3", "C4"]})
        return store

    def test_fixed_mode_single_job(self, store):
        schema = _schema(GenerationSettings(fixed_count=7))
        plan = RowPlanner(schema, store, RandomSource(1)).plan(schema.get_table("orders"))

        assert plan.jobs == [GenerationJob(count=7)]
        assert plan.total_rows == 7

    def test_negative_fixed_count_clamped(self, store):
        schema = _schema(GenerationSettings(fixed_count=-3))
        plan = RowPlanner(schema, store, RandomSource(1)).plan(schema.get_table("orders"))

        assert plan.total_rows == 0

    def test_per_parent_jobs(self, store):
        schema = _schema(_per_parent(2, 3))
        plan = RowPlanner(schema, store, RandomSource(7)).plan(schema.get_table("orders"))

        assert [job.driving_id for job in plan.jobs] == ["C1", "C2", "C3", "C4"]
        assert [job.parent_row_index for job in plan.jobs] == [0, 1, 2, 3]
        assert all(2 <= job.count <= 3 for job in plan.jobs)
        assert plan.total_rows == sum(job.count for job in plan.jobs)
        assert plan.driving_parent_table_id == "customers"
        assert not plan.is_orphaned

    def test_reversed_bounds_swapped(self, store):
        schema = _schema(_per_parent(4, 2))
        plan = RowPlanner(schema, store, RandomSource(3)).plan(schema.get_table("orders"))

        assert len(plan.jobs) == 4
        assert all(2 <= job.count <= 4 for job in plan.jobs)

    def test_zero_count_jobs_dropped(self, store):
        schema = _schema(_per_parent(0, 0))
        plan = RowPlanner(schema, store, RandomSource(3)).plan(schema.get_table("orders"))

        assert plan.jobs == []
        assert plan.total_rows == 0

    def test_missing_parent_data_gives_orphaned_job(self):
        schema = _schema(_per_parent(1, 5, fixed_count=6))
        plan = RowPlanner(schema, GeneratedStore(), RandomSource(3)).plan(schema.get_table("orders"))

        assert plan.jobs == [GenerationJob(count=6, orphaned=True)]
        assert plan.is_orphaned

    def test_missing_relationship_gives_orphaned_job(self, store):
        schema = _schema(_per_parent(1, 5, fixed_count=2), with_relationship=False)
        plan = RowPlanner(schema, store, RandomSource(3)).plan(schema.get_table("orders"))

        assert plan.jobs == [GenerationJob(count=2, orphaned=True)]

    def test_seed_reproduces_plan(self, store):
        schema = _schema(_per_parent(1, 9))
        first = RowPlanner(schema, store, RandomSource(11)).plan(schema.get_table("orders"))
        second = RowPlanner(schema, store, RandomSource(11)).plan(schema.get_table("orders"))

        assert first.jobs == second.jobs


class TestGeneratedStore:
    """Tests for GeneratedStore."""

    def test_put_and_read(self):
        store = GeneratedStore()
        store.put("t", {"a": ["1", "2"], "b": ["x", "y"]})

        assert store.get_column("t", "a") == ("1", "2")
        assert store.row_count("t") == 2
        assert store.has_table("t")
        assert store.get_column("t", "missing") is None
        assert store.get_column("other", "a") is None

    def test_write_once(self):
        store = GeneratedStore()
        store.put("t", {"a": ["1"]})

        with pytest.raises(GeneratedStoreError):
            store.put("t", {"a": ["2"]})

    def test_inconsistent_lengths_rejected(self):
        with pytest.raises(GeneratedStoreError):
            GeneratedStore().put("t", {"a": ["1", "2"], "b": ["x"]})

    def test_dataframe_keeps_duplicate_names(self):
        table = Table(id="t", name="T", columns=(Column(id="a", name="code"), Column(id="b", name="code")))
        store = GeneratedStore()
        store.put("t", {"a": ["1"], "b": ["2"]})

        df = store.to_dataframe(table)

        assert list(df.columns) == ["code", "code"]
        assert df.iloc[0].tolist() == ["1", "2"]

"""Tests for AI content services and batching."""

import asyncio

import pytest

from synth_forge.ai.batcher import (
    AIContentBatcher,
    ai_waves,
    build_contexts,
    fill_to_count,
    order_ai_columns,
)
from synth_forge.ai.service import (
    ContentService,
    FakerContentService,
    GeminiContentService,
    build_content_service,
    build_user_prompt,
    parse_json_array,
)
from synth_forge.models import (
    AI_ERROR_SENTINEL,
    AIDependencyCycleError,
    AIRule,
    Column,
    ContentServiceError,
    GenerationConfig,
    Table,
)


class RecordingService(ContentService):
    """Fake content service returning scripted values."""

    def __init__(self, values=None, error=None, delay=0.0):
        self.values = values
        self.error = error
        self.delay = delay
        self.calls = []
        self.active = 0
        self.max_active = 0

    async def generate_batch(self, prompt, count, example_values=(), row_contexts=()):
        self.calls.append({
            "prompt": prompt,
            "count": count,
            "examples": list(example_values),
            "contexts": list(row_contexts),
        })
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            await asyncio.sleep(self.delay)
            if self.error is not None:
                raise self.error
            if self.values is not None:
                return list(self.values)
            return [f"{prompt}-{i}" for i in range(count)]
        finally:
            self.active -= 1


def _ai(col_id, *deps, prompt=None):
    return Column(id=col_id, name=col_id.title(), rule=AIRule(prompt=prompt or col_id, dependency_column_ids=deps))


class TestOrdering:
    """Tests for AI column ordering."""

    def test_dependencies_first(self):
        table = Table(id="t", name="T", columns=(_ai("c", "b"), _ai("b", "a"), _ai("a")))
        assert [c.id for c in order_ai_columns(table)] == ["a", "b", "c"]

    def test_cycle_rejected(self):
        table = Table(id="t", name="T", columns=(_ai("a", "b"), _ai("b", "a")))

        with pytest.raises(AIDependencyCycleError, match="A -> B -> A"):
            order_ai_columns(table)

    def test_self_dependency_rejected(self):
        table = Table(id="t", name="T", columns=(_ai("a", "a"),))

        with pytest.raises(AIDependencyCycleError):
            order_ai_columns(table)

    def test_waves_by_depth(self):
        table = Table(id="t", name="T", columns=(_ai("a"), _ai("b"), _ai("c", "a")))
        waves = ai_waves(table, order_ai_columns(table))

        assert [[c.id for c in wave] for wave in waves] == [["a", "b"], ["c"]]


class TestFill:
    """Tests for result length normalization."""

    def test_under_delivery_repeats_cyclically(self):
        returned = ["x", "y", "z"]
        result = fill_to_count(returned, 10)

        assert len(result) == 10
        assert all(result[i] == returned[i % 3] for i in range(10))

    def test_over_delivery_truncated(self):
        assert fill_to_count(["a", "b", "c"], 2) == ["a", "b"]

    def test_empty_raises(self):
        with pytest.raises(ContentServiceError):
            fill_to_count([], 3)


class TestContexts:
    """Tests for per-row context strings."""

    def test_dependency_values_joined(self):
        table = Table(id="t", name="T", columns=(
            Column(id="name", name="Name"),
            Column(id="city", name="City"),
            _ai("bio", "name", "city"),
        ))
        buffer = {"name": ["Ada", "Linus"], "city": ["London", "Helsinki"]}

        contexts = build_contexts(table, table.get_column("bio"), 2, buffer)

        assert contexts == ["Name: Ada; City: London", "Name: Linus; City: Helsinki"]

    def test_no_dependencies(self):
        table = Table(id="t", name="T", columns=(_ai("bio"),))
        assert build_contexts(table, table.get_column("bio"), 2, {}) == ["", ""]

    def test_unknown_dependency_skipped(self):
        table = Table(id="t", name="T", columns=(Column(id="name", name="Name"), _ai("bio", "ghost", "name")))
        contexts = build_contexts(table, table.get_column("bio"), 1, {"name": ["Ada"]})

        assert contexts == ["Name: Ada"]


class TestAIContentBatcher:
    """Tests for AIContentBatcher."""

    def test_fills_columns_and_reports_progress(self):
        table = Table(id="t", name="Products", columns=(
            Column(id="sku", name="SKU"),
            Column(id="desc", name="Description", sample_values=tuple(f"s{i}" for i in range(8)),
                   rule=AIRule(prompt="Describe", dependency_column_ids=("sku",))),
        ))
        buffer = {"sku": ["A1", "A2", "A3"]}
        service = RecordingService()
        messages = []

        asyncio.run(AIContentBatcher(service, GenerationConfig(), messages.append).fill_table(table, 3, buffer))

        assert buffer["desc"] == ["Describe-0", "Describe-1", "Describe-2"]
        assert messages == ["Generating AI content for Products.Description (3 items)..."]
        call = service.calls[0]
        assert call["count"] == 3
        assert call["examples"] == ["s0", "s1", "s2", "s3", "s4"]
        assert call["contexts"] == ["SKU: A1", "SKU: A2", "SKU: A3"]

    def test_under_delivery(self):
        table = Table(id="t", name="T", columns=(_ai("a"),))
        buffer = {}

        asyncio.run(AIContentBatcher(RecordingService(values=["p", "q", "r"])).fill_table(table, 10, buffer))

        assert buffer["a"] == [["p", "q", "r"][i % 3] for i in range(10)]

    @pytest.mark.parametrize("service", [
        RecordingService(error=RuntimeError("network down")),
        RecordingService(error=ContentServiceError("Invalid Format")),
        RecordingService(values=[]),
    ])
    def test_failure_fills_sentinel(self, service):
        table = Table(id="t", name="T", columns=(_ai("a"), _ai("b")))
        buffer = {}

        asyncio.run(AIContentBatcher(service).fill_table(table, 4, buffer))

        assert buffer["a"] == [AI_ERROR_SENTINEL] * 4
        assert buffer["b"] == [AI_ERROR_SENTINEL] * 4

    def test_zero_rows_makes_no_request(self):
        table = Table(id="t", name="T", columns=(_ai("a"),))
        service = RecordingService()
        buffer = {}

        asyncio.run(AIContentBatcher(service).fill_table(table, 0, buffer))

        assert service.calls == []
        assert buffer["a"] == []

    def test_later_wave_sees_earlier_output(self):
        table = Table(id="t", name="T", columns=(_ai("summary", "title"), _ai("title")))
        service = RecordingService()
        buffer = {}

        asyncio.run(AIContentBatcher(service).fill_table(table, 2, buffer))

        assert [c["prompt"] for c in service.calls] == ["title", "summary"]
        assert service.calls[1]["contexts"] == ["Title: title-0", "Title: title-1"]

    def test_independent_columns_run_concurrently(self):
        table = Table(id="t", name="T", columns=(_ai("a"), _ai("b"), _ai("c")))
        service = RecordingService(delay=0.01)

        asyncio.run(AIContentBatcher(service).fill_table(table, 1, {}))

        assert service.max_active == 3

    def test_concurrency_bounded(self):
        table = Table(id="t", name="T", columns=(_ai("a"), _ai("b"), _ai("c")))
        service = RecordingService(delay=0.01)
        config = GenerationConfig(max_concurrent_ai_requests=1)

        asyncio.run(AIContentBatcher(service, config).fill_table(table, 1, {}))

        assert service.max_active == 1
        assert len(service.calls) == 3


class TestServices:
    """Tests for content service helpers."""

    def test_parse_json_array(self):
        assert parse_json_array('["a", "b", 3]') == ["a", "b", "3"]

    @pytest.mark.parametrize("text", [None, "", "not json", '{"a": 1}'])
    def test_parse_json_array_rejects(self, text):
        with pytest.raises(ContentServiceError):
            parse_json_array(text)

    def test_user_prompt(self):
        prompt = build_user_prompt("Job titles", 2, ["Engineer"], ["Dept: R&D", "Dept: Sales"])

        assert 'Generate 2 unique values for a dataset column described as: "Job titles".' in prompt
        assert "Engineer" in prompt
        assert "1. Dept: R&D" in prompt
        assert "2. Dept: Sales" in prompt

    def test_user_prompt_without_context(self):
        assert "context" not in build_user_prompt("Colors", 3, [], ["", "", ""])

    def test_faker_service(self):
        values = asyncio.run(FakerContentService(seed=1).generate_batch("Notes", 4))
        again = asyncio.run(FakerContentService(seed=1).generate_batch("Notes", 4))

        assert len(values) == 4
        assert values == again

    def test_gemini_without_key(self):
        service = GeminiContentService(api_key=None)

        with pytest.raises(ContentServiceError):
            asyncio.run(service.generate_batch("Notes", 2))

    def test_build_content_service(self):
        assert isinstance(build_content_service(GenerationConfig(ai_provider="faker")), FakerContentService)
        gemini = build_content_service(GenerationConfig(api_key="k", ai_model="m"))
        assert isinstance(gemini, GeminiContentService)
        assert gemini.model == "m"

        with pytest.raises(ValueError):
            build_content_service(GenerationConfig(ai_provider="oracle"))

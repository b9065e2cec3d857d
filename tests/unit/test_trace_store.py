import time

import pytest

from advisory_engine.advisor.pipeline import AdvisoryPipeline
from advisory_engine.obs.tracing import Timer, TraceStore
from advisory_engine.shaping.assembler import AdvisoryAssembler


def test_pipeline_records_one_trace_per_extraction() -> None:
    store = TraceStore()
    pipeline = AdvisoryPipeline(trace_store=store)

    result = pipeline.from_text('{"actions_recommandees": {"data": ["Vacuum"]}, "niveau_confiance": 0.7}')

    record = store.get(result.trace_id)
    assert record.source == "text"
    assert record.has_content
    assert record.confidence == 0.7
    assert record.slots["actions"] == {"shape": "strings", "strategy": None, "promoted_from": "data"}
    assert record.slots["risks"]["shape"] == "absent"


def test_pipeline_without_store_has_no_trace_id() -> None:
    result = AdvisoryPipeline().from_text("plain prose")

    assert result.trace_id is None
    assert result.latency_ms >= 0.0


def test_summary_of_empty_store() -> None:
    summary = TraceStore().summary()

    assert summary["total_requests"] == 0
    assert summary["empty_rate"] == 0.0
    assert summary["strategy_counts"] == {}


def test_summary_counts_empties_strategies_and_promotions() -> None:
    store = TraceStore()
    assembler = AdvisoryAssembler()
    store.create_record(
        document=assembler.assemble(None, '```json\n["a"]\n```', '{"items": ["b"]}', None, 0.5),
        source="payload",
        input_chars=10,
        latency_ms=2.0,
    )
    store.create_record(
        document=assembler.assemble(None, None, None, None, 0.1),
        source="payload",
        input_chars=4,
        latency_ms=4.0,
    )

    summary = store.summary()

    assert summary["total_requests"] == 2
    assert summary["empty_documents"] == 1
    assert summary["empty_rate"] == 0.5
    assert summary["avg_latency_ms"] == 3.0
    assert summary["strategy_counts"] == {"direct": 1, "json_fence": 1}
    assert summary["promotions"] == 1


def test_unknown_trace_raises_key_error() -> None:
    with pytest.raises(KeyError):
        TraceStore().get("missing")


def test_list_recent_keeps_insertion_order() -> None:
    store = TraceStore()
    document = AdvisoryAssembler().assemble("x", None, None, None, 0.5)
    ids = [
        store.create_record(document=document, source="text", input_chars=1, latency_ms=1.0).trace_id
        for _ in range(3)
    ]

    assert [record.trace_id for record in store.list_recent(limit=2)] == ids[1:]


def test_timer_measures_elapsed_time() -> None:
    with Timer() as timer:
        time.sleep(0.01)

    assert timer.elapsed_ms >= 5.0


def test_list_recent_with_non_positive_limit_is_empty() -> None:
    store = TraceStore()
    document = AdvisoryAssembler().assemble("x", None, None, None, 0.5)
    store.create_record(document=document, source="text", input_chars=1, latency_ms=1.0)

    assert store.list_recent(limit=0) == []
    assert store.list_recent(limit=-1) == []

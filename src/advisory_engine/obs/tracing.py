"""Extraction tracing and aggregate metrics."""

from __future__ import annotations

import time
import uuid
from collections import Counter
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from advisory_engine.types import AdvisoryDocument


@dataclass(slots=True)
class ExtractionTrace:
    trace_id: str
    timestamp_utc: str
    source: str
    input_chars: int
    slots: dict[str, dict[str, str | None]]
    has_content: bool
    confidence: float
    latency_ms: float


class TraceStore:
    """In-memory trace storage for API-level observability.

    The store belongs to the caller; the extraction engine itself never holds
    state between invocations.
    """

    def __init__(self) -> None:
        self._records: dict[str, ExtractionTrace] = {}

    def create_record(
        self,
        *,
        document: AdvisoryDocument,
        source: str,
        input_chars: int,
        latency_ms: float,
    ) -> ExtractionTrace:
        trace_id = str(uuid.uuid4())
        record = ExtractionTrace(
            trace_id=trace_id,
            timestamp_utc=datetime.now(timezone.utc).isoformat(),
            source=source,
            input_chars=input_chars,
            slots={
                slot: {
                    "shape": item.shape,
                    "strategy": item.strategy.value if item.strategy else None,
                    "promoted_from": item.promoted_from,
                }
                for slot, item in document.provenance.items()
            },
            has_content=document.has_content,
            confidence=document.confidence,
            latency_ms=latency_ms,
        )
        self._records[trace_id] = record
        return record

    def get(self, trace_id: str) -> ExtractionTrace:
        record = self._records.get(trace_id)
        if record is None:
            raise KeyError(f"Trace not found: {trace_id}")
        return record

    def list_recent(self, limit: int = 20) -> list[ExtractionTrace]:
        if limit <= 0:
            return []
        return list(self._records.values())[-limit:]

    def summary(self) -> dict[str, Any]:
        """Aggregate extraction metrics for dashboard display."""
        records = list(self._records.values())
        total = len(records)
        if total == 0:
            return {
                "total_requests": 0,
                "empty_documents": 0,
                "empty_rate": 0.0,
                "avg_latency_ms": 0.0,
                "p95_latency_ms": 0.0,
                "strategy_counts": {},
                "promotions": 0,
            }

        latencies = sorted(record.latency_ms for record in records)
        p95_index = max(0, int((len(latencies) * 0.95) - 1))
        empty = sum(1 for record in records if not record.has_content)
        strategies: Counter[str] = Counter()
        promotions = 0
        for record in records:
            for outcome in record.slots.values():
                if outcome["strategy"] is not None:
                    strategies[outcome["strategy"]] += 1
                if outcome["promoted_from"] is not None:
                    promotions += 1

        return {
            "total_requests": total,
            "empty_documents": empty,
            "empty_rate": empty / total,
            "avg_latency_ms": sum(latencies) / total,
            "p95_latency_ms": latencies[p95_index],
            "strategy_counts": dict(sorted(strategies.items())),
            "promotions": promotions,
        }


class Timer:
    """Simple context timer used by the pipeline."""

    def __init__(self) -> None:
        self._start = 0.0
        self.elapsed_ms = 0.0

    def __enter__(self) -> "Timer":
        self._start = time.perf_counter()
        return self

    def __exit__(self, exc_type: object, exc: object, tb: object) -> None:
        self.elapsed_ms = (time.perf_counter() - self._start) * 1000.0

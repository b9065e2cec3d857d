"""FastAPI entrypoint for advisory normalization and trace endpoints."""

from __future__ import annotations

import os
from dataclasses import asdict
from typing import Any

from fastapi import FastAPI, HTTPException, Query
from pydantic import BaseModel, Field

from advisory_engine.advisor.pipeline import AdvisoryPipeline, PipelineResult
from advisory_engine.config import EngineConfig
from advisory_engine.ingest.payload import RawAdvisoryPayload
from advisory_engine.obs.logging import configure_logging
from advisory_engine.obs.tracing import TraceStore


def _env_flag(name: str) -> bool:
    return os.getenv(name, "").strip().lower() in {"1", "true", "yes", "on"}


class ReplyRequest(BaseModel):
    text: str = Field(max_length=1_000_000)


configure_logging(debug=_env_flag("ADVISORY_DEBUG"), json_output=_env_flag("ADVISORY_LOG_JSON"))

app = FastAPI(title="Advisory Extraction Engine", version="0.1.0")

_trace_store = TraceStore()
_pipeline = AdvisoryPipeline(EngineConfig(), trace_store=_trace_store)


def _respond(result: PipelineResult) -> dict[str, Any]:
    return {
        **result.document.as_dict(),
        "trace_id": result.trace_id,
        "latency_ms": result.latency_ms,
    }


@app.get("/health")
def health() -> dict[str, Any]:
    return {
        "status": "ok",
        "trace_count": len(_trace_store.list_recent(limit=1000)),
    }


@app.post("/advisories/normalize")
def normalize(payload: RawAdvisoryPayload) -> dict[str, Any]:
    return _respond(_pipeline.from_payload(payload))


@app.post("/advisories/parse")
def parse(request: ReplyRequest) -> dict[str, Any]:
    return _respond(_pipeline.from_text(request.text))


@app.get("/traces")
def traces(limit: int = Query(default=20, ge=1, le=1000)) -> dict[str, Any]:
    records = [asdict(record) for record in _trace_store.list_recent(limit=limit)]
    return {"items": records}


@app.get("/traces/{trace_id}")
def trace_detail(trace_id: str) -> dict[str, Any]:
    try:
        record = _trace_store.get(trace_id)
    except KeyError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return asdict(record)


@app.get("/metrics")
def metrics() -> dict[str, Any]:
    return _trace_store.summary()

"""End-to-end extraction pipeline: reply -> payload -> normalized document."""

from __future__ import annotations

from dataclasses import dataclass

from advisory_engine.config import EngineConfig
from advisory_engine.ingest.payload import AdvisorReplyParser, RawAdvisoryPayload
from advisory_engine.ingest.recovery import JsonRecoveryParser
from advisory_engine.obs.tracing import Timer, TraceStore
from advisory_engine.shaping.assembler import AdvisoryAssembler
from advisory_engine.types import AdvisoryDocument


@dataclass(frozen=True, slots=True)
class PipelineResult:
    document: AdvisoryDocument
    trace_id: str | None
    latency_ms: float


class AdvisoryPipeline:
    """Coordinates reply parsing, slot normalization and document assembly.

    The pipeline is stateless apart from the optional caller-owned trace
    store, so one instance can serve every request.
    """

    def __init__(
        self,
        config: EngineConfig | None = None,
        *,
        trace_store: TraceStore | None = None,
    ) -> None:
        self.config = config or EngineConfig()
        self.trace_store = trace_store
        self._reply_parser = AdvisorReplyParser(
            self.config.payload,
            recovery_parser=JsonRecoveryParser(self.config.recovery),
        )
        self._assembler = AdvisoryAssembler(self.config)

    def from_text(self, text: str) -> PipelineResult:
        """Extract a document from one complete advisor reply."""

        with Timer() as timer:
            payload = self._reply_parser.parse(text)
            document = self._assembler.assemble_payload(payload)
        return self._finish(document, source="text", input_chars=len(text), latency_ms=timer.elapsed_ms)

    def from_payload(self, payload: RawAdvisoryPayload) -> PipelineResult:
        """Extract a document from an already field-split advisory payload."""

        with Timer() as timer:
            document = self._assembler.assemble_payload(payload)
        input_chars = len(payload.model_dump_json())
        return self._finish(document, source="payload", input_chars=input_chars, latency_ms=timer.elapsed_ms)

    def _finish(
        self,
        document: AdvisoryDocument,
        *,
        source: str,
        input_chars: int,
        latency_ms: float,
    ) -> PipelineResult:
        trace_id = None
        if self.trace_store is not None:
            record = self.trace_store.create_record(
                document=document,
                source=source,
                input_chars=input_chars,
                latency_ms=latency_ms,
            )
            trace_id = record.trace_id
        return PipelineResult(document=document, trace_id=trace_id, latency_ms=latency_ms)

"""Assembly of normalized slots into the canonical advisory document."""

from __future__ import annotations

from typing import Any

import structlog

from advisory_engine.config import EngineConfig
from advisory_engine.ingest.fences import FenceScanner
from advisory_engine.ingest.payload import RawAdvisoryPayload
from advisory_engine.ingest.recovery import JsonRecoveryParser
from advisory_engine.shaping.display import ProseRenderer
from advisory_engine.shaping.normalizer import ShapeNormalizer
from advisory_engine.types import (
    ActionList,
    AdvisoryDocument,
    DisplaySegment,
    ProseText,
    RiskList,
    SlotKind,
    SlotValue,
    StringList,
    StructuredDiagnostic,
)

logger = structlog.get_logger(__name__)

_Display = dict[str, tuple[DisplaySegment, ...]]


class AdvisoryAssembler:
    """Builds one immutable `AdvisoryDocument` per advisory response.

    Each slot is normalized exactly once. Every prose field of the result is
    then rendered into display runs, keyed by a dotted field path such as
    ``diagnostic.current_state`` or ``actions.0.details.1``, so the
    presentation layer never parses anything itself.
    """

    def __init__(self, config: EngineConfig | None = None) -> None:
        self.config = config or EngineConfig()
        recovery_parser = JsonRecoveryParser(self.config.recovery)
        self.normalizer = ShapeNormalizer(recovery_parser)
        self.renderer = ProseRenderer(
            scanner=FenceScanner(),
            recovery_parser=recovery_parser,
            config=self.config.display,
        )

    def assemble(
        self,
        diagnostic_raw: Any,
        actions_raw: Any,
        risks_raw: Any,
        queries_raw: Any,
        confidence: float,
        notes_raw: Any = None,
    ) -> AdvisoryDocument:
        if isinstance(confidence, bool) or not isinstance(confidence, (int, float)):
            raise TypeError(f"confidence must be a number, got {type(confidence).__name__}")

        slots = {
            SlotKind.DIAGNOSTIC: self.normalizer.normalize_detailed(SlotKind.DIAGNOSTIC, diagnostic_raw),
            SlotKind.ACTIONS: self.normalizer.normalize_detailed(SlotKind.ACTIONS, actions_raw),
            SlotKind.RISKS: self.normalizer.normalize_detailed(SlotKind.RISKS, risks_raw),
            SlotKind.SUGGESTED_QUERIES: self.normalizer.normalize_detailed(
                SlotKind.SUGGESTED_QUERIES, queries_raw
            ),
            SlotKind.NOTES: self.normalizer.normalize_detailed(SlotKind.NOTES, notes_raw),
        }

        display: _Display = {}
        self._render_slot("diagnostic", slots[SlotKind.DIAGNOSTIC].value, display)
        self._render_slot("actions", slots[SlotKind.ACTIONS].value, display)
        self._render_slot("risks", slots[SlotKind.RISKS].value, display)

        document = AdvisoryDocument(
            confidence=float(confidence),
            diagnostic=slots[SlotKind.DIAGNOSTIC].value,
            actions=slots[SlotKind.ACTIONS].value,
            risks=slots[SlotKind.RISKS].value,
            suggested_queries=slots[SlotKind.SUGGESTED_QUERIES].value,
            notes=slots[SlotKind.NOTES].value,
            display=display,
            provenance={slot.value: outcome.provenance for slot, outcome in slots.items()},
        )

        if not document.has_content:
            logger.warning("advisory_document_empty", confidence=document.confidence)
        return document

    def assemble_payload(self, payload: RawAdvisoryPayload) -> AdvisoryDocument:
        return self.assemble(
            payload.diagnostic,
            payload.actions_recommended,
            payload.risks,
            payload.suggested_query,
            payload.confidence_level,
            payload.supplementary_notes,
        )

    def _render_slot(self, prefix: str, value: SlotValue, display: _Display) -> None:
        if isinstance(value, ProseText):
            self._render(f"{prefix}.text", value.text, display)
        elif isinstance(value, StructuredDiagnostic):
            if value.current_state is not None:
                self._render(f"{prefix}.current_state", value.current_state, display)
            self._render_many(f"{prefix}.hypotheses", value.hypotheses, display)
            self._render_many(f"{prefix}.preliminary_checks", value.preliminary_checks, display)
        elif isinstance(value, StringList):
            self._render_many(prefix, value.items, display)
        elif isinstance(value, ActionList):
            for index, action in enumerate(value.records):
                path = f"{prefix}.{index}.details"
                if isinstance(action.details, tuple):
                    self._render_many(path, action.details, display)
                elif action.details is not None:
                    self._render(path, action.details, display)
        elif isinstance(value, RiskList):
            for index, risk in enumerate(value.records):
                for name in ("cause", "impact", "mitigation"):
                    text = getattr(risk, name)
                    if text is not None:
                        self._render(f"{prefix}.{index}.{name}", text, display)

    def _render_many(self, prefix: str, texts: tuple[str, ...], display: _Display) -> None:
        for index, text in enumerate(texts):
            self._render(f"{prefix}.{index}", text, display)

    def _render(self, path: str, text: str, display: _Display) -> None:
        display[path] = self.renderer.render(text)

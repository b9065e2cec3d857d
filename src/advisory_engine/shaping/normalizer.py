"""Per-slot shape normalization of raw advisory field values."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import structlog

from advisory_engine.ingest.recovery import JsonRecoveryParser
from advisory_engine.shaping import fields
from advisory_engine.types import (
    ActionList,
    ActionRecord,
    Notes,
    ProseText,
    QueryList,
    QueryRecord,
    Recovered,
    RecoveryStrategy,
    RiskList,
    RiskRecord,
    SingleQuery,
    SlotKind,
    SlotProvenance,
    SlotValue,
    StringList,
    StructuredDiagnostic,
)

logger = structlog.get_logger(__name__)


@dataclass(frozen=True, slots=True)
class NormalizedSlot:
    value: SlotValue
    provenance: SlotProvenance


@dataclass(frozen=True, slots=True)
class _Resolved:
    """A raw field value after string recovery.

    ``value`` is the structured value (raw non-string input, or the JSON a
    string recovered to). ``text`` is the stripped prose for string input.
    """

    value: Any
    text: str | None
    strategy: RecoveryStrategy | None

    @property
    def embedded(self) -> bool:
        """True when the JSON was cut out of surrounding prose."""
        return self.strategy is RecoveryStrategy.PATTERN and self.text is not None


_Shaped = tuple[SlotValue, str | None]

_CANONICAL: dict[SlotKind, tuple[type, ...]] = {
    SlotKind.DIAGNOSTIC: (StructuredDiagnostic, ProseText),
    SlotKind.ACTIONS: (ActionList, StringList),
    SlotKind.RISKS: (RiskList, StringList),
    SlotKind.SUGGESTED_QUERIES: (SingleQuery, QueryList),
    SlotKind.NOTES: (Notes,),
}


class ShapeNormalizer:
    """Decides the canonical shape of each advisory slot.

    Rules shared by every slot:
    - A value already in the slot's richest shape is used unchanged.
    - Strings are run through the recovery parser first; a recovered JSON
      string literal is treated as prose rather than recovered again.
    - An object that is not itself a record of the slot is searched, in key
      order, for the first property holding the slot's richer shape, which is
      promoted (payloads that wrap the answer one level deep).
    - Prose slots (diagnostic, suggested queries) keep the whole string when
      JSON cut out of it does not fit the slot.
    - Whatever is left is ``None``. Nothing here raises.

    For list slots, element 0 alone decides between records and strings.
    """

    def __init__(self, recovery_parser: JsonRecoveryParser | None = None) -> None:
        self.recovery_parser = recovery_parser or JsonRecoveryParser()
        self._handlers: dict[SlotKind, Callable[[_Resolved], _Shaped]] = {
            SlotKind.DIAGNOSTIC: self._diagnostic,
            SlotKind.ACTIONS: self._actions,
            SlotKind.RISKS: self._risks,
            SlotKind.SUGGESTED_QUERIES: self._queries,
            SlotKind.NOTES: self._notes,
        }

    def normalize(self, slot: SlotKind, raw: Any) -> SlotValue:
        return self.normalize_detailed(slot, raw).value

    def normalize_detailed(self, slot: SlotKind, raw: Any) -> NormalizedSlot:
        if isinstance(raw, _CANONICAL[slot]):
            return NormalizedSlot(value=raw, provenance=SlotProvenance(shape=raw.kind))

        resolved = self._resolve(raw)
        value, promoted_from = self._handlers[slot](resolved)

        if promoted_from is not None:
            logger.debug("slot_promoted", slot=slot.value, key=promoted_from)
        if value is None and raw is not None and raw != "":
            logger.debug("slot_shape_mismatch", slot=slot.value, raw_type=type(raw).__name__)

        return NormalizedSlot(
            value=value,
            provenance=SlotProvenance(
                shape=value.kind if value is not None else "absent",
                strategy=resolved.strategy,
                promoted_from=promoted_from,
            ),
        )

    def _resolve(self, raw: Any) -> _Resolved:
        if not isinstance(raw, str):
            return _Resolved(value=raw, text=None, strategy=None)

        result = self.recovery_parser.recover(raw)
        if isinstance(result, Recovered):
            if isinstance(result.value, str):
                return _Resolved(
                    value=None, text=result.value.strip() or None, strategy=result.strategy
                )
            return _Resolved(value=result.value, text=raw.strip() or None, strategy=result.strategy)
        return _Resolved(value=None, text=raw.strip() or None, strategy=None)

    # diagnostic

    def _diagnostic(self, resolved: _Resolved) -> _Shaped:
        value = resolved.value
        if isinstance(value, dict):
            shaped = _diagnostic_record(value)
            if shaped[0] is not None or not resolved.embedded:
                return shaped
        if resolved.text is not None:
            return ProseText(text=resolved.text), None
        return None, None

    # actions / risks

    def _actions(self, resolved: _Resolved) -> _Shaped:
        return _record_list(
            resolved.value,
            marker_keys=fields.ACTION_MARKER_KEYS,
            record_keys=fields.ACTION_KEYS,
            build=_action_list,
        )

    def _risks(self, resolved: _Resolved) -> _Shaped:
        return _record_list(
            resolved.value,
            marker_keys=fields.RISK_MARKER_KEYS,
            record_keys=fields.RISK_KEYS,
            build=_risk_list,
        )

    # suggested queries

    def _queries(self, resolved: _Resolved) -> _Shaped:
        if resolved.value is not None:
            shaped = _record_list(
                resolved.value,
                marker_keys=fields.QUERY_KEYS,
                record_keys=fields.QUERY_KEYS,
                build=_query_list,
            )
            if shaped[0] is not None or not resolved.embedded:
                return shaped
        if resolved.text is not None:
            return SingleQuery(query=resolved.text), None
        return None, None

    # notes

    def _notes(self, resolved: _Resolved) -> _Shaped:
        value = resolved.value
        if not isinstance(value, dict):
            return None, None
        if fields.has_any_key(value, fields.NOTES_KEYS):
            return _notes(value), None
        for key, item in value.items():
            if isinstance(item, dict) and fields.has_any_key(item, fields.NOTES_KEYS):
                notes = _notes(item)
                if notes is not None:
                    return notes, key
        return None, None


def _record_list(
    value: Any,
    *,
    marker_keys: tuple[str, ...],
    record_keys: tuple[str, ...],
    build: Callable[[list[Any]], SlotValue],
) -> _Shaped:
    """Shape a list slot.

    An object carrying a marker key is one record. Otherwise its first
    non-empty list property wins, and only an object without one is read as
    a record through the looser keys (``title``, ``description`` ...).
    """
    if isinstance(value, list):
        return (build(value) if value else None), None
    if not isinstance(value, dict):
        return None, None
    if fields.has_any_key(value, marker_keys):
        return build([value]), None
    for key, item in value.items():
        if isinstance(item, list) and item:
            return build(item), key
    if fields.has_any_key(value, record_keys):
        return build([value]), None
    return None, None


def _diagnostic_record(value: dict[str, Any]) -> _Shaped:
    if fields.has_any_key(value, fields.DIAGNOSTIC_KEYS):
        return _structured_diagnostic(value), None
    for key, item in value.items():
        if isinstance(item, dict) and fields.has_any_key(item, fields.DIAGNOSTIC_KEYS):
            diagnostic = _structured_diagnostic(item)
            if diagnostic is not None:
                return diagnostic, key
    return None, None


def _structured_diagnostic(record: dict[str, Any]) -> StructuredDiagnostic | None:
    diagnostic = StructuredDiagnostic(
        current_state=fields.as_text(fields.lookup(record, fields.CURRENT_STATE_KEYS)),
        hypotheses=fields.as_text_list(fields.lookup(record, fields.HYPOTHESES_KEYS)),
        preliminary_checks=fields.as_text_list(fields.lookup(record, fields.CHECKS_KEYS)),
    )
    if diagnostic.current_state is None and not diagnostic.hypotheses and not diagnostic.preliminary_checks:
        return None
    return diagnostic


def _action_list(items: list[Any]) -> ActionList | StringList | None:
    if not isinstance(items[0], dict):
        return _string_list(items)
    return ActionList(records=tuple(_action(item, index) for index, item in enumerate(items)))


def _action(item: Any, index: int) -> ActionRecord:
    fallback = f"Action {index + 1}"
    if not isinstance(item, dict):
        return ActionRecord(label=fields.as_text(item) or fallback)

    details_raw = fields.lookup(item, fields.DETAILS_KEYS)
    if isinstance(details_raw, list):
        details: str | tuple[str, ...] | None = fields.as_text_list(details_raw) or None
    else:
        details = fields.as_text(details_raw)

    return ActionRecord(
        label=fields.as_text(fields.lookup(item, fields.ACTION_LABEL_KEYS)) or fallback,
        priority=fields.parse_priority(fields.lookup(item, fields.PRIORITY_KEYS)),
        details=details,
        dependencies=fields.as_text_list(fields.lookup(item, fields.DEPENDENCY_KEYS)),
        tools=fields.as_text_list(fields.lookup(item, fields.TOOL_KEYS)),
        example_query=fields.as_text(fields.lookup(item, fields.EXAMPLE_QUERY_KEYS)),
    )


def _risk_list(items: list[Any]) -> RiskList | StringList | None:
    if not isinstance(items[0], dict):
        return _string_list(items)
    return RiskList(records=tuple(_risk(item, index) for index, item in enumerate(items)))


def _risk(item: Any, index: int) -> RiskRecord:
    fallback = f"Risk {index + 1}"
    if not isinstance(item, dict):
        return RiskRecord(label=fields.as_text(item) or fallback)
    return RiskRecord(
        label=fields.as_text(fields.lookup(item, fields.RISK_LABEL_KEYS)) or fallback,
        cause=fields.as_text(fields.lookup(item, fields.CAUSE_KEYS)),
        impact=fields.as_text(fields.lookup(item, fields.IMPACT_KEYS)),
        mitigation=fields.as_text(fields.lookup(item, fields.MITIGATION_KEYS)),
    )


def _string_list(items: list[Any]) -> StringList | None:
    texts = fields.as_text_list(items)
    return StringList(items=texts) if texts else None


def _query_list(items: list[Any]) -> QueryList | None:
    records: list[QueryRecord] = []
    for item in items:
        if isinstance(item, dict):
            query = fields.as_text(fields.lookup(item, fields.QUERY_KEYS))
            if query is None:
                continue
            description = fields.as_text(fields.lookup(item, fields.QUERY_DESCRIPTION_KEYS))
            records.append(QueryRecord(query=query, description=description))
        elif isinstance(item, str) and item.strip():
            records.append(QueryRecord(query=item.strip()))
    return QueryList(records=tuple(records)) if records else None


def _notes(record: dict[str, Any]) -> Notes | None:
    notes = Notes(
        recommended_tools=fields.as_text_list(fields.lookup(record, fields.RECOMMENDED_TOOLS_KEYS)),
        best_practices=fields.as_text_list(fields.lookup(record, fields.BEST_PRACTICES_KEYS)),
    )
    if not notes.recommended_tools and not notes.best_practices:
        return None
    return notes

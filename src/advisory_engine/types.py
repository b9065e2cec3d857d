"""Shared domain models.

Every slot of an advisory document is an explicit sum type. Absent slots are
``None``; each present variant carries a ``kind`` tag used when the document is
serialized for a presentation layer.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import asdict, dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, ClassVar, Union

from advisory_engine.config import ConfidenceConfig


class SegmentKind(str, Enum):
    PROSE = "prose"
    CODE = "code"


@dataclass(frozen=True, slots=True)
class Segment:
    """A prose run or fenced code block, in document order."""

    kind: SegmentKind
    content: str
    language: str | None = None
    source_offset: int = 0

    @property
    def is_json_candidate(self) -> bool:
        if self.kind is not SegmentKind.CODE:
            return False
        if self.language == "json":
            return True
        return not self.language and self.content.startswith(("{", "["))


class RecoveryStrategy(str, Enum):
    DIRECT = "direct"
    JSON_FENCE = "json_fence"
    PATTERN = "pattern"
    BRACKETED = "bracketed"


@dataclass(frozen=True, slots=True)
class Recovered:
    """A JSON value produced by a successful structural parse."""

    value: Any
    strategy: RecoveryStrategy


@dataclass(frozen=True, slots=True)
class Unrecovered:
    original_text: str


RecoveryResult = Union[Recovered, Unrecovered]


class SlotKind(str, Enum):
    DIAGNOSTIC = "diagnostic"
    ACTIONS = "actions"
    RISKS = "risks"
    SUGGESTED_QUERIES = "suggested_queries"
    NOTES = "notes"


class Priority(str, Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    OTHER = "other"


@dataclass(frozen=True, slots=True)
class StructuredDiagnostic:
    kind: ClassVar[str] = "structured"

    current_state: str | None = None
    hypotheses: tuple[str, ...] = ()
    preliminary_checks: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class ProseText:
    kind: ClassVar[str] = "prose"

    text: str


@dataclass(frozen=True, slots=True)
class ActionRecord:
    label: str
    priority: Priority | None = None
    details: str | tuple[str, ...] | None = None
    dependencies: tuple[str, ...] = ()
    tools: tuple[str, ...] = ()
    example_query: str | None = None


@dataclass(frozen=True, slots=True)
class ActionList:
    kind: ClassVar[str] = "records"

    records: tuple[ActionRecord, ...]


@dataclass(frozen=True, slots=True)
class RiskRecord:
    label: str
    cause: str | None = None
    impact: str | None = None
    mitigation: str | None = None


@dataclass(frozen=True, slots=True)
class RiskList:
    kind: ClassVar[str] = "records"

    records: tuple[RiskRecord, ...]


@dataclass(frozen=True, slots=True)
class StringList:
    kind: ClassVar[str] = "strings"

    items: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class SingleQuery:
    kind: ClassVar[str] = "single"

    query: str


@dataclass(frozen=True, slots=True)
class QueryRecord:
    query: str
    description: str | None = None


@dataclass(frozen=True, slots=True)
class QueryList:
    kind: ClassVar[str] = "records"

    records: tuple[QueryRecord, ...]


@dataclass(frozen=True, slots=True)
class Notes:
    kind: ClassVar[str] = "notes"

    recommended_tools: tuple[str, ...] = ()
    best_practices: tuple[str, ...] = ()


Diagnostic = Union[StructuredDiagnostic, ProseText]
Actions = Union[ActionList, StringList]
Risks = Union[RiskList, StringList]
SuggestedQueries = Union[SingleQuery, QueryList]
SlotValue = Union[Diagnostic, Actions, Risks, SuggestedQueries, Notes, None]


@dataclass(frozen=True, slots=True)
class SlotProvenance:
    """How a slot value was obtained: final shape, recovery strategy, promotion key."""

    shape: str
    strategy: RecoveryStrategy | None = None
    promoted_from: str | None = None


class DisplayKind(str, Enum):
    TEXT = "text"
    JSON = "json"
    CODE = "code"


@dataclass(frozen=True, slots=True)
class DisplaySegment:
    """A ready-to-render run of a prose field."""

    kind: DisplayKind
    text: str
    language: str | None = None


@dataclass(frozen=True, slots=True)
class AdvisoryDocument:
    """Canonical advisory output, built once per advisory response."""

    confidence: float
    diagnostic: Diagnostic | None = None
    actions: Actions | None = None
    risks: Risks | None = None
    suggested_queries: SuggestedQueries | None = None
    notes: Notes | None = None
    display: Mapping[str, tuple[DisplaySegment, ...]] = field(default_factory=dict)
    provenance: Mapping[str, SlotProvenance] = field(default_factory=dict, compare=False)

    def __post_init__(self) -> None:
        # Read-only views over private copies.
        object.__setattr__(self, "display", MappingProxyType(dict(self.display)))
        object.__setattr__(self, "provenance", MappingProxyType(dict(self.provenance)))

    @property
    def has_content(self) -> bool:
        return any(
            slot is not None
            for slot in (self.diagnostic, self.actions, self.risks, self.suggested_queries)
        )

    def confidence_band(self, config: ConfidenceConfig | None = None) -> str:
        thresholds = config or ConfidenceConfig()
        if self.confidence >= thresholds.high_threshold:
            return "high"
        if self.confidence >= thresholds.medium_threshold:
            return "medium"
        return "low"

    def segments_for(self, path: str) -> tuple[DisplaySegment, ...]:
        return self.display.get(path, ())

    def as_dict(self) -> dict[str, Any]:
        """Serialize to JSON-ready primitives with a ``kind`` tag per slot variant."""

        return {
            "diagnostic": _tagged(self.diagnostic),
            "actions": _tagged(self.actions),
            "risks": _tagged(self.risks),
            "suggested_queries": _tagged(self.suggested_queries),
            "confidence": self.confidence,
            "confidence_band": self.confidence_band(),
            "notes": _tagged(self.notes),
            "has_content": self.has_content,
            "display": {
                path: [
                    {
                        "kind": segment.kind.value,
                        "text": segment.text,
                        "language": segment.language,
                    }
                    for segment in segments
                ]
                for path, segments in self.display.items()
            },
            "provenance": {
                slot: {
                    "shape": item.shape,
                    "strategy": item.strategy.value if item.strategy else None,
                    "promoted_from": item.promoted_from,
                }
                for slot, item in self.provenance.items()
            },
        }


def _tagged(value: Any) -> dict[str, Any] | None:
    if value is None:
        return None
    return {"kind": value.kind, **_plain(asdict(value))}


def _plain(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {key: _plain(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(item) for item in value]
    return value

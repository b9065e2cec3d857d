"""Raw advisory payload model and ingestion of complete advisor replies."""

from __future__ import annotations

from typing import Any

import structlog
from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from advisory_engine.config import PayloadConfig
from advisory_engine.ingest.recovery import JsonRecoveryParser
from advisory_engine.types import Recovered

logger = structlog.get_logger(__name__)


class RawAdvisoryPayload(BaseModel):
    """The six advisory fields exactly as the backend produced them.

    Slot fields stay untyped on purpose: they may hold objects, arrays, prose
    or JSON-in-a-string, and are only shaped by the normalizer. Both the
    English field names and the French keys emitted by the advisor are
    accepted.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    diagnostic: Any = None
    actions_recommended: Any = Field(
        default=None,
        validation_alias=AliasChoices("actions_recommended", "actions_recommandees"),
    )
    risks: Any = Field(default=None, validation_alias=AliasChoices("risks", "risques"))
    suggested_query: Any = Field(
        default=None,
        validation_alias=AliasChoices("suggested_query", "sql_suggere"),
    )
    confidence_level: float = Field(
        validation_alias=AliasChoices("confidence_level", "niveau_confiance"),
    )
    supplementary_notes: Any = Field(
        default=None,
        validation_alias=AliasChoices("supplementary_notes", "notes_complementaires"),
    )


_CONFIDENCE_KEYS = ("confidence_level", "niveau_confiance")


class AdvisorReplyParser:
    """Turns one complete LLM reply into a `RawAdvisoryPayload`.

    The reply is JSON-recovered as a whole. An object is read field by field;
    anything else becomes a prose-only payload whose diagnostic is the reply
    text. A missing or non-numeric confidence is replaced by the configured
    fallback value.
    """

    def __init__(
        self,
        config: PayloadConfig | None = None,
        *,
        recovery_parser: JsonRecoveryParser | None = None,
    ) -> None:
        self.config = config or PayloadConfig()
        self.recovery_parser = recovery_parser or JsonRecoveryParser()

    def parse(self, text: str) -> RawAdvisoryPayload:
        result = self.recovery_parser.recover(text)
        if isinstance(result, Recovered) and isinstance(result.value, dict):
            return self._from_mapping(result.value)

        logger.warning("advisor_text_not_json", length=len(text))
        return RawAdvisoryPayload(
            diagnostic=text,
            actions_recommended=[],
            risks=[],
            confidence_level=self.config.fallback_confidence,
        )

    def _from_mapping(self, data: dict[str, Any]) -> RawAdvisoryPayload:
        confidence = next(
            (data[key] for key in _CONFIDENCE_KEYS if data.get(key) is not None),
            None,
        )
        if isinstance(confidence, bool) or not isinstance(confidence, (int, float)):
            logger.warning("confidence_defaulted", received=repr(confidence))
            confidence = self.config.fallback_confidence
        return RawAdvisoryPayload.model_validate({**data, "confidence_level": confidence})

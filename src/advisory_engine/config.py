"""Configuration models for the advisory extraction engine."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, model_validator


class RecoveryConfig(BaseModel):
    """Configures the embedded-JSON search of the recovery parser."""

    model_config = ConfigDict(frozen=True)

    min_embedded_length: int = Field(default=20, ge=0)


class DisplayConfig(BaseModel):
    """Configures how recovered JSON blocks are pretty-printed for display."""

    model_config = ConfigDict(frozen=True)

    json_indent: int = Field(default=2, ge=0, le=8)
    ensure_ascii: bool = False


class ConfidenceConfig(BaseModel):
    """Thresholds used to bucket the advisory confidence for presentation."""

    model_config = ConfigDict(frozen=True)

    high_threshold: float = Field(default=0.7, ge=0.0, le=1.0)
    medium_threshold: float = Field(default=0.4, ge=0.0, le=1.0)

    @model_validator(mode="after")
    def _check_ordering(self) -> "ConfidenceConfig":
        if self.medium_threshold > self.high_threshold:
            raise ValueError("medium_threshold must not exceed high_threshold")
        return self


class PayloadConfig(BaseModel):
    """Configures ingestion of complete advisor replies."""

    model_config = ConfigDict(frozen=True)

    fallback_confidence: float = Field(default=0.5, ge=0.0, le=1.0)


class EngineConfig(BaseModel):
    """Immutable configuration value threaded through every engine stage."""

    model_config = ConfigDict(frozen=True)

    recovery: RecoveryConfig = Field(default_factory=RecoveryConfig)
    display: DisplayConfig = Field(default_factory=DisplayConfig)
    confidence: ConfidenceConfig = Field(default_factory=ConfidenceConfig)
    payload: PayloadConfig = Field(default_factory=PayloadConfig)

"""LangChain output parser producing advisory documents."""

from __future__ import annotations

from langchain_core.output_parsers import BaseOutputParser
from pydantic import Field

from advisory_engine.advisor.pipeline import AdvisoryPipeline
from advisory_engine.advisor.prompt import FORMAT_INSTRUCTIONS
from advisory_engine.config import EngineConfig
from advisory_engine.types import AdvisoryDocument


class AdvisoryOutputParser(BaseOutputParser[AdvisoryDocument]):
    """Parses a raw advisor reply into an `AdvisoryDocument`.

    Never raises on malformed model output: an unparseable reply becomes a
    prose-only document carrying the fallback confidence.
    """

    config: EngineConfig = Field(default_factory=EngineConfig)

    def parse(self, text: str) -> AdvisoryDocument:
        return AdvisoryPipeline(self.config).from_text(text).document

    def get_format_instructions(self) -> str:
        return FORMAT_INSTRUCTIONS

    @property
    def _type(self) -> str:
        return "advisory_document"

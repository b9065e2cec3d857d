"""Pre-segmented display runs for prose fields."""

from __future__ import annotations

import json

from advisory_engine.config import DisplayConfig
from advisory_engine.ingest.fences import FenceScanner
from advisory_engine.ingest.recovery import JsonRecoveryParser
from advisory_engine.types import DisplayKind, DisplaySegment, Recovered, SegmentKind


class ProseRenderer:
    """Turns narrative text into ordered text / JSON / code display runs.

    JSON-looking fenced blocks left inside a narrative field are recovered and
    pretty-printed with the fences removed. When recovery fails only the
    fences are removed and the inner text is kept verbatim.
    """

    def __init__(
        self,
        *,
        scanner: FenceScanner | None = None,
        recovery_parser: JsonRecoveryParser | None = None,
        config: DisplayConfig | None = None,
    ) -> None:
        self.scanner = scanner or FenceScanner()
        self.recovery_parser = recovery_parser or JsonRecoveryParser()
        self.config = config or DisplayConfig()

    def render(self, text: str) -> tuple[DisplaySegment, ...]:
        runs: list[DisplaySegment] = []
        for segment in self.scanner.scan(text):
            if segment.kind is SegmentKind.PROSE:
                runs.append(DisplaySegment(kind=DisplayKind.TEXT, text=segment.content))
                continue

            if segment.is_json_candidate:
                result = self.recovery_parser.recover(segment.content)
                if isinstance(result, Recovered):
                    runs.append(
                        DisplaySegment(
                            kind=DisplayKind.JSON,
                            text=json.dumps(
                                result.value,
                                indent=self.config.json_indent,
                                ensure_ascii=self.config.ensure_ascii,
                            ),
                            language="json",
                        )
                    )
                    continue

            runs.append(
                DisplaySegment(
                    kind=DisplayKind.CODE,
                    text=segment.content,
                    language=segment.language,
                )
            )
        return tuple(runs)

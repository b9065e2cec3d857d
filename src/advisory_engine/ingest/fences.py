"""Markdown code-fence scanning."""

from __future__ import annotations

import re

from advisory_engine.types import Segment, SegmentKind

# Opening fence, optional language tag glued to it, then the body up to the
# next closing fence. A fence without a closer never matches.
_FENCE_PATTERN = re.compile(
    r"```(?P<language>[\w+-]*)[ \t]*\n?(?P<body>.*?)```",
    flags=re.DOTALL,
)
_LEADING_BLANK_LINES = re.compile(r"\A(?:[ \t]*\n)+")


class FenceScanner:
    """Splits a text blob into ordered prose and code segments.

    Design notes:
    1. Fences are matched left to right with a lazy body, so every closing
       fence pairs with the nearest preceding opener and no two matches share
       characters. Scanning always resumes past the last consumed offset.
    2. Interstitial text is trimmed and emitted as prose; whitespace-only runs
       are dropped.
    3. An opening fence with no closer is not a match at all, so the trailing
       section (including the stray backticks) stays prose.
    """

    def scan(self, text: str) -> list[Segment]:
        if not text:
            return []

        segments: list[Segment] = []
        last_index = 0

        for match in _FENCE_PATTERN.finditer(text):
            self._emit_prose(text, last_index, match.start(), segments)

            body = match.group("body")
            leading = _LEADING_BLANK_LINES.match(body)
            skipped = leading.end() if leading else 0
            segments.append(
                Segment(
                    kind=SegmentKind.CODE,
                    content=body[skipped:].rstrip(),
                    language=match.group("language").lower() or None,
                    source_offset=match.start("body") + skipped,
                )
            )
            last_index = match.end()

        self._emit_prose(text, last_index, len(text), segments)
        return segments

    @staticmethod
    def _emit_prose(text: str, start: int, end: int, segments: list[Segment]) -> None:
        if end <= start:
            return
        chunk = text[start:end]
        stripped = chunk.strip()
        if not stripped:
            return
        offset = start + (len(chunk) - len(chunk.lstrip()))
        segments.append(
            Segment(kind=SegmentKind.PROSE, content=stripped, source_offset=offset)
        )

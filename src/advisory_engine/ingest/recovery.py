"""Layered JSON recovery for LLM-produced strings."""

from __future__ import annotations

import json
import re
from collections.abc import Iterator
from typing import Any

import structlog

from advisory_engine.config import RecoveryConfig
from advisory_engine.types import Recovered, RecoveryResult, RecoveryStrategy, Unrecovered

logger = structlog.get_logger(__name__)

_JSON_FENCE = re.compile(r"```json\s*\n?(.*?)```", flags=re.DOTALL | re.IGNORECASE)
_CLOSING = {"{": "}", "[": "]"}


class _Unparseable(ValueError):
    pass


class JsonRecoveryParser:
    """Attempts an ordered list of normalization + parse strategies.

    Strategy order (first success wins):
    1. ``direct``: strict parse of the trimmed candidate.
    2. ``json_fence``: every ```json fence in the string, in order.
    3. ``pattern``: whole-string object, whole-string array, then the first
       embedded object and array spanning at least ``min_embedded_length``
       characters between their brackets.
    4. ``bracketed``: candidates whose first and last non-whitespace
       characters are a matching bracket pair.

    Anything else yields ``Unrecovered`` carrying the original candidate.
    Parsing is strict JSON: ``NaN`` and ``Infinity`` are rejected.
    """

    def __init__(self, config: RecoveryConfig | None = None) -> None:
        self.config = config or RecoveryConfig()

    def recover(self, candidate: str) -> RecoveryResult:
        trimmed = candidate.strip()
        if not trimmed:
            return Unrecovered(original_text=candidate)

        for strategy, attempt in (
            (RecoveryStrategy.DIRECT, self._direct),
            (RecoveryStrategy.JSON_FENCE, self._fenced),
            (RecoveryStrategy.PATTERN, self._patterned),
            (RecoveryStrategy.BRACKETED, self._bracketed),
        ):
            try:
                value = attempt(trimmed)
            except _Unparseable:
                continue
            return Recovered(value=value, strategy=strategy)

        logger.debug("json_recovery_exhausted", length=len(candidate))
        return Unrecovered(original_text=candidate)

    def _direct(self, text: str) -> Any:
        return _loads(text)

    def _fenced(self, text: str) -> Any:
        for match in _JSON_FENCE.finditer(text):
            content = match.group(1).strip()
            if not content:
                continue
            try:
                return _loads(content)
            except _Unparseable:
                continue
        raise _Unparseable("no parseable json fence")

    def _patterned(self, text: str) -> Any:
        for span in self._pattern_spans(text):
            try:
                return _loads(span)
            except _Unparseable:
                continue
        raise _Unparseable("no parseable json pattern")

    def _pattern_spans(self, text: str) -> Iterator[str]:
        # Whole-string object and array first, then first opener to last
        # closer. find/rfind keep this linear on text full of openers.
        for opener in ("{", "["):
            if text[0] == opener and text[-1] == _CLOSING[opener]:
                yield text
        for opener in ("{", "["):
            start = text.find(opener)
            end = text.rfind(_CLOSING[opener])
            if start != -1 and end - start - 1 >= self.config.min_embedded_length:
                yield text[start : end + 1]

    def _bracketed(self, text: str) -> Any:
        if _CLOSING.get(text[0]) != text[-1]:
            raise _Unparseable("not bracketed")
        try:
            return _loads(text)
        except _Unparseable:
            cleaned = text.strip()
            if cleaned == text:
                raise
            return _loads(cleaned)


def _reject_constant(name: str) -> Any:
    raise _Unparseable(f"non-standard JSON constant: {name}")


def _loads(text: str) -> Any:
    try:
        return json.loads(text, parse_constant=_reject_constant)
    except _Unparseable:
        raise
    except (ValueError, RecursionError) as exc:
        raise _Unparseable(str(exc)) from exc

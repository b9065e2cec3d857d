"""Field alias tables and scalar coercions used when reading advisory records.

The advisory backend answers with French keys (``etat_actuel``, ``priorite``,
``exemple_sql`` ...); English spellings are accepted as well.
"""

from __future__ import annotations

import json
import unicodedata
from collections.abc import Mapping
from typing import Any

from advisory_engine.types import Priority

CURRENT_STATE_KEYS = ("etat_actuel", "current_state", "currentState")
HYPOTHESES_KEYS = ("hypotheses",)
CHECKS_KEYS = ("verifications_prealables", "preliminary_checks", "preliminaryChecks")
DIAGNOSTIC_KEYS = CURRENT_STATE_KEYS + HYPOTHESES_KEYS + CHECKS_KEYS

ACTION_LABEL_KEYS = ("action", "label", "titre", "title", "name")
PRIORITY_KEYS = ("priorite", "priority")
DETAILS_KEYS = ("details", "description")
DEPENDENCY_KEYS = ("dependances", "dependencies")
TOOL_KEYS = ("outils", "tools")
EXAMPLE_QUERY_KEYS = ("exemple_sql", "example_sql", "example_query", "exampleQuery")
ACTION_KEYS = ACTION_LABEL_KEYS + PRIORITY_KEYS + DETAILS_KEYS + EXAMPLE_QUERY_KEYS
# Keys that only an action record carries; generic ones like ``title`` also
# appear on wrapper objects.
ACTION_MARKER_KEYS = ("action",)

RISK_LABEL_KEYS = ("risque", "risk", "label", "titre", "title", "name")
CAUSE_KEYS = ("cause",)
IMPACT_KEYS = ("impact",)
MITIGATION_KEYS = ("mitigation",)
RISK_KEYS = RISK_LABEL_KEYS + CAUSE_KEYS + IMPACT_KEYS + MITIGATION_KEYS
RISK_MARKER_KEYS = ("risque", "risk")

QUERY_KEYS = ("requete", "query", "sql")
QUERY_DESCRIPTION_KEYS = ("description",)

RECOMMENDED_TOOLS_KEYS = ("outils_recommandes", "recommended_tools", "recommendedTools")
BEST_PRACTICES_KEYS = ("bonnes_pratiques", "best_practices", "bestPractices")
NOTES_KEYS = RECOMMENDED_TOOLS_KEYS + BEST_PRACTICES_KEYS

_PRIORITY_WORDS: dict[str, Priority] = {
    "critique": Priority.CRITICAL,
    "critical": Priority.CRITICAL,
    "haute": Priority.HIGH,
    "haut": Priority.HIGH,
    "high": Priority.HIGH,
    "elevee": Priority.HIGH,
    "urgente": Priority.HIGH,
    "urgent": Priority.HIGH,
    "moyenne": Priority.MEDIUM,
    "moyen": Priority.MEDIUM,
    "medium": Priority.MEDIUM,
    "normal": Priority.MEDIUM,
    "normale": Priority.MEDIUM,
    "basse": Priority.LOW,
    "bas": Priority.LOW,
    "faible": Priority.LOW,
    "low": Priority.LOW,
}


def lookup(record: Mapping[str, Any], keys: tuple[str, ...]) -> Any:
    """Return the value of the first alias present with a non-null value."""
    for key in keys:
        value = record.get(key)
        if value is not None:
            return value
    return None


def has_any_key(record: Mapping[str, Any], keys: tuple[str, ...]) -> bool:
    return any(key in record for key in keys)


def as_text(value: Any) -> str | None:
    """Coerce a scalar or container to display text; blanks become ``None``."""
    if value is None or (isinstance(value, (dict, list)) and not value):
        return None
    if isinstance(value, str):
        text = value.strip()
    elif isinstance(value, (dict, list)):
        text = json.dumps(value, ensure_ascii=False)
    elif isinstance(value, bool):
        text = "true" if value else "false"
    else:
        text = str(value)
    return text or None


def as_text_list(value: Any) -> tuple[str, ...]:
    """Coerce a list (or a lone string) to a tuple of non-blank texts."""
    if value is None:
        return ()
    items = value if isinstance(value, list) else [value]
    texts = (as_text(item) for item in items)
    return tuple(text for text in texts if text is not None)


def parse_priority(value: Any) -> Priority | None:
    text = as_text(value)
    if text is None:
        return None
    folded = unicodedata.normalize("NFKD", text.lower())
    word = "".join(char for char in folded if not unicodedata.combining(char))
    return _PRIORITY_WORDS.get(word, Priority.OTHER)

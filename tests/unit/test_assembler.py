import pytest

from advisory_engine.config import ConfidenceConfig, DisplayConfig, EngineConfig
from advisory_engine.ingest.payload import RawAdvisoryPayload
from advisory_engine.shaping.assembler import AdvisoryAssembler
from advisory_engine.types import (
    ActionList,
    ActionRecord,
    DisplayKind,
    DisplaySegment,
    Priority,
    ProseText,
    RecoveryStrategy,
    StringList,
    StructuredDiagnostic,
)


def test_all_absent_inputs_produce_an_empty_document() -> None:
    document = AdvisoryAssembler().assemble(None, None, None, None, 0.2)

    assert document.diagnostic is None
    assert document.actions is None
    assert document.risks is None
    assert document.suggested_queries is None
    assert document.notes is None
    assert document.confidence == 0.2
    assert not document.has_content
    assert document.display == {}


def test_document_with_only_a_diagnostic_has_content() -> None:
    document = AdvisoryAssembler().assemble("Table scans dominate.", None, [], None, 0.9)

    assert document.diagnostic == ProseText(text="Table scans dominate.")
    assert document.risks is None
    assert document.has_content
    assert document.segments_for("diagnostic.text") == (
        DisplaySegment(kind=DisplayKind.TEXT, text="Table scans dominate."),
    )


def test_notes_alone_do_not_count_as_content() -> None:
    document = AdvisoryAssembler().assemble(
        None, None, None, None, 0.5, {"bonnes_pratiques": ["Keep statistics fresh"]}
    )

    assert document.notes is not None
    assert not document.has_content


def test_full_french_payload() -> None:
    payload = RawAdvisoryPayload.model_validate(
        {
            "diagnostic": {"etat_actuel": "DB fragmented", "hypotheses": ["Heavy deletes"]},
            "actions_recommandees": '```json\n[{"action":"Add index","priorite":"haute"}]\n```',
            "risques": [],
            "sql_suggere": "SELECT 1",
            "niveau_confiance": 0.85,
        }
    )

    document = AdvisoryAssembler().assemble_payload(payload)

    assert document.diagnostic == StructuredDiagnostic(
        current_state="DB fragmented", hypotheses=("Heavy deletes",)
    )
    assert document.actions == ActionList(
        records=(ActionRecord(label="Add index", priority=Priority.HIGH),)
    )
    assert document.risks is None
    assert document.confidence == 0.85
    assert document.confidence_band() == "high"
    assert document.provenance["actions"].strategy is RecoveryStrategy.JSON_FENCE
    assert document.provenance["risks"].shape == "absent"


def test_fenced_json_inside_prose_is_pretty_printed_for_display() -> None:
    diagnostic = {
        "etat_actuel": 'Current settings:\n```json\n{"work_mem": "4MB"}\n```\nToo small.'
    }

    document = AdvisoryAssembler().assemble(diagnostic, None, None, None, 0.6)

    assert document.segments_for("diagnostic.current_state") == (
        DisplaySegment(kind=DisplayKind.TEXT, text="Current settings:"),
        DisplaySegment(kind=DisplayKind.JSON, text='{\n  "work_mem": "4MB"\n}', language="json"),
        DisplaySegment(kind=DisplayKind.TEXT, text="Too small."),
    )


def test_unrecoverable_json_fence_keeps_inner_text_without_fences() -> None:
    document = AdvisoryAssembler().assemble("See:\n```json\n{broken\n```", None, None, None, 0.6)

    segments = document.segments_for("diagnostic.text")

    assert segments[-1] == DisplaySegment(kind=DisplayKind.CODE, text="{broken", language="json")
    assert all("```" not in segment.text for segment in segments)


def test_sql_fence_stays_code() -> None:
    document = AdvisoryAssembler().assemble(
        None,
        [{"action": "Add index", "details": ["Run:\n```sql\nCREATE INDEX i ON t(c);\n```"]}],
        None,
        None,
        0.6,
    )

    assert document.segments_for("actions.0.details.0") == (
        DisplaySegment(kind=DisplayKind.TEXT, text="Run:"),
        DisplaySegment(kind=DisplayKind.CODE, text="CREATE INDEX i ON t(c);", language="sql"),
    )


def test_display_paths_for_string_lists_and_risks() -> None:
    document = AdvisoryAssembler().assemble(
        None,
        ["Vacuum", "Reindex"],
        [{"risque": "Locks", "mitigation": "Run off-peak"}],
        None,
        0.6,
    )

    assert document.actions == StringList(items=("Vacuum", "Reindex"))
    assert set(document.display) == {"actions.0", "actions.1", "risks.0.mitigation"}
    assert document.segments_for("risks.0.cause") == ()


def test_display_indent_is_configurable() -> None:
    config = EngineConfig(display=DisplayConfig(json_indent=4))
    document = AdvisoryAssembler(config).assemble(
        "```json\n[1]\n```", None, None, None, 0.6
    )

    (segment,) = document.segments_for("diagnostic.text")
    assert segment.text == "[\n    1\n]"


def test_assembling_twice_gives_equal_documents() -> None:
    assembler = AdvisoryAssembler()
    raw = ('{"current_state": "ok"}', '{"data": ["a"]}', None, "SELECT 1", 0.4)

    assert assembler.assemble(*raw) == assembler.assemble(*raw)


def test_reassembling_canonical_values_is_stable() -> None:
    assembler = AdvisoryAssembler()
    first = assembler.assemble('{"current_state": "ok"}', [{"action": "Vacuum"}], ["Locks"], "SELECT 1", 0.4)

    second = assembler.assemble(
        first.diagnostic, first.actions, first.risks, first.suggested_queries, first.confidence, first.notes
    )

    assert second == first


@pytest.mark.parametrize("confidence", ["0.8", None, True])
def test_non_numeric_confidence_is_rejected(confidence: object) -> None:
    with pytest.raises(TypeError):
        AdvisoryAssembler().assemble(None, None, None, None, confidence)


def test_confidence_is_not_clamped() -> None:
    document = AdvisoryAssembler().assemble(None, None, None, None, 1.7)

    assert document.confidence == 1.7
    assert document.confidence_band() == "high"


@pytest.mark.parametrize(
    ("confidence", "band"),
    [(0.7, "high"), (0.69, "medium"), (0.4, "medium"), (0.39, "low"), (0, "low")],
)
def test_confidence_band(confidence: float, band: str) -> None:
    document = AdvisoryAssembler().assemble(None, None, None, None, confidence)

    assert document.confidence_band() == band


def test_confidence_band_thresholds_are_configurable() -> None:
    document = AdvisoryAssembler().assemble(None, None, None, None, 0.5)

    assert document.confidence_band(ConfidenceConfig(high_threshold=0.5, medium_threshold=0.2)) == "high"


def test_as_dict_tags_every_present_slot_with_its_kind() -> None:
    document = AdvisoryAssembler().assemble(
        {"etat_actuel": "ok"},
        [{"action": "Vacuum", "priorite": "basse", "outils": ["psql"]}],
        ["Locks"],
        [{"requete": "SELECT 1"}],
        0.3,
    )

    data = document.as_dict()

    assert data["diagnostic"] == {
        "kind": "structured",
        "current_state": "ok",
        "hypotheses": [],
        "preliminary_checks": [],
    }
    assert data["actions"]["kind"] == "records"
    assert data["actions"]["records"][0]["priority"] == "low"
    assert data["actions"]["records"][0]["tools"] == ["psql"]
    assert data["risks"] == {"kind": "strings", "items": ["Locks"]}
    assert data["suggested_queries"] == {
        "kind": "records",
        "records": [{"query": "SELECT 1", "description": None}],
    }
    assert data["notes"] is None
    assert data["confidence_band"] == "low"
    assert data["has_content"] is True
    assert data["display"]["risks.0"] == [{"kind": "text", "text": "Locks", "language": None}]
    assert data["provenance"]["diagnostic"] == {
        "shape": "structured",
        "strategy": None,
        "promoted_from": None,
    }


def test_query_with_inline_json_counts_as_content() -> None:
    sql = "SELECT * FROM events WHERE payload @> '{\"type\": \"login\", \"ok\": true}'"

    document = AdvisoryAssembler().assemble(None, None, None, sql, 0.9)

    assert document.has_content


def test_document_mappings_are_read_only() -> None:
    document = AdvisoryAssembler().assemble("Table scans dominate.", None, None, None, 0.9)

    with pytest.raises(TypeError):
        document.display["diagnostic.text"] = ()
    with pytest.raises(TypeError):
        document.provenance["diagnostic"] = None
    assert document.segments_for("diagnostic.text")[0].text == "Table scans dominate."

import json

from langchain_core.language_models.fake_chat_models import FakeListChatModel

from advisory_engine.advisor.output_parser import AdvisoryOutputParser
from advisory_engine.advisor.prompt import DatabaseContext, build_prompt_template, format_context
from advisory_engine.types import (
    ActionList,
    ActionRecord,
    Priority,
    ProseText,
    QueryList,
    QueryRecord,
    RiskList,
    RiskRecord,
    StructuredDiagnostic,
)

_REPLY = (
    "Sure! Here is the analysis.\n```json\n"
    + json.dumps(
        {
            "diagnostic": {
                "etat_actuel": "Sequential scans on orders",
                "hypotheses": ["Missing index on customer_id"],
            },
            "actions_recommandees": [
                {
                    "action": "Create index",
                    "details": "Index orders(customer_id)",
                    "priorite": "haute",
                    "exemple_sql": "CREATE INDEX ON orders(customer_id)",
                }
            ],
            "risques": [{"risque": "Write amplification", "mitigation": "Monitor inserts"}],
            "sql_suggere": [{"description": "Check plan", "requete": "EXPLAIN SELECT 1"}],
            "niveau_confiance": 0.75,
        }
    )
    + "\n```"
)


def test_prompt_model_parser_chain_produces_document() -> None:
    model = FakeListChatModel(responses=[_REPLY])
    chain = build_prompt_template() | model | AdvisoryOutputParser()

    document = chain.invoke({"context": format_context(DatabaseContext(dsn="postgresql://db/shop"))})

    assert document.diagnostic == StructuredDiagnostic(
        current_state="Sequential scans on orders",
        hypotheses=("Missing index on customer_id",),
    )
    assert document.actions == ActionList(
        records=(
            ActionRecord(
                label="Create index",
                priority=Priority.HIGH,
                details="Index orders(customer_id)",
                example_query="CREATE INDEX ON orders(customer_id)",
            ),
        )
    )
    assert document.risks == RiskList(
        records=(RiskRecord(label="Write amplification", mitigation="Monitor inserts"),)
    )
    assert document.suggested_queries == QueryList(
        records=(QueryRecord(query="EXPLAIN SELECT 1", description="Check plan"),)
    )
    assert document.confidence == 0.75
    assert document.confidence_band() == "high"


def test_non_json_reply_becomes_prose_document() -> None:
    document = AdvisoryOutputParser().parse("The database looks fine; no action needed.")

    assert document.diagnostic == ProseText(text="The database looks fine; no action needed.")
    assert document.actions is None
    assert document.risks is None
    assert document.confidence == 0.5
    assert document.has_content


def test_empty_reply_yields_empty_document() -> None:
    document = AdvisoryOutputParser().parse("")

    assert not document.has_content
    assert document.confidence == 0.5

"""Prompt contract for the database advisor model."""

from __future__ import annotations

import json

from langchain_core.prompts import ChatPromptTemplate
from pydantic import BaseModel, Field


class ColumnInfo(BaseModel):
    name: str
    data_type: str = "UNKNOWN"
    nullable: bool | None = None
    is_primary_key: bool = False
    is_foreign_key: bool = False


class IndexInfo(BaseModel):
    name: str
    columns: list[str] = Field(default_factory=list)
    unique: bool = False


class TableRelation(BaseModel):
    from_table: str
    from_column: str
    to_table: str
    to_column: str


class DatabaseStats(BaseModel):
    table_count: int = Field(default=0, ge=0)
    index_count: int = Field(default=0, ge=0)
    estimated_size: str | None = None


class DatabaseContext(BaseModel):
    """Database facts gathered by the caller and handed to the advisor."""

    dsn: str = Field(min_length=1)
    tables: list[str] = Field(default_factory=list)
    schemas: dict[str, list[ColumnInfo]] = Field(default_factory=dict)
    indexes: dict[str, list[IndexInfo]] = Field(default_factory=dict)
    relations: list[TableRelation] = Field(default_factory=list)
    sql_query: str | None = None
    stats: DatabaseStats | None = None


RESPONSE_SKELETON: dict[str, object] = {
    "diagnostic": {
        "etat_actuel": "Description of the current state",
        "hypotheses": ["Hypothesis 1"],
        "verifications_prealables": ["Check 1"],
    },
    "actions_recommandees": [
        {
            "action": "Action name",
            "details": "Detailed description",
            "priorite": "haute",
        }
    ],
    "risques": [
        {
            "risque": "Risk name",
            "cause": "Cause",
            "impact": "Impact",
            "mitigation": "Mitigation",
        }
    ],
    "sql_suggere": [
        {
            "description": "Description",
            "requete": "SELECT ...",
        }
    ],
    "niveau_confiance": 0.85,
    "notes_complementaires": {
        "outils_recommandes": ["Tool 1"],
        "bonnes_pratiques": ["Practice 1"],
    },
}

FORMAT_INSTRUCTIONS = (
    "IMPORTANT: Reply ONLY with valid JSON, without any text before or after it. "
    "Required JSON structure:\n"
    + json.dumps(RESPONSE_SKELETON, indent=2, ensure_ascii=False)
)

_SYSTEM_PROMPT = f"""
You are a database management expert. Analyse the context provided by the user
and give structured advice in JSON.

Rules:
1) Never suggest SQL that modifies data without saying so in the action details.
2) Suggested SQL is shown to a human and is never executed automatically.
3) `niveau_confiance` is a number between 0 and 1.
4) `priorite` is one of: critique, haute, moyenne, basse.

{FORMAT_INSTRUCTIONS}
""".strip()


def build_prompt_template() -> ChatPromptTemplate:
    """Chat prompt with the advisor rules as system message and a ``{context}`` slot."""

    return ChatPromptTemplate.from_messages(
        [
            ("system", _escape_braces(_SYSTEM_PROMPT)),
            ("human", "{context}"),
        ]
    )


def format_context(context: DatabaseContext) -> str:
    lines = [f"DSN: {context.dsn}", f"Table count: {len(context.tables)}"]

    if context.tables:
        lines.append("")
        lines.append("Available tables:")
        lines.extend(f"- {table}" for table in context.tables)
    else:
        lines.append("")
        lines.append("No table was detected in this database.")

    if context.stats is not None:
        lines.append("")
        lines.append(
            f"Statistics: {context.stats.table_count} tables, {context.stats.index_count} indexes"
        )

    if context.schemas:
        lines.append("")
        lines.append("Table schemas:")
        for table, columns in context.schemas.items():
            lines.append(f"- Table {table}: {len(columns)} columns")
            lines.extend(f"  * {column.name} ({column.data_type})" for column in columns)

    if context.indexes:
        lines.append("")
        lines.append("Existing indexes:")
        for table, indexes in context.indexes.items():
            for index in indexes:
                lines.append(f"- Table {table}: index {index.name} on {', '.join(index.columns)}")

    if context.relations:
        lines.append("")
        lines.append("Relations:")
        lines.extend(
            f"- {rel.from_table} ({rel.from_column}) -> {rel.to_table} ({rel.to_column})"
            for rel in context.relations
        )

    if context.sql_query:
        lines.append("")
        lines.append("SQL query to analyse:")
        lines.append(context.sql_query)

    return "\n".join(lines)


def _escape_braces(text: str) -> str:
    return text.replace("{", "{{").replace("}", "}}")

"""Conversation context for follow-up questions.

Keeps the last few attempts of one conversation and turns the most relevant
of them, plus per-table usage patterns, into text for the LLM prompts.
"""

import json
import logging
import re
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Any

from langchain_core.language_models.chat_models import BaseChatModel

from smart_postgres.models.schema import DatabaseSchema
from smart_postgres.services.llm import invoke_text, strip_json_fence

logger = logging.getLogger(__name__)

CONTEXT_KEYWORDS = (
    "previous",
    "last",
    "before",
    "again",
    "same",
    "that",
    "those",
    "these",
    "it",
    "they",
    "them",
    "similar",
    "like",
    "also",
    "too",
    "as well",
    "instead",
    "rather",
    "but",
    "however",
    "additionally",
    "moreover",
)

RECENCY_WINDOW_SECONDS = 3600
RESULT_SAMPLE_SIZE = 3

_CONTEXT_KEYWORD = re.compile(
    r"\b(?:" + "|".join(re.escape(k) for k in CONTEXT_KEYWORDS) + r")\b", re.IGNORECASE
)
_TABLE_REFERENCE = re.compile(r"FROM\s+(\w+)|JOIN\s+(\w+)", re.IGNORECASE)
_COLUMN_REFERENCE = re.compile(
    r"SELECT\s+(.+?)\s+FROM|WHERE\s+(\w+)|GROUP BY\s+(\w+)|ORDER BY\s+(\w+)",
    re.IGNORECASE | re.DOTALL,
)
_SQL_WORDS = {"SELECT", "FROM", "WHERE", "GROUP", "BY", "ORDER"}
_WHERE_CLAUSE = re.compile(
    r"WHERE\s+(.+?)(?=\s+(?:GROUP\s+BY|ORDER\s+BY|HAVING|LIMIT|OFFSET)\b|;|$)",
    re.IGNORECASE | re.DOTALL,
)
_BOOLEAN_SPLIT = re.compile(r"\s+(?:AND|OR)\s+", re.IGNORECASE)
_AGGREGATION = re.compile(r"(?:SUM|COUNT|AVG|MIN|MAX)\s*\([^)]+\)", re.IGNORECASE)

CONTEXT_ANALYSIS_PROMPT = """Analyze this database query request and determine if it needs previous context:

Query: "{query}"

Consider:
1. Does this query reference previous results or context?
2. What is the main intent of this query?
3. What entities (tables, columns, values) are mentioned?
4. Is this a follow-up question?

Respond in JSON format:
{{
  "needsContext": boolean,
  "reasoning": "brief explanation",
  "intent": "main purpose of the query",
  "entities": ["list", "of", "identified", "entities"],
  "isFollowUp": boolean,
  "contextKeywords": ["list", "of", "context", "indicating", "words"]
}}"""


@dataclass
class QueryContext:
    """One recorded query attempt."""

    natural_query: str
    sql: str
    timestamp: float
    tables: list[str]
    success: bool
    row_count: int = 0
    result_sample: list[dict[str, Any]] = field(default_factory=list)
    error: str | None = None
    intent: str | None = None
    entities: list[str] = field(default_factory=list)


@dataclass
class TablePatterns:
    """How a table has been used in successful queries."""

    frequent_joins: list[str] = field(default_factory=list)
    common_filters: list[str] = field(default_factory=list)
    common_aggregations: list[str] = field(default_factory=list)
    related_columns: set[str] = field(default_factory=set)
    last_accessed: float = 0.0


@dataclass
class ContextAnalysis:
    """What the LLM (or the keyword fallback) made of a question."""

    needs_context: bool
    intent: str = ""
    entities: list[str] = field(default_factory=list)
    context_keywords: list[str] = field(default_factory=list)


def has_contextual_reference(query: str) -> bool:
    """Whether the question uses words that point back at earlier turns."""
    return _CONTEXT_KEYWORD.search(query) is not None


def extract_table_names(text: str) -> list[str]:
    """Table names following FROM or JOIN."""
    return [m.group(1) or m.group(2) for m in _TABLE_REFERENCE.finditer(text)]


def extract_column_names(sql: str) -> list[str]:
    """Rough list of column expressions from SELECT, WHERE, GROUP BY and ORDER BY."""
    columns = []
    for match in _COLUMN_REFERENCE.finditer(sql):
        for token in re.split(r"[\s,]+", match.group(0)):
            if token and token.upper() not in _SQL_WORDS:
                columns.append(token)
    return columns


def _merge_unique(existing: list[str], new: list[str]) -> list[str]:
    return list(dict.fromkeys([*existing, *new]))


def _summarize_results(row_count: int, sample: list[dict[str, Any]]) -> str:
    if row_count == 0:
        return "No results"
    return f"Found {row_count} rows. Sample: {json.dumps(sample, default=str)}"


class ContextManager:
    """Bounded history of one conversation.

    Must be initialized with a schema before it records or returns anything.
    """

    def __init__(self, max_queries: int = 10) -> None:
        self._max_queries = max_queries
        self._schema: DatabaseSchema | None = None
        self._recent: deque[QueryContext] = deque(maxlen=max_queries)
        self._related_tables: set[str] = set()
        self._mentioned_columns: set[str] = set()
        self._patterns: dict[str, TablePatterns] = {}

    @property
    def initialized(self) -> bool:
        return self._schema is not None

    @property
    def recent_queries(self) -> list[QueryContext]:
        """Recorded attempts, newest first."""
        return list(self._recent)

    @property
    def patterns(self) -> dict[str, TablePatterns]:
        return self._patterns

    def initialize(self, schema: DatabaseSchema) -> None:
        """Start a fresh conversation over this schema."""
        self.clear()
        self._schema = schema

    def update_schema(self, schema: DatabaseSchema) -> None:
        """Swap in a newer schema, keeping the history."""
        self._schema = schema

    def clear(self) -> None:
        """Forget everything, including the schema."""
        self._schema = None
        self._recent.clear()
        self._related_tables.clear()
        self._mentioned_columns.clear()
        self._patterns.clear()

    def add_query_to_context(
        self,
        natural_query: str,
        sql: str,
        success: bool,
        result: list[dict[str, Any]] | None = None,
        error: str | None = None,
        intent: str | None = None,
        entities: list[str] | None = None,
    ) -> None:
        """Record an attempt, successful or not, at the head of the history."""
        if self._schema is None:
            return

        now = time.time()
        tables = extract_table_names(sql)
        columns = extract_column_names(sql)
        rows = result or []

        self._recent.appendleft(
            QueryContext(
                natural_query=natural_query,
                sql=sql,
                timestamp=now,
                tables=tables,
                success=success,
                row_count=len(rows),
                result_sample=rows[:RESULT_SAMPLE_SIZE],
                error=error,
                intent=intent,
                entities=list(entities or []),
            )
        )

        for table in tables:
            self._related_tables.add(table)
            self._mentioned_columns.update(columns)

            patterns = self._patterns.get(table)
            if patterns is None:
                patterns = TablePatterns(related_columns=set(columns), last_accessed=now)
                self._patterns[table] = patterns

            if not success:
                continue

            joins = [t for t in tables if t != table]
            patterns.frequent_joins = _merge_unique(patterns.frequent_joins, joins)

            where = _WHERE_CLAUSE.search(sql)
            if where:
                filters = [f.strip() for f in _BOOLEAN_SPLIT.split(where.group(1)) if f.strip()]
                patterns.common_filters = _merge_unique(patterns.common_filters, filters)

            aggregations = _AGGREGATION.findall(sql)
            if aggregations:
                patterns.common_aggregations = _merge_unique(
                    patterns.common_aggregations, aggregations
                )

            patterns.last_accessed = now
            patterns.related_columns.update(columns)

    @staticmethod
    def score_query(
        natural_query: str,
        prior: QueryContext,
        now: float | None = None,
    ) -> float:
        """Relevance of a prior attempt to the current question.

        +1 per shared word, +2 per shared table, x1.5 for a successful
        prior query, and up to x2 for recency, decaying linearly over an hour.
        """
        now = time.time() if now is None else now

        current_words = set(natural_query.lower().split())
        prior_words = set(prior.natural_query.lower().split())
        score = float(len(current_words & prior_words))

        current_tables = set(extract_table_names(natural_query))
        score += 2 * len(current_tables & set(prior.tables))

        if prior.success:
            score *= 1.5

        recency = 1 - (now - prior.timestamp) / RECENCY_WINDOW_SECONDS
        score *= 1 + max(0.0, recency)
        return score

    def find_relevant_query(self, natural_query: str) -> QueryContext | None:
        """Best scoring prior attempt with SQL, if it scores above 1.

        Ties go to the more recent attempt. Turns that produced no SQL
        (explanations, input requests) are never picked.
        """
        now = time.time()
        best: QueryContext | None = None
        best_score = 0.0
        for prior in self._recent:
            if not prior.sql:
                continue
            score = self.score_query(natural_query, prior, now=now)
            if best is None or score > best_score:
                best, best_score = prior, score

        if best is not None and best_score > 1:
            return best
        return None

    async def analyze_context(
        self, natural_query: str, llm: BaseChatModel | None = None
    ) -> ContextAnalysis:
        """Ask the LLM whether the question depends on earlier turns.

        Falls back to keyword detection when there is no LLM or its answer
        is unusable.
        """
        fallback = ContextAnalysis(needs_context=has_contextual_reference(natural_query))
        if llm is None:
            return fallback

        try:
            response = await invoke_text(llm, CONTEXT_ANALYSIS_PROMPT.format(query=natural_query))
            analysis = json.loads(strip_json_fence(response))
            if not isinstance(analysis, dict):
                raise ValueError("context analysis is not a JSON object")
        except Exception as e:
            logger.warning("Context analysis failed, using keyword detection: %s", e)
            return fallback

        entities = analysis.get("entities") or []
        keywords = analysis.get("contextKeywords") or []
        return ContextAnalysis(
            needs_context=bool(analysis.get("needsContext") or analysis.get("isFollowUp")),
            intent=str(analysis.get("intent") or ""),
            entities=[str(e) for e in entities] if isinstance(entities, list) else [],
            context_keywords=[str(k) for k in keywords] if isinstance(keywords, list) else [],
        )

    def build_context(self, natural_query: str, analysis: ContextAnalysis) -> str:
        """Render the context text for a question given its analysis."""
        if self._schema is None:
            return ""

        parts: list[str] = []
        lowered = natural_query.lower()

        if analysis.needs_context or has_contextual_reference(natural_query):
            prior = self.find_relevant_query(natural_query)
            if prior is not None:
                parts.append("Previous relevant query context:")
                parts.append(f"User asked: {prior.natural_query}")
                parts.append(f"SQL generated: {prior.sql}")
                if prior.row_count:
                    summary = _summarize_results(prior.row_count, prior.result_sample)
                    parts.append(f"Previous result summary: {summary}")
                if prior.error:
                    parts.append(f"Note: This query had an error: {prior.error}")

        if analysis.intent:
            parts.append(f"\nQuery intent: {analysis.intent}")

        entities = [e.lower() for e in analysis.entities]
        relevant_tables = []
        for table in self._schema.tables:
            name = table.name.lower()
            recently_used = table.name in self._related_tables
            mentioned = name in lowered
            identified = any(
                e in name or any(e in col.name.lower() for col in table.columns) for e in entities
            )
            has_columns = any(
                col.name in self._mentioned_columns
                or col.name.lower() in lowered
                or col.name.lower() in entities
                for col in table.columns
            )
            if recently_used or mentioned or identified or has_columns:
                relevant_tables.append(table)

        if relevant_tables:
            parts.append("\nRelevant tables and their patterns:")
            for table in relevant_tables:
                patterns = self._patterns.get(table.name)
                parts.append(f"Table {table.name}:")

                columns = [
                    col
                    for col in table.columns
                    if (patterns and col.name in patterns.related_columns)
                    or col.name.lower() in lowered
                ]
                if columns:
                    rendered = ", ".join(
                        f"{c.name} ({c.type}{', PRIMARY KEY' if c.is_primary else ''})"
                        for c in columns
                    )
                    parts.append(f"- Relevant columns: {rendered}")

                if patterns:
                    if patterns.frequent_joins:
                        parts.append(f"- Common joins: {', '.join(patterns.frequent_joins)}")
                    if patterns.common_filters:
                        parts.append(f"- Common filters: {', '.join(patterns.common_filters)}")
                    if patterns.common_aggregations:
                        parts.append(
                            f"- Common aggregations: {', '.join(patterns.common_aggregations)}"
                        )

        return "\n".join(parts)

    async def get_query_context(
        self, natural_query: str, llm: BaseChatModel | None = None
    ) -> str:
        """Analyze the question and render its context in one step."""
        if self._schema is None:
            return ""
        analysis = await self.analyze_context(natural_query, llm)
        return self.build_context(natural_query, analysis)

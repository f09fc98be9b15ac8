"""
Tuning recommendation generation.

One CREATE INDEX recommendation per index point that still needs an
index, ordered CRITICAL, HIGH, MEDIUM and by point number within a
priority. LOW points (already covered) never produce a recommendation.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence

from queryartifacts.analyzer.models import (
    IndexPointAnalysis,
    PointType,
    Priority,
    RecommendationType,
    TuningRecommendation,
)
from queryartifacts.parser.models import ParsedSQL

logger = logging.getLogger(__name__)

DEFAULT_MAX_IDENTIFIER_LENGTH = 30

_PLAIN_IDENTIFIER = re.compile(r"[A-Z][A-Z0-9_$#]*")
_NAME_UNSAFE = re.compile(r"[^A-Z0-9_$#]")

EXPECTED_IMPROVEMENT = {
    Priority.CRITICAL: "order of magnitude (10x+)",
    Priority.HIGH: "5-10x",
    Priority.MEDIUM: "2-5x",
}

DML_RISK = (
    "Each new index adds maintenance cost to INSERT, UPDATE and DELETE "
    "on the table and consumes storage"
)

_DESCRIPTIONS = {
    PointType.ENTRY: "Entry column {column} of the first table in the access path has no index; "
                     "the query starts with a full table scan.",
    PointType.JOIN: "Join column {column} has no index; nested-loop joins into {table} "
                    "must scan the table for every driving row.",
    PointType.FILTER: "Filter column {column} has no index.",
    PointType.ORDER: "ORDER BY column {column} has no index; results require an explicit sort.",
}

_RATIONALES = {
    PointType.ENTRY: "Query entry point: the filter on the first accessed table decides how "
                     "many rows flow into every later step. Without an index it is a full table scan.",
    PointType.JOIN: "Join connection column: required for an efficient nested-loop join. Without "
                    "an index the optimizer falls back to hash or sort-merge joins.",
    PointType.FILTER: "Filter column on a later table: an index narrows the rows fetched "
                      "after the join.",
    PointType.ORDER: "Sort column: an index in key order can eliminate the SORT ORDER BY step.",
}


def index_name(table_name: str, column_name: str, max_length: int = DEFAULT_MAX_IDENTIFIER_LENGTH) -> str:
    """``IX_<TABLE>_<COLUMN>`` upper-cased and cut to ``max_length``."""
    return _NAME_UNSAFE.sub("_", f"IX_{table_name}_{column_name}".upper())[:max_length]


def quote_identifier(name: str) -> str:
    """Name as written in DDL; case-sensitive names are double-quoted."""
    if _PLAIN_IDENTIFIER.fullmatch(name):
        return name
    return f'"{name}"'


def _unique_name(
    base: str,
    key: tuple[str, str],
    taken: dict[str, tuple[str, str]],
    max_length: int,
) -> str:
    owner = taken.get(base)
    if owner is None or owner == key:
        taken[base] = key
        return base
    n = 2
    while True:
        suffix = f"_{n}"
        candidate = base[: max_length - len(suffix)] + suffix
        owner = taken.get(candidate)
        if owner is None or owner == key:
            taken[candidate] = key
            return candidate
        n += 1


def generate_recommendations(
    index_points: Sequence[IndexPointAnalysis],
    parsed: ParsedSQL,
    max_identifier_length: int = DEFAULT_MAX_IDENTIFIER_LENGTH,
) -> list[TuningRecommendation]:
    """CREATE INDEX recommendations for uncovered points, most urgent first."""
    pending = [
        p for p in index_points
        if p.needs_index and p.priority is not Priority.LOW
    ]
    pending.sort(key=lambda p: (p.priority.rank, p.point_number))

    taken: dict[str, tuple[str, str]] = {}
    recommendations: list[TuningRecommendation] = []
    for point in pending:
        table = parsed.table(point.table_id)
        key = (table.qualified_name, point.column_name)
        name = _unique_name(
            index_name(point.table_name, point.column_name, max_identifier_length),
            key,
            taken,
            max_identifier_length,
        )
        recommendations.append(TuningRecommendation(
            id=f"REC_{point.point_number}",
            type=RecommendationType.CREATE_INDEX,
            priority=point.priority,
            title=f"Create index on {point.table_name}.{point.column_name}",
            description=_DESCRIPTIONS[point.point_type].format(
                column=point.column_name, table=point.table_name
            ),
            rationale=_RATIONALES[point.point_type],
            ddl=f"CREATE INDEX {name} ON {_table_ref(table.schema_name, table.name)}"
                f"({quote_identifier(point.column_name)});",
            expected_improvement=EXPECTED_IMPROVEMENT[point.priority],
            risk=DML_RISK,
            related_points=(point.point_number,),
        ))

    logger.debug("Generated %d recommendations", len(recommendations))
    return recommendations


def _table_ref(schema_name: str | None, table_name: str) -> str:
    if schema_name:
        return f"{quote_identifier(schema_name)}.{quote_identifier(table_name)}"
    return quote_identifier(table_name)

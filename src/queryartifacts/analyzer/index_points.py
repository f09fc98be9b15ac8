"""
Index point identification.

Walks the tables in access order and numbers every indexable column as
an index point. The point type follows from the column's role and the
table's position in the path; priority drops to LOW when an existing
index already covers the column.

    first table + WHERE     ENTRY   CRITICAL / LOW
    JOIN                    JOIN    HIGH / LOW
    later table + WHERE     FILTER  MEDIUM / LOW
    ORDER BY                ORDER   MEDIUM / LOW
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from queryartifacts.analyzer.models import (
    ColumnAnalysis,
    CoverageState,
    IndexPointAnalysis,
    PointType,
    Priority,
)
from queryartifacts.metadata.models import IndexMetadataSnapshot
from queryartifacts.parser.models import ConditionType, ParsedSQL

logger = logging.getLogger(__name__)

_UNCOVERED_PRIORITY = {
    PointType.ENTRY: Priority.CRITICAL,
    PointType.JOIN: Priority.HIGH,
    PointType.FILTER: Priority.MEDIUM,
    PointType.ORDER: Priority.MEDIUM,
}


def classify_point(condition_type: ConditionType, is_entry_table: bool) -> PointType | None:
    """Point type for a column role; None for roles that never become points."""
    if condition_type is ConditionType.JOIN:
        return PointType.JOIN
    if condition_type is ConditionType.ORDER_BY:
        return PointType.ORDER
    if condition_type is ConditionType.WHERE:
        return PointType.ENTRY if is_entry_table else PointType.FILTER
    return None


def identify_index_points(
    parsed: ParsedSQL,
    column_analyses: Sequence[ColumnAnalysis],
    snapshot: IndexMetadataSnapshot,
    access_order: Sequence[str],
) -> list[IndexPointAnalysis]:
    """
    Numbered index points in access-path order.

    Only indexable columns become points. Point numbers start at 1 and
    increase in iteration order: tables in ``access_order``, then each
    table's columns in parse order.
    """
    analysis_by_column = {a.column_id: a for a in column_analyses}
    points: list[IndexPointAnalysis] = []

    for position, table_id in enumerate(access_order):
        table = parsed.table(table_id)
        for column in parsed.columns_for_table(table_id):
            analysis = analysis_by_column.get(column.id)
            if analysis is None or not analysis.is_indexable:
                continue
            point_type = classify_point(column.condition.type, is_entry_table=position == 0)
            if point_type is None:
                continue

            existing = None
            if snapshot.available:
                existing = snapshot.find_covering_index(table.name, column.name)
                coverage = CoverageState.COVERED if existing else CoverageState.UNCOVERED
            else:
                coverage = CoverageState.UNKNOWN

            points.append(IndexPointAnalysis(
                point_number=len(points) + 1,
                table_id=table.id,
                table_name=table.name,
                table_alias=table.alias,
                column_id=column.id,
                column_name=column.name,
                point_type=point_type,
                priority=Priority.LOW if existing else _UNCOVERED_PRIORITY[point_type],
                existing_index=existing,
                needs_index=existing is None,
                coverage=coverage,
                is_leading_column=bool(existing and existing.leads_with(column.name)),
            ))

    logger.debug(
        "Identified %d index points, %d needing an index",
        len(points),
        sum(1 for p in points if p.needs_index),
    )
    return points

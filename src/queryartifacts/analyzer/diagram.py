"""
Index creation diagram builder.

Produces a layout-free graph: one node per table (declaration order),
one edge per join, and the recommended access path. Positioning is left
to the renderer.
"""

from __future__ import annotations

from collections.abc import Sequence

from queryartifacts.analyzer.models import (
    AccessPathStep,
    ColumnAnalysis,
    DiagramColumn,
    DiagramEdge,
    DiagramNode,
    IndexCreationDiagram,
    IndexPointAnalysis,
    LineStyle,
    NodeType,
)
from queryartifacts.metadata.models import IndexMetadataSnapshot
from queryartifacts.parser.models import ConditionType, ParsedSQL


def build_diagram(
    parsed: ParsedSQL,
    column_analyses: Sequence[ColumnAnalysis],
    index_points: Sequence[IndexPointAnalysis],
    access_order: Sequence[str],
    snapshot: IndexMetadataSnapshot,
) -> IndexCreationDiagram:
    analysis_by_column = {a.column_id: a for a in column_analyses}
    point_by_column = {p.column_id: p for p in index_points}
    step_by_table = {table_id: i + 1 for i, table_id in enumerate(access_order)}

    nodes: list[DiagramNode] = []
    positions: dict[str, int] = {}
    for table in parsed.tables:
        columns: list[DiagramColumn] = []
        for column in parsed.columns_for_table(table.id):
            if column.condition.type is ConditionType.NONE:
                continue
            analysis = analysis_by_column.get(column.id)
            point = point_by_column.get(column.id)
            has_index = False
            if snapshot.available:
                has_index = snapshot.find_covering_index(table.name, column.name) is not None
            position = len(columns) + 1
            positions[column.id] = position
            columns.append(DiagramColumn(
                column_id=column.id,
                column_name=column.name,
                position=position,
                condition_type=column.condition.type,
                operator=column.condition.operator,
                point_number=point.point_number if point else None,
                has_index=has_index,
                is_index_candidate=bool(analysis and analysis.is_indexable),
                reasons=(analysis.reasons + analysis.exclude_reasons) if analysis else (),
            ))
        nodes.append(DiagramNode(
            table_id=table.id,
            table_name=table.name,
            alias=table.alias,
            node_type=NodeType.OUTER if table.is_outer_join_target else NodeType.INNER,
            access_order=step_by_table[table.id],
            columns=tuple(columns),
        ))

    edges = tuple(
        DiagramEdge(
            join_id=join.id,
            source_table_id=join.source_table_id,
            source_column_id=join.source_column_id,
            source_column_position=positions.get(join.source_column_id),
            target_table_id=join.target_table_id,
            target_column_id=join.target_column_id,
            target_column_position=positions.get(join.target_column_id),
            join_type=join.join_type,
            line_style=LineStyle.DASHED if join.join_type.is_outer else LineStyle.SOLID,
        )
        for join in parsed.joins
    )

    return IndexCreationDiagram(
        nodes=tuple(nodes),
        edges=edges,
        recommended_access_path=tuple(build_access_path(parsed, column_analyses, access_order)),
    )


def build_access_path(
    parsed: ParsedSQL,
    column_analyses: Sequence[ColumnAnalysis],
    access_order: Sequence[str],
) -> list[AccessPathStep]:
    """One step per table in access order, with the column used to reach it."""
    steps: list[AccessPathStep] = []
    visited: set[str] = set()

    for i, table_id in enumerate(access_order):
        table = parsed.table(table_id)
        entry_column = None
        join_column = None
        via_table_id = None

        if i == 0:
            entry_column = _entry_column(table_id, column_analyses)
        else:
            for join in parsed.joins:
                other = join.other_side(table_id)
                if other is not None and other in visited:
                    join_column = parsed.column(join.column_for(table_id)).name
                    via_table_id = other
                    break
            if join_column is None:
                fallback = next(
                    (c for c in parsed.columns_for_table(table_id)
                     if c.condition.type is ConditionType.JOIN),
                    None,
                )
                join_column = fallback.name if fallback else None

        steps.append(AccessPathStep(
            step=i + 1,
            table_id=table.id,
            table_name=table.name,
            alias=table.alias,
            entry_column=entry_column,
            join_column=join_column,
            via_table_id=via_table_id,
        ))
        visited.add(table_id)
    return steps


def _entry_column(table_id: str, column_analyses: Sequence[ColumnAnalysis]) -> str | None:
    best: ColumnAnalysis | None = None
    for analysis in column_analyses:
        if analysis.table_id != table_id or analysis.condition_type is not ConditionType.WHERE:
            continue
        if not analysis.is_indexable:
            continue
        if best is None or analysis.score > best.score:
            best = analysis
    return best.column_name if best else None

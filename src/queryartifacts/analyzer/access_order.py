"""
Access order resolution.

Picks the table to enter the query through, then walks inner joins
breadth-first. Outer-join dependent tables always come last because the
optimizer cannot start from the optional side of an outer join.
"""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Sequence

from queryartifacts.analyzer.models import ColumnAnalysis
from queryartifacts.parser.models import ConditionType, ParsedSQL

logger = logging.getLogger(__name__)


def select_entry_table(parsed: ParsedSQL, column_analyses: Sequence[ColumnAnalysis]) -> str | None:
    """
    Entry table id.

    The owner of the highest-scoring indexable WHERE column among inner
    tables; on a tie, the column parsed first wins. Without such a column,
    the first inner table. Returns None only when every table is an
    outer-join target.
    """
    inner_ids = [t.id for t in parsed.tables if not t.is_outer_join_target]
    best: ColumnAnalysis | None = None
    for analysis in column_analyses:
        if analysis.condition_type is not ConditionType.WHERE or not analysis.is_indexable:
            continue
        if analysis.table_id not in inner_ids:
            continue
        if best is None or analysis.score > best.score:
            best = analysis
    if best is not None:
        return best.table_id
    return inner_ids[0] if inner_ids else None


def resolve_access_order(parsed: ParsedSQL, column_analyses: Sequence[ColumnAnalysis]) -> list[str]:
    """
    Recommended table visiting order as a permutation of all table ids.

    1. Entry table (see select_entry_table).
    2. Breadth-first over INNER joins, both directions, inner tables only.
    3. Inner tables not reached by a join, in declaration order.
    4. Outer-join target tables, in declaration order.

    When every table is an outer-join target, declaration order is used.
    """
    declared = [t.id for t in parsed.tables]
    outer_ids = {t.id for t in parsed.tables if t.is_outer_join_target}
    inner = [tid for tid in declared if tid not in outer_ids]

    entry = select_entry_table(parsed, column_analyses)
    if entry is None:
        logger.debug("All tables are outer-join targets; using declaration order")
        return declared

    adjacency: dict[str, list[str]] = {tid: [] for tid in declared}
    for join in parsed.joins:
        if join.join_type.is_outer:
            continue
        adjacency[join.source_table_id].append(join.target_table_id)
        adjacency[join.target_table_id].append(join.source_table_id)

    order = [entry]
    visited = {entry}
    queue = deque([entry])
    while queue:
        current = queue.popleft()
        for neighbour in adjacency[current]:
            if neighbour in visited or neighbour in outer_ids:
                continue
            visited.add(neighbour)
            order.append(neighbour)
            queue.append(neighbour)

    order.extend(tid for tid in inner if tid not in visited)
    order.extend(tid for tid in declared if tid in outer_ids)
    return order

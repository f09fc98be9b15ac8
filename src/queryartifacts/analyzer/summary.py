"""
Report summary and health score.

The health score is the share of index points already covered, scaled
to 100, minus a fixed penalty per critical issue:

    score = clamp(100 * existing / total - 15 * critical, 0, 100)

A statement with no index points scores 100.
"""

from __future__ import annotations

from collections.abc import Sequence

from queryartifacts.analyzer.models import (
    IndexCreationDiagram,
    IndexPointAnalysis,
    Priority,
    ReportSummary,
)

CRITICAL_ISSUE_PENALTY = 15

HEALTH_GRADES: tuple[tuple[int, str, str], ...] = (
    (90, "A", "Excellent"),
    (75, "B", "Good"),
    (60, "C", "Average"),
    (40, "D", "Warning"),
    (0, "F", "Critical"),
)


def calculate_health_score(existing_count: int, total_points: int, critical_issue_count: int) -> int:
    if total_points <= 0:
        coverage = 100.0
    else:
        coverage = 100.0 * min(existing_count, total_points) / total_points
    score = coverage - CRITICAL_ISSUE_PENALTY * critical_issue_count
    return round(max(0.0, min(100.0, score)))


def health_grade(score: int) -> tuple[str, str]:
    """(grade, label) for a health score."""
    for threshold, grade, label in HEALTH_GRADES:
        if score >= threshold:
            return grade, label
    return HEALTH_GRADES[-1][1], HEALTH_GRADES[-1][2]


def build_summary(
    diagram: IndexCreationDiagram,
    index_points: Sequence[IndexPointAnalysis],
) -> ReportSummary:
    """
    Aggregate counts for one analysis.

    Critical issues are uncovered CRITICAL points, counted whether or not
    recommendations were requested.
    """
    existing = sum(1 for p in index_points if p.existing_index is not None)
    missing = sum(1 for p in index_points if p.needs_index)
    critical = sum(1 for p in index_points if p.needs_index and p.priority is Priority.CRITICAL)

    score = calculate_health_score(existing, len(index_points), critical)
    grade, label = health_grade(score)
    return ReportSummary(
        table_count=len(diagram.nodes),
        join_count=len(diagram.edges),
        existing_index_count=existing,
        missing_index_count=missing,
        critical_issue_count=critical,
        overall_health_score=score,
        health_grade=grade,
        health_label=label,
    )

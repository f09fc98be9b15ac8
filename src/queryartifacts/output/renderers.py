"""
Output renderers for different formats.

Separates presentation logic from analysis logic. JSON output is the
response model itself, serialized with camelCase keys; no manual dict
construction.
"""

from __future__ import annotations

import json
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from queryartifacts.analyzer.models import IndexPointAnalysis, Priority
    from queryartifacts.schema import AnalyzeQueryResponse, QueryArtifactOutput


class OutputFormat(str, Enum):
    """Supported output formats."""

    TEXT = "text"
    JSON = "json"
    MARKDOWN = "markdown"


def render(response: "AnalyzeQueryResponse", format: OutputFormat = OutputFormat.TEXT) -> str:
    """
    Render an analysis response in the specified format.

    Args:
        response: Response returned by QueryArtifactService
        format: Output format (text, json, markdown)

    Returns:
        Formatted string
    """
    if format == OutputFormat.TEXT:
        return render_text(response)
    elif format == OutputFormat.JSON:
        return render_json(response)
    elif format == OutputFormat.MARKDOWN:
        return render_markdown(response)
    else:
        raise ValueError(f"Unknown output format: {format}")


_PRIORITY_ICONS = {
    "CRITICAL": "🔴",
    "HIGH": "🟠",
    "MEDIUM": "🟡",
    "LOW": "🟢",
}


def _priority_icon(priority: "Priority") -> str:
    return _PRIORITY_ICONS.get(priority.value, "•")


def _coverage_label(point: "IndexPointAnalysis") -> str:
    if point.existing_index is not None:
        return point.existing_index.index_name
    if point.coverage.value == "UNKNOWN":
        return "unknown"
    return "missing"


def _access_path_labels(data: "QueryArtifactOutput") -> list[str]:
    labels = []
    for step in data.diagram.recommended_access_path:
        label = step.table_name if step.alias == step.table_name else f"{step.table_name} {step.alias}"
        column = step.entry_column or step.join_column
        if column:
            label += f" ({column})"
        labels.append(label)
    return labels


# =============================================================================
# Text renderer (terminal)
# =============================================================================


def render_text(response: "AnalyzeQueryResponse") -> str:
    """Render a response as plain terminal text."""
    lines: list[str] = []

    lines.append("=" * 60)
    lines.append("Query Artifacts Analysis Report")
    lines.append("=" * 60)
    lines.append("")

    if not response.success or response.data is None:
        error = response.error
        lines.append(f"✗ Analysis failed: {error.code.value if error else 'UNKNOWN'}")
        if error:
            lines.append("")
            for line in error.message.split("\n"):
                lines.append(f"  {line}")
        lines.append("")
        lines.append(f"Analysis ID: {response.metadata.analysis_id}")
        lines.append("=" * 60)
        return "\n".join(lines)

    data = response.data
    summary = data.summary
    if data.analysis.degraded:
        lines.append(f"⚠ Degraded Mode: {', '.join(data.analysis.degraded_reasons)}")
        lines.append("")

    lines.append(
        f"Health: {summary.overall_health_score}/100 "
        f"({summary.health_grade} {summary.health_label})"
    )
    lines.append(f"  Tables: {summary.table_count}   Joins: {summary.join_count}")
    lines.append(
        f"  Indexes: {summary.existing_index_count} existing, "
        f"{summary.missing_index_count} missing, "
        f"{summary.critical_issue_count} critical"
    )
    lines.append("")

    lines.append("Access Path:")
    lines.append("  " + " -> ".join(_access_path_labels(data)))
    lines.append("")

    if data.analysis.index_points:
        lines.append("-" * 60)
        lines.append("INDEX POINTS")
        lines.append("-" * 60)
        for point in data.analysis.index_points:
            lines.append(
                f"[{point.point_number}] {_priority_icon(point.priority)} "
                f"{point.table_name}.{point.column_name}  "
                f"{point.point_type.value}/{point.priority.value}  "
                f"index: {_coverage_label(point)}"
            )
        lines.append("")

    if data.recommendations:
        lines.append("-" * 60)
        lines.append("RECOMMENDATIONS")
        lines.append("-" * 60)
        for rec in data.recommendations:
            lines.append("")
            lines.append(f"{rec.id} {_priority_icon(rec.priority)} {rec.title}")
            lines.append(f"    {rec.description}")
            lines.append(f"    Expected improvement: {rec.expected_improvement}")
            lines.append(f"    {rec.ddl}")
        lines.append("")
    elif not data.analysis.index_points:
        lines.append("✓ No indexable columns found")
        lines.append("")

    if data.hints:
        lines.append(f"Hints: {data.hints}")
        lines.append("")

    lines.append("=" * 60)
    return "\n".join(lines)


# =============================================================================
# JSON renderer
# =============================================================================


def render_json(response: "AnalyzeQueryResponse", indent: int = 2) -> str:
    """
    Render a response as JSON with camelCase keys.

    Suitable for API responses, CI/CD integration, log aggregation.
    """
    return json.dumps(response.to_wire(), indent=indent, ensure_ascii=False)


# =============================================================================
# Markdown renderer
# =============================================================================


def render_markdown(response: "AnalyzeQueryResponse") -> str:
    """
    Render a response as Markdown.

    Suitable for tickets, chat messages and tuning reports.
    """
    lines: list[str] = []
    lines.append("# Query Artifacts Analysis Report")
    lines.append("")

    if not response.success or response.data is None:
        error = response.error
        lines.append(f"❌ **Analysis failed:** `{error.code.value if error else 'UNKNOWN'}`")
        lines.append("")
        if error:
            lines.append(error.message)
            lines.append("")
        return "\n".join(lines)

    data = response.data
    summary = data.summary

    if summary.critical_issue_count:
        lines.append("🔴 **Critical index gaps found**")
    elif summary.missing_index_count:
        lines.append("🟡 **Missing indexes found**")
    elif data.analysis.degraded:
        lines.append("⚠️ **Analysis ran in degraded mode**")
    else:
        lines.append("✅ **All index points covered**")
    lines.append("")

    lines.append("## Summary")
    lines.append("")
    lines.append("| Metric | Value |")
    lines.append("|--------|-------|")
    lines.append(f"| Health Score | {summary.overall_health_score} ({summary.health_grade} {summary.health_label}) |")
    lines.append(f"| Tables | {summary.table_count} |")
    lines.append(f"| Joins | {summary.join_count} |")
    lines.append(f"| Existing Indexes | {summary.existing_index_count} |")
    lines.append(f"| Missing Indexes | {summary.missing_index_count} |")
    lines.append(f"| Critical Issues | {summary.critical_issue_count} |")
    lines.append("")

    lines.append("## Access Path")
    lines.append("")
    for i, label in enumerate(_access_path_labels(data), 1):
        lines.append(f"{i}. `{label}`")
    lines.append("")

    if data.analysis.index_points:
        lines.append("## Index Points")
        lines.append("")
        lines.append("| # | Column | Type | Priority | Index |")
        lines.append("|---|--------|------|----------|-------|")
        for point in data.analysis.index_points:
            lines.append(
                f"| {point.point_number} | `{point.table_name}.{point.column_name}` | "
                f"{point.point_type.value} | {_priority_icon(point.priority)} {point.priority.value} | "
                f"{_coverage_label(point)} |"
            )
        lines.append("")

    if data.recommendations:
        lines.append("## Recommendations")
        lines.append("")
        for rec in data.recommendations:
            lines.append(f"### {rec.id}. {_priority_icon(rec.priority)} {rec.title}")
            lines.append("")
            lines.append(rec.description)
            lines.append("")
            lines.append(f"**Expected improvement:** {rec.expected_improvement}  ")
            lines.append(f"**Risk:** {rec.risk}")
            lines.append("")
            lines.append("```sql")
            lines.append(rec.ddl)
            lines.append("```")
            lines.append("")

    if data.hints:
        lines.append("## Hints")
        lines.append("")
        lines.append("```sql")
        lines.append(data.hints)
        lines.append("```")
        lines.append("")

    if data.analysis.degraded:
        lines.append("<details>")
        lines.append("<summary>Degraded Mode</summary>")
        lines.append("")
        for reason in data.analysis.degraded_reasons:
            lines.append(f"- {reason}")
        lines.append("")
        lines.append("</details>")
        lines.append("")

    lines.append(f"<sub>Analysis `{response.metadata.analysis_id}`</sub>")
    return "\n".join(lines)

"""Index analysis: scoring, access order, index points, diagram and reports."""

from queryartifacts.analyzer.access_order import resolve_access_order, select_entry_table
from queryartifacts.analyzer.diagram import build_access_path, build_diagram
from queryartifacts.analyzer.hints import generate_hints
from queryartifacts.analyzer.index_points import classify_point, identify_index_points
from queryartifacts.analyzer.models import (
    AccessPathStep,
    CandidateScore,
    ColumnAnalysis,
    CoverageState,
    DiagramColumn,
    DiagramEdge,
    DiagramNode,
    IndexAnalysis,
    IndexCreationDiagram,
    IndexPointAnalysis,
    LineStyle,
    NodeType,
    PointType,
    Priority,
    RecommendationType,
    ReportSummary,
    TuningRecommendation,
)
from queryartifacts.analyzer.recommendations import generate_recommendations, index_name
from queryartifacts.analyzer.scoring import analyze_column, analyze_columns, score_column
from queryartifacts.analyzer.summary import build_summary, calculate_health_score, health_grade

__all__ = [
    "AccessPathStep",
    "CandidateScore",
    "ColumnAnalysis",
    "CoverageState",
    "DiagramColumn",
    "DiagramEdge",
    "DiagramNode",
    "IndexAnalysis",
    "IndexCreationDiagram",
    "IndexPointAnalysis",
    "LineStyle",
    "NodeType",
    "PointType",
    "Priority",
    "RecommendationType",
    "ReportSummary",
    "TuningRecommendation",
    "analyze_column",
    "analyze_columns",
    "build_access_path",
    "build_diagram",
    "build_summary",
    "calculate_health_score",
    "classify_point",
    "generate_hints",
    "generate_recommendations",
    "health_grade",
    "identify_index_points",
    "index_name",
    "resolve_access_order",
    "score_column",
    "select_entry_table",
]

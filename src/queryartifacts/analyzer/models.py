"""
Analysis result models.

Everything here is a frozen pydantic model produced fresh for each
analysis. Serialized with camelCase keys (``pointNumber``,
``needsIndex``, ...) via ``model_dump(by_alias=True)``.
"""

from __future__ import annotations

from enum import Enum

from pydantic import Field

from queryartifacts.base import ArtifactModel
from queryartifacts.metadata.models import ExistingIndex, SelectivityGrade
from queryartifacts.parser.models import ConditionType, JoinType, ParsedSQL


class PointType(str, Enum):
    """Where in the access path an index decision is taken."""

    ENTRY = "ENTRY"
    JOIN = "JOIN"
    FILTER = "FILTER"
    ORDER = "ORDER"


class Priority(str, Enum):
    CRITICAL = "CRITICAL"
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"

    @property
    def rank(self) -> int:
        """Sort key: CRITICAL first."""
        return _PRIORITY_RANK[self]


_PRIORITY_RANK = {
    Priority.CRITICAL: 0,
    Priority.HIGH: 1,
    Priority.MEDIUM: 2,
    Priority.LOW: 3,
}


class CoverageState(str, Enum):
    """
    Whether an existing index covers a point.

    UNKNOWN means index metadata could not be fetched. Both UNKNOWN and
    UNCOVERED count as needing an index.
    """

    COVERED = "COVERED"
    UNCOVERED = "UNCOVERED"
    UNKNOWN = "UNKNOWN"


class NodeType(str, Enum):
    INNER = "INNER"
    OUTER = "OUTER"


class LineStyle(str, Enum):
    SOLID = "SOLID"
    DASHED = "DASHED"


class RecommendationType(str, Enum):
    CREATE_INDEX = "CREATE_INDEX"


# =============================================================================
# Per-column and per-point analysis
# =============================================================================


class CandidateScore(ArtifactModel):
    """Result of scoring one column as an index candidate."""

    is_candidate: bool
    score: int = Field(..., ge=0, le=100)
    reasons: tuple[str, ...] = ()
    exclude_reasons: tuple[str, ...] = ()


class ColumnAnalysis(ArtifactModel):
    """Candidacy verdict for a column referenced by WHERE, JOIN or ORDER BY."""

    column_id: str
    table_id: str
    table_name: str
    column_name: str
    condition_type: ConditionType
    operator: str | None = None
    is_indexable: bool
    score: int = Field(..., ge=0, le=100)
    reasons: tuple[str, ...] = ()
    exclude_reasons: tuple[str, ...] = ()
    selectivity: float = Field(..., description="Estimated fraction of rows matched")
    selectivity_grade: SelectivityGrade
    null_ratio: float = 0.0
    has_statistics: bool = Field(
        default=False,
        description="Selectivity came from optimizer statistics rather than defaults",
    )


class IndexPointAnalysis(ArtifactModel):
    """A numbered (table, column) position in the access path."""

    point_number: int = Field(..., ge=1)
    table_id: str
    table_name: str
    table_alias: str
    column_id: str
    column_name: str
    point_type: PointType
    priority: Priority
    existing_index: ExistingIndex | None = None
    needs_index: bool
    coverage: CoverageState
    is_leading_column: bool = Field(
        default=False,
        description="The covering index starts with this column",
    )


class IndexAnalysis(ArtifactModel):
    """Intermediate analysis shared by the diagram, recommendation and summary steps."""

    parsed_sql: ParsedSQL
    column_analyses: tuple[ColumnAnalysis, ...] = ()
    index_points: tuple[IndexPointAnalysis, ...] = ()
    optimal_access_order: tuple[str, ...] = ()
    degraded: bool = False
    degraded_reasons: tuple[str, ...] = ()


# =============================================================================
# Diagram
# =============================================================================


class DiagramColumn(ArtifactModel):
    column_id: str
    column_name: str
    position: int = Field(..., ge=1, description="1-based position within the node")
    condition_type: ConditionType
    operator: str | None = None
    point_number: int | None = None
    has_index: bool = False
    is_index_candidate: bool = False
    reasons: tuple[str, ...] = ()


class DiagramNode(ArtifactModel):
    table_id: str
    table_name: str
    alias: str
    node_type: NodeType
    access_order: int = Field(..., ge=1, description="1-based step in the access path")
    columns: tuple[DiagramColumn, ...] = ()


class DiagramEdge(ArtifactModel):
    join_id: str
    source_table_id: str
    source_column_id: str
    source_column_position: int | None = None
    target_table_id: str
    target_column_id: str
    target_column_position: int | None = None
    join_type: JoinType
    line_style: LineStyle


class AccessPathStep(ArtifactModel):
    step: int = Field(..., ge=1)
    table_id: str
    table_name: str
    alias: str
    entry_column: str | None = Field(
        default=None,
        description="Filter column used to enter the first table",
    )
    join_column: str | None = Field(
        default=None,
        description="Column used to reach this table from an earlier one",
    )
    via_table_id: str | None = None


class IndexCreationDiagram(ArtifactModel):
    nodes: tuple[DiagramNode, ...] = ()
    edges: tuple[DiagramEdge, ...] = ()
    recommended_access_path: tuple[AccessPathStep, ...] = ()


# =============================================================================
# Recommendations and summary
# =============================================================================


class TuningRecommendation(ArtifactModel):
    id: str
    type: RecommendationType = RecommendationType.CREATE_INDEX
    priority: Priority
    title: str
    description: str
    rationale: str
    ddl: str
    expected_improvement: str
    risk: str
    related_points: tuple[int, ...] = ()


class ReportSummary(ArtifactModel):
    table_count: int = Field(..., ge=0)
    join_count: int = Field(..., ge=0)
    existing_index_count: int = Field(..., ge=0)
    missing_index_count: int = Field(..., ge=0)
    critical_issue_count: int = Field(..., ge=0)
    overall_health_score: int = Field(..., ge=0, le=100)
    health_grade: str
    health_label: str

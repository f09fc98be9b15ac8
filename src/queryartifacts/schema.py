"""
Request and response contract for query analysis.

Field names are snake_case in Python and camelCase on the wire:

    {"sql": ..., "connectionId": ..., "owner": ..., "options": {...}}
    {"success": true, "data": {...}, "metadata": {...}}
    {"success": false, "error": {"code": ..., "message": ...}, "metadata": {...}}

The schema is stable across minor versions. Breaking changes bump
SCHEMA_VERSION.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import Field

from queryartifacts.analyzer.models import (
    IndexAnalysis,
    IndexCreationDiagram,
    ReportSummary,
    TuningRecommendation,
)
from queryartifacts.base import ArtifactModel

PARSER_VERSION = "1.0.0"

# Increment on breaking changes
SCHEMA_VERSION = "1.0"


class AnalyzeQueryOptions(ArtifactModel):
    include_statistics: bool = Field(
        default=True,
        description="Fetch column statistics to estimate selectivity",
    )
    include_recommendations: bool = Field(default=True, description="Emit CREATE INDEX recommendations")
    include_hints: bool = Field(default=False, description="Emit optimizer hint text")
    target_schema: str | None = Field(default=None, description="Schema used when no owner is given")


class AnalyzeQueryRequest(ArtifactModel):
    sql: str = Field(default="", description="SQL statement to analyze")
    connection_id: str = Field(default="", description="Identifier of the metadata source")
    owner: str | None = Field(default=None, description="Schema owning the referenced tables")
    options: AnalyzeQueryOptions = Field(default_factory=AnalyzeQueryOptions)


class ErrorCode(str, Enum):
    INVALID_SQL = "INVALID_SQL"
    UNSUPPORTED_SYNTAX = "UNSUPPORTED_SYNTAX"
    PARSE_ERROR = "PARSE_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class AnalysisErrorInfo(ArtifactModel):
    code: ErrorCode
    message: str
    details: dict[str, Any] | None = None


class AnalysisMetadata(ArtifactModel):
    analysis_id: str = Field(..., description="Unique id of this analysis run")
    execution_time_ms: float = Field(..., ge=0, description="Wall-clock duration")
    timestamp: datetime
    parser_version: str = PARSER_VERSION
    schema_version: str = SCHEMA_VERSION
    config_hash: str | None = Field(default=None, description="Digest of the configuration used")


class QueryArtifactOutput(ArtifactModel):
    diagram: IndexCreationDiagram
    analysis: IndexAnalysis
    recommendations: tuple[TuningRecommendation, ...] = ()
    summary: ReportSummary
    hints: str | None = None


class AnalyzeQueryResponse(ArtifactModel):
    success: bool
    data: QueryArtifactOutput | None = None
    error: AnalysisErrorInfo | None = None
    metadata: AnalysisMetadata

    def to_wire(self) -> dict[str, Any]:
        """JSON-compatible dict with camelCase keys and absent fields omitted."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


def get_json_schema() -> dict[str, Any]:
    """JSON Schema of the response, with camelCase property names."""
    return AnalyzeQueryResponse.model_json_schema(by_alias=True)


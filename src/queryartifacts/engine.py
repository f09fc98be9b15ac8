r"""
QueryArtifactService - orchestration layer for query artifact analysis.

Single entry point used by the CLI and any service wrapper. Each call
walks a small state machine and always returns a response; errors are
reported in the response, never raised.

    VALIDATING -> PARSING -> METADATA_FETCH -> ANALYZING -> SUCCEEDED
         \            \             \               \
          +------------+-------------+---------------+--> FAILED(code)

Metadata failures do not fail the analysis. The run continues in
degraded mode: index coverage is reported as UNKNOWN and selectivity
falls back to defaults.

Usage:
    from queryartifacts.engine import QueryArtifactService
    from queryartifacts.schema import AnalyzeQueryRequest

    service = QueryArtifactService(provider=StaticIndexMetadataProvider(indexes))
    response = service.analyze(AnalyzeQueryRequest(sql=sql, connection_id="prod"))
    if response.success:
        for rec in response.data.recommendations:
            print(rec.ddl)
"""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from collections.abc import Awaitable, Mapping, Sequence
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Any, TypeVar

from pydantic import ValidationError
from pydantic.alias_generators import to_camel

from queryartifacts.analyzer.access_order import resolve_access_order
from queryartifacts.analyzer.diagram import build_diagram
from queryartifacts.analyzer.hints import generate_hints
from queryartifacts.analyzer.index_points import identify_index_points
from queryartifacts.analyzer.models import IndexAnalysis
from queryartifacts.analyzer.recommendations import generate_recommendations
from queryartifacts.analyzer.scoring import analyze_columns
from queryartifacts.analyzer.summary import build_summary
from queryartifacts.config import Config, get_config
from queryartifacts.exceptions import ParseError, QueryArtifactsError, UnsupportedSyntaxError
from queryartifacts.metadata.models import ColumnStatistics, ExistingIndex, IndexMetadataSnapshot
from queryartifacts.parser.config import ParserConfig
from queryartifacts.parser.models import ConditionType, ParsedSQL
from queryartifacts.parser.sql_parser import StructuralSQLParser
from queryartifacts.schema import (
    AnalysisErrorInfo,
    AnalysisMetadata,
    AnalyzeQueryRequest,
    AnalyzeQueryResponse,
    ErrorCode,
    QueryArtifactOutput,
)

if TYPE_CHECKING:
    from queryartifacts.metadata.provider import IndexMetadataProvider

logger = logging.getLogger(__name__)

T = TypeVar("T")


class AnalysisState(str, Enum):
    VALIDATING = "VALIDATING"
    PARSING = "PARSING"
    METADATA_FETCH = "METADATA_FETCH"
    ANALYZING = "ANALYZING"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"


class InvalidRequestError(ValueError):
    """Request failed validation before parsing."""


def new_analysis_id() -> str:
    return f"qa_{uuid.uuid4().hex[:16]}"


class QueryArtifactService:
    """
    Orchestrates parsing, metadata lookup and index analysis.

    Holds no per-request state; one instance can serve concurrent calls.
    """

    def __init__(
        self,
        provider: IndexMetadataProvider | None = None,
        parser: StructuralSQLParser | None = None,
        config: Config | None = None,
    ) -> None:
        """
        Args:
            provider: Index metadata source. Without one every analysis
                runs in degraded mode.
            parser: SQL parser; built from the config limits when omitted.
            config: Configuration (if None, uses get_config()).
        """
        self._config = config or get_config()
        self._provider = provider
        self._parser = parser or StructuralSQLParser(
            ParserConfig(
                max_sql_length=self._config.max_sql_length,
                max_tables=self._config.max_tables,
            )
        )

    @property
    def config(self) -> Config:
        return self._config

    def analyze(self, request: AnalyzeQueryRequest) -> AnalyzeQueryResponse:
        """
        Synchronous wrapper around analyze_async.

        Runs its own event loop, so it must not be called from inside a
        running loop; use analyze_async there.
        """
        return asyncio.run(self.analyze_async(request))

    def analyze_payload(self, payload: Mapping[str, Any]) -> AnalyzeQueryResponse:
        """
        Analyze a camelCase wire request.

        A payload that does not match the request model is answered with an
        INVALID_SQL response instead of raising.
        """
        try:
            request = AnalyzeQueryRequest.model_validate(payload)
        except ValidationError as e:
            analysis_id = new_analysis_id()
            fields = sorted({".".join(str(part) for part in err["loc"]) for err in e.errors()})
            return self._failure(
                analysis_id, time.perf_counter(), AnalysisState.VALIDATING,
                ErrorCode.INVALID_SQL, f"Invalid request: {', '.join(fields)}",
            )
        return self.analyze(request)

    async def analyze_async(self, request: AnalyzeQueryRequest) -> AnalyzeQueryResponse:
        analysis_id = new_analysis_id()
        started = time.perf_counter()
        state = AnalysisState.VALIDATING
        logger.debug("[%s] %s", analysis_id, state.value)

        try:
            self._validate(request)

            state = self._advance(analysis_id, AnalysisState.PARSING)
            parsed = self._parser.parse(request.sql)

            state = self._advance(analysis_id, AnalysisState.METADATA_FETCH)
            snapshot, degraded_reasons = await self._fetch_metadata(request, parsed)

            state = self._advance(analysis_id, AnalysisState.ANALYZING)
            output = self._build_output(request, parsed, snapshot, degraded_reasons)

        except InvalidRequestError as e:
            return self._failure(analysis_id, started, state, ErrorCode.INVALID_SQL, str(e))
        except UnsupportedSyntaxError as e:
            return self._failure(
                analysis_id, started, state, ErrorCode.UNSUPPORTED_SYNTAX, e.message,
                **_error_context(e),
            )
        except ParseError as e:
            return self._failure(
                analysis_id, started, state, ErrorCode.PARSE_ERROR, e.message,
                **_error_context(e),
            )
        except Exception as e:
            logger.exception("[%s] Analysis failed in state %s", analysis_id, state.value)
            return self._failure(
                analysis_id, started, state, ErrorCode.INTERNAL_ERROR,
                str(e) or type(e).__name__,
            )

        self._advance(analysis_id, AnalysisState.SUCCEEDED)
        return AnalyzeQueryResponse(
            success=True,
            data=output,
            metadata=self._metadata(analysis_id, started),
        )

    # -------------------------------------------------------------------------
    # Steps
    # -------------------------------------------------------------------------

    @staticmethod
    def _advance(analysis_id: str, state: AnalysisState) -> AnalysisState:
        logger.debug("[%s] %s", analysis_id, state.value)
        return state

    @staticmethod
    def _validate(request: AnalyzeQueryRequest) -> None:
        if not request.sql or not request.sql.strip():
            raise InvalidRequestError("SQL text is required")
        if not request.connection_id or not request.connection_id.strip():
            raise InvalidRequestError("A connection id is required")

    def resolve_schema(self, request: AnalyzeQueryRequest) -> str:
        """owner, then options.target_schema, then the configured default."""
        schema = request.owner or request.options.target_schema or self._config.default_schema
        return schema.upper()

    async def _fetch_metadata(
        self,
        request: AnalyzeQueryRequest,
        parsed: ParsedSQL,
    ) -> tuple[IndexMetadataSnapshot, list[str]]:
        """
        Read indexes and statistics concurrently, each under the timeout.

        Returns the snapshot and the reasons the run is degraded, if any.
        """
        if self._provider is None:
            return IndexMetadataSnapshot.unavailable(), ["No index metadata provider configured"]

        default_schema = self.resolve_schema(request)
        tables_by_schema: dict[str, list[str]] = {}
        for table in parsed.tables:
            names = tables_by_schema.setdefault(table.schema_name or default_schema, [])
            if table.name not in names:
                names.append(table.name)

        index_calls = [
            self._bounded(
                self._provider.get_indexes_for_tables(request.connection_id, schema, names)
            )
            for schema, names in tables_by_schema.items()
        ]

        stats_calls = []
        if request.options.include_statistics:
            for table in parsed.tables:
                columns = [
                    c.name for c in parsed.columns_for_table(table.id)
                    if c.condition.type is not ConditionType.NONE
                ]
                if columns:
                    stats_calls.append(self._bounded(
                        self._provider.get_column_statistics(
                            request.connection_id,
                            table.schema_name or default_schema,
                            table.name,
                            columns,
                        )
                    ))

        results = await asyncio.gather(*index_calls, *stats_calls, return_exceptions=True)
        index_results = results[: len(index_calls)]
        stats_results = results[len(index_calls):]

        reasons: list[str] = []
        indexes: dict[str, list[ExistingIndex]] = {}
        available = True
        for result in index_results:
            if isinstance(result, BaseException):
                available = False
                reasons.append(self._describe_failure("Index metadata", result))
                continue
            for table_name, table_indexes in result.items():
                indexes.setdefault(table_name, []).extend(table_indexes)

        statistics: list[ColumnStatistics] = []
        for result in stats_results:
            if isinstance(result, BaseException):
                reasons.append(self._describe_failure("Column statistics", result))
                continue
            statistics.extend(result)

        reasons = list(dict.fromkeys(reasons))
        for reason in reasons:
            logger.warning("Continuing in degraded mode: %s", reason)

        snapshot = IndexMetadataSnapshot(
            indexes=indexes if available else None,
            statistics=statistics,
            available=available,
        )
        return snapshot, reasons

    async def _bounded(self, awaitable: Awaitable[T]) -> T:
        return await asyncio.wait_for(awaitable, timeout=self._config.metadata_timeout_seconds)

    def _describe_failure(self, what: str, exc: BaseException) -> str:
        if isinstance(exc, QueryArtifactsError):
            logger.debug("%s failure: %s", what, exc.to_dict())
        if isinstance(exc, asyncio.TimeoutError):
            return f"{what} timed out after {self._config.metadata_timeout_seconds:g}s"
        return f"{what} unavailable: {str(exc) or type(exc).__name__}"

    def _build_output(
        self,
        request: AnalyzeQueryRequest,
        parsed: ParsedSQL,
        snapshot: IndexMetadataSnapshot,
        degraded_reasons: Sequence[str],
    ) -> QueryArtifactOutput:
        column_analyses = analyze_columns(parsed, snapshot)
        access_order = resolve_access_order(parsed, column_analyses)
        index_points = identify_index_points(parsed, column_analyses, snapshot, access_order)
        diagram = build_diagram(parsed, column_analyses, index_points, access_order, snapshot)

        recommendations = []
        if request.options.include_recommendations:
            recommendations = generate_recommendations(
                index_points,
                parsed,
                max_identifier_length=self._config.max_identifier_length,
            )

        hints = None
        if request.options.include_hints:
            hints = generate_hints(access_order, parsed, self._config.hint_join_method.value)

        analysis = IndexAnalysis(
            parsed_sql=parsed,
            column_analyses=column_analyses,
            index_points=tuple(index_points),
            optimal_access_order=tuple(access_order),
            degraded=bool(degraded_reasons),
            degraded_reasons=tuple(degraded_reasons),
        )
        return QueryArtifactOutput(
            diagram=diagram,
            analysis=analysis,
            recommendations=tuple(recommendations),
            summary=build_summary(diagram, index_points),
            hints=hints,
        )

    # -------------------------------------------------------------------------
    # Responses
    # -------------------------------------------------------------------------

    def _metadata(self, analysis_id: str, started: float) -> AnalysisMetadata:
        return AnalysisMetadata(
            analysis_id=analysis_id,
            execution_time_ms=round((time.perf_counter() - started) * 1000, 3),
            timestamp=datetime.now(timezone.utc),
            config_hash=self._config.config_hash(),
        )

    def _failure(
        self,
        analysis_id: str,
        started: float,
        state: AnalysisState,
        code: ErrorCode,
        message: str,
        **details: Any,
    ) -> AnalyzeQueryResponse:
        logger.debug("[%s] FAILED(%s) in %s: %s", analysis_id, code.value, state.value, message)
        return AnalyzeQueryResponse(
            success=False,
            error=AnalysisErrorInfo(
                code=code,
                message=message,
                details={"state": state.value, **{k: v for k, v in details.items() if v is not None}},
            ),
            metadata=self._metadata(analysis_id, started),
        )


def _error_context(error: QueryArtifactsError) -> dict[str, Any]:
    """Context fields of an error for the response details, camelCased."""
    context = error.to_dict()
    context.pop("message", None)
    return {to_camel(key): value for key, value in context.items()}

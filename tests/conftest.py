"""
Shared fixtures for the queryartifacts test suite.

Providers here are in-memory doubles of the Oracle metadata provider:
one that returns fixed metadata, one that fails and one that hangs.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Iterator, Mapping, Sequence

import pytest

from queryartifacts.config import Config, reset_config
from queryartifacts.engine import QueryArtifactService
from queryartifacts.exceptions import MetadataError
from queryartifacts.metadata.models import ColumnStatistics, ExistingIndex, IndexColumn
from queryartifacts.metadata.provider import StaticIndexMetadataProvider
from queryartifacts.parser.sql_parser import StructuralSQLParser
from queryartifacts.schema import AnalyzeQueryOptions, AnalyzeQueryRequest, AnalyzeQueryResponse


def _make_index(name: str, table: str, *columns: str, status: str = "VALID") -> ExistingIndex:
    """ExistingIndex with columns in the given order."""
    return ExistingIndex(
        index_name=name,
        table_name=table,
        columns=tuple(
            IndexColumn(column_name=column, position=i)
            for i, column in enumerate(columns, start=1)
        ),
        status=status,
    )


class FailingProvider:
    """Provider whose every call raises."""

    def __init__(self, exc: Exception | None = None) -> None:
        self.exc = exc or MetadataError("ORA-12541: TNS:no listener", connection_id="prod")
        self.calls = 0

    async def get_indexes_for_tables(
        self,
        connection_id: str,
        schema: str,
        table_names: Sequence[str],
    ) -> Mapping[str, Sequence[ExistingIndex]]:
        self.calls += 1
        raise self.exc

    async def get_column_statistics(
        self,
        connection_id: str,
        schema: str,
        table_name: str,
        column_names: Sequence[str],
    ) -> Sequence[ColumnStatistics]:
        self.calls += 1
        raise self.exc


class HangingProvider(StaticIndexMetadataProvider):
    """Provider that never answers the index query."""

    async def get_indexes_for_tables(
        self,
        connection_id: str,
        schema: str,
        table_names: Sequence[str],
    ) -> Mapping[str, Sequence[ExistingIndex]]:
        await asyncio.sleep(60)
        return {}


class RecordingProvider(StaticIndexMetadataProvider):
    """Static provider that records the schema and tables it was asked for."""

    def __init__(self, *args: object, **kwargs: object) -> None:
        super().__init__(*args, **kwargs)
        self.index_requests: list[tuple[str, str, tuple[str, ...]]] = []
        self.statistics_requests: list[tuple[str, str, tuple[str, ...]]] = []

    async def get_indexes_for_tables(
        self,
        connection_id: str,
        schema: str,
        table_names: Sequence[str],
    ) -> Mapping[str, Sequence[ExistingIndex]]:
        self.index_requests.append((connection_id, schema, tuple(table_names)))
        return await super().get_indexes_for_tables(connection_id, schema, table_names)

    async def get_column_statistics(
        self,
        connection_id: str,
        schema: str,
        table_name: str,
        column_names: Sequence[str],
    ) -> Sequence[ColumnStatistics]:
        self.statistics_requests.append((schema, table_name, tuple(column_names)))
        return await super().get_column_statistics(connection_id, schema, table_name, column_names)


@pytest.fixture(autouse=True)
def _clear_config_cache() -> Iterator[None]:
    """Each test sees configuration loaded from its own environment."""
    reset_config()
    yield
    reset_config()


@pytest.fixture
def parser() -> StructuralSQLParser:
    return StructuralSQLParser()


@pytest.fixture
def config() -> Config:
    """Defaults, independent of the environment running the tests."""
    return Config()


@pytest.fixture
def analyze(config: Config) -> Callable[..., AnalyzeQueryResponse]:
    """
    Run one analysis.

    Usage: ``analyze(sql, provider=..., owner=..., include_hints=True)``
    """

    def _analyze(
        sql: str,
        provider: object | None = None,
        connection_id: str = "prod",
        owner: str | None = None,
        service_config: Config | None = None,
        **options: object,
    ) -> AnalyzeQueryResponse:
        if provider is None:
            provider = StaticIndexMetadataProvider()
        service = QueryArtifactService(provider=provider, config=service_config or config)
        request = AnalyzeQueryRequest(
            sql=sql,
            connection_id=connection_id,
            owner=owner,
            options=AnalyzeQueryOptions(**options),
        )
        return service.analyze(request)

    return _analyze


@pytest.fixture
def make_index() -> Callable[..., ExistingIndex]:
    """``make_index(name, table, *columns, status="VALID")``"""
    return _make_index


@pytest.fixture
def failing_provider() -> FailingProvider:
    return FailingProvider()


@pytest.fixture
def hanging_provider() -> HangingProvider:
    return HangingProvider()


@pytest.fixture
def recording_provider() -> Callable[..., RecordingProvider]:
    """``recording_provider(indexes=(), statistics=())``"""
    return RecordingProvider

"""Tests for index metadata models, the metadata file loader and the Oracle provider."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any

import oracledb
import pytest

from queryartifacts.config import OracleConnectionSettings
from queryartifacts.exceptions import ConfigurationError, MetadataError
from queryartifacts.metadata.models import (
    ColumnStatistics,
    ExistingIndex,
    IndexColumn,
    IndexMetadataSnapshot,
    IndexStatus,
    IndexType,
    SelectivityGrade,
)
from queryartifacts.metadata.oracle import (
    OracleIndexMetadataProvider,
    rows_to_indexes,
    rows_to_statistics,
)
from queryartifacts.metadata.provider import StaticIndexMetadataProvider, load_metadata_file

FIXTURES = Path(__file__).parent / "fixtures"


# =============================================================================
# Models
# =============================================================================


class TestExistingIndex:

    def test_names_are_upper_cased(self) -> None:
        index = ExistingIndex(
            index_name="ix_orders_status",
            table_name='"orders"',
            columns=(IndexColumn(column_name="status", position=1),),
        )

        assert index.index_name == "IX_ORDERS_STATUS"
        assert index.table_name == "ORDERS"
        assert index.column_names == ("STATUS",)

    def test_columns_sorted_by_position(self) -> None:
        index = ExistingIndex(
            index_name="IX",
            table_name="T",
            columns=(
                IndexColumn(column_name="B", position=2),
                IndexColumn(column_name="A", position=1),
            ),
        )

        assert index.column_names == ("A", "B")
        assert index.leading_column == "A"
        assert index.leads_with("a")
        assert index.contains("b")
        assert not index.leads_with("B")

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("NORMAL", IndexType.NORMAL),
            ("BITMAP", IndexType.BITMAP),
            ("FUNCTION-BASED NORMAL", IndexType.FUNCTION_BASED),
            ("NORMAL/REV", IndexType.REVERSE),
            (None, IndexType.NORMAL),
        ],
    )
    def test_index_type_from_oracle(self, raw: str | None, expected: IndexType) -> None:
        assert IndexType.from_oracle(raw) == expected

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("VALID", IndexStatus.VALID),
            ("N/A", IndexStatus.VALID),
            ("UNUSABLE", IndexStatus.UNUSABLE),
            ("INVALID", IndexStatus.INVALID),
        ],
    )
    def test_status_from_oracle(self, raw: str, expected: IndexStatus) -> None:
        assert IndexStatus.from_oracle(raw) == expected


class TestColumnStatistics:

    def test_selectivity_from_distinct_values(self) -> None:
        stats = ColumnStatistics(table_name="T", column_name="C", num_distinct=200, num_rows=10_000)

        assert stats.selectivity == pytest.approx(0.005)
        assert stats.selectivity_grade == SelectivityGrade.GOOD

    def test_histogram_uses_density(self) -> None:
        stats = ColumnStatistics(
            table_name="T",
            column_name="C",
            num_distinct=4,
            density=0.0002,
            histogram="FREQUENCY",
        )

        assert stats.selectivity == pytest.approx(0.0002)

    def test_unknown_distinct_count(self) -> None:
        assert ColumnStatistics(table_name="T", column_name="C").selectivity == 1.0

    def test_null_ratio(self) -> None:
        stats = ColumnStatistics(table_name="T", column_name="C", num_rows=1_000, num_nulls=600)

        assert stats.null_ratio == pytest.approx(0.6)
        assert ColumnStatistics(table_name="T", column_name="C").null_ratio == 0.0

    @pytest.mark.parametrize(
        ("selectivity", "grade"),
        [
            (0.0005, SelectivityGrade.EXCELLENT),
            (0.01, SelectivityGrade.GOOD),
            (0.03, SelectivityGrade.FAIR),
            (0.08, SelectivityGrade.POOR),
            (0.5, SelectivityGrade.VERY_POOR),
        ],
    )
    def test_grades(self, selectivity: float, grade: SelectivityGrade) -> None:
        assert SelectivityGrade.from_selectivity(selectivity) == grade


class TestSnapshot:

    def test_lookup_is_case_insensitive(self, make_index) -> None:
        snapshot = IndexMetadataSnapshot(
            {"orders": [make_index("IX_ORDERS_STATUS", "ORDERS", "STATUS")]},
            [ColumnStatistics(table_name="orders", column_name="status", num_distinct=6)],
        )

        assert snapshot.find_covering_index("Orders", "Status") is not None
        assert snapshot.statistics_for("ORDERS", "STATUS") is not None
        assert snapshot.index_count == 1

    def test_invalid_index_never_covers(self, make_index) -> None:
        snapshot = IndexMetadataSnapshot({
            "ORDERS": [make_index("IX_ORDERS_STATUS", "ORDERS", "STATUS", status="INVALID")],
        })

        assert snapshot.find_covering_index("ORDERS", "STATUS") is None

    def test_unavailable(self) -> None:
        snapshot = IndexMetadataSnapshot.unavailable()

        assert not snapshot.available
        assert snapshot.indexes_for("ORDERS") == ()


# =============================================================================
# Static provider and metadata files
# =============================================================================


class TestStaticProvider:

    def test_filters_by_table(self, make_index) -> None:
        provider = StaticIndexMetadataProvider([
            make_index("PK_CUSTOMERS", "CUSTOMERS", "ID"),
            make_index("PK_ORDERS", "ORDERS", "ID"),
        ])

        result = asyncio.run(provider.get_indexes_for_tables("prod", "SALES", ["customers"]))

        assert list(result) == ["CUSTOMERS"]
        assert result["CUSTOMERS"][0].index_name == "PK_CUSTOMERS"

    def test_filters_statistics_by_column(self) -> None:
        provider = StaticIndexMetadataProvider(statistics=[
            ColumnStatistics(table_name="ORDERS", column_name="STATUS", num_distinct=6),
            ColumnStatistics(table_name="ORDERS", column_name="REGION", num_distinct=4),
        ])

        result = asyncio.run(provider.get_column_statistics("prod", "SALES", "orders", ["status"]))

        assert [s.column_name for s in result] == ["STATUS"]


class TestLoadMetadataFile:

    def test_yaml_fixture(self) -> None:
        provider = load_metadata_file(FIXTURES / "order_indexes.yaml")

        names = {i.index_name: i for i in provider.indexes}
        assert set(names) == {"PK_CUSTOMERS", "IX_ORDERS_CREATED_STATUS"}
        assert names["PK_CUSTOMERS"].is_unique
        assert names["IX_ORDERS_CREATED_STATUS"].table_name == "ORDERS"
        assert names["IX_ORDERS_CREATED_STATUS"].column_names == ("CREATED_AT", "STATUS")

        stats = asyncio.run(provider.get_column_statistics("x", "SALES", "CUSTOMERS", ["REGION"]))
        assert stats[0].null_ratio == pytest.approx(0.8)

    def test_json_file(self, tmp_path: Path) -> None:
        path = tmp_path / "indexes.json"
        path.write_text(
            '{"indexes": [{"index_name": "IX_T_A", "table_name": "T", "columns": ["A", "B"]}]}'
        )

        provider = load_metadata_file(path)

        assert provider.indexes[0].column_names == ("A", "B")
        assert provider.indexes[0].columns[1].position == 2

    def test_empty_file(self, tmp_path: Path) -> None:
        path = tmp_path / "empty.yaml"
        path.write_text("")

        assert load_metadata_file(path).indexes == ()

    def test_not_a_mapping(self, tmp_path: Path) -> None:
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n")

        with pytest.raises(MetadataError, match="mapping"):
            load_metadata_file(path)

    def test_invalid_entry(self, tmp_path: Path) -> None:
        path = tmp_path / "bad.yaml"
        path.write_text("indexes:\n  - table_name: T\n")

        with pytest.raises(MetadataError, match="Invalid metadata"):
            load_metadata_file(path)

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(MetadataError, match="Failed to read"):
            load_metadata_file(tmp_path / "missing.yaml")


# =============================================================================
# Oracle provider
# =============================================================================


INDEX_ROWS = [
    ("IX_ORDERS_CREATED_STATUS", "ORDERS", "NONUNIQUE", "NORMAL", "VALID",
     "2024-01-02 03:04:05", 1200, 4500, "CREATED_AT", 1, "ASC"),
    ("IX_ORDERS_CREATED_STATUS", "ORDERS", "NONUNIQUE", "NORMAL", "VALID",
     "2024-01-02 03:04:05", 1200, 4500, "STATUS", 2, "DESC"),
    ("PK_CUSTOMERS", "CUSTOMERS", "UNIQUE", "NORMAL", "VALID",
     None, None, None, "ID", 1, "ASC"),
]


class TestRowConversion:

    def test_rows_to_indexes(self) -> None:
        result = rows_to_indexes(INDEX_ROWS)

        assert set(result) == {"ORDERS", "CUSTOMERS"}
        orders = result["ORDERS"][0]
        assert orders.column_names == ("CREATED_AT", "STATUS")
        assert orders.columns[1].descending
        assert not orders.is_unique
        assert orders.distinct_keys == 1200
        assert result["CUSTOMERS"][0].is_unique

    def test_rows_to_statistics(self) -> None:
        rows = [("ORDERS", "STATUS", 6, None, 0.1666, "NONE", 1200000)]

        stats = rows_to_statistics(rows)[0]

        assert stats.num_nulls == 0
        assert stats.num_rows == 1_200_000
        assert stats.selectivity == pytest.approx(1 / 6)


class FakeCursor:
    def __init__(self, connection: "FakeConnection") -> None:
        self.connection = connection

    def __enter__(self) -> "FakeCursor":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        pass

    async def execute(self, sql: str, binds: dict[str, str]) -> None:
        self.connection.executed.append((sql, binds))

    async def fetchall(self) -> list[Any]:
        return self.connection.rows


class FakeConnection:
    def __init__(self, rows: list[Any]) -> None:
        self.rows = rows
        self.executed: list[tuple[str, dict[str, str]]] = []
        self.call_timeout = 0

    async def __aenter__(self) -> "FakeConnection":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        pass

    def cursor(self) -> FakeCursor:
        return FakeCursor(self)


def _resolver(connection_id: str) -> OracleConnectionSettings:
    if connection_id != "prod":
        raise ConfigurationError(f"No connection profile configured for '{connection_id}'")
    return OracleConnectionSettings(user="tuning_ro", password="secret", dsn="dbhost/ORCLPDB1")


class TestOracleProvider:

    def test_index_query_binds(self, monkeypatch: pytest.MonkeyPatch) -> None:
        connection = FakeConnection(INDEX_ROWS)
        connect_args: dict[str, Any] = {}

        def connect_async(**kwargs: Any) -> FakeConnection:
            connect_args.update(kwargs)
            return connection

        monkeypatch.setattr(oracledb, "connect_async", connect_async)
        provider = OracleIndexMetadataProvider(resolver=_resolver, call_timeout_seconds=2.5)

        result = asyncio.run(provider.get_indexes_for_tables("prod", "sales", ["orders", "customers"]))

        assert set(result) == {"ORDERS", "CUSTOMERS"}
        assert connect_args == {"user": "tuning_ro", "password": "secret", "dsn": "dbhost/ORCLPDB1"}
        assert connection.call_timeout == 2500
        sql, binds = connection.executed[0]
        assert ":table0, :table1" in sql
        assert binds == {"table0": "ORDERS", "table1": "CUSTOMERS", "owner": "SALES"}

    def test_statistics_query_binds(self, monkeypatch: pytest.MonkeyPatch) -> None:
        connection = FakeConnection([("ORDERS", "STATUS", 6, 0, None, "NONE", 1200)])
        monkeypatch.setattr(oracledb, "connect_async", lambda **kwargs: connection)
        provider = OracleIndexMetadataProvider(resolver=_resolver)

        stats = asyncio.run(provider.get_column_statistics("prod", "sales", "orders", ["status"]))

        assert [s.column_name for s in stats] == ["STATUS"]
        _, binds = connection.executed[0]
        assert binds == {"col0": "STATUS", "table_name": "ORDERS", "owner": "SALES"}

    def test_no_tables_skips_the_database(self, monkeypatch: pytest.MonkeyPatch) -> None:
        def connect_async(**kwargs: Any) -> FakeConnection:
            raise AssertionError("should not connect")

        monkeypatch.setattr(oracledb, "connect_async", connect_async)
        provider = OracleIndexMetadataProvider(resolver=_resolver)

        assert asyncio.run(provider.get_indexes_for_tables("prod", "SALES", [])) == {}
        assert asyncio.run(provider.get_column_statistics("prod", "SALES", "T", [])) == []

    def test_unknown_connection(self) -> None:
        provider = OracleIndexMetadataProvider(resolver=_resolver)

        with pytest.raises(MetadataError) as exc_info:
            asyncio.run(provider.get_indexes_for_tables("staging", "SALES", ["ORDERS"]))

        assert exc_info.value.connection_id == "staging"
        assert exc_info.value.table_names == ("ORDERS",)

    def test_database_error(self, monkeypatch: pytest.MonkeyPatch) -> None:
        def connect_async(**kwargs: Any) -> FakeConnection:
            raise oracledb.DatabaseError("ORA-12541: TNS:no listener")

        monkeypatch.setattr(oracledb, "connect_async", connect_async)
        provider = OracleIndexMetadataProvider(resolver=_resolver)

        with pytest.raises(MetadataError, match="ORA-12541"):
            asyncio.run(provider.get_indexes_for_tables("prod", "SALES", ["ORDERS"]))

"""
Oracle data-dictionary metadata provider.

Reads existing indexes from ALL_INDEXES / ALL_IND_COLUMNS and column
statistics from ALL_TAB_COL_STATISTICS / ALL_TABLES through
python-oracledb's async thin mode. Only SELECT statements are issued.

Connection credentials are looked up by connection id in the
``connections`` section of the configuration.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping, Sequence
from typing import Any

import oracledb

from queryartifacts.config import OracleConnectionSettings, get_config
from queryartifacts.exceptions import ConfigurationError, MetadataError
from queryartifacts.metadata.models import (
    ColumnStatistics,
    ExistingIndex,
    IndexColumn,
    IndexStatus,
    IndexType,
)

logger = logging.getLogger(__name__)

INDEX_QUERY = """
SELECT i.index_name,
       i.table_name,
       i.uniqueness,
       i.index_type,
       i.status,
       TO_CHAR(i.last_analyzed, 'YYYY-MM-DD HH24:MI:SS'),
       i.distinct_keys,
       i.clustering_factor,
       ic.column_name,
       ic.column_position,
       ic.descend
  FROM all_indexes i
  JOIN all_ind_columns ic
    ON i.index_name = ic.index_name
   AND i.owner = ic.index_owner
 WHERE i.table_name IN ({placeholders})
   AND i.owner = :owner
 ORDER BY i.index_name, ic.column_position
"""

STATISTICS_QUERY = """
SELECT c.table_name,
       c.column_name,
       c.num_distinct,
       c.num_nulls,
       c.density,
       c.histogram,
       t.num_rows
  FROM all_tab_col_statistics c
  JOIN all_tables t
    ON c.table_name = t.table_name
   AND c.owner = t.owner
 WHERE c.table_name = :table_name
   AND c.column_name IN ({placeholders})
   AND c.owner = :owner
"""

ConnectionResolver = Callable[[str], OracleConnectionSettings]


def _default_resolver(connection_id: str) -> OracleConnectionSettings:
    return get_config().get_connection(connection_id)


def _bind_list(prefix: str, values: Sequence[str]) -> tuple[str, dict[str, str]]:
    """``(:p0, :p1, ...)`` placeholders plus their bind values."""
    binds = {f"{prefix}{i}": value.upper() for i, value in enumerate(values)}
    placeholders = ", ".join(f":{name}" for name in binds)
    return placeholders, binds


def rows_to_indexes(rows: Sequence[Sequence[Any]]) -> dict[str, list[ExistingIndex]]:
    """Group INDEX_QUERY rows (one per index column) into ExistingIndex objects."""
    headers: dict[str, dict[str, Any]] = {}
    columns: dict[str, list[IndexColumn]] = {}
    for (index_name, table_name, uniqueness, index_type, status, last_analyzed,
         distinct_keys, clustering_factor, column_name, position, descend) in rows:
        if index_name not in headers:
            headers[index_name] = {
                "index_name": index_name,
                "table_name": table_name,
                "is_unique": uniqueness == "UNIQUE",
                "index_type": IndexType.from_oracle(index_type),
                "status": IndexStatus.from_oracle(status),
                "last_analyzed": last_analyzed,
                "distinct_keys": distinct_keys,
                "clustering_factor": clustering_factor,
            }
            columns[index_name] = []
        columns[index_name].append(IndexColumn(
            column_name=column_name,
            position=int(position),
            descending=descend == "DESC",
        ))

    result: dict[str, list[ExistingIndex]] = {}
    for index_name, header in headers.items():
        index = ExistingIndex(columns=tuple(columns[index_name]), **header)
        result.setdefault(index.table_name, []).append(index)
    return result


def rows_to_statistics(rows: Sequence[Sequence[Any]]) -> list[ColumnStatistics]:
    """Convert STATISTICS_QUERY rows to ColumnStatistics."""
    return [
        ColumnStatistics(
            table_name=table_name,
            column_name=column_name,
            num_distinct=int(num_distinct or 0),
            num_nulls=int(num_nulls or 0),
            density=float(density) if density is not None else None,
            histogram=histogram,
            num_rows=int(num_rows or 0),
        )
        for table_name, column_name, num_distinct, num_nulls, density, histogram, num_rows in rows
    ]


class OracleIndexMetadataProvider:
    """
    IndexMetadataProvider backed by the Oracle data dictionary.

    Each call opens its own connection; the orchestrator issues at most
    a handful of calls per analysis.

    Args:
        resolver: Maps a connection id to credentials. Defaults to the
            ``connections`` section of the global configuration.
        call_timeout_seconds: Round-trip timeout applied to each query.
    """

    def __init__(
        self,
        resolver: ConnectionResolver | None = None,
        call_timeout_seconds: float = 5.0,
    ) -> None:
        self._resolver = resolver or _default_resolver
        self._call_timeout_ms = int(call_timeout_seconds * 1000)

    async def get_indexes_for_tables(
        self,
        connection_id: str,
        schema: str,
        table_names: Sequence[str],
    ) -> Mapping[str, Sequence[ExistingIndex]]:
        if not table_names:
            return {}
        placeholders, binds = _bind_list("table", table_names)
        binds["owner"] = schema.upper()
        rows = await self._fetch(
            connection_id,
            INDEX_QUERY.format(placeholders=placeholders),
            binds,
            tuple(table_names),
        )
        return rows_to_indexes(rows)

    async def get_column_statistics(
        self,
        connection_id: str,
        schema: str,
        table_name: str,
        column_names: Sequence[str],
    ) -> Sequence[ColumnStatistics]:
        if not column_names:
            return []
        placeholders, binds = _bind_list("col", column_names)
        binds["table_name"] = table_name.upper()
        binds["owner"] = schema.upper()
        rows = await self._fetch(
            connection_id,
            STATISTICS_QUERY.format(placeholders=placeholders),
            binds,
            (table_name,),
        )
        return rows_to_statistics(rows)

    async def _fetch(
        self,
        connection_id: str,
        sql: str,
        binds: dict[str, str],
        table_names: tuple[str, ...],
    ) -> list[Any]:
        try:
            settings = self._resolver(connection_id)
        except ConfigurationError as e:
            raise MetadataError(e.message, connection_id, table_names) from e

        try:
            async with oracledb.connect_async(
                user=settings.user,
                password=settings.password,
                dsn=settings.dsn,
            ) as connection:
                connection.call_timeout = self._call_timeout_ms
                with connection.cursor() as cursor:
                    await cursor.execute(sql, binds)
                    rows = await cursor.fetchall()
        except oracledb.Error as e:
            logger.warning("Metadata query on '%s' failed: %s", connection_id, e)
            raise MetadataError(
                f"Oracle metadata query failed: {e}",
                connection_id,
                table_names,
            ) from e
        return list(rows)

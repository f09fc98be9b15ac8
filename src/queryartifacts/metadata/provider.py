"""
Index metadata provider interface and the in-memory implementation.

Providers are async: the orchestrator awaits them under a timeout and
falls back to degraded mode on any failure. Implementations:

- StaticIndexMetadataProvider: fixed metadata, e.g. loaded from a file
- OracleIndexMetadataProvider (queryartifacts.metadata.oracle): data
  dictionary views over python-oracledb

Metadata file format (YAML or JSON):

    indexes:
      - index_name: PK_CUSTOMERS
        table_name: CUSTOMERS
        columns: [ID]
        is_unique: true
    statistics:
      - table_name: ORDERS
        column_name: STATUS
        num_distinct: 6
        num_rows: 1200000
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Mapping, Sequence
from pathlib import Path
from typing import Any, Protocol

import yaml
from pydantic import ValidationError

from queryartifacts.exceptions import MetadataError
from queryartifacts.metadata.models import ColumnStatistics, ExistingIndex, IndexColumn

logger = logging.getLogger(__name__)


class IndexMetadataProvider(Protocol):
    """
    Source of existing-index and column-statistics metadata.

    Implementations should raise MetadataError on failure; any other
    exception is treated the same way by the orchestrator.
    """

    async def get_indexes_for_tables(
        self,
        connection_id: str,
        schema: str,
        table_names: Sequence[str],
    ) -> Mapping[str, Sequence[ExistingIndex]]:
        """Existing indexes keyed by upper-case table name."""
        ...

    async def get_column_statistics(
        self,
        connection_id: str,
        schema: str,
        table_name: str,
        column_names: Sequence[str],
    ) -> Sequence[ColumnStatistics]:
        """Statistics for the requested columns of one table."""
        ...


class StaticIndexMetadataProvider:
    """
    Provider over a fixed set of indexes and statistics.

    Ignores connection id and schema. Useful for offline analysis and tests.
    """

    def __init__(
        self,
        indexes: Iterable[ExistingIndex] = (),
        statistics: Iterable[ColumnStatistics] = (),
    ) -> None:
        self._indexes = tuple(indexes)
        self._statistics = tuple(statistics)

    @property
    def indexes(self) -> tuple[ExistingIndex, ...]:
        return self._indexes

    async def get_indexes_for_tables(
        self,
        connection_id: str,
        schema: str,
        table_names: Sequence[str],
    ) -> Mapping[str, Sequence[ExistingIndex]]:
        wanted = {name.upper() for name in table_names}
        result: dict[str, list[ExistingIndex]] = {}
        for index in self._indexes:
            if index.table_name in wanted:
                result.setdefault(index.table_name, []).append(index)
        return result

    async def get_column_statistics(
        self,
        connection_id: str,
        schema: str,
        table_name: str,
        column_names: Sequence[str],
    ) -> Sequence[ColumnStatistics]:
        table = table_name.upper()
        wanted = {name.upper() for name in column_names}
        return [
            s for s in self._statistics
            if s.table_name == table and s.column_name in wanted
        ]


def _index_from_dict(data: Mapping[str, Any]) -> ExistingIndex:
    raw = dict(data)
    columns = raw.get("columns", [])
    normalized: list[IndexColumn | dict[str, Any]] = []
    for position, column in enumerate(columns, start=1):
        if isinstance(column, str):
            normalized.append(IndexColumn(column_name=column, position=position))
        else:
            entry = dict(column)
            entry.setdefault("position", position)
            normalized.append(entry)
    raw["columns"] = normalized
    return ExistingIndex.model_validate(raw)


def load_metadata_file(path: Path) -> StaticIndexMetadataProvider:
    """
    Build a StaticIndexMetadataProvider from a JSON or YAML file.

    Raises:
        MetadataError: The file is unreadable or does not match the format.
    """
    try:
        with open(path) as f:
            if path.suffix in (".yaml", ".yml"):
                data = yaml.safe_load(f)
            else:
                data = json.load(f)
    except (OSError, ValueError, yaml.YAMLError) as e:
        raise MetadataError(f"Failed to read metadata file {path}: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise MetadataError(f"Metadata file {path} must contain a mapping")

    try:
        indexes = [_index_from_dict(entry) for entry in data.get("indexes") or []]
        statistics = [
            ColumnStatistics.model_validate(entry)
            for entry in data.get("statistics") or []
        ]
    except (ValidationError, TypeError) as e:
        raise MetadataError(f"Invalid metadata in {path}: {e}") from e

    logger.debug(
        "Loaded %d indexes and %d column statistics from %s",
        len(indexes),
        len(statistics),
        path,
    )
    return StaticIndexMetadataProvider(indexes, statistics)

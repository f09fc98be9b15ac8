"""
Value objects for index and column-statistics metadata.

All names are upper-cased on construction. This is the single place where
case-insensitive matching is handled; the engine compares names with
plain equality everywhere else.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from enum import Enum

from pydantic import Field, field_validator

from queryartifacts.base import ArtifactModel


class IndexType(str, Enum):
    NORMAL = "NORMAL"
    BITMAP = "BITMAP"
    FUNCTION_BASED = "FUNCTION_BASED"
    REVERSE = "REVERSE"

    @classmethod
    def from_oracle(cls, value: str | None) -> "IndexType":
        """Map ALL_INDEXES.INDEX_TYPE (e.g. 'FUNCTION-BASED NORMAL') to a member."""
        text = (value or "").upper()
        if "BITMAP" in text:
            return cls.BITMAP
        if "FUNCTION" in text:
            return cls.FUNCTION_BASED
        if "REV" in text:
            return cls.REVERSE
        return cls.NORMAL


class IndexStatus(str, Enum):
    VALID = "VALID"
    INVALID = "INVALID"
    UNUSABLE = "UNUSABLE"

    @classmethod
    def from_oracle(cls, value: str | None) -> "IndexStatus":
        text = (value or "").upper()
        if text in ("VALID", "N/A"):
            # Partitioned indexes report N/A at the index level.
            return cls.VALID
        if text == "UNUSABLE":
            return cls.UNUSABLE
        return cls.INVALID


class SelectivityGrade(str, Enum):
    """Bands for the fraction of rows an equality predicate returns."""

    EXCELLENT = "EXCELLENT"
    GOOD = "GOOD"
    FAIR = "FAIR"
    POOR = "POOR"
    VERY_POOR = "VERY_POOR"

    @classmethod
    def from_selectivity(cls, selectivity: float) -> "SelectivityGrade":
        if selectivity <= 0.001:
            return cls.EXCELLENT
        if selectivity <= 0.01:
            return cls.GOOD
        if selectivity <= 0.05:
            return cls.FAIR
        if selectivity <= 0.10:
            return cls.POOR
        return cls.VERY_POOR


def _upper(value: str) -> str:
    return value.strip().strip('"').upper()


class IndexColumn(ArtifactModel):
    """One column of an index definition. Position 1 is the leading column."""

    column_name: str
    position: int = Field(..., ge=1)
    descending: bool = False

    @field_validator("column_name")
    @classmethod
    def normalize_name(cls, value: str) -> str:
        return _upper(value)


class ExistingIndex(ArtifactModel):
    """An index that already exists in the target schema."""

    index_name: str
    table_name: str
    columns: tuple[IndexColumn, ...] = ()
    is_unique: bool = False
    index_type: IndexType = IndexType.NORMAL
    status: IndexStatus = IndexStatus.VALID
    last_analyzed: str | None = None
    distinct_keys: int | None = None
    clustering_factor: int | None = None

    @field_validator("index_name", "table_name")
    @classmethod
    def normalize_name(cls, value: str) -> str:
        return _upper(value)

    @field_validator("columns")
    @classmethod
    def order_columns(cls, value: tuple[IndexColumn, ...]) -> tuple[IndexColumn, ...]:
        return tuple(sorted(value, key=lambda c: c.position))

    @property
    def column_names(self) -> tuple[str, ...]:
        return tuple(c.column_name for c in self.columns)

    @property
    def leading_column(self) -> str | None:
        return self.columns[0].column_name if self.columns else None

    @property
    def is_usable(self) -> bool:
        return self.status is IndexStatus.VALID

    def contains(self, column_name: str) -> bool:
        return _upper(column_name) in self.column_names

    def leads_with(self, column_name: str) -> bool:
        return self.leading_column == _upper(column_name)


class ColumnStatistics(ArtifactModel):
    """Optimizer statistics for one column (ALL_TAB_COL_STATISTICS)."""

    table_name: str
    column_name: str
    num_distinct: int = Field(default=0, ge=0)
    num_rows: int = Field(default=0, ge=0)
    num_nulls: int = Field(default=0, ge=0)
    density: float | None = None
    histogram: str | None = None

    @field_validator("table_name", "column_name")
    @classmethod
    def normalize_name(cls, value: str) -> str:
        return _upper(value)

    @property
    def selectivity(self) -> float:
        """
        Expected fraction of rows returned by an equality predicate.

        Uses 1 / NUM_DISTINCT; with a histogram the optimizer's DENSITY is
        the better estimate. Unknown distinct counts are treated as 1.0.
        """
        if self.histogram and self.histogram.upper() != "NONE" and self.density:
            return min(1.0, float(self.density))
        if self.num_distinct <= 0:
            return 1.0
        return 1.0 / self.num_distinct

    @property
    def null_ratio(self) -> float:
        if self.num_rows <= 0:
            return 0.0
        return min(1.0, self.num_nulls / self.num_rows)

    @property
    def selectivity_grade(self) -> SelectivityGrade:
        return SelectivityGrade.from_selectivity(self.selectivity)


class IndexMetadataSnapshot:
    """
    Read-only lookup over the metadata fetched for one analysis.

    ``available`` is False when the metadata could not be fetched; callers
    report coverage as unknown rather than uncovered in that case.
    """

    def __init__(
        self,
        indexes: Mapping[str, Iterable[ExistingIndex]] | None = None,
        statistics: Iterable[ColumnStatistics] = (),
        available: bool = True,
    ) -> None:
        self.available = available
        self._indexes: dict[str, tuple[ExistingIndex, ...]] = {}
        for table_name, table_indexes in (indexes or {}).items():
            key = _upper(table_name)
            self._indexes[key] = self._indexes.get(key, ()) + tuple(table_indexes)
        self._statistics: dict[tuple[str, str], ColumnStatistics] = {
            (s.table_name, s.column_name): s for s in statistics
        }

    @classmethod
    def unavailable(cls) -> "IndexMetadataSnapshot":
        return cls(available=False)

    def indexes_for(self, table_name: str) -> tuple[ExistingIndex, ...]:
        return self._indexes.get(_upper(table_name), ())

    @property
    def index_count(self) -> int:
        return sum(len(v) for v in self._indexes.values())

    def find_covering_index(self, table_name: str, column_name: str) -> ExistingIndex | None:
        """
        Usable index on ``table_name`` that contains ``column_name``.

        An index leading with the column is preferred over one that only
        contains it further right.
        """
        candidates = [
            idx for idx in self.indexes_for(table_name)
            if idx.is_usable and idx.contains(column_name)
        ]
        for idx in candidates:
            if idx.leads_with(column_name):
                return idx
        return candidates[0] if candidates else None

    def statistics_for(self, table_name: str, column_name: str) -> ColumnStatistics | None:
        return self._statistics.get((_upper(table_name), _upper(column_name)))

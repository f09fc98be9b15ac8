"""Index metadata: value objects, provider protocol and implementations."""

from queryartifacts.metadata.models import (
    ColumnStatistics,
    ExistingIndex,
    IndexColumn,
    IndexMetadataSnapshot,
    IndexStatus,
    IndexType,
    SelectivityGrade,
)
from queryartifacts.metadata.oracle import OracleIndexMetadataProvider
from queryartifacts.metadata.provider import (
    IndexMetadataProvider,
    StaticIndexMetadataProvider,
    load_metadata_file,
)

__all__ = [
    "ColumnStatistics",
    "ExistingIndex",
    "IndexColumn",
    "IndexMetadataProvider",
    "IndexMetadataSnapshot",
    "IndexStatus",
    "IndexType",
    "OracleIndexMetadataProvider",
    "SelectivityGrade",
    "StaticIndexMetadataProvider",
    "load_metadata_file",
]

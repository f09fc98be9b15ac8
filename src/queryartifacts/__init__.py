"""queryartifacts - Index recommendations for Oracle SQL statements."""

__version__ = "1.0.0"
__license__ = "MIT"

# Exception hierarchy (import first so other modules can use it)
from queryartifacts.exceptions import (
    QueryArtifactsError,
    ParseError,
    UnsupportedSyntaxError,
    MetadataError,
    ConfigurationError,
)

# Public API exports
from queryartifacts.parser import StructuralSQLParser, ParsedSQL, StatementType
from queryartifacts.metadata import (
    ColumnStatistics,
    ExistingIndex,
    IndexMetadataProvider,
    OracleIndexMetadataProvider,
    StaticIndexMetadataProvider,
    load_metadata_file,
)
from queryartifacts.engine import QueryArtifactService
from queryartifacts.schema import (
    AnalyzeQueryOptions,
    AnalyzeQueryRequest,
    AnalyzeQueryResponse,
    ErrorCode,
)

__all__ = [
    "__version__",
    # Exceptions
    "QueryArtifactsError",
    "ParseError",
    "UnsupportedSyntaxError",
    "MetadataError",
    "ConfigurationError",
    # Parser
    "StructuralSQLParser",
    "ParsedSQL",
    "StatementType",
    # Metadata
    "ColumnStatistics",
    "ExistingIndex",
    "IndexMetadataProvider",
    "OracleIndexMetadataProvider",
    "StaticIndexMetadataProvider",
    "load_metadata_file",
    # Service
    "QueryArtifactService",
    "AnalyzeQueryOptions",
    "AnalyzeQueryRequest",
    "AnalyzeQueryResponse",
    "ErrorCode",
]

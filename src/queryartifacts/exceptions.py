"""
Package-level exception hierarchy for queryartifacts.

All exceptions inherit from QueryArtifactsError, enabling:
- Catching every library error with a single except clause
- Context fields for debugging (source, statement_type, connection_id, config_key)
- Structured serialization via to_dict() for JSON error payloads

Hierarchy:
    QueryArtifactsError
    ├── ParseError                 – SQL text could not be turned into a structural model
    │   └── UnsupportedSyntaxError – Statement shape outside the supported subset
    ├── MetadataError              – Index / statistics metadata could not be read
    └── ConfigurationError         – Invalid configuration value or file
"""

from __future__ import annotations

from typing import Any


class QueryArtifactsError(Exception):
    """
    Base exception for all queryartifacts errors.

    Attributes:
        message: Human-readable error description.
    """

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary for JSON error responses."""
        return {
            "error_type": type(self).__name__,
            "message": self.message,
        }


# ── Parse Errors ─────────────────────────────────────────────────────────


class ParseError(QueryArtifactsError):
    """
    Failed to build a structural model of the SQL text.

    Raised when the statement is too large, references too many tables,
    or yields no table at all.

    Attributes:
        source: Which stage rejected the input ("resource_limit", "structure", ...).
    """

    def __init__(self, message: str, source: str | None = None) -> None:
        self.source = source
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["source"] = self.source
        return result


class UnsupportedSyntaxError(ParseError):
    """
    The statement is recognised but cannot be analysed statically.

    Attributes:
        statement_type: Classified statement kind (e.g. "PLSQL", "INSERT_VALUES").
    """

    def __init__(self, message: str, statement_type: str) -> None:
        self.statement_type = statement_type
        super().__init__(message, source="classification")

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["statement_type"] = self.statement_type
        return result


# ── Metadata Errors ──────────────────────────────────────────────────────


class MetadataError(QueryArtifactsError):
    """
    Index or column-statistics metadata could not be fetched.

    The orchestrator recovers from this locally and continues in
    degraded mode.

    Attributes:
        connection_id: Logical connection the lookup targeted.
        table_names: Tables whose metadata was requested.
    """

    def __init__(
        self,
        message: str,
        connection_id: str | None = None,
        table_names: tuple[str, ...] = (),
    ) -> None:
        self.connection_id = connection_id
        self.table_names = table_names
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["connection_id"] = self.connection_id
        result["table_names"] = list(self.table_names)
        return result


# ── Configuration Errors ─────────────────────────────────────────────────


class ConfigurationError(QueryArtifactsError):
    """
    Error in configuration.

    Attributes:
        config_key: The configuration key that caused the error (if known).
    """

    def __init__(self, message: str, config_key: str | None = None) -> None:
        self.config_key = config_key
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["config_key"] = self.config_key
        return result

"""Structural SQL parsing: statement classification and the ParsedSQL model."""

from queryartifacts.exceptions import ParseError, UnsupportedSyntaxError
from queryartifacts.parser.config import DEFAULT_CONFIG, STRICT_CONFIG, ParserConfig
from queryartifacts.parser.models import (
    ColumnCondition,
    ConditionType,
    JoinType,
    ParsedColumn,
    ParsedJoin,
    ParsedSQL,
    ParsedTable,
    StatementType,
)
from queryartifacts.parser.sql_parser import StructuralSQLParser, unsupported_message

__all__ = [
    "DEFAULT_CONFIG",
    "STRICT_CONFIG",
    "ColumnCondition",
    "ConditionType",
    "JoinType",
    "ParseError",
    "ParsedColumn",
    "ParsedJoin",
    "ParsedSQL",
    "ParsedTable",
    "ParserConfig",
    "StatementType",
    "StructuralSQLParser",
    "UnsupportedSyntaxError",
    "unsupported_message",
]

"""
Parser configuration with resource limits.

These limits keep pathological inputs (multi-megabyte generated SQL,
statements joining hundreds of tables) from tying up a worker. The
defaults are generous for hand-written and ORM-generated SQL.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class ParserConfig(BaseModel):
    """
    Configuration for the structural SQL parser.

    Attributes:
        max_sql_length: Maximum statement length in characters.
        max_tables: Maximum number of table references in one statement.

    Example:
        # Use defaults
        config = ParserConfig()

        # Stricter limits for an interactive endpoint
        config = ParserConfig(max_sql_length=20_000, max_tables=50)
    """

    max_sql_length: int = Field(
        default=100_000,
        gt=0,
        description="Maximum SQL text length in characters",
    )

    max_tables: int = Field(
        default=200,
        gt=0,
        description="Maximum number of table references",
    )


DEFAULT_CONFIG = ParserConfig()

STRICT_CONFIG = ParserConfig(
    max_sql_length=20_000,
    max_tables=50,
)

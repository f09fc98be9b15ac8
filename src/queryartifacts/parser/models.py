"""
Structural model of a parsed SQL statement.

Tables, columns and joins form an arena of records keyed by synthetic
string ids (``table_N``, ``column_N``, ``join_N``). Cross-references are
always ids, never object references, so self-joins and repeated table
names are just distinct records.
"""

from __future__ import annotations

from enum import Enum

from pydantic import Field

from queryartifacts.base import ArtifactModel


class StatementType(str, Enum):
    """Top-level statement classification."""

    SELECT = "SELECT"
    WITH_SELECT = "WITH_SELECT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    INSERT_SELECT = "INSERT_SELECT"
    INSERT_VALUES = "INSERT_VALUES"
    MERGE = "MERGE"
    PLSQL = "PLSQL"
    UNSUPPORTED = "UNSUPPORTED"

    @property
    def is_supported(self) -> bool:
        return self in _SUPPORTED_STATEMENTS


_SUPPORTED_STATEMENTS = frozenset({
    StatementType.SELECT,
    StatementType.WITH_SELECT,
    StatementType.UPDATE,
    StatementType.DELETE,
    StatementType.INSERT_SELECT,
})


class ConditionType(str, Enum):
    """Role a column plays in the statement."""

    NONE = "NONE"
    WHERE = "WHERE"
    JOIN = "JOIN"
    ORDER_BY = "ORDER_BY"


class JoinType(str, Enum):
    """Join kinds. CROSS joins produce no ParsedJoin."""

    INNER = "INNER"
    LEFT_OUTER = "LEFT_OUTER"
    RIGHT_OUTER = "RIGHT_OUTER"
    FULL_OUTER = "FULL_OUTER"

    @property
    def is_outer(self) -> bool:
        return self is not JoinType.INNER


class ColumnCondition(ArtifactModel):
    """How a column is referenced."""

    type: ConditionType = Field(default=ConditionType.NONE, description="Column role")
    operator: str | None = Field(default=None, description="Comparison operator, upper-case")
    is_bind_variable: bool = Field(default=False, description="Compared against a bind variable")
    literal_value: str | None = Field(
        default=None,
        description="Literal compared against, without quotes",
    )
    is_outer_marker: bool = Field(
        default=False,
        description="Carried Oracle's (+) outer-join marker",
    )


class ParsedTable(ArtifactModel):
    """One table reference in FROM / JOIN."""

    id: str = Field(..., description="Synthetic id, e.g. table_1")
    name: str = Field(..., description="Upper-case table name without schema")
    schema_name: str | None = Field(default=None, description="Explicit schema qualifier")
    alias: str = Field(..., description="Explicit alias, or the table name")
    is_outer_join_target: bool = Field(
        default=False,
        description="Table sits on the dependent side of an outer join",
    )

    @property
    def qualified_name(self) -> str:
        if self.schema_name:
            return f"{self.schema_name}.{self.name}"
        return self.name


class ParsedColumn(ArtifactModel):
    """A column referenced by a predicate or ORDER BY."""

    id: str = Field(..., description="Synthetic id, e.g. column_1")
    table_id: str = Field(..., description="Owning table id")
    table_name: str = Field(..., description="Owning table name")
    name: str = Field(..., description="Upper-case column name")
    condition: ColumnCondition = Field(default_factory=ColumnCondition)


class ParsedJoin(ArtifactModel):
    """
    An equi-join edge between two table references.

    Source is the side already in scope (the preserved side for
    LEFT OUTER); target is the side introduced by the join clause.
    """

    id: str = Field(..., description="Synthetic id, e.g. join_1")
    source_table_id: str
    source_column_id: str
    target_table_id: str
    target_column_id: str
    join_type: JoinType = JoinType.INNER

    @property
    def dependent_table_ids(self) -> tuple[str, ...]:
        """Tables whose rows are optional under this join."""
        if self.join_type is JoinType.LEFT_OUTER:
            return (self.target_table_id,)
        if self.join_type is JoinType.RIGHT_OUTER:
            return (self.source_table_id,)
        if self.join_type is JoinType.FULL_OUTER:
            return (self.source_table_id, self.target_table_id)
        return ()

    def other_side(self, table_id: str) -> str | None:
        """Table on the opposite end of the edge, or None if not incident."""
        if table_id == self.source_table_id:
            return self.target_table_id
        if table_id == self.target_table_id:
            return self.source_table_id
        return None

    def column_for(self, table_id: str) -> str | None:
        """Column id used by ``table_id`` in this join."""
        if table_id == self.source_table_id:
            return self.source_column_id
        if table_id == self.target_table_id:
            return self.target_column_id
        return None


class ParsedSQL(ArtifactModel):
    """Structural model of one statement."""

    statement_type: StatementType = StatementType.SELECT
    tables: tuple[ParsedTable, ...] = ()
    columns: tuple[ParsedColumn, ...] = ()
    joins: tuple[ParsedJoin, ...] = ()
    order_by_columns: tuple[str, ...] = Field(
        default=(),
        description="ORDER BY expressions reduced to column names",
    )
    group_by_columns: tuple[str, ...] = Field(
        default=(),
        description="GROUP BY expressions reduced to column names",
    )
    original_sql: str = ""
    normalized_sql: str = ""

    def table(self, table_id: str) -> ParsedTable:
        for table in self.tables:
            if table.id == table_id:
                return table
        raise KeyError(table_id)

    def column(self, column_id: str) -> ParsedColumn:
        for column in self.columns:
            if column.id == column_id:
                return column
        raise KeyError(column_id)

    def columns_for_table(self, table_id: str) -> list[ParsedColumn]:
        """Columns of one table in parse order."""
        return [c for c in self.columns if c.table_id == table_id]

    @property
    def table_names(self) -> list[str]:
        """Distinct table names in declaration order."""
        seen: list[str] = []
        for table in self.tables:
            if table.name not in seen:
                seen.append(table.name)
        return seen

"""
Structural SQL parser for Oracle statements.

Builds a ParsedSQL model (tables, predicate columns, join edges) from raw
SQL text. This is deliberately not a full SQL grammar: it walks the
sqlparse token tree for the shapes that matter to index analysis and
skips everything else.

Supported statements:
- SELECT, including UNION / INTERSECT / MINUS branches
- WITH ... SELECT (the main query; CTE bodies are not analysed)
- UPDATE ... WHERE and DELETE ... WHERE (the target table and its WHERE)
- INSERT ... SELECT (the SELECT part)

Recognised inside a query block:
- Comma-separated FROM lists and ANSI joins (INNER, LEFT, RIGHT, FULL,
  CROSS, NATURAL) with ON or USING
- Inline views in FROM, analysed as query blocks of their own
- Oracle (+) outer-join markers in WHERE
- Comparison, LIKE, IN, BETWEEN and IS [NOT] NULL predicates, in either
  ``column op value`` or ``value op column`` order
- START WITH predicates of hierarchical queries
- ORDER BY columns

Clause boundaries, FROM items and aliases come from the token tree.
Predicates inside a clause are matched with a regular expression over the
clause text, because sqlparse does not group Oracle ``(+)`` markers or
reversed comparisons.

Each parse runs in its own session object, so one parser instance can be
shared across threads and coroutines.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field

import sqlparse
from sqlparse import tokens as T
from sqlparse.sql import Identifier, Parenthesis, Statement, Token

from queryartifacts.exceptions import ParseError, UnsupportedSyntaxError
from queryartifacts.parser import tokens as sqltokens
from queryartifacts.parser.config import DEFAULT_CONFIG, ParserConfig
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

logger = logging.getLogger(__name__)


# =============================================================================
# Patterns
# =============================================================================

IDENT = r'(?:"[^"]+"|[A-Z_][A-Z0-9_$#]*)'
COLREF = rf"{IDENT}(?:\s*\.\s*{IDENT}){{0,2}}"
_END_OF_REF = r'(?![A-Z0-9_$#"]|\s*\.)'

_COMPARISON_OPS = r"<>|!=|\^=|>=|<=|=|<|>"
_OPERATORS = (
    r"IS\s+NOT\s+NULL\b|IS\s+NULL\b|NOT\s+LIKE\b|NOT\s+IN\b|NOT\s+BETWEEN\b"
    rf"|LIKE\b|IN\b|BETWEEN\b|{_COMPARISON_OPS}"
)
_VALUE = r"'[^']*'|:[A-Z0-9_$#]+|\?|-?\d+(?:\.\d+)?"

_PREDICATE = re.compile(
    rf"""
    (?<![A-Z0-9_$#".:])
    (?:
        (?P<col>{COLREF}){_END_OF_REF}
        (?:\s*(?P<col_outer>\(\+\)))?
        \s*(?P<op>{_OPERATORS})
        (?:\s*(?:
            (?P<rhs_col>{COLREF}){_END_OF_REF}(?:\s*(?P<rhs_outer>\(\+\)))?(?!\s*\()
          | (?P<value>{_VALUE})
          | \(\s*(?P<list_bind>:[A-Z0-9_$#]+|\?)
        ))?
    |
        (?P<rev_value>{_VALUE})
        \s*(?P<rev_op>{_COMPARISON_OPS})
        \s*(?P<rev_col>{COLREF}){_END_OF_REF}
        (?:\s*(?P<rev_outer>\(\+\)))?(?!\s*\()
    )
    """,
    re.VERBOSE,
)

_ORDER_MODIFIERS = re.compile(r"(?:\s+(?:ASC|DESC))?(?:\s+NULLS\s+(?:FIRST|LAST))?\s*$")
_WHITESPACE = re.compile(r"\s+")

# Clause keywords that are a single token.
_CLAUSES = {
    "SELECT": "SELECT",
    "FROM": "FROM",
    "WHERE": "WHERE",
    "GROUP BY": "GROUP BY",
    "HAVING": "HAVING",
    "ORDER BY": "ORDER BY",
    "CONNECT BY": "CONNECT BY",
    "OFFSET": "OFFSET",
    "FETCH": "FETCH",
    "UPDATE": "UPDATE",
    "DELETE": "DELETE",
    "SET": "SET",
    "RETURNING": "RETURNING",
}

# Clause keywords spelled as two tokens.
_CLAUSE_PAIRS = {
    ("ORDER", "BY"): "ORDER BY",
    ("ORDER", "SIBLINGS"): "ORDER BY",
    ("CONNECT", "BY"): "CONNECT BY",
    ("START", "WITH"): "START WITH",
    ("FOR", "UPDATE"): "FOR UPDATE",
    ("LOG", "ERRORS"): "RETURNING",
}

_SET_OPERATORS = frozenset({"UNION", "UNION ALL", "INTERSECT", "EXCEPT", "MINUS"})
_TABLE_DECORATIONS = frozenset({"PARTITION", "SUBPARTITION", "SAMPLE", "SEED"})
_PLSQL_OBJECTS = frozenset({"PROCEDURE", "FUNCTION", "PACKAGE", "TRIGGER", "TYPE"})

# Identifiers that look like columns but never are.
NON_COLUMNS = frozenset({
    "ROWNUM", "ROWID", "LEVEL", "ORA_ROWSCN", "SYSDATE", "SYSTIMESTAMP",
    "CURRENT_DATE", "CURRENT_TIMESTAMP", "LOCALTIMESTAMP", "DBTIMEZONE",
    "SESSIONTIMEZONE", "USER", "UID", "NULL", "TRUE", "FALSE", "AND", "OR",
    "NOT", "PRIOR", "EXISTS", "CASE", "WHEN", "THEN", "ELSE", "END", "ANY",
    "ALL", "SOME", "DISTINCT", "DATE", "TIMESTAMP", "INTERVAL", "NEXTVAL",
    "CURRVAL", "CONNECT_BY_ROOT", "CONNECT_BY_ISLEAF", "CONNECT_BY_ISCYCLE",
    "WHERE", "ON", "SELECT", "FROM", "BY", "ASC", "DESC", "NULLS", "FIRST",
    "LAST", "DUAL",
})

_RESERVED_ALIASES = frozenset({
    "ON", "USING", "WHERE", "JOIN", "INNER", "LEFT", "RIGHT", "FULL", "CROSS",
    "NATURAL", "OUTER", "GROUP", "ORDER", "HAVING", "CONNECT", "START",
    "UNION", "MINUS", "INTERSECT", "FETCH", "OFFSET", "FOR", "SET", "RETURNING",
    "LOG", "PARTITION", "SUBPARTITION", "SAMPLE", "VERSIONS", "AS", "PIVOT",
    "UNPIVOT", "MODEL", "WITH",
})

_MIRRORED_OPS = {"<": ">", ">": "<", "<=": ">=", ">=": "<="}
_CANONICAL_OPS = {"!=": "<>", "^=": "<>"}

_SUPPORTED_SHAPES = (
    "Supported statements: SELECT, WITH ... SELECT, UPDATE ... WHERE, "
    "DELETE ... WHERE and INSERT ... SELECT."
)

UNSUPPORTED_MESSAGES: dict[StatementType, str] = {
    StatementType.PLSQL: (
        "PL/SQL blocks (DECLARE, BEGIN, CREATE PROCEDURE/FUNCTION/PACKAGE/TRIGGER/TYPE) "
        "cannot be analysed statically because the SQL they run depends on control "
        "flow and runtime values. Extract the SELECT, UPDATE or DELETE statements "
        "(including cursor queries) from the block and analyse them one at a time. "
        + _SUPPORTED_SHAPES
    ),
    StatementType.INSERT_VALUES: (
        "INSERT ... VALUES reads no table, so there is no access path to index. "
        "INSERT ... SELECT is supported and its SELECT part is analysed. "
        + _SUPPORTED_SHAPES
    ),
    StatementType.MERGE: (
        "MERGE statements are not supported. Analyse the USING query as a "
        "standalone SELECT instead. " + _SUPPORTED_SHAPES
    ),
    StatementType.UNSUPPORTED: "Unsupported statement type. " + _SUPPORTED_SHAPES,
}


def unsupported_message(statement_type: StatementType) -> str:
    """Diagnostic for a statement kind the parser rejects."""
    return UNSUPPORTED_MESSAGES.get(statement_type, UNSUPPORTED_MESSAGES[StatementType.UNSUPPORTED])


# =============================================================================
# Token walking
# =============================================================================


def _next_significant(tokens: list[Token], index: int) -> tuple[int, Token | None]:
    for i in range(index + 1, len(tokens)):
        if not tokens[i].is_whitespace:
            return i, tokens[i]
    return len(tokens), None


def _clause_at(tokens: list[Token], index: int) -> tuple[str | None, int]:
    """Clause started by ``tokens[index]`` and the index just past its keyword."""
    token = tokens[index]
    keyword = sqltokens.keyword(token)
    if keyword in _CLAUSES:
        return _CLAUSES[keyword], index + 1
    first = keyword or sqltokens.word(token)
    if not first:
        return None, index + 1
    following_index, following = _next_significant(tokens, index)
    if following is None:
        return None, index + 1
    clause = _CLAUSE_PAIRS.get((first, sqltokens.word(following)))
    if clause is None:
        return None, index + 1
    if sqltokens.word(following) == "SIBLINGS":
        # ORDER SIBLINGS BY
        following_index, _ = _next_significant(tokens, following_index)
    return clause, following_index + 1


def _split_clauses(block: list[Token]) -> dict[str, list[Token]]:
    """Group the items of one query block by the clause they belong to."""
    clauses: dict[str, list[Token]] = {}
    current = clauses.setdefault("SELECT", [])
    index = 0
    while index < len(block):
        clause, index_after = _clause_at(block, index)
        if clause is None:
            current.append(block[index])
        else:
            current = clauses.setdefault(clause, [])
        index = index_after
    return clauses


def _is_set_operator(token: Token) -> bool:
    return sqltokens.word(token) in _SET_OPERATORS


def _name_of(token: Token) -> str | None:
    if token.ttype in T.String.Symbol:
        return token.value.strip('"')
    return sqltokens.word(token) or None


def _is_plain_name(identifier: Identifier) -> bool:
    """True for ``[schema.]table [AS] [alias]`` with nothing else inside."""
    for leaf in identifier.flatten():
        if leaf.is_whitespace or leaf.match(T.Punctuation, ".") or leaf.ttype in T.String.Symbol:
            continue
        if sqltokens.keyword(leaf) == "AS":
            continue
        if leaf.ttype in T.Name and not leaf.value.startswith("@"):
            continue
        return False
    return identifier.get_real_name() is not None


def _table_reference(ref: list[Token]) -> tuple[str | None, str, str | None] | None:
    """(schema, table, alias) of a FROM item, or None for table functions."""
    body = sqltokens.significant(ref)
    if len(body) == 1 and isinstance(body[0], Identifier) and _is_plain_name(body[0]):
        identifier = body[0]
        alias = identifier.get_alias()
        if alias in _RESERVED_ALIASES:
            alias = None
        return identifier.get_parent_name(), identifier.get_real_name(), alias
    return _read_reference(sqltokens.significant(sqltokens.leaves(ref)))


def _read_reference(words: list[Token]) -> tuple[str | None, str, str | None] | None:
    parts: list[str] = []
    i = 0
    while i < len(words):
        name = _name_of(words[i])
        if name is None:
            break
        parts.append(name)
        i += 1
        if i < len(words) and words[i].match(T.Punctuation, "."):
            i += 1
            continue
        break
    if not parts:
        return None

    # Database link: ORDERS@REMOTE or ORDERS@REMOTE.WORLD
    if i < len(words) and words[i].value.startswith("@"):
        i += 1
        while i + 1 < len(words) and words[i].match(T.Punctuation, "."):
            i += 2
    if i < len(words) and isinstance(words[i], Parenthesis):
        return None
    while i < len(words) and sqltokens.word(words[i]) in _TABLE_DECORATIONS:
        i += 1
        while i < len(words) and sqltokens.word(words[i]) in ("FOR", "BLOCK"):
            i += 1
        if i < len(words) and isinstance(words[i], Parenthesis):
            i += 1
    if i < len(words) and sqltokens.keyword(words[i]) == "AS":
        i += 1

    alias = _name_of(words[i]) if i < len(words) else None
    if alias in _RESERVED_ALIASES:
        alias = None
    if len(parts) > 1:
        return parts[-2], parts[-1], alias
    return None, parts[0], alias


def _select_aliases(select_list: list[Token]) -> set[str]:
    aliases: set[str] = set()
    for item in select_list:
        if isinstance(item, Identifier) and item.get_alias():
            aliases.add(item.get_alias())
    words = sqltokens.significant(sqltokens.leaves(select_list))
    for previous, token in zip(words, words[1:]):
        if sqltokens.keyword(previous) == "AS":
            name = _name_of(token)
            if name:
                aliases.add(name)
    return aliases


# =============================================================================
# Parse session
# =============================================================================


@dataclass(frozen=True)
class _Predicate:
    """One comparison found in a WHERE / ON / START WITH clause."""

    col_ref: tuple[str, ...] | None
    op: str
    col_outer: bool = False
    rhs_ref: tuple[str, ...] | None = None
    rhs_outer: bool = False
    value: str | None = None


@dataclass
class _TableRecord:
    id: str
    name: str
    schema_name: str | None
    alias: str


@dataclass
class _Scope:
    """Tables visible to one query block."""

    tables: list[_TableRecord] = field(default_factory=list)
    by_alias: dict[str, _TableRecord] = field(default_factory=dict)

    def add(self, table: _TableRecord) -> None:
        if table.alias in self.by_alias:
            logger.debug("Alias %s declared twice; keeping the later table", table.alias)
        self.tables.append(table)
        self.by_alias[table.alias] = table

    def resolve(self, ref: tuple[str, ...]) -> tuple[_TableRecord, str] | None:
        """Resolve a column reference to (table, column name)."""
        name = ref[-1]
        if name in NON_COLUMNS:
            return None
        if len(ref) == 1:
            if len(self.tables) == 1:
                return self.tables[0], name
            if self.tables:
                logger.debug("Skipping ambiguous unqualified column %s", name)
            return None
        qualifier = ref[-2]
        table = self.by_alias.get(qualifier)
        if table is None:
            named = [t for t in self.tables if t.name == qualifier]
            if len(named) == 1:
                table = named[0]
        if table is None:
            return None
        return table, name


def _split_ref(ref: str) -> tuple[str, ...]:
    return tuple(part.strip().strip('"') for part in ref.split("."))


def _canonical_op(op: str) -> str:
    op = _WHITESPACE.sub(" ", op.strip())
    return _CANONICAL_OPS.get(op, op)


class _ParseSession:
    """Mutable state for one parse() call."""

    def __init__(self, config: ParserConfig) -> None:
        self.config = config
        self.tables: list[_TableRecord] = []
        self.columns: list[ParsedColumn] = []
        self.joins: list[ParsedJoin] = []
        self.outer_ids: set[str] = set()
        self.order_by_names: list[str] = []
        self.group_by_names: list[str] = []
        self._column_ids: dict[tuple[str, str], str] = {}
        self._join_keys: set[frozenset[str]] = set()

    # -------------------------------------------------------------------------
    # Registration
    # -------------------------------------------------------------------------

    def add_table(self, name: str, schema_name: str | None, alias: str | None) -> _TableRecord:
        table = _TableRecord(
            id=f"table_{len(self.tables) + 1}",
            name=name,
            schema_name=schema_name,
            alias=alias or name,
        )
        self.tables.append(table)
        if len(self.tables) > self.config.max_tables:
            raise ParseError(
                f"Statement references more than {self.config.max_tables} tables",
                source="resource_limit",
            )
        return table

    def add_column(
        self,
        table: _TableRecord,
        name: str,
        condition: ColumnCondition,
    ) -> str:
        """Register a column; the first occurrence of (table, name) wins."""
        key = (table.id, name)
        existing = self._column_ids.get(key)
        if existing is not None:
            return existing
        column_id = f"column_{len(self.columns) + 1}"
        self.columns.append(ParsedColumn(
            id=column_id,
            table_id=table.id,
            table_name=table.name,
            name=name,
            condition=condition,
        ))
        self._column_ids[key] = column_id
        return column_id

    def add_join(
        self,
        source: tuple[_TableRecord, str],
        target: tuple[_TableRecord, str],
        join_type: JoinType,
        register_order: tuple[tuple[_TableRecord, str], ...] | None = None,
    ) -> ParsedJoin | None:
        for table, name in register_order or (source, target):
            self.add_column(table, name, ColumnCondition(type=ConditionType.JOIN, operator="="))
        source_column_id = self._column_ids[(source[0].id, source[1])]
        target_column_id = self._column_ids[(target[0].id, target[1])]
        key = frozenset({source_column_id, target_column_id})
        if key in self._join_keys:
            return None
        self._join_keys.add(key)
        join = ParsedJoin(
            id=f"join_{len(self.joins) + 1}",
            source_table_id=source[0].id,
            source_column_id=source_column_id,
            target_table_id=target[0].id,
            target_column_id=target_column_id,
            join_type=join_type,
        )
        self.joins.append(join)
        self.outer_ids.update(join.dependent_table_ids)
        return join

    # -------------------------------------------------------------------------
    # Query blocks
    # -------------------------------------------------------------------------

    def run(self, query: list[Token]) -> None:
        """Collect every query block of ``query``, set-operator branches included."""
        for branch in sqltokens.split(sqltokens.items(query), _is_set_operator):
            body = sqltokens.significant(branch)
            if len(body) == 1 and sqltokens.is_subquery(body[0]):
                self.run(sqltokens.inner(body[0]))
            elif body:
                self._collect_block(branch)

    def _collect_block(self, block: list[Token]) -> None:
        clauses = _split_clauses(block)

        scope = _Scope()
        from_items = clauses.get("FROM") or clauses.get("UPDATE") or clauses.get("DELETE") or []
        on_filters = self._collect_from(from_items, scope)

        where_predicates = self._predicates(clauses.get("WHERE", []))
        remaining = [p for p in where_predicates if not self._where_join(p, scope)]

        for predicate in on_filters:
            self._register_filter(predicate, scope)
        for predicate in remaining:
            self._register_filter(predicate, scope)
        for predicate in self._predicates(clauses.get("START WITH", [])):
            self._register_filter(predicate, scope)

        select_aliases = _select_aliases(clauses.get("SELECT", []))
        self._collect_order_by(clauses.get("ORDER BY", []), scope, select_aliases)
        self.group_by_names.extend(self._column_names(clauses.get("GROUP BY", [])))

    # -------------------------------------------------------------------------
    # FROM / JOIN
    # -------------------------------------------------------------------------

    def _collect_from(self, from_items: list[Token], scope: _Scope) -> list[_Predicate]:
        """Register tables and ON join edges; return ON filters for later."""
        deferred: list[_Predicate] = []
        for separator, segment in self._from_segments(from_items):
            if not sqltokens.significant(segment):
                continue
            join_type, is_join_clause = self._join_kind(separator)
            ref, condition, using = self._split_join_condition(segment)
            previous = scope.tables[-1] if scope.tables else None
            table = self._table_from_ref(ref)
            if table is None:
                continue
            scope.add(table)
            if not is_join_clause or join_type is None:
                continue

            created = 0
            if using is not None and previous is not None:
                for column in self._column_names(sqltokens.items(sqltokens.inner(using))):
                    if self.add_join((previous, column), (table, column), join_type):
                        created += 1
            elif condition:
                for predicate in self._predicates(condition):
                    if self._on_join(predicate, scope, table, join_type):
                        created += 1
                    else:
                        deferred.append(predicate)
            if created == 0 and join_type.is_outer:
                self._mark_clause_outer(join_type, table, scope)
        return deferred

    @staticmethod
    def _from_segments(from_items: list[Token]) -> list[tuple[str | None, list[Token]]]:
        """Split a FROM clause into (separator, item tokens) pairs."""
        segments: list[tuple[str | None, list[Token]]] = []
        separator: str | None = None
        current: list[Token] = []
        index = 0
        while index < len(from_items):
            token = from_items[index]
            keyword = sqltokens.keyword(token)
            following_index, following = _next_significant(from_items, index)
            if sqltokens.is_comma(token):
                found = ","
            elif keyword.endswith("JOIN"):
                found = keyword
            elif (
                keyword in ("CROSS", "OUTER")
                and following is not None
                and sqltokens.word(following) == "APPLY"
            ):
                found = f"{keyword} APPLY"
                index = following_index
            else:
                if keyword != "NATURAL":
                    current.append(token)
                index += 1
                continue
            segments.append((separator, current))
            separator = found
            current = []
            index += 1
        segments.append((separator, current))
        return segments

    @staticmethod
    def _join_kind(separator: str | None) -> tuple[JoinType | None, bool]:
        """Join type introduced by a FROM separator; None for cross products."""
        if separator is None or separator == ",":
            return None, False
        if separator == "OUTER APPLY":
            return JoinType.LEFT_OUTER, True
        if separator.startswith("CROSS"):
            return None, True
        if separator.startswith("LEFT"):
            return JoinType.LEFT_OUTER, True
        if separator.startswith("RIGHT"):
            return JoinType.RIGHT_OUTER, True
        if separator.startswith("FULL"):
            return JoinType.FULL_OUTER, True
        return JoinType.INNER, True

    @staticmethod
    def _split_join_condition(
        segment: list[Token],
    ) -> tuple[list[Token], list[Token], Parenthesis | None]:
        """Split ``ref ON cond`` / ``ref USING (cols)`` into parts."""
        for index, token in enumerate(segment):
            word = sqltokens.word(token)
            if word == "ON":
                return segment[:index], segment[index + 1:], None
            if word == "USING":
                columns = next((t for t in segment[index + 1:] if isinstance(t, Parenthesis)), None)
                return segment[:index], [], columns
        return segment, [], None

    def _table_from_ref(self, ref: list[Token]) -> _TableRecord | None:
        leading = sqltokens.significant(sqltokens.leaves(ref))
        if not leading:
            return None
        if sqltokens.is_subquery(leading[0]):
            logger.debug("Analysing inline view as a separate query block")
            self.run(sqltokens.inner(leading[0]))
            return None
        reference = _table_reference(ref)
        if reference is None:
            logger.debug("Skipping table reference %s", sqltokens.render(ref)[0].strip())
            return None
        schema_name, name, alias = reference
        return self.add_table(name, schema_name, alias)

    def _mark_clause_outer(self, join_type: JoinType, table: _TableRecord, scope: _Scope) -> None:
        """Outer flags for a join clause that produced no equi-join edge."""
        earlier = [t.id for t in scope.tables if t.id != table.id]
        if join_type in (JoinType.LEFT_OUTER, JoinType.FULL_OUTER):
            self.outer_ids.add(table.id)
        if join_type in (JoinType.RIGHT_OUTER, JoinType.FULL_OUTER):
            self.outer_ids.update(earlier)

    def _on_join(
        self,
        predicate: _Predicate,
        scope: _Scope,
        new_table: _TableRecord,
        join_type: JoinType,
    ) -> bool:
        sides = self._equi_join_sides(predicate, scope)
        if sides is None:
            return False
        left, right = sides
        if left[0].id == new_table.id:
            source, target = right, left
        else:
            source, target = left, right
        self.add_join(source, target, join_type, register_order=(left, right))
        return True

    def _where_join(self, predicate: _Predicate, scope: _Scope) -> bool:
        """Implicit or (+) join in WHERE; returns True when consumed."""
        sides = self._equi_join_sides(predicate, scope)
        if sides is None:
            return False
        left, right = sides
        if predicate.col_outer and not predicate.rhs_outer:
            self.add_join(right, left, JoinType.LEFT_OUTER, register_order=(left, right))
        elif predicate.rhs_outer and not predicate.col_outer:
            self.add_join(left, right, JoinType.LEFT_OUTER)
        else:
            self.add_join(left, right, JoinType.INNER)
        return True

    @staticmethod
    def _equi_join_sides(
        predicate: _Predicate,
        scope: _Scope,
    ) -> tuple[tuple[_TableRecord, str], tuple[_TableRecord, str]] | None:
        if predicate.op != "=" or predicate.col_ref is None or predicate.rhs_ref is None:
            return None
        left = scope.resolve(predicate.col_ref)
        right = scope.resolve(predicate.rhs_ref)
        if left is None or right is None or left[0].id == right[0].id:
            return None
        return left, right

    # -------------------------------------------------------------------------
    # Predicates
    # -------------------------------------------------------------------------

    @staticmethod
    def _predicates(clause_items: list[Token]) -> list[_Predicate]:
        """All comparisons in a clause, in textual order."""
        if not sqltokens.significant(clause_items):
            return []
        clause, masked = sqltokens.render(clause_items)
        predicates: list[_Predicate] = []
        for match in _PREDICATE.finditer(masked):
            if match.group("rev_col"):
                op = _canonical_op(match.group("rev_op"))
                start, end = match.span("rev_value")
                predicates.append(_Predicate(
                    col_ref=_split_ref(match.group("rev_col")),
                    op=_MIRRORED_OPS.get(op, op),
                    col_outer=bool(match.group("rev_outer")),
                    value=clause[start:end],
                ))
                continue
            value = None
            if match.group("value"):
                start, end = match.span("value")
                value = clause[start:end]
            elif match.group("list_bind"):
                value = match.group("list_bind")
            predicates.append(_Predicate(
                col_ref=_split_ref(match.group("col")),
                op=_canonical_op(match.group("op")),
                col_outer=bool(match.group("col_outer")),
                rhs_ref=_split_ref(match.group("rhs_col")) if match.group("rhs_col") else None,
                rhs_outer=bool(match.group("rhs_outer")),
                value=value,
            ))
        return predicates

    def _register_filter(self, predicate: _Predicate, scope: _Scope) -> None:
        op = predicate.op
        target = scope.resolve(predicate.col_ref) if predicate.col_ref else None
        if target is None and predicate.rhs_ref is not None:
            target = scope.resolve(predicate.rhs_ref)
            op = _MIRRORED_OPS.get(op, op)
        if target is None:
            return
        value = predicate.value
        is_bind = bool(value) and value[0] in ":?"
        literal = None
        if value and value.startswith("'"):
            literal = value[1:-1].replace("''", "'")
        elif value and not is_bind:
            literal = value
        self.add_column(target[0], target[1], ColumnCondition(
            type=ConditionType.WHERE,
            operator=op,
            is_bind_variable=is_bind,
            literal_value=literal,
            is_outer_marker=predicate.col_outer,
        ))

    # -------------------------------------------------------------------------
    # ORDER BY / GROUP BY
    # -------------------------------------------------------------------------

    def _collect_order_by(self, body: list[Token], scope: _Scope, select_aliases: set[str]) -> None:
        for item in sqltokens.split(body, sqltokens.is_comma):
            text = _ORDER_MODIFIERS.sub("", sqltokens.render(item)[0].strip()).strip()
            if not re.fullmatch(COLREF, text):
                continue
            ref = _split_ref(text)
            if ref[-1] in NON_COLUMNS:
                continue
            self.order_by_names.append(ref[-1])
            if len(ref) == 1 and ref[0] in select_aliases:
                continue
            resolved = scope.resolve(ref)
            if resolved is not None:
                self.add_column(
                    resolved[0], resolved[1], ColumnCondition(type=ConditionType.ORDER_BY)
                )

    @staticmethod
    def _column_names(body: list[Token]) -> list[str]:
        names: list[str] = []
        for item in sqltokens.split(body, sqltokens.is_comma):
            text = sqltokens.render(item)[0].strip()
            if re.fullmatch(COLREF, text):
                names.append(_split_ref(text)[-1])
        return names

    # -------------------------------------------------------------------------
    # Result
    # -------------------------------------------------------------------------

    def build(self, statement_type: StatementType, original: str, normalized: str) -> ParsedSQL:
        tables = tuple(
            ParsedTable(
                id=t.id,
                name=t.name,
                schema_name=t.schema_name,
                alias=t.alias,
                is_outer_join_target=t.id in self.outer_ids,
            )
            for t in self.tables
        )
        return ParsedSQL(
            statement_type=statement_type,
            tables=tables,
            columns=tuple(self.columns),
            joins=tuple(self.joins),
            order_by_columns=tuple(self.order_by_names),
            group_by_columns=tuple(self.group_by_names),
            original_sql=original,
            normalized_sql=normalized,
        )


# =============================================================================
# Public parser
# =============================================================================


class StructuralSQLParser:
    """
    Oracle SQL parser producing a ParsedSQL structural model.

    Example:
        parser = StructuralSQLParser()
        if parser.is_supported(sql):
            parsed = parser.parse(sql)
            for table in parsed.tables:
                print(table.id, table.name, table.alias)
    """

    def __init__(self, config: ParserConfig | None = None) -> None:
        self.config = config or DEFAULT_CONFIG

    def normalize(self, sql: str) -> str:
        return sqltokens.normalize(sql)

    def classify(self, sql: str) -> StatementType:
        """Classify raw SQL text."""
        return self._classify_statement(sqltokens.parse_statement(self.normalize(sql)))

    def is_supported(self, sql: str) -> bool:
        return self.classify(sql).is_supported

    def parse(self, sql: str) -> ParsedSQL:
        """
        Parse a statement into its structural model.

        Raises:
            UnsupportedSyntaxError: PL/SQL, INSERT ... VALUES, MERGE or other
                unsupported statements.
            ParseError: Resource limits exceeded, several statements in one
                input, or no table reference found.
        """
        if len(sql) > self.config.max_sql_length:
            raise ParseError(
                f"SQL text is {len(sql)} characters; the limit is {self.config.max_sql_length}",
                source="resource_limit",
            )
        normalized = self.normalize(sql)
        if not normalized:
            raise ParseError("SQL text is empty", source="structure")

        statement = sqltokens.parse_statement(normalized)
        statement_type = self._classify_statement(statement)
        if not statement_type.is_supported:
            raise UnsupportedSyntaxError(unsupported_message(statement_type), statement_type.value)

        statements = [s for s in sqlparse.split(normalized) if s.strip(" ;")]
        if len(statements) > 1:
            raise ParseError(
                f"Expected a single statement, found {len(statements)}",
                source="structure",
            )

        session = _ParseSession(self.config)
        session.run(self._main_query(statement, statement_type))
        if not session.tables:
            raise ParseError("No table references found in the statement", source="structure")

        parsed = session.build(statement_type, sql, normalized)
        logger.debug(
            "Parsed %s: %d tables, %d columns, %d joins",
            statement_type.value,
            len(parsed.tables),
            len(parsed.columns),
            len(parsed.joins),
        )
        return parsed

    # -------------------------------------------------------------------------
    # Classification
    # -------------------------------------------------------------------------

    @staticmethod
    def _classify_statement(statement: Statement | None) -> StatementType:
        if statement is None:
            return StatementType.UNSUPPORTED
        body = sqltokens.significant(sqltokens.leaves(statement.tokens))
        while body and isinstance(body[0], Parenthesis):
            body = sqltokens.significant(sqltokens.leaves(sqltokens.inner(body[0])))
        if not body:
            return StatementType.UNSUPPORTED

        words = [sqltokens.word(token) for token in body]
        leading = words[0]
        if leading in ("DECLARE", "BEGIN"):
            return StatementType.PLSQL
        if leading.startswith("CREATE"):
            # CREATE [OR REPLACE] [EDITIONABLE] PROCEDURE ...
            head = " ".join(words[:5]).split()
            kinds = [w for w in head[1:] if w not in ("OR", "REPLACE", "EDITIONABLE", "NONEDITIONABLE")]
            if kinds and kinds[0] in _PLSQL_OBJECTS:
                return StatementType.PLSQL
            return StatementType.UNSUPPORTED
        if leading == "WITH":
            return StatementType.WITH_SELECT
        if leading == "SELECT":
            return StatementType.SELECT
        if leading == "UPDATE":
            return StatementType.UPDATE
        if leading == "DELETE":
            return StatementType.DELETE
        if leading == "MERGE":
            return StatementType.MERGE
        if leading != "INSERT":
            return StatementType.UNSUPPORTED
        if "SELECT" in words:
            return StatementType.INSERT_SELECT
        if "VALUES" in words:
            return StatementType.INSERT_VALUES
        if any(sqltokens.is_subquery(token) for token in body):
            return StatementType.INSERT_SELECT
        return StatementType.INSERT_VALUES

    @staticmethod
    def _main_query(statement: Statement, statement_type: StatementType) -> list[Token]:
        """Tokens of the query the statement reads through."""
        top = sqltokens.items(statement.tokens)

        if statement_type in (StatementType.WITH_SELECT, StatementType.INSERT_SELECT):
            for index, token in enumerate(top):
                if sqltokens.keyword(token) == "SELECT":
                    return top[index:]
            if statement_type is StatementType.WITH_SELECT:
                raise ParseError("WITH clause has no main SELECT", source="structure")
            nested = next(
                (t for t in sqltokens.leaves(statement.tokens) if sqltokens.is_subquery(t)),
                None,
            )
            return sqltokens.inner(nested) if nested is not None else top

        if statement_type is StatementType.UPDATE:
            if not any(sqltokens.keyword(token) == "SET" for token in top):
                raise ParseError("UPDATE statement has no SET clause", source="structure")

        return top

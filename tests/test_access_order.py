"""Tests for entry-table selection and access order resolution."""

from __future__ import annotations

import pytest

from queryartifacts.analyzer.access_order import resolve_access_order, select_entry_table
from queryartifacts.analyzer.scoring import analyze_columns
from queryartifacts.parser.sql_parser import StructuralSQLParser


def access_order(parser: StructuralSQLParser, sql: str) -> list[str]:
    parsed = parser.parse(sql)
    return resolve_access_order(parsed, analyze_columns(parsed))


class TestSelectEntryTable:

    def test_highest_scoring_where_column_wins(self, parser: StructuralSQLParser) -> None:
        parsed = parser.parse(
            "SELECT * FROM a, b WHERE a.id = b.a_id AND a.created > :since AND b.code = 'X'"
        )

        assert select_entry_table(parsed, analyze_columns(parsed)) == "table_2"

    def test_tie_goes_to_first_parsed_column(self, parser: StructuralSQLParser) -> None:
        parsed = parser.parse("SELECT * FROM a, b WHERE a.x = 1 AND b.y = 2")

        assert select_entry_table(parsed, analyze_columns(parsed)) == "table_1"

    def test_non_indexable_filters_are_ignored(self, parser: StructuralSQLParser) -> None:
        parsed = parser.parse("SELECT * FROM a, b WHERE a.x IS NULL AND b.y = 2")

        assert select_entry_table(parsed, analyze_columns(parsed)) == "table_2"

    def test_outer_table_filter_cannot_be_entry(self, parser: StructuralSQLParser) -> None:
        parsed = parser.parse("SELECT * FROM a LEFT JOIN b ON a.x = b.y WHERE b.k = 1")

        assert select_entry_table(parsed, analyze_columns(parsed)) == "table_1"

    def test_first_inner_table_without_filters(self, parser: StructuralSQLParser) -> None:
        parsed = parser.parse("SELECT * FROM a JOIN b ON a.x = b.y")

        assert select_entry_table(parsed, analyze_columns(parsed)) == "table_1"

    def test_none_when_every_table_is_outer(self, parser: StructuralSQLParser) -> None:
        parsed = parser.parse("SELECT * FROM a FULL JOIN b ON a.x = b.y")

        assert select_entry_table(parsed, analyze_columns(parsed)) is None


class TestResolveAccessOrder:

    def test_inner_join_follows_entry(self, parser: StructuralSQLParser) -> None:
        order = access_order(
            parser,
            "SELECT * FROM orders o JOIN customers c ON o.cust_id = c.id WHERE o.status = 'OPEN'",
        )

        assert order == ["table_1", "table_2"]

    def test_entry_on_second_table_reverses_order(self, parser: StructuralSQLParser) -> None:
        order = access_order(
            parser,
            "SELECT * FROM orders o JOIN customers c ON o.cust_id = c.id WHERE c.email = :email",
        )

        assert order == ["table_2", "table_1"]

    def test_breadth_first_over_joins(self, parser: StructuralSQLParser) -> None:
        order = access_order(
            parser,
            "SELECT * FROM a, b, c, d "
            "WHERE a.id = b.a_id AND b.id = c.b_id AND c.id = d.c_id AND c.code = 'X'",
        )

        assert order == ["table_3", "table_2", "table_4", "table_1"]

    def test_outer_tables_come_last(self, parser: StructuralSQLParser) -> None:
        order = access_order(
            parser,
            "SELECT * FROM a LEFT JOIN b ON a.x = b.y JOIN c ON a.z = c.w WHERE b.k = 1",
        )

        assert order == ["table_1", "table_3", "table_2"]

    def test_unreached_tables_in_declaration_order(self, parser: StructuralSQLParser) -> None:
        order = access_order(parser, "SELECT * FROM a, b, c WHERE c.k = 1 AND a.id = b.a_id")

        assert order == ["table_3", "table_1", "table_2"]

    def test_all_outer_uses_declaration_order(self, parser: StructuralSQLParser) -> None:
        assert access_order(parser, "SELECT * FROM a FULL JOIN b ON a.x = b.y") == [
            "table_1",
            "table_2",
        ]

    @pytest.mark.parametrize(
        "sql",
        [
            "SELECT * FROM a",
            "SELECT * FROM a, b, c",
            "SELECT * FROM emp e, dept d WHERE e.deptno = d.deptno(+) AND e.sal > 100",
            "SELECT * FROM a RIGHT JOIN b ON a.x = b.y LEFT JOIN c ON b.z = c.z WHERE c.q = 1",
            "SELECT * FROM a JOIN b USING (id) JOIN c USING (id) WHERE b.k = :k",
        ],
    )
    def test_order_is_a_permutation(self, parser: StructuralSQLParser, sql: str) -> None:
        parsed = parser.parse(sql)
        order = resolve_access_order(parsed, analyze_columns(parsed))

        assert sorted(order) == sorted(t.id for t in parsed.tables)
        assert len(order) == len(set(order))
        outer = [t.id for t in parsed.tables if t.is_outer_join_target]
        if len(outer) < len(parsed.tables):
            assert order[len(order) - len(outer):] == outer

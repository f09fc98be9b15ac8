"""Tests for the text, JSON and Markdown renderers."""

from __future__ import annotations

import json
from collections.abc import Callable

import pytest

from queryartifacts.metadata.provider import StaticIndexMetadataProvider
from queryartifacts.output.renderers import (
    OutputFormat,
    render,
    render_json,
    render_markdown,
    render_text,
)
from queryartifacts.schema import AnalyzeQueryResponse

Analyze = Callable[..., AnalyzeQueryResponse]

ORDERS_JOIN = (
    "SELECT * FROM orders o JOIN customers c ON o.cust_id = c.id "
    "WHERE o.status = 'OPEN'"
)


class TestRenderText:

    def test_success(self, analyze: Analyze) -> None:
        text = render_text(analyze(ORDERS_JOIN, include_hints=True))

        assert "Query Artifacts Analysis Report" in text
        assert "Health: 0/100 (F Critical)" in text
        assert "ORDERS O (STATUS) -> CUSTOMERS C (ID)" in text
        assert "[2] 🔴 ORDERS.STATUS  ENTRY/CRITICAL  index: missing" in text
        assert "CREATE INDEX IX_ORDERS_STATUS ON ORDERS(STATUS);" in text
        assert "Hints: /*+ LEADING(O C) USE_NL(C) */" in text
        assert "Degraded" not in text

    def test_covered_point_names_the_index(self, analyze: Analyze, make_index) -> None:
        provider = StaticIndexMetadataProvider([make_index("PK_CUSTOMERS", "CUSTOMERS", "ID")])

        text = render_text(analyze(ORDERS_JOIN, provider=provider))

        assert "index: PK_CUSTOMERS" in text

    def test_degraded(self, analyze: Analyze, failing_provider) -> None:
        text = render_text(analyze(ORDERS_JOIN, provider=failing_provider))

        assert "⚠ Degraded Mode: Index metadata unavailable" in text
        assert "index: unknown" in text

    def test_failure(self, analyze: Analyze) -> None:
        response = analyze("BEGIN NULL; END;")

        text = render_text(response)

        assert "✗ Analysis failed: UNSUPPORTED_SYNTAX" in text
        assert response.metadata.analysis_id in text

    def test_nothing_to_index(self, analyze: Analyze) -> None:
        text = render_text(analyze("SELECT * FROM t WHERE t.note LIKE '%X'"))

        assert "No indexable columns found" in text


class TestRenderJson:

    def test_camel_case_round_trip(self, analyze: Analyze) -> None:
        response = analyze(ORDERS_JOIN)

        payload = json.loads(render_json(response))

        assert payload["success"] is True
        data = payload["data"]
        assert set(data) == {"diagram", "analysis", "recommendations", "summary"}
        assert data["summary"]["overallHealthScore"] == 0
        assert data["recommendations"][0]["expectedImprovement"] == "order of magnitude (10x+)"
        assert data["diagram"]["recommendedAccessPath"][0]["entryColumn"] == "STATUS"
        assert data["analysis"]["optimalAccessOrder"] == ["table_1", "table_2"]
        assert AnalyzeQueryResponse.model_validate(payload) == response

    def test_failure_payload(self, analyze: Analyze) -> None:
        payload = json.loads(render_json(analyze("SELECT 1")))

        assert payload["success"] is False
        assert payload["error"]["code"] == "PARSE_ERROR"
        assert payload["error"]["details"] == {
            "state": "PARSING",
            "errorType": "ParseError",
            "source": "structure",
        }


class TestRenderMarkdown:

    def test_success(self, analyze: Analyze) -> None:
        md = render_markdown(analyze(ORDERS_JOIN, include_hints=True))

        assert md.startswith("# Query Artifacts Analysis Report")
        assert "🔴 **Critical index gaps found**" in md
        assert "| Health Score | 0 (F Critical) |" in md
        assert "1. `ORDERS O (STATUS)`" in md
        assert "| 2 | `ORDERS.STATUS` | ENTRY | 🔴 CRITICAL | missing |" in md
        assert "```sql\nCREATE INDEX IX_ORDERS_STATUS ON ORDERS(STATUS);\n```" in md
        assert "## Hints" in md

    def test_degraded_details(self, analyze: Analyze, failing_provider) -> None:
        md = render_markdown(analyze(ORDERS_JOIN, provider=failing_provider))

        assert "<summary>Degraded Mode</summary>" in md
        assert "- Index metadata unavailable: ORA-12541: TNS:no listener" in md

    def test_failure(self, analyze: Analyze) -> None:
        md = render_markdown(analyze("INSERT INTO t VALUES (1)"))

        assert "`UNSUPPORTED_SYNTAX`" in md
        assert "INSERT ... SELECT" in md


@pytest.mark.parametrize("output_format", list(OutputFormat))
def test_render_dispatch(analyze: Analyze, output_format: OutputFormat) -> None:
    assert render(analyze(ORDERS_JOIN), output_format)

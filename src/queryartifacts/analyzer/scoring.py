"""
Column candidacy scoring.

A column's score starts at BASE_SCORE and is adjusted by independent
sub-scorers, each a pure function of the column's facts. Contributions
are summed and clamped to 0..100. A column is an index candidate when
the score reaches CANDIDATE_THRESHOLD and no sub-scorer excluded it.

New heuristics are added by appending a function to SUB_SCORERS.

Rule set:
    role          JOIN +30, ORDER BY +10
    operator      = +20, IN +15, range/BETWEEN +10, LIKE 'abc%' +5,
                  LIKE :bind -15, LIKE '%abc' -40 (excluded),
                  IS NULL -40 (excluded), IS NOT NULL -20 (excluded),
                  <>, NOT IN, NOT LIKE, NOT BETWEEN -30 (excluded)
    selectivity   <= 0.01 +20, >= 0.5 -30 (excluded)
    null ratio    > 0.5 -20 (excluded)
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass

from queryartifacts.analyzer.models import CandidateScore, ColumnAnalysis
from queryartifacts.metadata.models import IndexMetadataSnapshot, SelectivityGrade
from queryartifacts.parser.models import ConditionType, ParsedColumn, ParsedSQL

logger = logging.getLogger(__name__)

BASE_SCORE = 50
CANDIDATE_THRESHOLD = 50
DEFAULT_SELECTIVITY = 0.05
DEFAULT_NULL_RATIO = 0.0

HIGH_SELECTIVITY = 0.01
LOW_SELECTIVITY = 0.5
HIGH_NULL_RATIO = 0.5

RANGE_OPERATORS = frozenset({"<", ">", "<=", ">=", "BETWEEN"})
NEGATED_OPERATORS = frozenset({"<>", "NOT IN", "NOT LIKE", "NOT BETWEEN"})


@dataclass(frozen=True)
class ColumnFacts:
    """Everything a sub-scorer may look at."""

    condition_type: ConditionType
    operator: str | None
    selectivity: float
    null_ratio: float
    literal_value: str | None = None


@dataclass(frozen=True)
class ScoreContribution:
    points: int = 0
    reason: str | None = None
    exclude_reason: str | None = None


SubScorer = Callable[[ColumnFacts], ScoreContribution | None]


# =============================================================================
# Sub-scorers
# =============================================================================


def score_role(facts: ColumnFacts) -> ScoreContribution | None:
    if facts.condition_type is ConditionType.JOIN:
        return ScoreContribution(30, "Join column: an index enables nested-loop lookups")
    if facts.condition_type is ConditionType.ORDER_BY:
        return ScoreContribution(10, "ORDER BY column: an index can return rows pre-sorted")
    return ScoreContribution(0, "Filter column in WHERE clause")


def score_operator(facts: ColumnFacts) -> ScoreContribution | None:
    op = facts.operator
    if op is None:
        return None
    if op == "=":
        return ScoreContribution(20, "Equality predicate supports an index unique or range scan")
    if op == "IN":
        return ScoreContribution(15, "IN list resolves to a series of equality lookups")
    if op in RANGE_OPERATORS:
        return ScoreContribution(10, f"Range predicate ({op}) supports an index range scan")
    if op == "LIKE":
        pattern = facts.literal_value
        if pattern is None:
            return ScoreContribution(-15, "LIKE pattern is not known until execution")
        if pattern[:1] in ("%", "_"):
            return ScoreContribution(
                -40,
                exclude_reason="LIKE with a leading wildcard cannot use a B-tree index",
            )
        return ScoreContribution(5, "LIKE with a fixed prefix supports an index range scan")
    if op == "IS NULL":
        return ScoreContribution(
            -40,
            exclude_reason="IS NULL cannot use a B-tree index (entirely null keys are not stored)",
        )
    if op == "IS NOT NULL":
        return ScoreContribution(-20, exclude_reason="IS NOT NULL usually matches most rows")
    if op in NEGATED_OPERATORS:
        return ScoreContribution(
            -30,
            exclude_reason=f"Negated predicate ({op}) cannot drive an index range scan",
        )
    return None


def score_selectivity(facts: ColumnFacts) -> ScoreContribution | None:
    if facts.selectivity <= HIGH_SELECTIVITY:
        return ScoreContribution(20, f"High selectivity ({facts.selectivity:.4f})")
    if facts.selectivity >= LOW_SELECTIVITY:
        return ScoreContribution(
            -30,
            exclude_reason=f"Low selectivity ({facts.selectivity:.2f}): a full scan is cheaper",
        )
    return None


def score_null_ratio(facts: ColumnFacts) -> ScoreContribution | None:
    if facts.null_ratio > HIGH_NULL_RATIO:
        return ScoreContribution(
            -20,
            exclude_reason=f"Mostly null ({facts.null_ratio:.0%}); null keys are not indexed",
        )
    return None


SUB_SCORERS: tuple[SubScorer, ...] = (
    score_role,
    score_operator,
    score_selectivity,
    score_null_ratio,
)


# =============================================================================
# Public API
# =============================================================================


def score_column(
    condition_type: ConditionType,
    operator: str | None = None,
    selectivity: float | None = None,
    null_ratio: float | None = None,
    literal_value: str | None = None,
) -> CandidateScore:
    """
    Score one column as an index candidate.

    Missing selectivity or null ratio fall back to DEFAULT_SELECTIVITY and
    DEFAULT_NULL_RATIO. Never raises for a scoreable column; NONE columns
    are rejected with ValueError because they are never analysed.
    """
    if condition_type is ConditionType.NONE:
        raise ValueError("Columns without a WHERE, JOIN or ORDER BY role are not scored")

    facts = ColumnFacts(
        condition_type=condition_type,
        operator=operator,
        selectivity=DEFAULT_SELECTIVITY if selectivity is None else selectivity,
        null_ratio=DEFAULT_NULL_RATIO if null_ratio is None else null_ratio,
        literal_value=literal_value,
    )

    total = BASE_SCORE
    reasons: list[str] = []
    exclude_reasons: list[str] = []
    for scorer in SUB_SCORERS:
        contribution = scorer(facts)
        if contribution is None:
            continue
        total += contribution.points
        if contribution.reason:
            reasons.append(contribution.reason)
        if contribution.exclude_reason:
            exclude_reasons.append(contribution.exclude_reason)

    score = max(0, min(100, total))
    is_candidate = score >= CANDIDATE_THRESHOLD and not exclude_reasons
    if not is_candidate and not exclude_reasons:
        exclude_reasons.append(f"Score {score} is below the candidate threshold of {CANDIDATE_THRESHOLD}")

    return CandidateScore(
        is_candidate=is_candidate,
        score=score,
        reasons=tuple(reasons),
        exclude_reasons=tuple(exclude_reasons),
    )


def analyze_column(column: ParsedColumn, snapshot: IndexMetadataSnapshot | None = None) -> ColumnAnalysis:
    """ColumnAnalysis for one WHERE / JOIN / ORDER BY column."""
    stats = snapshot.statistics_for(column.table_name, column.name) if snapshot else None
    selectivity = stats.selectivity if stats else DEFAULT_SELECTIVITY
    null_ratio = stats.null_ratio if stats else DEFAULT_NULL_RATIO

    result = score_column(
        column.condition.type,
        column.condition.operator,
        selectivity=selectivity,
        null_ratio=null_ratio,
        literal_value=column.condition.literal_value,
    )
    return ColumnAnalysis(
        column_id=column.id,
        table_id=column.table_id,
        table_name=column.table_name,
        column_name=column.name,
        condition_type=column.condition.type,
        operator=column.condition.operator,
        is_indexable=result.is_candidate,
        score=result.score,
        reasons=result.reasons,
        exclude_reasons=result.exclude_reasons,
        selectivity=selectivity,
        selectivity_grade=SelectivityGrade.from_selectivity(selectivity),
        null_ratio=null_ratio,
        has_statistics=stats is not None,
    )


def analyze_columns(
    parsed: ParsedSQL,
    snapshot: IndexMetadataSnapshot | None = None,
) -> tuple[ColumnAnalysis, ...]:
    """Analyse every column with a role, in parse order. NONE columns are skipped."""
    analyses = tuple(
        analyze_column(column, snapshot)
        for column in parsed.columns
        if column.condition.type is not ConditionType.NONE
    )
    logger.debug(
        "%d of %d columns are index candidates",
        sum(1 for a in analyses if a.is_indexable),
        len(analyses),
    )
    return analyses

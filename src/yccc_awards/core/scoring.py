"""Normalized award scoring.

Every accepted log is reduced to an individual rate (claimed score divided by
the number of listed operators) and scaled against the best rate in the same
contest/year. The best rate earns the contest's maximum points.

Functions here are storage-agnostic: they accept any objects exposing
``id``, ``claimed_score``, ``total_operators`` and ``member_operator_list``.
"""

from __future__ import annotations

import math
from typing import Iterable, Protocol, Sequence

from .models import OperatorPointsRow, ScoringMethod

FIXED_MAX_POINTS = 1_000_000
POINTS_PER_PARTICIPANT = 50_000


class ScorableSubmission(Protocol):
    id: int
    claimed_score: int
    total_operators: int

    @property
    def member_operator_list(self) -> list[str]: ...


def round_half_up(value: float) -> int:
    """Round .5 away from zero for non-negative values (matches the leaderboard's SQL ROUND)."""
    return int(math.floor(value + 0.5))


def calculate_max_points(method: ScoringMethod, active_submission_count: int) -> int:
    """Maximum normalized points a single operator can earn in one contest/year.

    ``fixed`` always yields 1,000,000. ``participant-based`` grants 50,000 per
    active log, capped at the fixed maximum.
    """
    if method == ScoringMethod.PARTICIPANT_BASED:
        return min(active_submission_count * POINTS_PER_PARTICIPANT, FIXED_MAX_POINTS)
    return FIXED_MAX_POINTS


def individual_claimed(claimed_score: int, total_operators: int) -> float:
    return claimed_score / max(total_operators, 1)


def reference_score(submissions: Iterable[ScorableSubmission]) -> float:
    """Best individual rate across the given submissions, 0.0 when empty."""
    return max(
        (individual_claimed(s.claimed_score, s.total_operators) for s in submissions),
        default=0.0,
    )


def normalize(individual: float, reference: float, max_points: int) -> int:
    if reference <= 0:
        return 0
    scaled = individual / reference * max_points
    return round_half_up(min(max(scaled, 0.0), float(max_points)))


def build_operator_points(
    submissions: Sequence[ScorableSubmission],
    reference: float,
    max_points: int,
) -> list[OperatorPointsRow]:
    """Materialize one point row per (submission, member operator).

    With a non-positive reference every row is written as zero so downstream
    aggregation still sees the operators.
    """
    rows: list[OperatorPointsRow] = []
    for sub in submissions:
        individual = individual_claimed(sub.claimed_score, sub.total_operators)
        if reference <= 0:
            claimed_out, points = 0, 0
        else:
            claimed_out, points = round_half_up(individual), normalize(individual, reference, max_points)
        for callsign in sub.member_operator_list:
            rows.append(OperatorPointsRow(
                submission_id=sub.id,
                member_callsign=callsign,
                individual_claimed=claimed_out,
                normalized_points=float(points),
            ))
    return rows

"""Tests for the pure normalization math."""

from dataclasses import dataclass, field

import pytest

from yccc_awards.core.models import ScoringMethod
from yccc_awards.core.scoring import (
    FIXED_MAX_POINTS,
    build_operator_points,
    calculate_max_points,
    individual_claimed,
    normalize,
    reference_score,
    round_half_up,
)


@dataclass
class Entry:
    id: int
    claimed_score: int
    total_operators: int = 1
    member_operator_list: list = field(default_factory=list)


class TestMaxPoints:
    def test_fixed_ignores_participation(self):
        assert calculate_max_points(ScoringMethod.FIXED, 0) == FIXED_MAX_POINTS
        assert calculate_max_points(ScoringMethod.FIXED, 500) == FIXED_MAX_POINTS

    @pytest.mark.parametrize("count,expected", [
        (0, 0),
        (1, 50_000),
        (2, 100_000),
        (19, 950_000),
        (20, 1_000_000),
        (35, 1_000_000),
    ])
    def test_participant_based(self, count, expected):
        assert calculate_max_points(ScoringMethod.PARTICIPANT_BASED, count) == expected


class TestRounding:
    @pytest.mark.parametrize("value,expected", [
        (0.5, 1),
        (1.5, 2),
        (2.5, 3),
        (2.4999, 2),
        (0.0, 0),
    ])
    def test_half_up(self, value, expected):
        assert round_half_up(value) == expected


class TestNormalize:
    def test_best_score_gets_max(self):
        assert normalize(5_420_000, 5_420_000, FIXED_MAX_POINTS) == FIXED_MAX_POINTS

    def test_proportional(self):
        assert normalize(2_710_000, 5_420_000, FIXED_MAX_POINTS) == 500_000

    def test_zero_reference(self):
        assert normalize(100, 0, FIXED_MAX_POINTS) == 0

    def test_clamped_to_max(self):
        assert normalize(200, 100, 1000) == 1000

    def test_divisor_is_total_operators(self):
        assert individual_claimed(3_000_000, 3) == 1_000_000
        assert individual_claimed(1000, 0) == 1000

    def test_ratio_uses_unrounded_individual(self):
        # 1000/3 = 333.33..., rounding first would give 333/1000
        reference = individual_claimed(1000, 1)
        individual = individual_claimed(1000, 3)
        assert normalize(individual, reference, 1_000_000) == 333_333


class TestBuildOperatorPoints:
    def test_rows_per_member_operator(self):
        subs = [
            Entry(1, 5_420_000, 1, ["K1AR"]),
            Entry(2, 5_420_000, 2, ["W1WEF", "K1EP"]),
        ]
        rows = build_operator_points(subs, reference_score(subs), FIXED_MAX_POINTS)
        assert [(r.submission_id, r.member_callsign) for r in rows] == [
            (1, "K1AR"), (2, "W1WEF"), (2, "K1EP"),
        ]
        assert rows[0].normalized_points == 1_000_000
        assert rows[1].individual_claimed == 2_710_000
        assert rows[1].normalized_points == 500_000

    def test_reference_ignores_operator_count(self):
        subs = [Entry(1, 1000, 1), Entry(2, 3000, 2)]
        assert reference_score(subs) == 1500

    def test_empty_reference(self):
        assert reference_score([]) == 0.0

    def test_degenerate_reference_writes_zeros(self):
        subs = [Entry(1, 0, 1, ["K1AR"])]
        rows = build_operator_points(subs, 0.0, FIXED_MAX_POINTS)
        assert len(rows) == 1
        assert rows[0].individual_claimed == 0
        assert rows[0].normalized_points == 0

    def test_points_bounded(self):
        subs = [Entry(i, score, 1, [f"K{i}AR"]) for i, score in enumerate([1, 999, 123_456, 7_777_777], 1)]
        rows = build_operator_points(subs, reference_score(subs), 100_000)
        assert all(0 <= r.normalized_points <= 100_000 for r in rows)
        assert max(r.normalized_points for r in rows) == 100_000

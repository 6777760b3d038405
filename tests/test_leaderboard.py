"""Tests for leaderboard and results queries."""

import pytest

from conftest import cabrillo
from yccc_awards.leaderboard import (
    _dense_rank,
    _with_ties,
    all_time_leaderboard,
    available_years,
    contest_results,
    member_history,
    most_active_operators,
    most_competitive_contests,
    season_leaderboard,
    season_stats,
)


@pytest.fixture
async def season(lifecycle):
    await lifecycle.upload(cabrillo(callsign="K1AR", contest="CQWW", score="5420000"))
    await lifecycle.upload(cabrillo(callsign="W1WEF", contest="CQWW", score="2710000"))
    await lifecycle.upload(cabrillo(callsign="W1WEF", contest="ARRL-DX-CW", score="900", qso_date="2024-02-17"))
    await lifecycle.upload(cabrillo(callsign="K1AR", contest="CQWW", score="100", qso_date="2023-11-25"))
    return lifecycle


class TestRanking:
    def test_dense_rank(self):
        rows = [{"p": 10}, {"p": 10}, {"p": 7}, {"p": 3}, {"p": 3}]
        assert [r["rank"] for r in _dense_rank(rows, "p")] == [1, 1, 2, 3, 3]

    def test_ties_at_cutoff_included(self):
        rows = [{"n": 9}, {"n": 5}, {"n": 5}, {"n": 5}, {"n": 1}]
        assert len(_with_ties(rows, "n", 2)) == 4

    def test_ties_limit_larger_than_rows(self):
        assert len(_with_ties([{"n": 1}], "n", 5)) == 1
        assert _with_ties([], "n", 5) == []


class TestLeaderboards:
    async def test_season(self, season):
        rows = await season_leaderboard(2024)
        assert [(r["callsign"], r["normalized_points"], r["contests"], r["rank"]) for r in rows] == [
            ("W1WEF", 1_500_000, 2, 1),
            ("K1AR", 1_000_000, 1, 2),
        ]

    async def test_other_season_separate(self, season):
        rows = await season_leaderboard(2023)
        assert [(r["callsign"], r["normalized_points"]) for r in rows] == [("K1AR", 1_000_000)]

    async def test_all_time(self, season):
        rows = await all_time_leaderboard()
        k1ar = next(r for r in rows if r["callsign"] == "K1AR")
        assert k1ar["normalized_points"] == 2_000_000
        assert k1ar["contests"] == 2
        assert [r["rank"] for r in rows] == [1, 2]

    async def test_tied_operators_share_rank(self, lifecycle):
        await lifecycle.upload(cabrillo(callsign="K1AR", contest="CQWW", score="1000"))
        await lifecycle.upload(cabrillo(callsign="W1WEF", contest="CQWW", score="1000"))
        rows = await season_leaderboard(2024)
        assert [r["rank"] for r in rows] == [1, 1]

    async def test_empty(self, database):
        assert await season_leaderboard(2024) == []


class TestResults:
    async def test_contest_results(self, season):
        results = await contest_results("cqww", 2024)
        assert results["baseline"] == 5_420_000
        assert [(r["callsign"], r["normalized_points"], r["individual_claimed"]) for r in results["results"]] == [
            ("K1AR", 1_000_000, 5_420_000),
            ("W1WEF", 500_000, 2_710_000),
        ]

    async def test_unknown_contest(self, season):
        results = await contest_results("NAQP-CW", 2024)
        assert results["baseline"] == 0
        assert results["results"] == []

    async def test_member_history(self, season):
        history = await member_history("w1wef", 2024)
        assert sorted((h["contest"], h["normalized"]) for h in history) == [
            ("ARRL-DX-CW", 1_000_000),
            ("CQWW", 500_000),
        ]

    async def test_available_years(self, season):
        assert await available_years() == [2024, 2023]

    async def test_season_stats(self, season):
        stats = await season_stats(2024)
        assert stats["active_members"] == 2
        assert stats["eligible_members"] == 3
        assert stats["submissions"] == 3
        assert stats["contests"] == ["ARRL-DX-CW", "CQWW"]

    async def test_most_competitive_contests(self, season):
        rows = await most_competitive_contests(1)
        assert rows == [{"contest_key": "CQWW", "submission_count": 3, "operator_count": 2}]

    async def test_most_active_operators(self, season):
        rows = await most_active_operators(5)
        assert [(r["callsign"], r["total_score"], r["entry_count"]) for r in rows] == [
            ("K1AR", 2_000_000, 2),
            ("W1WEF", 1_500_000, 2),
        ]

"""Leaderboard and results queries.

Read-only views over the materialized operator points. They see whatever the
last committed recompute wrote; nothing here takes the contest locks.
"""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy import String, cast, distinct, func, select

from .core.eligibility import is_dues_valid_for_year
from .core.models import SubmissionStatus
from .core.scoring import individual_claimed, round_half_up
from .db import get_session_factory
from .sqlmodels import Baseline, Member, OperatorPoints, Submission

logger = logging.getLogger(__name__)

ACCEPTED = SubmissionStatus.ACCEPTED.value


def _dense_rank(rows: list[dict], key: str) -> list[dict]:
    """Assign 1,1,2,... ranks to rows already sorted by ``key`` descending."""
    rank = 0
    previous = None
    for row in rows:
        if previous is None or row[key] < previous:
            rank += 1
        previous = row[key]
        row["rank"] = rank
    return rows


def _with_ties(rows: list[dict], key: str, limit: int) -> list[dict]:
    """Top ``limit`` rows by ``key``, extended with anything tied at the cutoff."""
    if not rows or limit <= 0:
        return []
    cutoff = rows[min(limit, len(rows)) - 1][key]
    return [r for r in rows if r[key] >= cutoff]


async def _leaderboard(season_year: Optional[int]) -> list[dict]:
    total_points = func.round(func.sum(OperatorPoints.normalized_points)).label("total_points")
    if season_year is None:
        contests = func.count(distinct(cast(Submission.season_year, String) + "_" + Submission.contest_key))
    else:
        contests = func.count(distinct(Submission.contest_key))

    query = (
        select(
            OperatorPoints.member_callsign,
            total_points,
            contests.label("contests"),
            func.sum(OperatorPoints.individual_claimed).label("claimed"),
        )
        .join(Submission, OperatorPoints.submission_id == Submission.id)
        .where(Submission.status == ACCEPTED, Submission.is_active.is_(True))
        .group_by(OperatorPoints.member_callsign)
        .order_by(total_points.desc(), OperatorPoints.member_callsign)
    )
    if season_year is not None:
        query = query.where(Submission.season_year == season_year)

    session_factory = get_session_factory()
    async with session_factory() as session:
        result = await session.execute(query)
        rows = result.all()

    return _dense_rank(
        [
            {
                "callsign": r.member_callsign,
                "normalized_points": int(r.total_points or 0),
                "contests": r.contests,
                "claimed_score": int(r.claimed or 0),
            }
            for r in rows
        ],
        "normalized_points",
    )


async def season_leaderboard(season_year: int) -> list[dict]:
    """Operators ranked by total normalized points for one season."""
    return await _leaderboard(season_year)


async def all_time_leaderboard() -> list[dict]:
    """Operators ranked by total normalized points across every season."""
    return await _leaderboard(None)


async def member_history(callsign: str, season_year: int) -> list[dict]:
    """Every scored entry for one member in a season, newest first."""
    session_factory = get_session_factory()
    async with session_factory() as session:
        result = await session.execute(
            select(
                Submission.contest_key,
                Submission.mode,
                Submission.callsign,
                OperatorPoints.individual_claimed,
                OperatorPoints.normalized_points,
                Submission.submitted_at,
            )
            .join(Submission, OperatorPoints.submission_id == Submission.id)
            .where(
                OperatorPoints.member_callsign == callsign.upper(),
                Submission.season_year == season_year,
                Submission.status == ACCEPTED,
                Submission.is_active.is_(True),
            )
            .order_by(Submission.submitted_at.desc())
        )
        rows = result.all()

    return [
        {
            "contest": r.contest_key,
            "mode": r.mode,
            "station": r.callsign,
            "claimed": r.individual_claimed,
            "normalized": round_half_up(r.normalized_points),
            "date": r.submitted_at.isoformat(),
        }
        for r in rows
    ]


async def contest_results(contest_key: str, season_year: int) -> dict:
    """Active submissions for a contest/year with their points and the baseline."""
    contest_key = contest_key.strip().upper()
    session_factory = get_session_factory()
    async with session_factory() as session:
        result = await session.execute(
            select(
                Submission,
                func.max(OperatorPoints.individual_claimed).label("individual"),
                func.max(OperatorPoints.normalized_points).label("normalized"),
            )
            .outerjoin(OperatorPoints, OperatorPoints.submission_id == Submission.id)
            .where(
                Submission.contest_key == contest_key,
                Submission.season_year == season_year,
                Submission.is_active.is_(True),
            )
            .group_by(Submission.id)
            .order_by(Submission.claimed_score.desc(), Submission.id)
        )
        rows = result.all()

        baseline_result = await session.execute(
            select(Baseline).where(Baseline.season_year == season_year, Baseline.contest_key == contest_key)
        )
        baseline = baseline_result.scalar_one_or_none()

    results = []
    for sub, individual, normalized in rows:
        results.append({
            "submission_id": sub.id,
            "callsign": sub.callsign,
            "mode": sub.mode,
            "claimed_score": sub.claimed_score,
            "total_operators": sub.total_operators,
            "effective_operators": sub.effective_operators,
            "member_operators": sub.member_operator_list,
            "status": sub.status,
            "reject_reason": sub.reject_reason,
            "submitted_at": sub.submitted_at.isoformat(),
            "individual_claimed": individual if individual is not None
            else round_half_up(individual_claimed(sub.claimed_score, sub.total_operators)),
            "normalized_points": round_half_up(normalized) if normalized is not None else 0,
        })

    return {
        "contest_key": contest_key,
        "season_year": season_year,
        "baseline": baseline.highest_single_claimed if baseline else 0,
        "results": results,
    }


async def available_years() -> list[int]:
    """Seasons that have at least one submission, newest first."""
    session_factory = get_session_factory()
    async with session_factory() as session:
        result = await session.execute(
            select(distinct(Submission.season_year)).order_by(Submission.season_year.desc())
        )
        return [year for (year,) in result.all()]


async def season_stats(season_year: int) -> dict:
    """Participation figures for one season."""
    session_factory = get_session_factory()
    async with session_factory() as session:
        members_result = await session.execute(select(Member.dues_expiration).where(Member.active_yn.is_(True)))
        dues = [d for (d,) in members_result.all()]

        subs_result = await session.execute(
            select(Submission.member_operators, Submission.contest_key).where(
                Submission.season_year == season_year,
                Submission.is_active.is_(True),
                Submission.status == ACCEPTED,
            )
        )
        submissions = subs_result.all()

    active_callsigns = set()
    contests = set()
    for member_operators, contest_key in submissions:
        contests.add(contest_key)
        active_callsigns.update(c.strip() for c in (member_operators or "").split(",") if c.strip())

    return {
        "season_year": season_year,
        "active_members": len(active_callsigns),
        "eligible_members": sum(1 for d in dues if is_dues_valid_for_year(d, season_year)),
        "submissions": len(submissions),
        "contests": sorted(contests),
    }


async def most_competitive_contests(limit: int = 5) -> list[dict]:
    """Contests with the most scored logs across all years, ties at the cutoff included."""
    submission_count = func.count(distinct(Submission.id)).label("submission_count")
    session_factory = get_session_factory()
    async with session_factory() as session:
        result = await session.execute(
            select(
                Submission.contest_key,
                submission_count,
                func.count(distinct(OperatorPoints.member_callsign)).label("operator_count"),
            )
            .join(OperatorPoints, OperatorPoints.submission_id == Submission.id)
            .where(Submission.is_active.is_(True), Submission.status == ACCEPTED)
            .group_by(Submission.contest_key)
            .order_by(submission_count.desc(), Submission.contest_key)
        )
        rows = [
            {"contest_key": r.contest_key, "submission_count": r.submission_count, "operator_count": r.operator_count}
            for r in result.all()
        ]
    return _with_ties(rows, "submission_count", limit)


async def most_active_operators(limit: int = 5) -> list[dict]:
    """Operators with the highest all-time points, ties at the cutoff included."""
    total_score = func.round(func.sum(OperatorPoints.normalized_points)).label("total_score")
    session_factory = get_session_factory()
    async with session_factory() as session:
        result = await session.execute(
            select(
                OperatorPoints.member_callsign,
                total_score,
                func.count(distinct(OperatorPoints.submission_id)).label("entry_count"),
            )
            .join(Submission, OperatorPoints.submission_id == Submission.id)
            .where(Submission.is_active.is_(True), Submission.status == ACCEPTED)
            .group_by(OperatorPoints.member_callsign)
            .order_by(total_score.desc(), OperatorPoints.member_callsign)
        )
        rows = [
            {"callsign": r.member_callsign, "total_score": int(r.total_score or 0), "entry_count": r.entry_count}
            for r in result.all()
        ]
    return _with_ties(rows, "total_score", limit)

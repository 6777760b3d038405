"""Submission repository — all reads and writes the scoring core performs.

The repository never commits. Callers own the transaction
(``async with session.begin()``), so a recompute and the submit that triggered
it land atomically.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Iterable, Optional

from sqlalchemy import delete, func, insert, select, tuple_, update
from sqlalchemy.ext.asyncio import AsyncSession

from .core.models import Member as RosterMember
from .core.models import OperatorPointsRow, ScoringMethod, SubmissionStatus, SubmissionSummary
from .sqlmodels import Baseline, Member, OperatorPoints, ScoringConfig, Submission

logger = logging.getLogger(__name__)

SCORING_METHOD_KEY = "scoring_method"
DEFAULT_SCORING_METHOD = ScoringMethod.FIXED


def to_summary(sub: Submission) -> SubmissionSummary:
    return SubmissionSummary(
        id=sub.id,
        season_year=sub.season_year,
        contest_key=sub.contest_key,
        mode=sub.mode,
        callsign=sub.callsign,
        category_operator=sub.category_operator,
        claimed_score=sub.claimed_score,
        operators=sub.operator_calls,
        member_operators=sub.member_operator_list,
        effective_operators=sub.effective_operators,
        total_operators=sub.total_operators,
        status=SubmissionStatus(sub.status),
        reject_reason=sub.reject_reason,
        is_active=sub.is_active,
        submitted_at=sub.submitted_at,
    )


class SubmissionRepository:
    """Storage operations over one AsyncSession."""

    def __init__(self, session: AsyncSession):
        self.session = session

    # ─── Roster ──────────────────────────────────────────────────────────

    async def get_all_active_members(self) -> list[RosterMember]:
        result = await self.session.execute(
            select(Member).where(Member.active_yn.is_(True)).order_by(Member.callsign)
        )
        return [
            RosterMember(
                callsign=m.callsign,
                active_yn=m.active_yn,
                aliases=m.aliases or "",
                first_name=m.first_name or "",
                last_name=m.last_name or "",
                dues_expiration=m.dues_expiration,
            )
            for m in result.scalars().all()
        ]

    async def replace_members(self, members: Iterable[RosterMember]) -> int:
        """Replace the roster table with the given snapshot."""
        rows = {}
        for m in members:
            callsign = m.callsign.strip().upper()
            if callsign:
                rows[callsign] = {
                    "callsign": callsign,
                    "active_yn": m.active_yn,
                    "aliases": m.aliases or "",
                    "first_name": m.first_name or None,
                    "last_name": m.last_name or None,
                    "dues_expiration": m.dues_expiration,
                }
        await self.session.execute(delete(Member))
        if rows:
            await self.session.execute(insert(Member), list(rows.values()))
        return len(rows)

    # ─── Submissions ─────────────────────────────────────────────────────

    async def create_submission(self, **fields) -> Submission:
        submission = Submission(**fields)
        self.session.add(submission)
        await self.session.flush()
        return submission

    async def get_submission(self, submission_id: int) -> Optional[Submission]:
        return await self.session.get(Submission, submission_id)

    async def get_active_submission(self, callsign: str, contest_key: str, season_year: int) -> Optional[Submission]:
        result = await self.session.execute(
            select(Submission).where(
                Submission.callsign == callsign,
                Submission.contest_key == contest_key,
                Submission.season_year == season_year,
                Submission.is_active.is_(True),
            )
        )
        return result.scalar_one_or_none()

    async def get_active_submissions_by_contest(self, season_year: int, contest_key: str) -> list[Submission]:
        result = await self.session.execute(
            select(Submission)
            .where(
                Submission.season_year == season_year,
                Submission.contest_key == contest_key,
                Submission.is_active.is_(True),
            )
            .order_by(Submission.id)
        )
        return list(result.scalars().all())

    async def get_active_submissions_for_keys(
        self, keys: Iterable[tuple[int, str]]
    ) -> dict[tuple[int, str, str], Submission]:
        """Active submissions for many (year, contest) keys, indexed by natural key."""
        keys = list(set(keys))
        if not keys:
            return {}
        result = await self.session.execute(
            select(Submission).where(
                tuple_(Submission.season_year, Submission.contest_key).in_(keys),
                Submission.is_active.is_(True),
            )
        )
        return {(s.season_year, s.contest_key, s.callsign): s for s in result.scalars().all()}

    async def count_active_submissions(self, season_year: int, contest_key: str) -> int:
        result = await self.session.execute(
            select(func.count(Submission.id)).where(
                Submission.season_year == season_year,
                Submission.contest_key == contest_key,
                Submission.is_active.is_(True),
            )
        )
        return result.scalar_one()

    async def deactivate_submission(self, callsign: str, contest_key: str, season_year: int) -> int:
        """Flip the active row for a natural key to inactive. Returns rows changed."""
        result = await self.session.execute(
            update(Submission)
            .where(
                Submission.callsign == callsign,
                Submission.contest_key == contest_key,
                Submission.season_year == season_year,
                Submission.is_active.is_(True),
            )
            .values(is_active=False)
        )
        return result.rowcount

    async def get_all_unique_contests(self) -> list[tuple[int, str, int]]:
        """(season_year, contest_key, active submission count), newest year first."""
        result = await self.session.execute(
            select(Submission.season_year, Submission.contest_key, func.count(Submission.id))
            .where(Submission.is_active.is_(True))
            .group_by(Submission.season_year, Submission.contest_key)
            .order_by(Submission.season_year.desc(), Submission.contest_key)
        )
        return [(year, key, count) for year, key, count in result.all()]

    # ─── Operator points ─────────────────────────────────────────────────

    async def delete_operator_points_by_submission(self, submission_id: int) -> None:
        await self.session.execute(
            delete(OperatorPoints)
            .where(OperatorPoints.submission_id == submission_id)
            .execution_options(synchronize_session=False)
        )

    async def delete_operator_points_by_contest(self, season_year: int, contest_key: str) -> None:
        contest_ids = select(Submission.id).where(
            Submission.season_year == season_year,
            Submission.contest_key == contest_key,
        )
        await self.session.execute(
            delete(OperatorPoints)
            .where(OperatorPoints.submission_id.in_(contest_ids))
            .execution_options(synchronize_session=False)
        )

    async def batch_create_operator_points(self, rows: list[OperatorPointsRow]) -> int:
        if not rows:
            return 0
        await self.session.execute(insert(OperatorPoints), [r.model_dump() for r in rows])
        return len(rows)

    async def get_operator_points_by_contest(self, season_year: int, contest_key: str) -> list[OperatorPoints]:
        result = await self.session.execute(
            select(OperatorPoints)
            .join(Submission, OperatorPoints.submission_id == Submission.id)
            .where(Submission.season_year == season_year, Submission.contest_key == contest_key)
            .order_by(OperatorPoints.submission_id, OperatorPoints.member_callsign)
        )
        return list(result.scalars().all())

    # ─── Baselines ───────────────────────────────────────────────────────

    async def get_baseline(self, season_year: int, contest_key: str) -> Optional[Baseline]:
        result = await self.session.execute(
            select(Baseline).where(
                Baseline.season_year == season_year,
                Baseline.contest_key == contest_key,
            )
        )
        return result.scalar_one_or_none()

    async def upsert_baseline(self, season_year: int, contest_key: str, highest_single_claimed: float) -> Baseline:
        baseline = await self.get_baseline(season_year, contest_key)
        if baseline:
            baseline.highest_single_claimed = highest_single_claimed
            baseline.updated_at = datetime.utcnow()
        else:
            baseline = Baseline(
                season_year=season_year,
                contest_key=contest_key,
                highest_single_claimed=highest_single_claimed,
                updated_at=datetime.utcnow(),
            )
            self.session.add(baseline)
        await self.session.flush()
        return baseline

    # ─── Scoring config ──────────────────────────────────────────────────

    async def get_scoring_config(self, key: str) -> Optional[str]:
        result = await self.session.execute(select(ScoringConfig).where(ScoringConfig.key == key))
        row = result.scalar_one_or_none()
        return row.value if row else None

    async def set_scoring_config(self, key: str, value: str) -> None:
        result = await self.session.execute(select(ScoringConfig).where(ScoringConfig.key == key))
        row = result.scalar_one_or_none()
        if row:
            row.value = value
            row.updated_at = datetime.utcnow()
        else:
            self.session.add(ScoringConfig(key=key, value=value, updated_at=datetime.utcnow()))
        await self.session.flush()

    async def get_scoring_method(self) -> ScoringMethod:
        value = await self.get_scoring_config(SCORING_METHOD_KEY)
        if value is None:
            return DEFAULT_SCORING_METHOD
        try:
            return ScoringMethod(value)
        except ValueError:
            logger.warning("Unknown scoring method %r in config, using %s", value, DEFAULT_SCORING_METHOD.value)
            return DEFAULT_SCORING_METHOD

    # ─── Maintenance ─────────────────────────────────────────────────────

    async def clear_all_contest_data(self) -> None:
        """Delete every point row, submission and baseline. Roster and config survive."""
        await self.session.execute(delete(OperatorPoints))
        await self.session.execute(delete(Submission))
        await self.session.execute(delete(Baseline))

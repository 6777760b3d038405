"""Baseline and normalized-points recomputation.

A contest/year's operator points are a materialized view over its active
submissions. Every recompute deletes all point rows for the key and re-inserts
them from scratch against a freshly computed baseline, inside one transaction.
Recomputes for the same (season_year, contest_key) are serialized with an
in-process lock; different keys proceed independently.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Iterable, Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from .core.models import RecomputeResult, ScoringMethod, SubmissionStatus
from .core.scoring import build_operator_points, calculate_max_points, individual_claimed, normalize, reference_score
from .db import get_session_factory
from .repository import SCORING_METHOD_KEY, SubmissionRepository
from .sqlmodels import Submission

logger = logging.getLogger(__name__)

ContestKey = tuple[int, str]


class ScoringEngine:
    """Owns baseline recomputation and the per-contest write locks."""

    def __init__(self, session_factory: Optional[async_sessionmaker[AsyncSession]] = None):
        self._session_factory = session_factory
        self._locks: dict[ContestKey, asyncio.Lock] = {}

    @property
    def sessions(self) -> async_sessionmaker[AsyncSession]:
        return self._session_factory or get_session_factory()

    def lock_for(self, season_year: int, contest_key: str) -> asyncio.Lock:
        key = (season_year, contest_key)
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        return lock

    @asynccontextmanager
    async def locked(self, keys: Iterable[ContestKey]) -> AsyncIterator[None]:
        """Hold the write locks for several keys, acquired in sorted order."""
        acquired: list[asyncio.Lock] = []
        try:
            for year, contest in sorted(set(keys)):
                lock = self.lock_for(year, contest)
                await lock.acquire()
                acquired.append(lock)
            yield
        finally:
            for lock in reversed(acquired):
                lock.release()

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[SubmissionRepository]:
        async with self.sessions() as session:
            async with session.begin():
                yield SubmissionRepository(session)

    # ─── Max points ──────────────────────────────────────────────────────

    async def calculate_max_points(
        self,
        season_year: int,
        contest_key: str,
        method: Optional[ScoringMethod] = None,
        repo: Optional[SubmissionRepository] = None,
    ) -> int:
        """Max points for a contest/year, counting active logs at call time."""
        if repo is None:
            async with self.transaction() as repo:
                return await self.calculate_max_points(season_year, contest_key, method, repo)
        if method is None:
            method = await repo.get_scoring_method()
        count = await repo.count_active_submissions(season_year, contest_key)
        return calculate_max_points(method, count)

    # ─── Recompute ───────────────────────────────────────────────────────

    async def rebuild(
        self,
        repo: SubmissionRepository,
        season_year: int,
        contest_key: str,
        method: ScoringMethod,
    ) -> Optional[RecomputeResult]:
        """Recompute one key inside the caller's transaction.

        The caller must already hold ``lock_for(season_year, contest_key)``.
        Returns None, leaving any previous baseline untouched, when the key has
        no active submissions.
        """
        submissions = await repo.get_active_submissions_by_contest(season_year, contest_key)
        if not submissions:
            logger.info("Recompute %s %d: no active submissions, baseline left as is", contest_key, season_year)
            return None

        max_points = calculate_max_points(method, len(submissions))
        accepted = [s for s in submissions if s.status == SubmissionStatus.ACCEPTED.value]
        reference = reference_score(accepted)

        await repo.upsert_baseline(season_year, contest_key, max(reference, 0.0))

        rows = build_operator_points(accepted, reference, max_points)
        await repo.delete_operator_points_by_contest(season_year, contest_key)
        written = await repo.batch_create_operator_points(rows)

        logger.info(
            "Recompute %s %d: %d logs, reference %.2f, max %d (%s), %d point rows",
            contest_key, season_year, len(submissions), reference, max_points, method.value, written,
        )
        return RecomputeResult(
            season_year=season_year,
            contest_key=contest_key,
            scoring_method=method,
            max_points=max_points,
            reference_score=reference,
            submission_count=len(submissions),
            operator_points_written=written,
        )

    async def recompute_baseline(
        self,
        season_year: int,
        contest_key: str,
        method: Optional[ScoringMethod] = None,
    ) -> Optional[RecomputeResult]:
        """Rebuild the baseline and all operator points for one contest/year."""
        async with self.lock_for(season_year, contest_key):
            async with self.transaction() as repo:
                if method is None:
                    method = await repo.get_scoring_method()
                return await self.rebuild(repo, season_year, contest_key, method)

    async def recompute_all(self) -> list[RecomputeResult]:
        """Rebuild every contest/year that has active submissions."""
        async with self.transaction() as repo:
            keys = [(year, contest) for year, contest, _ in await repo.get_all_unique_contests()]
            method = await repo.get_scoring_method()

        results = []
        for year, contest in keys:
            result = await self.recompute_baseline(year, contest, method)
            if result:
                results.append(result)
        logger.info("Recomputed %d contest/year baselines (%s)", len(results), method.value)
        return results

    # ─── Scoring method ──────────────────────────────────────────────────

    async def get_scoring_method(self) -> ScoringMethod:
        async with self.transaction() as repo:
            return await repo.get_scoring_method()

    async def set_scoring_method(self, method: ScoringMethod | str) -> list[RecomputeResult]:
        """Persist a new scoring method and rescale every contest with it.

        Raises:
            ValueError: ``method`` is not a known scoring method.
        """
        method = ScoringMethod(method)
        async with self.transaction() as repo:
            await repo.set_scoring_config(SCORING_METHOD_KEY, method.value)
        logger.info("Scoring method set to %s", method.value)
        return await self.recompute_all()

    # ─── Preview ─────────────────────────────────────────────────────────

    async def compute_normalized_points(
        self,
        submission: Submission,
        repo: Optional[SubmissionRepository] = None,
    ) -> int:
        """Normalized points one submission would earn under the current state.

        Uses the stored baseline when it is positive, otherwise derives the
        reference from the active accepted submissions. Matches what
        :meth:`recompute_baseline` writes for the same submission set.
        """
        if repo is None:
            async with self.transaction() as repo:
                return await self.compute_normalized_points(submission, repo)

        if submission.status != SubmissionStatus.ACCEPTED.value:
            return 0

        max_points = await self.calculate_max_points(submission.season_year, submission.contest_key, repo=repo)

        baseline = await repo.get_baseline(submission.season_year, submission.contest_key)
        if baseline and baseline.highest_single_claimed > 0:
            reference = baseline.highest_single_claimed
        else:
            active = await repo.get_active_submissions_by_contest(submission.season_year, submission.contest_key)
            accepted = [s for s in active if s.status == SubmissionStatus.ACCEPTED.value]
            reference = reference_score(accepted)

        individual = individual_claimed(submission.claimed_score, submission.total_operators)
        return normalize(individual, reference, max_points)

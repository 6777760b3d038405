"""SQLAlchemy models for award storage.

Submissions are never deleted on resubmission, only deactivated. Baselines and
operator points are derived data: the scoring engine rebuilds them wholesale for
a contest/year whenever its active submission set changes.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Float, ForeignKey, Index, Integer, String, Text, UniqueConstraint, text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


def _split_calls(value: str | None) -> list[str]:
    return [c.strip() for c in (value or "").split(",") if c.strip()]


class Member(Base):
    """Club roster entry, replaced wholesale by roster loads."""

    __tablename__ = "members"

    callsign: Mapped[str] = mapped_column(String(20), primary_key=True)
    active_yn: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    aliases: Mapped[str] = mapped_column(Text, default="")
    first_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    last_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    dues_expiration: Mapped[str | None] = mapped_column(String(10), nullable=True)


class Submission(Base):
    """One uploaded or imported contest log."""

    __tablename__ = "submissions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    season_year: Mapped[int] = mapped_column(Integer, nullable=False)
    contest_year: Mapped[int] = mapped_column(Integer, nullable=False)
    contest_key: Mapped[str] = mapped_column(String(100), nullable=False)
    mode: Mapped[str] = mapped_column(String(20), nullable=False)
    callsign: Mapped[str] = mapped_column(String(20), nullable=False)
    category_operator: Mapped[str | None] = mapped_column(String(50), nullable=True)
    claimed_score: Mapped[int] = mapped_column(Integer, nullable=False)
    operator_list: Mapped[str] = mapped_column(Text, default="")
    member_operators: Mapped[str] = mapped_column(Text, default="")
    effective_operators: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_operators: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    club: Mapped[str | None] = mapped_column(String(200), nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    reject_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    submitted_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    __table_args__ = (
        Index("ix_submissions_contest", "season_year", "contest_key", "is_active"),
        Index(
            "uq_submissions_active_natural_key",
            "season_year", "contest_key", "callsign",
            unique=True,
            sqlite_where=text("is_active = 1"),
            postgresql_where=text("is_active"),
        ),
    )

    @property
    def operator_calls(self) -> list[str]:
        return _split_calls(self.operator_list)

    @property
    def member_operator_list(self) -> list[str]:
        return _split_calls(self.member_operators)


class Baseline(Base):
    """Best individual claimed score for a contest/year."""

    __tablename__ = "baselines"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    season_year: Mapped[int] = mapped_column(Integer, nullable=False)
    contest_key: Mapped[str] = mapped_column(String(100), nullable=False)
    highest_single_claimed: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint("season_year", "contest_key", name="uq_baselines_year_contest"),
    )


class OperatorPoints(Base):
    """Normalized points earned by one member operator on one submission."""

    __tablename__ = "operator_points"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    submission_id: Mapped[int] = mapped_column(Integer, ForeignKey("submissions.id"), nullable=False)
    member_callsign: Mapped[str] = mapped_column(String(20), nullable=False)
    individual_claimed: Mapped[int] = mapped_column(Integer, nullable=False)
    normalized_points: Mapped[float] = mapped_column(Float, nullable=False)

    __table_args__ = (
        Index("ix_operator_points_submission", "submission_id"),
        Index("ix_operator_points_member", "member_callsign"),
    )


class ScoringConfig(Base):
    """Process-wide scoring settings (currently just ``scoring_method``)."""

    __tablename__ = "scoring_config"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    key: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    value: Mapped[str] = mapped_column(Text, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)

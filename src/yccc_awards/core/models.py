"""Pydantic data models — the shared business objects.

The parser, validator, scoring engine and MCP tools all exchange these models.
ORM rows live in ``sqlmodels`` and never leave the storage layer untranslated
except where noted.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class ScoringMethod(str, Enum):
    """How the per-contest maximum points figure is derived."""

    FIXED = "fixed"
    PARTICIPANT_BASED = "participant-based"


class SubmissionStatus(str, Enum):
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class ParsedLog(BaseModel):
    """Structured view of a Cabrillo log."""

    contest: str = Field(description="Normalized (upper-case, trimmed) contest key")
    callsign: str
    claimed_score: int = Field(ge=0)
    category_operator: str = "SINGLE-OP"
    category_assisted: str = ""
    category_transmitter: str = ""
    category_band: str = ""
    category_mode: str = ""
    mode: str = "MIXED"
    operators: list[str] = Field(default_factory=list)
    club: str = ""
    contest_year: int
    qso_count: int = 0


class Member(BaseModel):
    """Roster entry as supplied by the roster provider."""

    callsign: str
    active_yn: bool = True
    aliases: str = ""
    first_name: str = ""
    last_name: str = ""
    dues_expiration: Optional[str] = Field(None, description="MM/DD/YYYY")

    @property
    def alias_list(self) -> list[str]:
        return [a.strip().upper() for a in (self.aliases or "").split(",") if a.strip()]


class ValidationResult(BaseModel):
    """Outcome of the eligibility check for one log."""

    valid: bool
    error: Optional[str] = None
    member_operators: list[str] = Field(default_factory=list)
    excluded_operators: list[str] = Field(default_factory=list)
    excluded_reason: Optional[str] = None
    effective_operators: int = 0
    total_operators: int = 1


class ExclusionWarning(BaseModel):
    """Advisory: some listed operators were dropped but the log was accepted."""

    operators: list[str]
    message: str


class OperatorPointsRow(BaseModel):
    """A computed point row, ready for batch insertion."""

    submission_id: int
    member_callsign: str
    individual_claimed: int
    normalized_points: float = Field(ge=0.0)


class RecomputeResult(BaseModel):
    """Summary of one baseline rebuild."""

    season_year: int
    contest_key: str
    scoring_method: ScoringMethod
    max_points: int
    reference_score: float
    submission_count: int
    operator_points_written: int


class SubmissionSummary(BaseModel):
    """Caller-facing view of a stored submission."""

    id: int
    season_year: int
    contest_key: str
    mode: str
    callsign: str
    category_operator: Optional[str] = None
    claimed_score: int
    operators: list[str] = Field(default_factory=list)
    member_operators: list[str] = Field(default_factory=list)
    effective_operators: int
    total_operators: int
    status: SubmissionStatus
    reject_reason: Optional[str] = None
    is_active: bool = True
    submitted_at: Optional[datetime] = None


class SubmitOutcome(BaseModel):
    """Result of an interactive upload."""

    submission: SubmissionSummary
    normalized_points: int
    max_points: int
    replaced_submission_id: Optional[int] = None
    warning: Optional[ExclusionWarning] = None


class ImportResult(BaseModel):
    """Result of a bulk historical CSV import."""

    imported: int = 0
    skipped: int = 0
    errors: list[str] = Field(default_factory=list)
    sample: list[SubmissionSummary] = Field(default_factory=list)
    recomputed: list[RecomputeResult] = Field(default_factory=list)


class SubmissionNotification(BaseModel):
    """Payload handed to the notification sink after a successful submit."""

    operator_callsign: str
    station_callsign: str
    contest: str
    year: int
    claimed_score: int
    status: SubmissionStatus

"""Submission lifecycle: upload, resubmission and bulk historical import.

At most one submission per (season_year, contest_key, callsign) is active. A
resubmission deactivates the previous row (and drops its points) before the new
row is inserted, then the contest/year is recomputed in the same transaction.
"""

from __future__ import annotations

import csv
import io
import logging
from datetime import datetime
from typing import Iterable, Optional

from .core.cabrillo import (
    MAX_CLAIMED_SCORE,
    MAX_CONTEST_YEAR,
    MIN_CONTEST_YEAR,
    normalize_contest_key,
    parse_cabrillo,
    parse_operators,
    resolve_mode,
)
from .core.eligibility import build_roster_map, validate_submission
from .core.errors import ValidationError
from .core.models import (
    ExclusionWarning,
    ImportResult,
    Member,
    ParsedLog,
    SubmissionNotification,
    SubmissionStatus,
    SubmitOutcome,
    ValidationResult,
)
from .engine import ScoringEngine
from .notifications import LoggingNotifier, NotificationSink, dispatch
from .repository import to_summary

logger = logging.getLogger(__name__)

MAX_IMPORT_ERRORS = 10
IMPORT_SAMPLE_SIZE = 3

# Header aliases accepted by the CSV importer, after upper-casing and replacing '-'/' ' with '_'.
IMPORT_COLUMNS = {
    "CONTEST_YEAR": "year",
    "YEAR": "year",
    "SEASON_YEAR": "year",
    "CONTEST": "contest",
    "CONTEST_KEY": "contest",
    "MODE": "mode",
    "CALLSIGN": "callsign",
    "CALL": "callsign",
    "CATEGORY_OPERATOR": "category_operator",
    "CLAIMED_SCORE": "claimed_score",
    "SCORE": "claimed_score",
    "OPERATORS": "operators",
    "CLUB": "club",
}


def _submission_fields(parsed: ParsedLog, validation: ValidationResult, reject_reason: Optional[str] = None) -> dict:
    operators = parsed.operators or [parsed.callsign]
    return {
        "season_year": parsed.contest_year,
        "contest_year": parsed.contest_year,
        "contest_key": parsed.contest,
        "mode": parsed.mode,
        "callsign": parsed.callsign,
        "category_operator": parsed.category_operator,
        "claimed_score": parsed.claimed_score,
        "operator_list": ",".join(operators),
        "member_operators": ",".join(validation.member_operators),
        "effective_operators": validation.effective_operators,
        "total_operators": max(1, len(operators)),
        "club": parsed.club,
        "status": SubmissionStatus.ACCEPTED.value,
        "reject_reason": reject_reason,
        "submitted_at": datetime.utcnow(),
        "is_active": True,
    }


def parse_import_row(row: dict, current_year: Optional[int] = None) -> ParsedLog:
    """Turn one CSV row into a ParsedLog.

    Raises:
        ValueError: required columns are missing, or numbers are malformed or out of range.
    """
    values: dict[str, str] = {}
    for header, value in row.items():
        if header is None or not isinstance(value, str):
            continue
        column = IMPORT_COLUMNS.get(header.strip().upper().replace("-", "_").replace(" ", "_"))
        if column and value.strip():
            values.setdefault(column, value.strip())

    contest = values.get("contest", "")
    callsign = values.get("callsign", "").upper()
    if not contest:
        raise ValueError("missing CONTEST")
    if not callsign:
        raise ValueError("missing CALLSIGN")

    year_text = values.get("year")
    if year_text is None:
        if current_year is None:
            raise ValueError("missing CONTEST_YEAR")
        year = current_year
    else:
        try:
            year = int(year_text)
        except ValueError:
            raise ValueError(f"invalid CONTEST_YEAR {year_text!r}") from None
        if not MIN_CONTEST_YEAR <= year <= MAX_CONTEST_YEAR:
            raise ValueError(f"CONTEST_YEAR {year} out of range")

    score_text = values.get("claimed_score", "0").replace(",", "")
    try:
        claimed_score = int(score_text)
    except ValueError:
        raise ValueError(f"invalid CLAIMED_SCORE {score_text!r}") from None
    if claimed_score < 0:
        raise ValueError(f"negative CLAIMED_SCORE {claimed_score}")
    if claimed_score > MAX_CLAIMED_SCORE:
        raise ValueError("CLAIMED_SCORE out of range")

    return ParsedLog(
        contest=normalize_contest_key(contest),
        callsign=callsign,
        claimed_score=claimed_score,
        category_operator=values.get("category_operator", "").upper() or "SINGLE-OP",
        mode=resolve_mode("", values.get("mode", ""), contest),
        operators=parse_operators(values.get("operators", "")) or [callsign],
        club=values.get("club", ""),
        contest_year=year,
    )


class SubmissionLifecycle:
    """Creates, replaces and imports submissions, keeping scores current."""

    def __init__(self, engine: ScoringEngine, notifier: Optional[NotificationSink] = None):
        self.engine = engine
        self.notifier = notifier or LoggingNotifier()

    async def load_roster(self, members: Iterable[Member]) -> int:
        """Replace the stored roster with an already-parsed member snapshot."""
        async with self.engine.transaction() as repo:
            count = await repo.replace_members(members)
        logger.info("Roster replaced: %d members", count)
        return count

    async def upload(self, content: str, current_year: Optional[int] = None) -> SubmitOutcome:
        """Interactive upload: parse, validate against the roster, submit.

        Raises:
            ParseError: the log is missing CONTEST or CALLSIGN, or its score is out of range.
            ValidationError: wrong club or no eligible member operators.
        """
        parsed = parse_cabrillo(content, current_year)
        async with self.engine.transaction() as repo:
            roster = await repo.get_all_active_members()

        validation = validate_submission(
            parsed.callsign,
            parsed.operators,
            parsed.club,
            parsed.category_operator,
            parsed.contest_year,
            roster,
        )
        return await self.submit(parsed, validation)

    async def submit(self, parsed: ParsedLog, validation: ValidationResult) -> SubmitOutcome:
        """Store a validated log as the active submission and recompute its contest."""
        if not validation.valid:
            logger.info("Rejected %s for %s %d: %s", parsed.callsign, parsed.contest, parsed.contest_year, validation.error)
            raise ValidationError(validation.error or "Submission rejected")

        year, contest = parsed.contest_year, parsed.contest
        replaced_id = None

        async with self.engine.lock_for(year, contest):
            async with self.engine.transaction() as repo:
                existing = await repo.get_active_submission(parsed.callsign, contest, year)
                if existing:
                    replaced_id = existing.id
                    await repo.delete_operator_points_by_submission(existing.id)
                    await repo.deactivate_submission(parsed.callsign, contest, year)

                submission = await repo.create_submission(**_submission_fields(parsed, validation))
                method = await repo.get_scoring_method()
                recompute = await self.engine.rebuild(repo, year, contest, method)
                normalized = await self.engine.compute_normalized_points(submission, repo)
                summary = to_summary(submission)

        logger.info(
            "Accepted %s for %s %d (id %d%s): %d points",
            parsed.callsign, contest, year, summary.id,
            f", replaces {replaced_id}" if replaced_id else "",
            normalized,
        )

        warning = None
        if validation.excluded_operators:
            warning = ExclusionWarning(
                operators=validation.excluded_operators,
                message=validation.excluded_reason or "",
            )

        await dispatch(self.notifier, (
            SubmissionNotification(
                operator_callsign=op,
                station_callsign=parsed.callsign,
                contest=contest,
                year=year,
                claimed_score=parsed.claimed_score,
                status=SubmissionStatus.ACCEPTED,
            )
            for op in validation.member_operators
        ))

        return SubmitOutcome(
            submission=summary,
            normalized_points=normalized,
            max_points=recompute.max_points if recompute else 0,
            replaced_submission_id=replaced_id,
            warning=warning,
        )

    async def import_csv(self, text: str, current_year: Optional[int] = None) -> ImportResult:
        """Bulk-import historical submissions from CSV.

        Rows that fail eligibility are kept (status accepted, reject_reason set)
        so source data is preserved. Each affected contest/year is recomputed
        once, after all rows are stored.
        """
        result = ImportResult()
        entries: list[ParsedLog] = []

        reader = csv.DictReader(io.StringIO(text))
        for line_no, row in enumerate(reader, start=2):
            try:
                entries.append(parse_import_row(row, current_year))
            except ValueError as exc:
                result.skipped += 1
                if len(result.errors) < MAX_IMPORT_ERRORS:
                    result.errors.append(f"Row {line_no}: {exc}")

        if not entries:
            logger.info("Import: nothing to import (%d rows skipped)", result.skipped)
            return result

        keys = {(p.contest_year, p.contest) for p in entries}
        async with self.engine.locked(keys):
            async with self.engine.transaction() as repo:
                roster_map = build_roster_map(await repo.get_all_active_members())
                active = await repo.get_active_submissions_for_keys(keys)
                method = await repo.get_scoring_method()

                for parsed in entries:
                    validation = validate_submission(
                        parsed.callsign,
                        parsed.operators,
                        parsed.club,
                        parsed.category_operator,
                        parsed.contest_year,
                        roster_map,
                    )
                    natural_key = (parsed.contest_year, parsed.contest, parsed.callsign)
                    previous = active.get(natural_key)
                    if previous:
                        await repo.delete_operator_points_by_submission(previous.id)
                        await repo.deactivate_submission(parsed.callsign, parsed.contest, parsed.contest_year)

                    submission = await repo.create_submission(
                        **_submission_fields(parsed, validation, None if validation.valid else validation.error)
                    )
                    active[natural_key] = submission
                    result.imported += 1
                    if len(result.sample) < IMPORT_SAMPLE_SIZE:
                        result.sample.append(to_summary(submission))

                for year, contest in sorted(keys):
                    recompute = await self.engine.rebuild(repo, year, contest, method)
                    if recompute:
                        result.recomputed.append(recompute)

        logger.info(
            "Import: %d imported, %d skipped, %d contests recomputed",
            result.imported, result.skipped, len(result.recomputed),
        )
        return result

    async def clear_all_contest_data(self) -> None:
        async with self.engine.transaction() as repo:
            await repo.clear_all_contest_data()
        logger.warning("All submissions, baselines and operator points cleared")

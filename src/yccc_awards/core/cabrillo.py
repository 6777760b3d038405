"""Cabrillo contest log parser.

Cabrillo is line oriented: ``KEY: value`` header lines followed by ``QSO:``
detail lines. Only the header fields needed for award scoring are read; QSO
lines contribute the contest year and the fallback score.
"""

from __future__ import annotations

import logging
import re
from datetime import date
from typing import Optional

from .errors import ParseError
from .models import ParsedLog

logger = logging.getLogger(__name__)

MIN_CONTEST_YEAR = 1900
MAX_CONTEST_YEAR = 2100

# Fallback scorer: each QSO line is worth this many points when no claimed score is given.
POINTS_PER_QSO = 2

# Largest score a submissions row can hold (SQLite INTEGER).
MAX_CLAIMED_SCORE = 2**63 - 1

_QSO_DATE = re.compile(r"^(\d{4})-\d{2}-\d{2}$")
_OPERATOR_SPLIT = re.compile(r"[,\s]+")
_CALLSIGN_TOKEN = re.compile(r"^[A-Z0-9]+$")
_LEADING_INT = re.compile(r"^\d+")


def normalize_contest_key(contest: str) -> str:
    return contest.strip().upper()


def _map_mode(value: str, *, allow_passthrough: bool) -> Optional[str]:
    mode = value.strip().upper()
    if "CW" in mode:
        return "CW"
    if "SSB" in mode or "PHONE" in mode:
        return "SSB"
    if "RTTY" in mode or "DIGITAL" in mode:
        return "RTTY"
    if "MIXED" in mode:
        return "MIXED"
    return mode if allow_passthrough else None


def resolve_mode(category_mode: str, mode: str, contest_name: str) -> str:
    """Pick the log's mode: CATEGORY-MODE, then MODE, then the contest name, then MIXED."""
    for declared in (category_mode, mode):
        if declared and declared.strip():
            return _map_mode(declared, allow_passthrough=True)
    return _map_mode(contest_name, allow_passthrough=False) or "MIXED"


def parse_operators(value: str) -> list[str]:
    """Tokenize an OPERATORS value into unique upper-case callsigns."""
    operators: list[str] = []
    for token in _OPERATOR_SPLIT.split(value.upper()):
        token = token.strip()
        if token and _CALLSIGN_TOKEN.match(token) and token not in operators:
            operators.append(token)
    return operators


def parse_claimed_score(value: str) -> int:
    """Read the leading integer of a score field, ignoring thousands separators.

    Returns 0 when nothing numeric is present.
    """
    match = _LEADING_INT.match(value.strip().replace(",", ""))
    return int(match.group(0)) if match else 0


def extract_contest_year(qso_lines: list[str], current_year: Optional[int] = None) -> int:
    """Year of the first in-range QSO date, else the current calendar year."""
    for line in qso_lines:
        for token in line.split():
            match = _QSO_DATE.match(token)
            if not match:
                continue
            year = int(match.group(1))
            if MIN_CONTEST_YEAR <= year <= MAX_CONTEST_YEAR:
                return year
    return current_year if current_year is not None else date.today().year


def parse_cabrillo(content: str, current_year: Optional[int] = None) -> ParsedLog:
    """Parse Cabrillo text into a ParsedLog.

    Args:
        content: Raw log text.
        current_year: Year used when no QSO line carries a date. Defaults to today.

    Raises:
        ParseError: CONTEST or CALLSIGN is missing, or CLAIMED-SCORE is out of range.
    """
    fields: dict[str, str] = {}
    operators: list[str] = []
    qso_lines: list[str] = []

    for raw_line in content.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        if line.upper().startswith("QSO:"):
            qso_lines.append(line)
            continue

        key, sep, value = line.partition(":")
        if not sep:
            continue
        key = key.strip().upper()
        value = value.strip()

        if key == "OPERATORS":
            for op in parse_operators(value):
                if op not in operators:
                    operators.append(op)
        else:
            fields[key] = value

    contest = fields.get("CONTEST", "")
    if not contest:
        raise ParseError("Missing CONTEST field in Cabrillo file", field="CONTEST")

    callsign = fields.get("CALLSIGN", "").upper()
    if not callsign:
        raise ParseError("Missing CALLSIGN field in Cabrillo file", field="CALLSIGN")

    claimed_score = parse_claimed_score(fields.get("CLAIMED-SCORE", ""))
    if claimed_score > MAX_CLAIMED_SCORE:
        raise ParseError("CLAIMED-SCORE out of range in Cabrillo file", field="CLAIMED-SCORE")
    if claimed_score == 0:
        claimed_score = len(qso_lines) * POINTS_PER_QSO
        logger.debug("%s: no claimed score, using %d QSOs x %d", callsign, len(qso_lines), POINTS_PER_QSO)

    category_mode = fields.get("CATEGORY-MODE", "").upper()

    return ParsedLog(
        contest=normalize_contest_key(contest),
        callsign=callsign,
        claimed_score=claimed_score,
        category_operator=fields.get("CATEGORY-OPERATOR", "").upper() or "SINGLE-OP",
        category_assisted=fields.get("CATEGORY-ASSISTED", "").upper(),
        category_transmitter=fields.get("CATEGORY-TRANSMITTER", "").upper(),
        category_band=fields.get("CATEGORY-BAND", "").upper(),
        category_mode=category_mode,
        mode=resolve_mode(category_mode, fields.get("MODE", ""), contest),
        operators=operators or [callsign],
        club=fields.get("CLUB", ""),
        contest_year=extract_contest_year(qso_lines, current_year),
        qso_count=len(qso_lines),
    )

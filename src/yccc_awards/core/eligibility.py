"""Eligibility rules for award submissions.

A log counts when it is entered for the club and at least one listed operator
is a member whose dues run through the end of the contest year. Everything here
is a pure function of the log fields and a roster snapshot.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Iterable, Optional

from .models import Member, ValidationResult

logger = logging.getLogger(__name__)

CLUB_NAME = "Yankee Clipper Contest Club"


def is_dues_valid_for_year(dues_expiration: Optional[str], year: int) -> bool:
    """True when an ``MM/DD/YYYY`` expiration falls on or after 12/31 of ``year``."""
    if not dues_expiration:
        return False
    parts = dues_expiration.strip().split("/")
    if len(parts) != 3:
        return False
    try:
        month, day, expiration_year = (int(p) for p in parts)
        expires = date(expiration_year, month, day)
    except ValueError:
        return False
    return expires >= date(year, 12, 31)


def build_roster_map(roster: Iterable[Member]) -> dict[str, Member]:
    """Map every primary and alias callsign of an active member to that member."""
    roster_map: dict[str, Member] = {}
    for member in roster:
        if not member.active_yn:
            continue
        roster_map[member.callsign.upper()] = member
        for alias in member.alias_list:
            roster_map[alias] = member
    return roster_map


def validate_submission(
    callsign: str,
    operators: list[str],
    club: str,
    category_operator: str,
    contest_year: int,
    roster: Iterable[Member] | dict[str, Member],
) -> ValidationResult:
    """Decide whether a log is accepted and which operators earn points.

    ``roster`` may be a member list or a map already built by
    :func:`build_roster_map` (bulk import builds it once per file).
    """
    operators_to_check = operators or [callsign]
    total_operators = len(operators_to_check)

    if club.strip().upper() != CLUB_NAME.upper():
        return ValidationResult(
            valid=False,
            error=f"CLUB must be '{CLUB_NAME}' (found: '{club}')",
            total_operators=total_operators,
        )

    roster_map = roster if isinstance(roster, dict) else build_roster_map(roster)

    member_operators: list[str] = []
    expired_operators: list[str] = []
    for op in operators_to_check:
        member = roster_map.get(op.upper())
        if member is None:
            continue
        if is_dues_valid_for_year(member.dues_expiration, contest_year):
            if member.callsign not in member_operators:
                member_operators.append(member.callsign)
        elif member.callsign not in expired_operators:
            expired_operators.append(member.callsign)

    if not member_operators:
        if expired_operators:
            error = (
                f"All operators have expired dues for {contest_year}: {', '.join(expired_operators)}. "
                f"At least one operator must have current dues through 12/31/{contest_year}."
            )
        else:
            error = "No YCCC member operators found in submission."
        return ValidationResult(
            valid=False,
            error=error,
            excluded_operators=expired_operators,
            total_operators=total_operators,
        )

    excluded_reason = None
    if expired_operators:
        excluded_reason = (
            f"The following operators were excluded due to expired dues for {contest_year}: "
            f"{', '.join(expired_operators)}. They must have current dues through 12/31/{contest_year}."
        )
        logger.info("%s (%s): excluding expired operators %s", callsign, category_operator, expired_operators)

    return ValidationResult(
        valid=True,
        member_operators=member_operators,
        excluded_operators=expired_operators,
        excluded_reason=excluded_reason,
        effective_operators=len(member_operators),
        total_operators=total_operators,
    )

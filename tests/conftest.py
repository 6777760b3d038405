"""Shared fixtures: a fresh SQLite database per test and a seeded roster."""

import pytest

from yccc_awards import db
from yccc_awards.core.models import Member
from yccc_awards.engine import ScoringEngine
from yccc_awards.lifecycle import SubmissionLifecycle

CLUB = "Yankee Clipper Contest Club"

ROSTER = [
    Member(callsign="K1AR", dues_expiration="12/31/2025"),
    Member(callsign="W1WEF", dues_expiration="12/31/2024"),
    Member(callsign="K1EP", aliases="KC1XX, W1XX", dues_expiration="06/30/2026"),
    Member(callsign="N1UR", dues_expiration="12/31/2023"),
    Member(callsign="K1TTT", active_yn=False, dues_expiration="12/31/2030"),
]


def cabrillo(
    callsign="K1AR",
    contest="CQWW",
    score="5420000",
    operators=None,
    club=CLUB,
    qso_date="2024-11-30",
    extra="",
):
    """Build a minimal Cabrillo log."""
    lines = ["START-OF-LOG: 3.0"]
    if contest is not None:
        lines.append(f"CONTEST: {contest}")
    if callsign is not None:
        lines.append(f"CALLSIGN: {callsign}")
    lines.append("CATEGORY-OPERATOR: SINGLE-OP" if not operators else "CATEGORY-OPERATOR: MULTI-OP")
    lines.append("CATEGORY-MODE: CW")
    if score is not None:
        lines.append(f"CLAIMED-SCORE: {score}")
    if club is not None:
        lines.append(f"CLUB: {club}")
    if operators:
        lines.append(f"OPERATORS: {operators}")
    if extra:
        lines.append(extra)
    lines.append(f"QSO: 14025 CW {qso_date} 0000 {callsign or 'K1AR'} 599 05 DL1AA 599 14")
    lines.append(f"QSO: 14026 CW {qso_date} 0001 {callsign or 'K1AR'} 599 05 JA1BB 599 25")
    lines.append("END-OF-LOG:")
    return "\n".join(lines)


@pytest.fixture
async def database(tmp_path, monkeypatch):
    monkeypatch.setenv("DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path / 'awards.db'}")
    await db.close_db()
    await db.init_db()
    yield
    await db.close_db()


@pytest.fixture
def engine(database):
    return ScoringEngine()


class RecordingNotifier:
    def __init__(self, fail=False):
        self.sent = []
        self.fail = fail

    async def send(self, notification):
        if self.fail:
            raise RuntimeError("mail server down")
        self.sent.append(notification)


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
async def lifecycle(engine, notifier):
    service = SubmissionLifecycle(engine, notifier=notifier)
    await service.load_roster(ROSTER)
    return service

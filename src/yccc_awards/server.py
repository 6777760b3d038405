"""YCCC Contest Awards MCP Server.

FastMCP server exposing log upload, historical import, leaderboards and the
admin scoring controls.
Run: yccc-awards-mcp
"""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from datetime import date
from typing import AsyncIterator

from mcp.server.fastmcp import FastMCP
from mcp.types import ToolAnnotations

from .core.errors import ParseError, ValidationError
from .core.models import Member
from .db import close_db, init_db
from .engine import ScoringEngine
from .leaderboard import (
    all_time_leaderboard,
    available_years,
    contest_results,
    member_history,
    most_active_operators,
    most_competitive_contests,
    season_leaderboard,
    season_stats,
)
from .lifecycle import SubmissionLifecycle
from .notifications import notifier_from_env

logger = logging.getLogger(__name__)

READ_ONLY = ToolAnnotations(readOnlyHint=True, destructiveHint=False, idempotentHint=True, openWorldHint=False)
WRITE = ToolAnnotations(readOnlyHint=False, destructiveHint=False, idempotentHint=False, openWorldHint=False)
IDEMPOTENT_WRITE = ToolAnnotations(readOnlyHint=False, destructiveHint=False, idempotentHint=True, openWorldHint=False)
DESTRUCTIVE = ToolAnnotations(readOnlyHint=False, destructiveHint=True, idempotentHint=True, openWorldHint=False)

engine = ScoringEngine()
lifecycle = SubmissionLifecycle(engine)


@asynccontextmanager
async def lifespan(server: FastMCP) -> AsyncIterator[None]:
    """Configure logging, create tables, pick the notification sink."""
    logging.basicConfig(
        level=os.environ.get("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )
    await init_db()
    lifecycle.notifier = notifier_from_env()
    try:
        yield
    finally:
        await close_db()


mcp = FastMCP(
    "YCCC Contest Awards",
    instructions="Submit Cabrillo contest logs for the Yankee Clipper Contest Club award program and query normalized-points leaderboards.",
    lifespan=lifespan,
)


def _season(year: int) -> int:
    return year if year > 0 else date.today().year


# ─── Submissions ────────────────────────────────────────────────────────────


@mcp.tool(annotations=WRITE)
async def submit_log(content: str) -> dict:
    """Submit a Cabrillo log. Replaces any earlier log from the same callsign for that contest/year.

    Args:
        content: Full Cabrillo log text.
    """
    try:
        outcome = await lifecycle.upload(content)
    except (ParseError, ValidationError) as exc:
        return {"status": "rejected", "error": str(exc)}

    sub = outcome.submission
    return {
        "status": sub.status.value,
        "submission_id": sub.id,
        "contest": sub.contest_key,
        "year": sub.season_year,
        "mode": sub.mode,
        "callsign": sub.callsign,
        "claimed_score": sub.claimed_score,
        "normalized_points": outcome.normalized_points,
        "max_points": outcome.max_points,
        "member_operators": sub.member_operators,
        "replaced_submission_id": outcome.replaced_submission_id,
        "warning": outcome.warning.message if outcome.warning else None,
    }


@mcp.tool(annotations=WRITE)
async def import_historical_csv(csv_text: str) -> dict:
    """Bulk-import historical submissions from CSV and recompute each affected contest once.

    Columns (header row, case-insensitive): CONTEST_YEAR, CONTEST, MODE, CALLSIGN,
    CATEGORY_OPERATOR, CLAIMED_SCORE, OPERATORS, CLUB.

    Args:
        csv_text: CSV file contents.
    """
    result = await lifecycle.import_csv(csv_text)
    return {
        "imported": result.imported,
        "skipped": result.skipped,
        "errors": result.errors,
        "sample": [s.model_dump(mode="json") for s in result.sample],
        "recomputed": [r.model_dump(mode="json") for r in result.recomputed],
        "summary": f"Imported {result.imported} submissions, skipped {result.skipped} rows, "
        f"recomputed {len(result.recomputed)} contests.",
    }


# ─── Leaderboards ───────────────────────────────────────────────────────────


@mcp.tool(annotations=READ_ONLY)
async def awards_leaderboard(year: int = 0) -> dict:
    """Season leaderboard of member operators by total normalized points.

    Args:
        year: Season year. 0 means the current year.
    """
    season = _season(year)
    rows = await season_leaderboard(season)
    return {"season_year": season, "leaderboard": rows, "count": len(rows)}


@mcp.tool(annotations=READ_ONLY)
async def awards_all_time() -> dict:
    """All-time leaderboard across every season."""
    rows = await all_time_leaderboard()
    return {"leaderboard": rows, "count": len(rows)}


@mcp.tool(annotations=READ_ONLY)
async def awards_member(callsign: str, year: int = 0) -> dict:
    """A member's season total, rank and per-contest history.

    Args:
        callsign: Member callsign.
        year: Season year. 0 means the current year.
    """
    season = _season(year)
    callsign = callsign.strip().upper()
    history = await member_history(callsign, season)
    standing = next((r for r in await season_leaderboard(season) if r["callsign"] == callsign), None)
    return {
        "callsign": callsign,
        "season_year": season,
        "total_points": standing["normalized_points"] if standing else 0,
        "rank": standing["rank"] if standing else 0,
        "contests": standing["contests"] if standing else 0,
        "history": history,
    }


@mcp.tool(annotations=READ_ONLY)
async def awards_contest(contest_key: str, year: int = 0) -> dict:
    """Results and baseline for one contest/year.

    Args:
        contest_key: Contest key as written in the CONTEST: field (e.g. 'CQ-WW-CW').
        year: Contest year. 0 means the current year.
    """
    return await contest_results(contest_key, _season(year))


@mcp.tool(annotations=READ_ONLY)
async def awards_overview(year: int = 0) -> dict:
    """Season statistics plus the most competitive contests and most active operators.

    Args:
        year: Season year. 0 means the current year.
    """
    season = _season(year)
    return {
        "stats": await season_stats(season),
        "years": await available_years(),
        "most_competitive_contests": await most_competitive_contests(5),
        "most_active_operators": await most_active_operators(5),
    }


# ─── Admin ──────────────────────────────────────────────────────────────────


@mcp.tool(annotations=READ_ONLY)
async def admin_get_scoring_method() -> dict:
    """Current scoring method ('fixed' or 'participant-based')."""
    method = await engine.get_scoring_method()
    return {"scoring_method": method.value}


@mcp.tool(annotations=IDEMPOTENT_WRITE)
async def admin_set_scoring_method(method: str) -> dict:
    """Change the scoring method and rescale every contest.

    Args:
        method: 'fixed' (1,000,000 max) or 'participant-based' (50,000 per log, capped at 1,000,000).
    """
    results = await engine.set_scoring_method(method)
    return {
        "scoring_method": method,
        "recomputed": [r.model_dump(mode="json") for r in results],
    }


@mcp.tool(annotations=IDEMPOTENT_WRITE)
async def admin_recompute(contest_key: str = "", year: int = 0) -> dict:
    """Recompute baselines and operator points. Leave contest_key empty to recompute everything.

    Args:
        contest_key: Contest to recompute, or empty for all contests.
        year: Contest year. 0 means the current year.
    """
    if not contest_key:
        results = await engine.recompute_all()
        return {"recomputed": [r.model_dump(mode="json") for r in results]}

    result = await engine.recompute_baseline(_season(year), contest_key.strip().upper())
    return {"recomputed": [result.model_dump(mode="json")] if result else []}


@mcp.tool(annotations=DESTRUCTIVE)
async def admin_load_roster(members: list[dict]) -> dict:
    """Replace the member roster.

    Args:
        members: Member records with callsign, active_yn, aliases (comma-separated),
                 first_name, last_name and dues_expiration (MM/DD/YYYY).
    """
    count = await lifecycle.load_roster(Member.model_validate(m) for m in members)
    return {"count": count, "summary": f"Loaded {count} members"}


@mcp.tool(annotations=DESTRUCTIVE)
async def admin_clear_contest_data() -> dict:
    """Delete all submissions, baselines and operator points. The roster is kept."""
    await lifecycle.clear_all_contest_data()
    return {"cleared": True}


def main():
    """Entry point for the CLI command."""
    mcp.run()


if __name__ == "__main__":
    main()

"""Tests for club and dues eligibility."""

import pytest

from conftest import CLUB, ROSTER
from yccc_awards.core.eligibility import build_roster_map, is_dues_valid_for_year, validate_submission


def validate(callsign="K1AR", operators=None, club=CLUB, category="SINGLE-OP", year=2024, roster=ROSTER):
    return validate_submission(callsign, operators if operators is not None else [callsign], club, category, year, roster)


class TestDues:
    @pytest.mark.parametrize("dues,year,expected", [
        ("12/31/2024", 2024, True),
        ("01/15/2025", 2024, True),
        ("12/30/2024", 2024, False),
        ("1/1/2024", 2024, False),
        ("6/30/2026", 2025, True),
        (None, 2024, False),
        ("", 2024, False),
        ("2024-12-31", 2024, False),
        ("13/01/2025", 2024, False),
        ("ab/cd/efgh", 2024, False),
    ])
    def test_is_dues_valid_for_year(self, dues, year, expected):
        assert is_dues_valid_for_year(dues, year) is expected


class TestRosterMap:
    def test_aliases_resolve_to_member(self):
        roster_map = build_roster_map(ROSTER)
        assert roster_map["KC1XX"].callsign == "K1EP"
        assert roster_map["W1XX"].callsign == "K1EP"

    def test_inactive_members_left_out(self):
        assert "K1TTT" not in build_roster_map(ROSTER)


class TestClubGate:
    def test_wrong_club_rejected(self):
        result = validate(club="ARRL")
        assert not result.valid
        assert "ARRL" in result.error

    def test_club_case_and_whitespace_insensitive(self):
        assert validate(club="  yankee clipper contest club ").valid

    def test_empty_club_rejected(self):
        assert not validate(club="").valid


class TestOperatorEligibility:
    def test_single_eligible_operator(self):
        result = validate()
        assert result.valid
        assert result.member_operators == ["K1AR"]
        assert result.excluded_operators == []
        assert result.excluded_reason is None
        assert result.effective_operators == 1
        assert result.total_operators == 1

    def test_no_roster_match_rejected(self):
        result = validate(callsign="DL1AA")
        assert not result.valid
        assert result.error == "No YCCC member operators found in submission."

    def test_all_expired_rejected(self):
        result = validate(callsign="N1UR")
        assert not result.valid
        assert "expired dues for 2024" in result.error
        assert result.excluded_operators == ["N1UR"]

    def test_partial_exclusion_accepted(self):
        result = validate(callsign="K1AR", operators=["K1AR", "N1UR"], category="MULTI-ONE")
        assert result.valid
        assert result.member_operators == ["K1AR"]
        assert result.excluded_operators == ["N1UR"]
        assert "N1UR" in result.excluded_reason

    def test_unknown_operators_dropped_but_counted(self):
        result = validate(callsign="K1AR", operators=["K1AR", "DL1AA", "JA1BB"])
        assert result.valid
        assert result.member_operators == ["K1AR"]
        assert result.excluded_operators == []
        assert result.effective_operators == 1
        assert result.total_operators == 3

    def test_alias_resolves_to_primary_call(self):
        result = validate(callsign="KC1XX", operators=["KC1XX", "W1XX", "K1EP"], year=2025)
        assert result.valid
        assert result.member_operators == ["K1EP"]

    def test_inactive_member_not_eligible(self):
        assert not validate(callsign="K1TTT").valid

    def test_dues_checked_against_contest_year(self):
        assert validate(callsign="W1WEF", year=2024).valid
        assert not validate(callsign="W1WEF", year=2025).valid

    def test_empty_operator_list_falls_back_to_callsign(self):
        result = validate(callsign="K1AR", operators=[])
        assert result.valid
        assert result.member_operators == ["K1AR"]

    def test_prebuilt_roster_map(self):
        assert validate(roster=build_roster_map(ROSTER)).valid

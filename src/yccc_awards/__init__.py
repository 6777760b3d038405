"""YCCC Contest Awards.

Validates Cabrillo contest logs against the club roster, normalizes each
operator's score against the best entry in the same contest/year, and keeps a
recomputable leaderboard behind an MCP tool server.
"""

__version__ = "0.1.0"

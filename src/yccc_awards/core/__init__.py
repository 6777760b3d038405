"""Core award logic — Cabrillo parsing, eligibility rules, scoring math, and data models.

Nothing in here touches SQLAlchemy or MCP. The storage layer, the scoring
engine and the MCP tools all build on these pure functions and models.
"""

"""Exception hierarchy for log submission."""

from __future__ import annotations


class AwardsError(Exception):
    """Base class for submission errors surfaced to callers."""


class ParseError(AwardsError):
    """The log could not be turned into a ParsedLog."""

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.field = field


class ValidationError(AwardsError):
    """The log parsed but is not eligible for scoring."""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason

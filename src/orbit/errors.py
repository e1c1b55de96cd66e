"""Domain errors raised by the ledger, workflows and ranking.

Each error carries the HTTP status the API layer renders it with, so
callers can tell "not found" from "already canceled" from "forbidden".
"""

from __future__ import annotations


class LedgerError(ValueError):
    """Base class for expected business failures."""

    status_code: int = 400


class NotFoundError(LedgerError):
    """A referenced achievement, award or user does not exist."""

    status_code = 404


class ConflictError(LedgerError):
    """The operation conflicts with current state (e.g. double cancel)."""

    status_code = 409


class ForbiddenError(LedgerError):
    """The acting user lacks the capability or ownership required."""

    status_code = 403


class InvalidError(LedgerError):
    """Malformed input such as a negative amount or an empty reason."""

    status_code = 422

"""Custom exception types for the household ledger."""

from __future__ import annotations


class ValidationError(ValueError):
    """Raised when caller supplied data violates a precondition."""


class NotFoundError(LookupError):
    """Raised when a requested record does not exist."""


class ConflictError(Exception):
    """Raised by a store when a concurrent modification blocks the unit of work."""


class TransientFailure(Exception):
    """Raised when a unit of work keeps conflicting after every retry."""

    def __init__(self, message: str, attempts: int) -> None:
        super().__init__(message)
        self.attempts = attempts

from __future__ import annotations

from homeledger.exceptions import NotFoundError, TransientFailure, ValidationError


def test_transient_failure_attempts() -> None:
    error = TransientFailure("Ledger busy", attempts=3)

    assert error.attempts == 3
    assert "Ledger busy" in str(error)


def test_validation_error_is_value_error() -> None:
    assert issubclass(ValidationError, ValueError)
    assert issubclass(NotFoundError, LookupError)

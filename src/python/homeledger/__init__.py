"""Public household ledger package exports."""

from __future__ import annotations

from homeledger.__version__ import __version__
from homeledger.exceptions import (
    ConflictError,
    NotFoundError,
    TransientFailure,
    ValidationError,
)
from homeledger.ledger import LedgerClient
from homeledger.models import (
    AccountDTO,
    AccountGroupRecord,
    AccountRecord,
    BalanceMismatch,
    TransferDTO,
    TransferRecord,
)
from homeledger.persistence import PersistenceBackend
from homeledger.repository import Repository

__all__ = [
    "__version__",
    "LedgerClient",
    "ConflictError",
    "NotFoundError",
    "TransientFailure",
    "ValidationError",
    "AccountDTO",
    "AccountGroupRecord",
    "AccountRecord",
    "BalanceMismatch",
    "TransferDTO",
    "TransferRecord",
    "PersistenceBackend",
    "Repository",
]

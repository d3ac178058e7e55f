"""Persistence interfaces for ledger storage backends."""

from __future__ import annotations

from abc import ABC, abstractmethod
import datetime as dt
from pathlib import Path

from homeledger.models import (
    AccountDTO,
    AccountGroupRecord,
    AccountRecord,
    TransferDTO,
    TransferRecord,
)


class PersistenceBackend(ABC):
    """Abstract interface for repository backends.

    Backends must give every unit of work opened with ``begin_transaction``
    serializable isolation against other units touching the same accounts,
    and must raise ``ConflictError`` when a concurrent unit blocks it.
    """

    @abstractmethod
    def __init__(self, db_path: str | Path) -> None:
        """Initialize the backend with a storage path."""

    @abstractmethod
    def connect(self) -> None:
        """Establish a backend connection."""

    @abstractmethod
    def close(self) -> None:
        """Close the backend connection."""

    @abstractmethod
    def initialize_schema(self) -> None:
        """Create storage structures when missing."""

    @abstractmethod
    def begin_transaction(self) -> None:
        """Start a transaction."""

    @abstractmethod
    def commit(self) -> None:
        """Commit the active transaction."""

    @abstractmethod
    def rollback(self) -> None:
        """Rollback the active transaction."""

    @abstractmethod
    def insert_account(self, key: str, account: AccountDTO) -> AccountRecord:
        """Insert an account whose balance starts at its opening balance."""

    @abstractmethod
    def get_account(self, key: str) -> AccountRecord:
        """Return one account or raise NotFoundError."""

    @abstractmethod
    def list_accounts(self, group_id: str | None = None) -> list[AccountRecord]:
        """Return accounts ordered by name."""

    @abstractmethod
    def update_account(
        self,
        key: str,
        name: str | None = None,
        account_type: str | None = None,
        group_id: str | None = None,
        clear_group: bool = False,
    ) -> AccountRecord:
        """Update descriptive account fields. Never touches balance."""

    @abstractmethod
    def delete_account(self, key: str) -> None:
        """Delete an account row."""

    @abstractmethod
    def set_account_balance(self, key: str, balance: int) -> None:
        """Overwrite the cached balance. Reserved for the ledger engine."""

    @abstractmethod
    def insert_account_group(self, key: str, name: str) -> AccountGroupRecord:
        """Insert an account group."""

    @abstractmethod
    def list_account_groups(self) -> list[AccountGroupRecord]:
        """Return account groups ordered by name."""

    @abstractmethod
    def rename_account_group(self, key: str, name: str) -> AccountGroupRecord:
        """Rename an account group."""

    @abstractmethod
    def delete_account_group(self, key: str) -> None:
        """Null out member back-references and delete the group."""

    @abstractmethod
    def insert_transfer(self, key: str, transfer: TransferDTO) -> TransferRecord:
        """Insert a transfer row."""

    @abstractmethod
    def get_transfer(self, key: str) -> TransferRecord:
        """Return one transfer or raise NotFoundError."""

    @abstractmethod
    def list_transfers(
        self,
        start_date: dt.date | None = None,
        end_date: dt.date | None = None,
        month_key: str | None = None,
        account_id: str | None = None,
    ) -> list[TransferRecord]:
        """Return transfers newest first, optionally filtered."""

    @abstractmethod
    def replace_transfer(self, key: str, transfer: TransferDTO) -> TransferRecord:
        """Overwrite the editable fields of a transfer row."""

    @abstractmethod
    def delete_transfer(self, key: str) -> None:
        """Delete a transfer row."""

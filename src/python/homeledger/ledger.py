"""Ledger engine: transfers and the account balances they move."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, TypeVar
import datetime as dt
import json
import logging
import os
import time
import uuid

from homeledger.deltas import touched_accounts, transfer_deltas
from homeledger.exceptions import ConflictError, TransientFailure, ValidationError
from homeledger.models import (
    AccountDTO,
    AccountGroupRecord,
    AccountRecord,
    BalanceMismatch,
    TransferDTO,
    TransferRecord,
    normalize_account_type,
)
from homeledger.persistence import PersistenceBackend
from homeledger.repository import Repository
from homeledger.schema import (
    DEFAULT_BUSY_TIMEOUT_SECONDS,
    DEFAULT_MAX_ATTEMPTS,
    DEFAULT_RETRY_DELAY_SECONDS,
)

T = TypeVar("T")

# Configure logging
logger = logging.getLogger(__name__)
log_level = os.environ.get('LOGGING_LEVEL', 'INFO').upper()
logger.setLevel(getattr(logging, log_level, logging.INFO))
if not logger.handlers:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter('%(levelname)s - %(name)s - %(message)s'))
    logger.addHandler(handler)

CONFIG_ENV_VAR = "HOMELEDGER_CONFIG"
DEFAULT_CONFIG_PATH = Path.home() / ".homeledger" / "config.json"


def _new_key() -> str:
    return uuid.uuid4().hex


class LedgerClient:
    """Coordinate transfers and keep every account balance consistent.

    Each transfer operation runs as a single unit of work: the stored
    transfer and the balances of every account it touches are read, the net
    delta per account is computed, and balances plus the transfer row are
    written before one commit. Units blocked by a concurrent writer are rerun
    from their first read.
    """

    def __init__(
        self,
        db_path: str | Path | None = None,
        repository: PersistenceBackend | None = None,
        config: dict[str, Any] | None = None,
        max_attempts: int | None = None,
        retry_delay: float | None = None,
    ) -> None:
        """Initialize the client with a repository backend.

        Args:
            db_path: Path to the ledger database
            repository: Optional custom persistence backend
            config: Configuration mapping; loaded from the config file when omitted
            max_attempts: Attempts per unit of work before giving up
            retry_delay: Base delay in seconds between attempts
        """
        self.config = config if config is not None else self._load_config()
        retry_config = self.config.get("retry", {})
        self.max_attempts = int(
            max_attempts
            if max_attempts is not None
            else retry_config.get("max_attempts", DEFAULT_MAX_ATTEMPTS)
        )
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.retry_delay = float(
            retry_delay
            if retry_delay is not None
            else retry_config.get("delay_seconds", DEFAULT_RETRY_DELAY_SECONDS)
        )
        self.db_path = self._resolve_db_path(db_path, repository)
        self.repository = repository or Repository(
            self.db_path,
            busy_timeout=float(
                self.config.get("busy_timeout_seconds", DEFAULT_BUSY_TIMEOUT_SECONDS)
            ),
        )

    def __enter__(self) -> "LedgerClient":
        """Open the repository connection and make sure tables exist."""
        self.repository.connect()
        try:
            self._run_transaction(self.repository.initialize_schema)
        except Exception:
            self.repository.close()
            raise
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        """Close the repository connection."""
        self.close()

    def close(self) -> None:
        """Close the repository connection."""
        self.repository.close()

    def _resolve_db_path(
        self,
        db_path: str | Path | None,
        repository: PersistenceBackend | None,
    ) -> Path:
        """Resolve the database path from arguments or config."""
        if repository is not None and db_path is None:
            return Path("")
        if db_path is not None:
            return Path(db_path)
        resolved = self.config.get("db_path")
        if not resolved:
            raise ValueError("db_path is required when the config file has none")
        return Path(resolved).expanduser()

    @staticmethod
    def _load_config() -> dict[str, Any]:
        """Load config file if present, else return empty config."""
        config_path = Path(os.environ.get(CONFIG_ENV_VAR, DEFAULT_CONFIG_PATH))
        if not config_path.exists():
            return {}
        with config_path.open("r", encoding="utf-8") as handle:
            payload = json.load(handle)
        if not isinstance(payload, dict):
            return {}
        return payload

    def _run_transaction(self, action: Callable[[], T]) -> T:
        """Run repository work inside a transaction, retrying on conflict.

        The action is rerun from scratch on every attempt, so it must only
        touch the repository. Any error other than ConflictError rolls back
        and propagates on the first attempt.

        Raises:
            TransientFailure: If every attempt hit a conflict
        """
        last_conflict: ConflictError | None = None
        for attempt in range(1, self.max_attempts + 1):
            try:
                self.repository.begin_transaction()
                result = action()
                self.repository.commit()
                return result
            except ConflictError as exc:
                self.repository.rollback()
                last_conflict = exc
                logger.warning(
                    "Conflict on attempt %d of %d: %s", attempt, self.max_attempts, exc
                )
                if attempt < self.max_attempts:
                    time.sleep(self.retry_delay * attempt)
            except Exception:
                self.repository.rollback()
                raise
        logger.error("Giving up after %d conflicting attempts", self.max_attempts)
        raise TransientFailure(
            f"Ledger busy, gave up after {self.max_attempts} attempts",
            attempts=self.max_attempts,
        ) from last_conflict

    def _apply_balance_deltas(
        self,
        previous: TransferRecord | None,
        current: TransferDTO | None,
    ) -> dict[str, int]:
        """Read every touched account once and write the non-zero net deltas.

        Returns the deltas that were written, keyed by account id.
        """
        balances = {
            account_id: self.repository.get_account(account_id).balance
            for account_id in touched_accounts(previous, current)
        }
        deltas = transfer_deltas(previous, current)
        applied = {}
        for account_id, delta in deltas.items():
            if delta == 0:
                continue
            self.repository.set_account_balance(account_id, balances[account_id] + delta)
            applied[account_id] = delta
        return applied

    def add_transfer(self, transfer: TransferDTO) -> str:
        """Record a transfer, move the balances, and return the transfer key."""
        if transfer.created_by is None:
            raise ValidationError("Created by is required")
        key = _new_key()

        def action() -> dict[str, int]:
            applied = self._apply_balance_deltas(None, transfer)
            self.repository.insert_transfer(key, transfer)
            return applied

        applied = self._run_transaction(action)
        logger.info("Added transfer %s amount=%d", key, transfer.amount)
        logger.debug("Transfer %s balance deltas: %s", key, applied)
        return key

    def get_transfer(self, key: str) -> TransferRecord:
        """Get a single transfer by key."""
        return self._run_transaction(lambda: self.repository.get_transfer(key))

    def list_transfers(
        self,
        start_date: dt.date | None = None,
        end_date: dt.date | None = None,
        month_key: str | None = None,
        account_id: str | None = None,
    ) -> list[TransferRecord]:
        """List transfers within an optional date range, month or account."""
        return self._run_transaction(
            lambda: self.repository.list_transfers(
                start_date=start_date,
                end_date=end_date,
                month_key=month_key,
                account_id=account_id,
            )
        )

    def update_transfer(self, key: str, transfer: TransferDTO) -> TransferRecord:
        """Replace a transfer and rebalance old and new endpoints together.

        The old transfer is reversed and the new one applied in the same unit.
        When endpoints and amount are unchanged no balance is written, but the
        date and memo are still updated.
        """
        def action() -> tuple[TransferRecord, dict[str, int]]:
            current = self.repository.get_transfer(key)
            applied = self._apply_balance_deltas(current, transfer)
            return self.repository.replace_transfer(key, transfer), applied

        record, applied = self._run_transaction(action)
        logger.info("Updated transfer %s amount=%d", key, record.amount)
        logger.debug("Transfer %s balance deltas: %s", key, applied)
        return record

    def delete_transfer(self, key: str) -> None:
        """Delete a transfer and reverse its effect on the balances."""
        def action() -> dict[str, int]:
            current = self.repository.get_transfer(key)
            applied = self._apply_balance_deltas(current, None)
            self.repository.delete_transfer(key)
            return applied

        applied = self._run_transaction(action)
        logger.info("Deleted transfer %s", key)
        logger.debug("Transfer %s balance deltas: %s", key, applied)

    def add_account(self, account: AccountDTO) -> AccountRecord:
        """Create an account whose balance starts at its opening balance."""
        key = _new_key()
        record = self._run_transaction(lambda: self.repository.insert_account(key, account))
        logger.info("Added account %s (%s)", record.key, record.name)
        return record

    def get_account(self, key: str) -> AccountRecord:
        """Get a single account by key."""
        return self._run_transaction(lambda: self.repository.get_account(key))

    def list_accounts(self, group_id: str | None = None) -> list[AccountRecord]:
        """List accounts, optionally within one group."""
        return self._run_transaction(
            lambda: self.repository.list_accounts(group_id=group_id)
        )

    def update_account(
        self,
        key: str,
        name: str | None = None,
        account_type: str | None = None,
        group_id: str | None = None,
        clear_group: bool = False,
    ) -> AccountRecord:
        """Update descriptive account fields. The balance is never editable here."""
        if name is not None and not name.strip():
            raise ValidationError("Name is required")
        if group_id is not None and clear_group:
            raise ValidationError("Provide group_id or clear_group, not both")
        normalized_type = (
            normalize_account_type(account_type) if account_type is not None else None
        )
        return self._run_transaction(
            lambda: self.repository.update_account(
                key,
                name=name.strip() if name is not None else None,
                account_type=normalized_type,
                group_id=group_id,
                clear_group=clear_group,
            )
        )

    def delete_account(self, key: str) -> None:
        """Delete an account. Transfers that reference it are left as they are."""
        self._run_transaction(lambda: self.repository.delete_account(key))
        logger.info("Deleted account %s", key)

    def add_account_group(self, name: str) -> AccountGroupRecord:
        """Create an account group."""
        if not name or not name.strip():
            raise ValidationError("Name is required")
        key = _new_key()
        return self._run_transaction(
            lambda: self.repository.insert_account_group(key, name.strip())
        )

    def list_account_groups(self) -> list[AccountGroupRecord]:
        """List account groups."""
        return self._run_transaction(self.repository.list_account_groups)

    def rename_account_group(self, key: str, name: str) -> AccountGroupRecord:
        """Rename an account group."""
        if not name or not name.strip():
            raise ValidationError("Name is required")
        return self._run_transaction(
            lambda: self.repository.rename_account_group(key, name.strip())
        )

    def delete_account_group(self, key: str) -> None:
        """Delete a group and detach its accounts in one unit."""
        self._run_transaction(lambda: self.repository.delete_account_group(key))
        logger.info("Deleted account group %s", key)

    def audit_balances(self) -> list[BalanceMismatch]:
        """Compare every cached balance with its opening balance plus transfers.

        Returns an empty list when the ledger is consistent.
        """
        def action() -> list[BalanceMismatch]:
            accounts = self.repository.list_accounts()
            expected = {account.key: account.opening_balance for account in accounts}
            for transfer in self.repository.list_transfers():
                for account_id, delta in transfer_deltas(None, transfer).items():
                    if account_id in expected:
                        expected[account_id] += delta
            return [
                BalanceMismatch(
                    account_key=account.key,
                    account_name=account.name,
                    cached_balance=account.balance,
                    expected_balance=expected[account.key],
                )
                for account in accounts
                if account.balance != expected[account.key]
            ]

        mismatches = self._run_transaction(action)
        for mismatch in mismatches:
            logger.warning(
                "Balance mismatch on %s: cached=%d expected=%d",
                mismatch.account_key,
                mismatch.cached_balance,
                mismatch.expected_balance,
            )
        return mismatches

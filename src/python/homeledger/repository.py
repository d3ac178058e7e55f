"""SQLite repository implementation for the household ledger."""

from __future__ import annotations

from contextlib import contextmanager
from pathlib import Path
from typing import Iterator
import datetime as dt
import json
import sqlite3

from homeledger.exceptions import ConflictError, NotFoundError
from homeledger.models import (
    AccountDTO,
    AccountGroupRecord,
    AccountRecord,
    TransferDTO,
    TransferRecord,
)
from homeledger.persistence import PersistenceBackend
from homeledger.schema import (
    DEFAULT_BUSY_TIMEOUT_SECONDS,
    SCHEMA_STATEMENTS,
    TIMESTAMP_FORMAT,
)

LOCK_ERROR_MARKERS = ("database is locked", "database is busy", "database table is locked")

TRANSFER_SELECT = """
    SELECT
        key,
        fromAccountId,
        toAccountId,
        accountIds,
        amount,
        date,
        monthKey,
        memo,
        createdBy,
        createdAt
    FROM Transfer
"""

ACCOUNT_SELECT = """
    SELECT key, name, accountType, groupId, openingBalance, balance, createdAt
    FROM Account
"""


def _timestamp() -> str:
    return dt.datetime.now().replace(microsecond=0).strftime(TIMESTAMP_FORMAT)


@contextmanager
def translate_lock_errors() -> Iterator[None]:
    """Re-raise SQLite lock contention as ConflictError."""
    try:
        yield
    except sqlite3.OperationalError as exc:
        message = str(exc).lower()
        if any(marker in message for marker in LOCK_ERROR_MARKERS):
            raise ConflictError(str(exc)) from exc
        raise


class Repository(PersistenceBackend):
    """SQLite-backed persistence implementation.

    Every unit of work starts with ``BEGIN IMMEDIATE`` so the write lock is
    held from the first balance read until commit.
    """

    def __init__(
        self,
        db_path: str | Path,
        busy_timeout: float = DEFAULT_BUSY_TIMEOUT_SECONDS,
    ) -> None:
        """Create a repository for the given database path."""
        self.db_path = Path(db_path)
        self.busy_timeout = busy_timeout
        self.connection: sqlite3.Connection | None = None

    def connect(self) -> None:
        """Open the database connection."""
        if self.connection is None:
            self.connection = sqlite3.connect(
                self.db_path,
                timeout=self.busy_timeout,
                isolation_level=None,
            )
            self.connection.row_factory = sqlite3.Row

    def close(self) -> None:
        """Close the database connection."""
        if self.connection is not None:
            self.connection.close()
            self.connection = None

    def initialize_schema(self) -> None:
        """Create ledger tables and indexes when missing."""
        self._ensure_connection()
        for statement in SCHEMA_STATEMENTS:
            self._execute(statement)

    def begin_transaction(self) -> None:
        """Begin a write transaction, taking the write lock immediately."""
        self._ensure_connection()
        with translate_lock_errors():
            self.connection.execute("BEGIN IMMEDIATE")

    def commit(self) -> None:
        """Commit the current transaction."""
        self._ensure_connection()
        with translate_lock_errors():
            self.connection.commit()

    def rollback(self) -> None:
        """Rollback the current transaction."""
        self._ensure_connection()
        self.connection.rollback()

    def insert_account(self, key: str, account: AccountDTO) -> AccountRecord:
        """Insert a new account row and return the record."""
        self._ensure_connection()
        if account.group_id is not None:
            self._get_account_group(account.group_id)
        created_at = _timestamp()
        self._execute(
            """
            INSERT INTO Account (
                key,
                name,
                accountType,
                groupId,
                openingBalance,
                balance,
                createdAt
            ) VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (
                key,
                account.name,
                account.account_type,
                account.group_id,
                account.opening_balance,
                account.opening_balance,
                created_at,
            ),
        )
        return AccountRecord(
            key=key,
            name=account.name,
            account_type=account.account_type,
            group_id=account.group_id,
            opening_balance=account.opening_balance,
            balance=account.opening_balance,
            created_at=created_at,
        )

    def get_account(self, key: str) -> AccountRecord:
        """Fetch a single account by key."""
        self._ensure_connection()
        row = self._execute(f"{ACCOUNT_SELECT} WHERE key = ?", (key,)).fetchone()
        if row is None:
            raise NotFoundError(f"Account {key} not found")
        return self._row_to_account(row)

    def list_accounts(self, group_id: str | None = None) -> list[AccountRecord]:
        """Return accounts ordered by name, optionally within one group."""
        self._ensure_connection()
        if group_id is None:
            rows = self._execute(f"{ACCOUNT_SELECT} ORDER BY name, key").fetchall()
        else:
            rows = self._execute(
                f"{ACCOUNT_SELECT} WHERE groupId = ? ORDER BY name, key",
                (group_id,),
            ).fetchall()
        return [self._row_to_account(row) for row in rows]

    def update_account(
        self,
        key: str,
        name: str | None = None,
        account_type: str | None = None,
        group_id: str | None = None,
        clear_group: bool = False,
    ) -> AccountRecord:
        """Update descriptive fields and return the latest record."""
        self._ensure_connection()
        self.get_account(key)
        updates = []
        params: list[object] = []
        if name is not None:
            updates.append("name = ?")
            params.append(name)
        if account_type is not None:
            updates.append("accountType = ?")
            params.append(account_type)
        if clear_group:
            updates.append("groupId = NULL")
        elif group_id is not None:
            self._get_account_group(group_id)
            updates.append("groupId = ?")
            params.append(group_id)
        if not updates:
            return self.get_account(key)
        params.append(key)
        self._execute(f"UPDATE Account SET {', '.join(updates)} WHERE key = ?", params)
        return self.get_account(key)

    def delete_account(self, key: str) -> None:
        """Delete an account. Transfers keep their now dangling reference."""
        self._ensure_connection()
        self.get_account(key)
        self._execute("DELETE FROM Account WHERE key = ?", (key,))

    def set_account_balance(self, key: str, balance: int) -> None:
        """Overwrite the cached balance of an account."""
        self._ensure_connection()
        cursor = self._execute(
            "UPDATE Account SET balance = ? WHERE key = ?",
            (int(balance), key),
        )
        if cursor.rowcount == 0:
            raise NotFoundError(f"Account {key} not found")

    def insert_account_group(self, key: str, name: str) -> AccountGroupRecord:
        """Insert a new account group and return the record."""
        self._ensure_connection()
        created_at = _timestamp()
        self._execute(
            "INSERT INTO AccountGroup (key, name, createdAt) VALUES (?, ?, ?)",
            (key, name, created_at),
        )
        return AccountGroupRecord(key=key, name=name, created_at=created_at)

    def list_account_groups(self) -> list[AccountGroupRecord]:
        """Return account groups ordered by name."""
        self._ensure_connection()
        rows = self._execute(
            "SELECT key, name, createdAt FROM AccountGroup ORDER BY name, key"
        ).fetchall()
        return [
            AccountGroupRecord(key=row["key"], name=row["name"], created_at=row["createdAt"])
            for row in rows
        ]

    def rename_account_group(self, key: str, name: str) -> AccountGroupRecord:
        """Rename an account group and return the latest record."""
        self._ensure_connection()
        self._get_account_group(key)
        self._execute("UPDATE AccountGroup SET name = ? WHERE key = ?", (name, key))
        return self._get_account_group(key)

    def delete_account_group(self, key: str) -> None:
        """Detach member accounts and delete the group."""
        self._ensure_connection()
        self._get_account_group(key)
        self._execute("UPDATE Account SET groupId = NULL WHERE groupId = ?", (key,))
        self._execute("DELETE FROM AccountGroup WHERE key = ?", (key,))

    def insert_transfer(self, key: str, transfer: TransferDTO) -> TransferRecord:
        """Insert a new transfer row and return the record."""
        self._ensure_connection()
        if transfer.created_by is None:
            raise ValueError("created_by is required to insert a transfer")
        created_at = _timestamp()
        self._execute(
            """
            INSERT INTO Transfer (
                key,
                fromAccountId,
                toAccountId,
                accountIds,
                amount,
                date,
                monthKey,
                memo,
                createdBy,
                createdAt
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                key,
                transfer.from_account_id,
                transfer.to_account_id,
                json.dumps(list(transfer.account_ids)),
                transfer.amount,
                transfer.date.isoformat(),
                transfer.month_key,
                transfer.memo,
                transfer.created_by,
                created_at,
            ),
        )
        return TransferRecord(
            key=key,
            from_account_id=transfer.from_account_id,
            to_account_id=transfer.to_account_id,
            account_ids=transfer.account_ids,
            amount=transfer.amount,
            date=transfer.date,
            month_key=transfer.month_key,
            memo=transfer.memo,
            created_by=transfer.created_by,
            created_at=created_at,
        )

    def get_transfer(self, key: str) -> TransferRecord:
        """Fetch a single transfer by key."""
        self._ensure_connection()
        row = self._execute(f"{TRANSFER_SELECT} WHERE key = ?", (key,)).fetchone()
        if row is None:
            raise NotFoundError(f"Transfer {key} not found")
        return self._row_to_transfer(row)

    def list_transfers(
        self,
        start_date: dt.date | None = None,
        end_date: dt.date | None = None,
        month_key: str | None = None,
        account_id: str | None = None,
    ) -> list[TransferRecord]:
        """List transfers, optionally filtered by date range, month or account."""
        self._ensure_connection()
        filters = []
        params: list[object] = []
        if start_date is not None:
            filters.append("date >= ?")
            params.append(start_date.isoformat())
        if end_date is not None:
            filters.append("date <= ?")
            params.append(end_date.isoformat())
        if month_key is not None:
            filters.append("monthKey = ?")
            params.append(month_key)
        if account_id is not None:
            filters.append("(fromAccountId = ? OR toAccountId = ?)")
            params.extend([account_id, account_id])
        where_clause = ""
        if filters:
            where_clause = "WHERE " + " AND ".join(filters)
        rows = self._execute(
            f"{TRANSFER_SELECT} {where_clause} ORDER BY date DESC, createdAt DESC, key",
            params,
        ).fetchall()
        return [self._row_to_transfer(row) for row in rows]

    def replace_transfer(self, key: str, transfer: TransferDTO) -> TransferRecord:
        """Overwrite endpoints, amount, date and memo of a transfer."""
        self._ensure_connection()
        cursor = self._execute(
            """
            UPDATE Transfer SET
                fromAccountId = ?,
                toAccountId = ?,
                accountIds = ?,
                amount = ?,
                date = ?,
                monthKey = ?,
                memo = ?
            WHERE key = ?
            """,
            (
                transfer.from_account_id,
                transfer.to_account_id,
                json.dumps(list(transfer.account_ids)),
                transfer.amount,
                transfer.date.isoformat(),
                transfer.month_key,
                transfer.memo,
                key,
            ),
        )
        if cursor.rowcount == 0:
            raise NotFoundError(f"Transfer {key} not found")
        return self.get_transfer(key)

    def delete_transfer(self, key: str) -> None:
        """Delete a transfer record."""
        self._ensure_connection()
        self._execute("DELETE FROM Transfer WHERE key = ?", (key,))

    def _ensure_connection(self) -> None:
        """Ensure the connection is initialized before use."""
        if self.connection is None:
            raise RuntimeError("Repository connection is not initialized")

    def _execute(self, sql: str, params: tuple | list = ()) -> sqlite3.Cursor:
        with translate_lock_errors():
            return self.connection.execute(sql, params)

    def _get_account_group(self, key: str) -> AccountGroupRecord:
        """Resolve an account group row by key."""
        row = self._execute(
            "SELECT key, name, createdAt FROM AccountGroup WHERE key = ?",
            (key,),
        ).fetchone()
        if row is None:
            raise NotFoundError(f"Account group {key} not found")
        return AccountGroupRecord(key=row["key"], name=row["name"], created_at=row["createdAt"])

    @staticmethod
    def _row_to_account(row: sqlite3.Row) -> AccountRecord:
        return AccountRecord(
            key=row["key"],
            name=row["name"],
            account_type=row["accountType"],
            group_id=row["groupId"],
            opening_balance=int(row["openingBalance"]),
            balance=int(row["balance"]),
            created_at=row["createdAt"],
        )

    @staticmethod
    def _row_to_transfer(row: sqlite3.Row) -> TransferRecord:
        return TransferRecord(
            key=row["key"],
            from_account_id=row["fromAccountId"],
            to_account_id=row["toAccountId"],
            account_ids=tuple(json.loads(row["accountIds"])),
            amount=int(row["amount"]),
            date=dt.date.fromisoformat(row["date"]),
            month_key=row["monthKey"],
            memo=row["memo"],
            created_by=row["createdBy"],
            created_at=row["createdAt"],
        )

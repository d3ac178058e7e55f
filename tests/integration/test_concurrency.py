from __future__ import annotations

from contextlib import contextmanager
import datetime as dt
from pathlib import Path
import threading
from typing import Iterator

import pytest

from homeledger import NotFoundError, TransferDTO, TransientFailure
from homeledger.exceptions import ConflictError
from homeledger.ledger import LedgerClient
from homeledger.repository import Repository
from tests.utils.database import count_rows, open_connection
from tests.utils.ledger import balances_by_name, create_accounts


class ConflictingRepository(Repository):
    """Repository whose next commits fail as if another writer got there first."""

    def __init__(self, db_path: str | Path) -> None:
        super().__init__(db_path)
        self.pending_conflicts = 0
        self.begin_calls = 0

    def begin_transaction(self) -> None:
        self.begin_calls += 1
        super().begin_transaction()

    def commit(self) -> None:
        if self.pending_conflicts > 0:
            self.pending_conflicts -= 1
            raise ConflictError("simulated concurrent modification")
        super().commit()


def _credit(to_account_id: str, amount: int, from_account_id: str | None = None) -> TransferDTO:
    return TransferDTO(
        date=dt.date(2026, 2, 20),
        amount=amount,
        from_account_id=from_account_id,
        to_account_id=to_account_id,
        created_by="member-1",
    )


@pytest.mark.sit
def test_conflict_reruns_the_whole_unit(db_path: Path) -> None:
    repository = ConflictingRepository(db_path)
    with LedgerClient(repository=repository, config={}, retry_delay=0) as client:
        keys = create_accounts(client, {"A": 5000, "B": 0})
        repository.pending_conflicts = 2
        repository.begin_calls = 0

        client.add_transfer(_credit(keys["B"], 2000, from_account_id=keys["A"]))

        assert repository.begin_calls == 3
        assert balances_by_name(client, keys) == {"A": 3000, "B": 2000}
    assert count_rows(db_path, "Transfer") == 1


@pytest.mark.sit
def test_exhausted_retries_raise_transient_failure(db_path: Path) -> None:
    repository = ConflictingRepository(db_path)
    with LedgerClient(
        repository=repository, config={}, max_attempts=3, retry_delay=0
    ) as client:
        keys = create_accounts(client, {"A": 5000, "B": 0})
        repository.pending_conflicts = 10

        with pytest.raises(TransientFailure) as excinfo:
            client.add_transfer(_credit(keys["B"], 2000, from_account_id=keys["A"]))

        repository.pending_conflicts = 0
        assert excinfo.value.attempts == 3
        assert isinstance(excinfo.value.__cause__, ConflictError)
        assert balances_by_name(client, keys) == {"A": 5000, "B": 0}
    assert count_rows(db_path, "Transfer") == 0


@pytest.mark.sit
def test_not_found_is_not_retried(db_path: Path) -> None:
    repository = ConflictingRepository(db_path)
    with LedgerClient(repository=repository, config={}, retry_delay=0) as client:
        repository.begin_calls = 0

        with pytest.raises(NotFoundError):
            client.delete_transfer("missing-transfer")

    assert repository.begin_calls == 1


@pytest.mark.sit
def test_retry_config_is_read_from_mapping(db_path: Path) -> None:
    client = LedgerClient(
        db_path=db_path,
        config={"retry": {"max_attempts": 7, "delay_seconds": 0.5}, "busy_timeout_seconds": 1},
    )

    assert client.max_attempts == 7
    assert client.retry_delay == 0.5
    assert client.repository.busy_timeout == 1.0


def _run_credits(
    db_path: Path,
    source: str,
    destination: str,
    workers: int,
    config: dict,
) -> list[Exception]:
    barrier = threading.Barrier(workers)
    errors: list[Exception] = []

    def worker() -> None:
        try:
            with LedgerClient(
                db_path=db_path, config=config, max_attempts=200, retry_delay=0.01
            ) as client:
                barrier.wait()
                client.add_transfer(_credit(destination, 1000, from_account_id=source))
        except Exception as exc:
            errors.append(exc)

    threads = [threading.Thread(target=worker) for _ in range(workers)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    return errors


@pytest.mark.sit
def test_two_concurrent_credits_are_both_applied(db_path: Path, client: LedgerClient) -> None:
    keys = create_accounts(client, {"A": 0})
    barrier = threading.Barrier(2)
    errors: list[Exception] = []

    def worker() -> None:
        try:
            with LedgerClient(db_path=db_path, config={}, retry_delay=0.01) as other:
                barrier.wait()
                other.add_transfer(_credit(keys["A"], 1000))
        except Exception as exc:
            errors.append(exc)

    threads = [threading.Thread(target=worker) for _ in range(2)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert errors == []
    assert client.get_account(keys["A"]).balance == 2000


@pytest.mark.sit
def test_concurrent_transfers_waiting_on_lock(db_path: Path, client: LedgerClient) -> None:
    keys = create_accounts(client, {"A": 10000, "B": 0})

    errors = _run_credits(db_path, keys["A"], keys["B"], workers=8, config={})

    assert errors == []
    assert balances_by_name(client, keys) == {"A": 2000, "B": 8000}
    assert client.audit_balances() == []


@pytest.mark.sit
def test_concurrent_transfers_retrying_on_conflict(db_path: Path, client: LedgerClient) -> None:
    keys = create_accounts(client, {"A": 10000, "B": 0})

    # No busy wait: a blocked writer fails fast and goes through the retry loop
    errors = _run_credits(
        db_path, keys["A"], keys["B"], workers=6, config={"busy_timeout_seconds": 0}
    )

    assert errors == []
    assert balances_by_name(client, keys) == {"A": 4000, "B": 6000}
    assert client.audit_balances() == []


@contextmanager
def _exclusive_lock(db_path: Path) -> Iterator[None]:
    """Hold an exclusive lock on the database from a second connection."""
    locker = open_connection(db_path)
    locker.isolation_level = None
    locker.execute("BEGIN EXCLUSIVE")
    try:
        yield
    finally:
        locker.execute("ROLLBACK")
        locker.close()


def _impatient_client(db_path: Path) -> LedgerClient:
    return LedgerClient(
        db_path=db_path,
        config={"busy_timeout_seconds": 0},
        max_attempts=2,
        retry_delay=0,
    )


@pytest.mark.sit
def test_locked_database_exhausts_retries_on_write(db_path: Path) -> None:
    with _impatient_client(db_path) as client:
        keys = create_accounts(client, {"A": 5000, "B": 0})

        with _exclusive_lock(db_path):
            with pytest.raises(TransientFailure) as excinfo:
                client.add_transfer(_credit(keys["B"], 2000, from_account_id=keys["A"]))

        assert excinfo.value.attempts == 2
        assert isinstance(excinfo.value.__cause__, ConflictError)
        assert balances_by_name(client, keys) == {"A": 5000, "B": 0}
    assert count_rows(db_path, "Transfer") == 0


@pytest.mark.sit
def test_locked_database_reads_raise_transient_failure(db_path: Path) -> None:
    with _impatient_client(db_path) as client:
        keys = create_accounts(client, {"A": 5000})

        with _exclusive_lock(db_path):
            with pytest.raises(TransientFailure):
                client.get_account(keys["A"])
            with pytest.raises(TransientFailure):
                client.list_accounts()
            with pytest.raises(TransientFailure):
                client.list_transfers()
            with pytest.raises(TransientFailure):
                client.list_account_groups()

        assert client.get_account(keys["A"]).balance == 5000


@pytest.mark.sit
def test_locked_database_on_open_raises_transient_failure(db_path: Path) -> None:
    client = _impatient_client(db_path)

    with _exclusive_lock(db_path):
        with pytest.raises(TransientFailure):
            client.__enter__()

    assert client.repository.connection is None

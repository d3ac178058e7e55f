from __future__ import annotations

from pathlib import Path

import pytest

from homeledger.ledger import LedgerClient
from homeledger.repository import Repository


def test_repository_connection(db_path: Path) -> None:
    repo = Repository(db_path)
    repo.connect()
    try:
        assert repo.connection is not None
    finally:
        repo.close()
    assert repo.connection is None


def test_repository_requires_connection(db_path: Path) -> None:
    repo = Repository(db_path)

    with pytest.raises(RuntimeError):
        repo.list_accounts()


def test_initialize_schema_is_idempotent(tmp_path: Path) -> None:
    repo = Repository(tmp_path / "fresh.db")
    repo.connect()
    try:
        repo.initialize_schema()
        repo.initialize_schema()
        tables = {
            row["name"]
            for row in repo.connection.execute(
                "SELECT name FROM sqlite_master WHERE type = 'table'"
            ).fetchall()
        }
    finally:
        repo.close()

    assert {"Account", "AccountGroup", "Transfer"} <= tables


def test_client_reads_db_path_from_config_file(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    config_path = tmp_path / "config.json"
    config_path.write_text(
        '{"db_path": "%s", "retry": {"max_attempts": 2}}' % (tmp_path / "from-config.db").as_posix(),
        encoding="utf-8",
    )
    monkeypatch.setenv("HOMELEDGER_CONFIG", str(config_path))

    client = LedgerClient()

    assert client.db_path == tmp_path / "from-config.db"
    assert client.max_attempts == 2


def test_client_without_db_path_fails() -> None:
    with pytest.raises(ValueError):
        LedgerClient()

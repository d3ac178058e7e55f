"""Pytest configuration and fixtures for ledger tests.

Every test gets a private SQLite database under ``tmp_path`` with the ledger
schema already created.
"""
from __future__ import annotations

from pathlib import Path
import sys

import pytest

SRC_DIR = Path(__file__).resolve().parents[1] / "src" / "python"

if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from homeledger.ledger import LedgerClient  # noqa: E402
from homeledger.repository import Repository  # noqa: E402


@pytest.fixture(autouse=True)
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Point the config lookup at a file that does not exist."""
    monkeypatch.setenv("HOMELEDGER_CONFIG", str(tmp_path / "missing-config.json"))


@pytest.fixture()
def db_path(tmp_path: Path) -> Path:
    """Headless ledger database with schema only."""
    path = tmp_path / "ledger.db"
    repo = Repository(path)
    repo.connect()
    try:
        repo.initialize_schema()
    finally:
        repo.close()
    yield path
    import gc
    gc.collect()
    if path.exists():
        try:
            path.unlink()
        except PermissionError:
            pass


@pytest.fixture()
def client(db_path: Path) -> LedgerClient:
    """Open ledger client on the headless database."""
    with LedgerClient(db_path=db_path, config={}, retry_delay=0) as ledger:
        yield ledger

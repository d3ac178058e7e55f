"""Database schema constants."""

from __future__ import annotations

LEDGER_TIMEZONE = "Asia/Seoul"
MONTH_KEY_FORMAT = "%Y-%m"
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"

ACCOUNT_TYPES = ("cash", "bank", "savings", "investment", "debt")
DEFAULT_ACCOUNT_TYPE = "bank"

DEFAULT_MAX_ATTEMPTS = 5
DEFAULT_RETRY_DELAY_SECONDS = 0.05
DEFAULT_BUSY_TIMEOUT_SECONDS = 5.0

SCHEMA_STATEMENTS = [
    """
    CREATE TABLE IF NOT EXISTS AccountGroup (
        key TEXT PRIMARY KEY,
        name TEXT NOT NULL,
        createdAt TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS Account (
        key TEXT PRIMARY KEY,
        name TEXT NOT NULL,
        accountType TEXT NOT NULL,
        groupId TEXT,
        openingBalance INTEGER NOT NULL DEFAULT 0,
        balance INTEGER NOT NULL DEFAULT 0,
        createdAt TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS Transfer (
        key TEXT PRIMARY KEY,
        fromAccountId TEXT,
        toAccountId TEXT,
        accountIds TEXT NOT NULL,
        amount INTEGER NOT NULL CHECK (amount > 0),
        date TEXT NOT NULL,
        monthKey TEXT NOT NULL,
        memo TEXT NOT NULL DEFAULT '',
        createdBy TEXT NOT NULL,
        createdAt TEXT NOT NULL,
        CHECK (fromAccountId IS NOT NULL OR toAccountId IS NOT NULL),
        CHECK (fromAccountId IS NULL OR toAccountId IS NULL OR fromAccountId <> toAccountId)
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_account_group ON Account (groupId)",
    "CREATE INDEX IF NOT EXISTS idx_transfer_date ON Transfer (date)",
    "CREATE INDEX IF NOT EXISTS idx_transfer_month ON Transfer (monthKey)",
    "CREATE INDEX IF NOT EXISTS idx_transfer_from ON Transfer (fromAccountId)",
    "CREATE INDEX IF NOT EXISTS idx_transfer_to ON Transfer (toAccountId)",
]

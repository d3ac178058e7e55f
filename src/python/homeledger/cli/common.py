"""Shared CLI helpers."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator
import datetime as dt

import click

from homeledger.exceptions import NotFoundError, TransientFailure, ValidationError
from homeledger.ledger import LedgerClient
from homeledger.models import AccountRecord, TransferRecord


def parse_date(value: str | None, field_name: str) -> dt.date | None:
    """Parse an ISO date string into a date."""
    if value is None:
        return None
    try:
        return dt.date.fromisoformat(value)
    except ValueError as exc:
        raise click.BadParameter("Use YYYY-MM-DD format.", param_hint=field_name) from exc


@contextmanager
def ledger_errors(label: str) -> Iterator[None]:
    """Report ledger errors as Click errors with the command label."""
    try:
        yield
    except (ValidationError, NotFoundError, TransientFailure) as exc:
        raise click.ClickException(f"{label} failed: {exc}") from exc


def get_client(ctx: click.Context) -> LedgerClient:
    """Build a ledger client from Click context."""
    payload = ctx.obj or {}
    return LedgerClient(db_path=payload.get("db_path"))


def format_account(account: AccountRecord) -> str:
    group = account.group_id or ""
    return (
        f"{account.key}\t{account.name}\t{account.account_type}"
        f"\t{account.balance}\t{group}"
    )


def format_transfer(record: TransferRecord) -> str:
    from_account = record.from_account_id or "(external)"
    to_account = record.to_account_id or "(external)"
    return (
        f"{record.key}\t{record.date.isoformat()}\t{record.amount}"
        f"\t{from_account}\t{to_account}\t{record.memo}"
    )

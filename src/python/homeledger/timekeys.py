"""Date normalization in the fixed ledger timezone."""

from __future__ import annotations

import datetime as dt
from zoneinfo import ZoneInfo

from homeledger.schema import LEDGER_TIMEZONE, MONTH_KEY_FORMAT

LEDGER_TZ = ZoneInfo(LEDGER_TIMEZONE)


def to_ledger_date(value: dt.date | dt.datetime | str) -> dt.date:
    """Normalize a date, datetime or ISO string to a calendar date.

    Aware datetimes are converted to the ledger timezone first so that every
    client agrees on the day boundary. Naive datetimes are taken as ledger
    local time.
    """
    if isinstance(value, str):
        text = value.strip()
        try:
            if "T" in text or " " in text:
                return to_ledger_date(dt.datetime.fromisoformat(text))
            return dt.date.fromisoformat(text)
        except ValueError as exc:
            raise ValueError("Date must be YYYY-MM-DD") from exc
    if isinstance(value, dt.datetime):
        if value.tzinfo is not None:
            value = value.astimezone(LEDGER_TZ)
        return value.date()
    if isinstance(value, dt.date):
        return value
    raise ValueError("Date must be a datetime.date")


def to_month_key(value: dt.date | dt.datetime | str) -> str:
    """Return the YYYY-MM key used for range queries."""
    return to_ledger_date(value).strftime(MONTH_KEY_FORMAT)

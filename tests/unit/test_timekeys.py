from __future__ import annotations

import datetime as dt

import pytest

from homeledger.timekeys import to_ledger_date, to_month_key


def test_plain_dates_pass_through() -> None:
    assert to_ledger_date(dt.date(2026, 3, 1)) == dt.date(2026, 3, 1)
    assert to_ledger_date("2026-03-01") == dt.date(2026, 3, 1)


def test_naive_datetimes_are_ledger_local() -> None:
    assert to_ledger_date(dt.datetime(2026, 3, 31, 23, 59)) == dt.date(2026, 3, 31)


def test_aware_datetimes_convert_to_ledger_timezone() -> None:
    instant = dt.datetime(2026, 3, 31, 15, 0, tzinfo=dt.timezone.utc)

    assert to_month_key(instant) == "2026-04"
    assert to_month_key("2026-03-31T14:59:00+00:00") == "2026-03"


def test_invalid_values_raise() -> None:
    with pytest.raises(ValueError):
        to_ledger_date("not-a-date")
    with pytest.raises(ValueError):
        to_ledger_date(20260301)

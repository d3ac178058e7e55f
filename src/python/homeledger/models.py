"""Domain models and data transfer objects."""

from __future__ import annotations

from dataclasses import dataclass
import datetime as dt

from homeledger.exceptions import ValidationError
from homeledger.schema import ACCOUNT_TYPES, DEFAULT_ACCOUNT_TYPE
from homeledger.timekeys import to_ledger_date, to_month_key


def _ensure_date(value: dt.date | dt.datetime | str) -> dt.date:
    """Normalize a date input to a ledger calendar date."""
    try:
        return to_ledger_date(value)
    except ValueError as exc:
        raise ValidationError(str(exc)) from exc


def _ensure_non_empty(value: str | None, field_name: str) -> str:
    """Validate required text fields."""
    if value is None or not str(value).strip():
        raise ValidationError(f"{field_name} is required")
    return str(value).strip()


def _ensure_optional_id(value: str | None) -> str | None:
    """Collapse absent, None and blank identifiers to None."""
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _ensure_int(value: int | str, field_name: str) -> int:
    """Parse an integer amount in the smallest currency unit."""
    if isinstance(value, bool):
        raise ValidationError(f"{field_name} must be an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError as exc:
            raise ValidationError(f"{field_name} must be an integer") from exc
    raise ValidationError(f"{field_name} must be an integer")


def _ensure_amount(value: int | str, field_name: str) -> int:
    """Parse and validate positive integer amounts."""
    amount = _ensure_int(value, field_name)
    if amount <= 0:
        raise ValidationError(f"{field_name} must be greater than zero")
    return amount


def normalize_account_type(value: str | None) -> str:
    """Lower-case and check an account type, defaulting when absent."""
    if value is None:
        return DEFAULT_ACCOUNT_TYPE
    account_type = value.strip().lower()
    if account_type not in ACCOUNT_TYPES:
        raise ValidationError(
            f"Account type must be one of: {', '.join(ACCOUNT_TYPES)}"
        )
    return account_type


def validate_endpoints(from_account_id: str | None, to_account_id: str | None) -> None:
    """Enforce the transfer endpoint rules on already normalized ids."""
    if from_account_id is None and to_account_id is None:
        raise ValidationError("Select at least one account")
    if from_account_id is not None and from_account_id == to_account_id:
        raise ValidationError("Cannot transfer to the same account")


@dataclass(frozen=True)
class AccountDTO:
    """Validated account input for persistence."""
    name: str
    account_type: str = DEFAULT_ACCOUNT_TYPE
    opening_balance: int = 0
    group_id: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "name", _ensure_non_empty(self.name, "Name"))
        object.__setattr__(self, "account_type", normalize_account_type(self.account_type))
        object.__setattr__(
            self, "opening_balance", _ensure_int(self.opening_balance, "Opening balance")
        )
        object.__setattr__(self, "group_id", _ensure_optional_id(self.group_id))


@dataclass(frozen=True)
class AccountRecord:
    """Persisted account record from storage.

    Attributes:
        key: Opaque account identifier
        name: Display name of the account
        account_type: One of cash, bank, savings, investment, debt
        group_id: Owning account group, if any
        opening_balance: Balance the account was created with
        balance: Current balance in the smallest currency unit
        created_at: Creation timestamp
    """
    key: str
    name: str
    account_type: str
    group_id: str | None
    opening_balance: int
    balance: int
    created_at: str


@dataclass(frozen=True)
class AccountGroupRecord:
    """Persisted account group record from storage."""
    key: str
    name: str
    created_at: str


@dataclass(frozen=True)
class TransferDTO:
    """Validated transfer input for persistence.

    Either endpoint may be None to represent money entering or leaving the
    tracked accounts. ``created_by`` is only used when adding a transfer.
    """
    date: dt.date
    amount: int
    from_account_id: str | None = None
    to_account_id: str | None = None
    memo: str | None = None
    created_by: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "from_account_id", _ensure_optional_id(self.from_account_id)
        )
        object.__setattr__(self, "to_account_id", _ensure_optional_id(self.to_account_id))
        validate_endpoints(self.from_account_id, self.to_account_id)
        object.__setattr__(self, "amount", _ensure_amount(self.amount, "Amount"))
        object.__setattr__(self, "date", _ensure_date(self.date))
        object.__setattr__(self, "memo", (self.memo or "").strip())
        if self.created_by is not None:
            object.__setattr__(
                self, "created_by", _ensure_non_empty(self.created_by, "Created by")
            )

    @property
    def month_key(self) -> str:
        return to_month_key(self.date)

    @property
    def account_ids(self) -> tuple[str, ...]:
        return tuple(
            key for key in (self.from_account_id, self.to_account_id) if key is not None
        )


@dataclass(frozen=True)
class TransferRecord:
    """Persisted transfer record from storage."""
    key: str
    from_account_id: str | None
    to_account_id: str | None
    account_ids: tuple[str, ...]
    amount: int
    date: dt.date
    month_key: str
    memo: str
    created_by: str
    created_at: str


@dataclass(frozen=True)
class BalanceMismatch:
    """Account whose cached balance disagrees with its transfers.

    Attributes:
        account_key: Account identifier
        account_name: Display name of the account
        cached_balance: Balance currently stored on the account
        expected_balance: Opening balance plus the net of live transfers
    """
    account_key: str
    account_name: str
    cached_balance: int
    expected_balance: int

    @property
    def difference(self) -> int:
        return self.cached_balance - self.expected_balance


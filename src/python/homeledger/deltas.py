"""Balance delta arithmetic for transfer create, update and delete."""

from __future__ import annotations

from typing import Protocol


class TransferLegs(Protocol):
    """Anything carrying the endpoints and amount of a transfer."""

    from_account_id: str | None
    to_account_id: str | None
    amount: int


def _add(deltas: dict[str, int], account_id: str | None, delta: int) -> None:
    if account_id is None:
        return
    deltas[account_id] = deltas.get(account_id, 0) + delta


def transfer_deltas(
    previous: TransferLegs | None,
    current: TransferLegs | None,
) -> dict[str, int]:
    """Return the signed balance adjustment owed to each touched account.

    ``previous`` is the stored transfer being replaced or removed (None when
    creating) and ``current`` is the transfer being written (None when
    deleting). The previous transfer is reversed and the current one applied,
    and both sets are summed per account id, so an account that appears on
    both sides gets a single net figure. That figure may be zero.

    No business rules are checked here; None endpoints contribute nothing.
    """
    deltas: dict[str, int] = {}
    if previous is not None:
        _add(deltas, previous.from_account_id, previous.amount)
        _add(deltas, previous.to_account_id, -previous.amount)
    if current is not None:
        _add(deltas, current.from_account_id, -current.amount)
        _add(deltas, current.to_account_id, current.amount)
    return deltas


def touched_accounts(
    previous: TransferLegs | None,
    current: TransferLegs | None,
) -> list[str]:
    """Return each non-null endpoint of both states once, in first-seen order."""
    seen: dict[str, None] = {}
    for transfer in (previous, current):
        if transfer is None:
            continue
        for account_id in (transfer.from_account_id, transfer.to_account_id):
            if account_id is not None:
                seen.setdefault(account_id, None)
    return list(seen)

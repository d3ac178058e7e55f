"""Transfer CLI commands."""

from __future__ import annotations

import click

from homeledger.cli.common import format_transfer, get_client, ledger_errors, parse_date
from homeledger.models import TransferDTO


@click.group()
def transfer() -> None:
    """Transfer commands."""


@transfer.command("add")
@click.option("--date", "date_value", required=True, help="Transfer date in YYYY-MM-DD.")
@click.option("--from-account", default=None, help="Source account key (omit for external).")
@click.option("--to-account", default=None, help="Destination account key (omit for external).")
@click.option("--amount", type=int, required=True, help="Amount in the smallest currency unit.")
@click.option("--memo", default=None, help="Memo for the transfer.")
@click.option("--created-by", required=True, help="Member recording the transfer.")
@click.pass_context
def add_transfer(
    ctx: click.Context,
    date_value: str,
    from_account: str | None,
    to_account: str | None,
    amount: int,
    memo: str | None,
    created_by: str,
) -> None:
    """Add a transfer.

    Leave out --from-account for money arriving from outside the ledger, or
    --to-account for money leaving it.
    """
    date = parse_date(date_value, "--date")
    with ledger_errors("Transfer add"):
        transfer_dto = TransferDTO(
            date=date,
            amount=amount,
            from_account_id=from_account,
            to_account_id=to_account,
            memo=memo,
            created_by=created_by,
        )
        with get_client(ctx) as client:
            key = client.add_transfer(transfer_dto)
    click.echo(f"Added transfer {key}")


@transfer.command("list")
@click.option("--start-date", default=None, help="Start date in YYYY-MM-DD.")
@click.option("--end-date", default=None, help="End date in YYYY-MM-DD.")
@click.option("--month", "month_key", default=None, help="Month in YYYY-MM.")
@click.option("--account", "account_id", default=None, help="Only transfers touching this account.")
@click.option("--limit", type=int, default=None, help="Limit results.")
@click.pass_context
def list_transfers(
    ctx: click.Context,
    start_date: str | None,
    end_date: str | None,
    month_key: str | None,
    account_id: str | None,
    limit: int | None,
) -> None:
    """List transfers."""
    start = parse_date(start_date, "--start-date")
    end = parse_date(end_date, "--end-date")
    with get_client(ctx) as client:
        records = client.list_transfers(
            start_date=start, end_date=end, month_key=month_key, account_id=account_id
        )
    if limit is not None:
        records = records[:limit]
    for record in records:
        click.echo(format_transfer(record))


@transfer.command("get")
@click.argument("key")
@click.pass_context
def get_transfer(ctx: click.Context, key: str) -> None:
    """Get a transfer by key."""
    with ledger_errors("Transfer get"):
        with get_client(ctx) as client:
            record = client.get_transfer(key)
    click.echo(format_transfer(record))


@transfer.command("update")
@click.argument("key")
@click.option("--date", "date_value", default=None, help="New date in YYYY-MM-DD.")
@click.option("--from-account", default=None, help="New source account key.")
@click.option("--to-account", default=None, help="New destination account key.")
@click.option("--external-from", is_flag=True, help="Make the source external.")
@click.option("--external-to", is_flag=True, help="Make the destination external.")
@click.option("--amount", type=int, default=None, help="New amount.")
@click.option("--memo", default=None, help="New memo.")
@click.pass_context
def update_transfer(
    ctx: click.Context,
    key: str,
    date_value: str | None,
    from_account: str | None,
    to_account: str | None,
    external_from: bool,
    external_to: bool,
    amount: int | None,
    memo: str | None,
) -> None:
    """Update a transfer.

    Options that are not given keep their stored value.
    """
    if from_account is not None and external_from:
        raise click.UsageError("Use --from-account or --external-from, not both.")
    if to_account is not None and external_to:
        raise click.UsageError("Use --to-account or --external-to, not both.")
    date = parse_date(date_value, "--date")
    with ledger_errors("Transfer update"):
        with get_client(ctx) as client:
            current = client.get_transfer(key)
            transfer_dto = TransferDTO(
                date=date or current.date,
                amount=amount if amount is not None else current.amount,
                from_account_id=None
                if external_from
                else (from_account or current.from_account_id),
                to_account_id=None if external_to else (to_account or current.to_account_id),
                memo=memo if memo is not None else current.memo,
            )
            record = client.update_transfer(key, transfer_dto)
    click.echo(f"Updated transfer {record.key}")


@transfer.command("delete")
@click.argument("key")
@click.option("--yes", is_flag=True, help="Skip delete confirmation.")
@click.pass_context
def delete_transfer(ctx: click.Context, key: str, yes: bool) -> None:
    """Delete a transfer."""
    if not yes:
        confirm = click.confirm("Delete transfer?", default=False)
        if not confirm:
            click.echo("Delete cancelled.")
            return
    with ledger_errors("Transfer delete"):
        with get_client(ctx) as client:
            client.delete_transfer(key)
    click.echo(f"Deleted transfer {key}")

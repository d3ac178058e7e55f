"""Account CLI commands."""

from __future__ import annotations

import click

from homeledger.cli.common import format_account, get_client, ledger_errors
from homeledger.models import AccountDTO
from homeledger.schema import ACCOUNT_TYPES, DEFAULT_ACCOUNT_TYPE


@click.group()
def account() -> None:
    """Account commands."""


@account.command("add")
@click.option("--name", required=True, help="Account name.")
@click.option(
    "--type",
    "account_type",
    type=click.Choice(ACCOUNT_TYPES, case_sensitive=False),
    default=DEFAULT_ACCOUNT_TYPE,
    show_default=True,
    help="Account type.",
)
@click.option("--opening-balance", type=int, default=0, help="Starting balance.")
@click.option("--group", "group_id", default=None, help="Account group key.")
@click.pass_context
def add_account(
    ctx: click.Context,
    name: str,
    account_type: str,
    opening_balance: int,
    group_id: str | None,
) -> None:
    """Add an account."""
    with ledger_errors("Account add"):
        account_dto = AccountDTO(
            name=name,
            account_type=account_type,
            opening_balance=opening_balance,
            group_id=group_id,
        )
        with get_client(ctx) as client:
            record = client.add_account(account_dto)
    click.echo(f"Added account {record.key}")


@account.command("list")
@click.option("--group", "group_id", default=None, help="Only accounts in this group.")
@click.pass_context
def list_accounts(ctx: click.Context, group_id: str | None) -> None:
    """List accounts with current balances.

    Examples:
        homeledger account list
        homeledger account list --group 3f2a...
    """
    with get_client(ctx) as client:
        accounts = client.list_accounts(group_id=group_id)
    if not accounts:
        click.echo("No accounts found.")
        return
    for record in accounts:
        click.echo(format_account(record))


@account.command("get")
@click.argument("key")
@click.pass_context
def get_account(ctx: click.Context, key: str) -> None:
    """Get an account by key."""
    with ledger_errors("Account get"):
        with get_client(ctx) as client:
            record = client.get_account(key)
    click.echo(format_account(record))


@account.command("update")
@click.argument("key")
@click.option("--name", default=None, help="New account name.")
@click.option(
    "--type",
    "account_type",
    type=click.Choice(ACCOUNT_TYPES, case_sensitive=False),
    default=None,
    help="New account type.",
)
@click.option("--group", "group_id", default=None, help="Move into this account group.")
@click.option("--no-group", is_flag=True, help="Remove the account from its group.")
@click.pass_context
def update_account(
    ctx: click.Context,
    key: str,
    name: str | None,
    account_type: str | None,
    group_id: str | None,
    no_group: bool,
) -> None:
    """Update account name, type or group.

    Balances only change through transfers.
    """
    if name is None and account_type is None and group_id is None and not no_group:
        raise click.UsageError("Provide --name, --type, --group, or --no-group.")
    with ledger_errors("Account update"):
        with get_client(ctx) as client:
            record = client.update_account(
                key,
                name=name,
                account_type=account_type,
                group_id=group_id,
                clear_group=no_group,
            )
    click.echo(f"Updated account {record.key}")


@account.command("delete")
@click.argument("key")
@click.option("--yes", is_flag=True, help="Skip delete confirmation.")
@click.pass_context
def delete_account(ctx: click.Context, key: str, yes: bool) -> None:
    """Delete an account."""
    if not yes:
        confirm = click.confirm("Delete account?", default=False)
        if not confirm:
            click.echo("Delete cancelled.")
            return
    with ledger_errors("Account delete"):
        with get_client(ctx) as client:
            client.delete_account(key)
    click.echo(f"Deleted account {key}")


@account.command("audit")
@click.pass_context
def audit_accounts(ctx: click.Context) -> None:
    """Check every balance against its opening balance and transfers."""
    with ledger_errors("Account audit"):
        with get_client(ctx) as client:
            mismatches = client.audit_balances()
    if not mismatches:
        click.echo("All balances consistent.")
        return
    for mismatch in mismatches:
        click.echo(
            f"{mismatch.account_key}\t{mismatch.account_name}"
            f"\tcached={mismatch.cached_balance}\texpected={mismatch.expected_balance}"
        )
    raise click.ClickException(f"{len(mismatches)} account(s) out of balance.")

"""Account group CLI commands."""

from __future__ import annotations

import click

from homeledger.cli.common import get_client, ledger_errors


@click.group()
def group() -> None:
    """Account group commands."""


@group.command("add")
@click.option("--name", required=True, help="Group name.")
@click.pass_context
def add_group(ctx: click.Context, name: str) -> None:
    """Add an account group."""
    with ledger_errors("Group add"):
        with get_client(ctx) as client:
            record = client.add_account_group(name)
    click.echo(f"Added group {record.key}")


@group.command("list")
@click.pass_context
def list_groups(ctx: click.Context) -> None:
    """List account groups."""
    with get_client(ctx) as client:
        groups = client.list_account_groups()
    for record in groups:
        click.echo(f"{record.key}\t{record.name}")


@group.command("rename")
@click.argument("key")
@click.option("--name", required=True, help="New group name.")
@click.pass_context
def rename_group(ctx: click.Context, key: str, name: str) -> None:
    """Rename an account group."""
    with ledger_errors("Group rename"):
        with get_client(ctx) as client:
            record = client.rename_account_group(key, name)
    click.echo(f"Renamed group {record.key}")


@group.command("delete")
@click.argument("key")
@click.option("--yes", is_flag=True, help="Skip delete confirmation.")
@click.pass_context
def delete_group(ctx: click.Context, key: str, yes: bool) -> None:
    """Delete an account group. Its accounts are kept without a group."""
    if not yes:
        confirm = click.confirm("Delete group?", default=False)
        if not confirm:
            click.echo("Delete cancelled.")
            return
    with ledger_errors("Group delete"):
        with get_client(ctx) as client:
            client.delete_account_group(key)
    click.echo(f"Deleted group {key}")

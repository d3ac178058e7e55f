"""Household ledger CLI entry point."""

from __future__ import annotations

from pathlib import Path

import click

from homeledger.__version__ import __version__
from homeledger.cli.account import account
from homeledger.cli.group import group
from homeledger.cli.transfer import transfer


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(version=__version__, prog_name="homeledger")
@click.option(
    "--db",
    "db_path",
    type=click.Path(path_type=Path),
    help="Path to the ledger database.",
)
@click.pass_context
def main(ctx: click.Context, db_path: Path | None) -> None:
    """Household ledger CLI entry point."""
    ctx.obj = {
        "db_path": db_path,
    }


main.add_command(account)
main.add_command(group)
main.add_command(transfer)


if __name__ == "__main__":
    main()

"""
pactum CLI

Command-line interface over the pactum address facades.

Commands:
  keygen            - Create the local signing key
  whoami            - Show the address of the local key
  balance           - Show balances of an address
  staking-balances  - Show stakeable / unstakeable / claimable balances
  transfer          - Send an asset to another address
  stake             - Stake, unstake or claim stake
  sign-payload      - Sign an arbitrary hash
"""

from __future__ import annotations

import logging
import sys

import click

from . import __version__
from .sigil.eth import address_of, load_private_key


# ============ Main CLI Group ============


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name="pactum")
@click.option("--verbose", "-v", is_flag=True, help="Log platform requests and state transitions")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """pactum - signable on-chain operations."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


# ============ Top-level Commands ============

from .theurgy.balance import balance, staking_balances
from .theurgy.keygen import keygen
from .theurgy.sign_payload import sign_payload
from .theurgy.stake import stake
from .theurgy.transfer import transfer

cli.add_command(keygen)
cli.add_command(balance)
cli.add_command(staking_balances)
cli.add_command(transfer)
cli.add_command(stake)
cli.add_command(sign_payload)


# ============ Identity ============


@cli.command()
def whoami() -> None:
    """Show the address of the local key."""
    try:
        address = address_of(load_private_key())
        click.echo(f"Address: {address}")
    except ValueError:
        click.echo("No key found.")
        click.echo("Run 'pactum keygen' to create one.")
        sys.exit(1)


def main() -> None:
    cli()


if __name__ == "__main__":
    main()

"""
Stake - Stake, unstake or claim stake from a wallet address.

The amount is checked against the matching staking balance before the
operation is built. With the local key the operation is driven to a terminal
state; with a server-signer it is only created.
"""

from __future__ import annotations

import sys
from typing import Optional

import click

from ..errors import PactumError
from ..ledger.operation import OperationState
from .common import address_option, fail, network_option, open_wallet_address, wallet_option

_ACTIONS = ("stake", "unstake", "claim_stake")


@click.command()
@click.argument("amount", type=str)
@click.argument("asset_id")
@network_option
@wallet_option
@address_option
@click.option("--action", type=click.Choice(_ACTIONS), default="stake", show_default=True)
@click.option("--mode", default="default", show_default=True, help="Staking mode (default, partial, native)")
@click.option("--interval", default=5, type=float, show_default=True, help="Seconds between status polls")
@click.option("--timeout", default=600, type=float, show_default=True, help="Seconds to wait")
def stake(
    amount: str,
    asset_id: str,
    network: str,
    wallet_id: str,
    address: Optional[str],
    action: str,
    mode: str,
    interval: float,
    timeout: float,
) -> None:
    """Stake AMOUNT of ASSET_ID (or unstake / claim with --action)."""
    with open_wallet_address(network, wallet_id, address) as source:
        click.echo(f"=== pactum {action} ===")
        click.echo(f"  Address: {source.address_id}")
        click.echo(f"  Amount: {amount} {asset_id} (mode: {mode})")
        click.echo("")

        try:
            run = getattr(source, action)
            operation = run(amount, asset_id, mode=mode, interval_seconds=interval, timeout_seconds=timeout)
        except PactumError as exc:
            fail(exc)

    if operation.state is OperationState.FAILED:
        click.secho(f"FAILED: staking operation {operation.id}", fg="red")
        sys.exit(1)

    click.secho(f"Staking operation {operation.id}: {operation.state.value}", fg="green")
    for tx in operation.transactions:
        if tx.transaction_link:
            click.echo(f"  TX: {tx.transaction_link}")

"""
Transfer - Send an asset to another address on the same network.

With a server-signer the transfer is only created; the signer picks it up out
of band. Otherwise it is signed with the local key, broadcast and, with
--wait, polled until it completes.
"""

from __future__ import annotations

import sys
from typing import Optional

import click

from ..errors import PactumError
from ..ledger.operation import OperationState
from .common import address_option, fail, network_option, open_wallet_address, wallet_option


@click.command()
@click.argument("amount", type=str)
@click.argument("asset_id")
@click.argument("destination")
@network_option
@wallet_option
@address_option
@click.option("--gasless", is_flag=True, help="Let the platform sponsor the fee")
@click.option("--wait/--no-wait", default=True, show_default=True, help="Wait for completion")
@click.option("--timeout", default=60, type=int, show_default=True, help="Seconds to wait")
def transfer(
    amount: str,
    asset_id: str,
    destination: str,
    network: str,
    wallet_id: str,
    address: Optional[str],
    gasless: bool,
    wait: bool,
    timeout: int,
) -> None:
    """Send AMOUNT of ASSET_ID to DESTINATION."""
    with open_wallet_address(network, wallet_id, address) as source:
        click.echo("=== pactum transfer ===")
        click.echo(f"  From: {source.address_id}")
        click.echo(f"  To:   {destination}")
        click.echo(f"  Amount: {amount} {asset_id}")
        click.echo("")

        try:
            result = source.transfer(amount, asset_id, destination, gasless=gasless)
            if wait and not result.delegated:
                result.wait(interval_seconds=1, timeout_seconds=timeout)
        except PactumError as exc:
            fail(exc)

    if result.state is OperationState.FAILED:
        click.secho(f"FAILED: transfer {result.id}", fg="red")
        sys.exit(1)

    click.secho(f"Transfer {result.id}: {result.state.value}", fg="green")
    if result.transaction_link:
        click.echo(f"  TX: {result.transaction_link}")

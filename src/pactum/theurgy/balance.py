"""
Balance - Show what an address holds.

Commands:
- balance:          One asset, or every asset when --asset is omitted
- staking-balances: Stakeable, unstakeable and claimable amounts
"""

from __future__ import annotations

from typing import Optional

import click

from ..errors import PactumError
from ..utils import format_decimal
from .common import address_option, fail, network_option, open_address


@click.command()
@network_option
@address_option
@click.option("--asset", "asset_id", default=None, help="Asset ID (eth, gwei, wei, usdc, ...)")
def balance(network: str, address: Optional[str], asset_id: Optional[str]) -> None:
    """Show the balance of an address."""
    with open_address(network, address) as target:
        try:
            if asset_id:
                click.echo(f"{format_decimal(target.balance(asset_id))} {asset_id}")
                return
            balances = target.balances()
        except PactumError as exc:
            fail(exc)

    click.echo(f"Address: {target.address_id} ({target.network_id})")
    if not balances:
        click.echo("  (no balances)")
    for asset, amount in balances.items():
        click.echo(f"  {asset}: {format_decimal(amount)}")


@click.command("staking-balances")
@network_option
@address_option
@click.option("--asset", "asset_id", required=True, help="Staked asset ID")
@click.option("--mode", default="default", show_default=True, help="Staking mode (default, partial, native)")
def staking_balances(network: str, address: Optional[str], asset_id: str, mode: str) -> None:
    """Show stakeable, unstakeable and claimable balances."""
    with open_address(network, address) as target:
        try:
            result = target.staking_balances(asset_id, mode=mode)
        except PactumError as exc:
            fail(exc)

    for bucket, amount in result.items():
        click.echo(f"{bucket}: {format_decimal(amount)}")

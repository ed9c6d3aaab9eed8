"""Sign Payload - Sign an arbitrary 32-byte hash with a wallet address."""

from __future__ import annotations

from typing import Optional

import click

from ..errors import PactumError
from .common import address_option, fail, network_option, open_wallet_address, wallet_option


@click.command("sign-payload")
@click.argument("unsigned_payload")
@network_option
@wallet_option
@address_option
def sign_payload(unsigned_payload: str, network: str, wallet_id: str, address: Optional[str]) -> None:
    """Sign UNSIGNED_PAYLOAD (0x-prefixed hash) and register the signature."""
    with open_wallet_address(network, wallet_id, address) as source:
        try:
            signature = source.sign_payload(unsigned_payload)
        except PactumError as exc:
            fail(exc)

    click.echo(f"Payload signature {signature.id}: {signature.status}")
    if signature.signature:
        click.echo(f"  Signature: {signature.signature}")

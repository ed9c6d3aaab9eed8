"""
Keygen - Create the local signing key.

The key is stored in ~/.pactum/.env as PRIVATE_KEY. An existing key is kept
unless --force is given.
"""

from __future__ import annotations

import click

from ..sigil.eth import address_of, generate_eoa, load_private_key, save_private_key


@click.command()
@click.option("--force", is_flag=True, help="Replace an existing key")
def keygen(force: bool) -> None:
    """Create a local secp256k1 key for signing."""
    if not force:
        try:
            address = address_of(load_private_key())
        except ValueError:
            pass
        else:
            click.echo(f"Key already exists. Address: {address}")
            return

    private_key, address = generate_eoa()
    env_path = save_private_key(private_key)
    click.secho("Key created.", fg="green")
    click.echo(f"  Address: {address}")
    click.echo(f"  Stored in: {env_path}")

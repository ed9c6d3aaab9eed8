"""Shared plumbing for CLI commands: configuration, platform client, address."""

from __future__ import annotations

import sys
from contextlib import contextmanager
from typing import Iterator, NoReturn, Optional

import click

from ..config import Configuration
from ..errors import PactumError
from ..ledger.address import Address, WalletAddress
from ..pneuma.api import PlatformClient
from ..sigil.eth import address_of, load_private_key

DEFAULT_NETWORK = "base-sepolia"

network_option = click.option(
    "--network",
    default=DEFAULT_NETWORK,
    envvar="PACTUM_NETWORK",
    show_default=True,
    help="Network ID",
)
wallet_option = click.option(
    "--wallet-id",
    required=True,
    envvar="PACTUM_WALLET_ID",
    help="Wallet the address belongs to",
)
address_option = click.option(
    "--address",
    default=None,
    help="Address ID (default: address of the local key)",
)


def fail(exc: Exception) -> NoReturn:
    """Print an error in red and exit with its exit code."""
    click.secho(f"ERROR: {exc}", fg="red")
    sys.exit(getattr(exc, "exit_code", 1))


def load_config() -> Configuration:
    try:
        return Configuration.from_env(require_api_key=True)
    except PactumError as exc:
        fail(exc)


def _resolve_address(config: Configuration, address: Optional[str]) -> tuple[str, Optional[str]]:
    """Return (address_id, private_key); the key is None with a server-signer."""
    if config.use_server_signer:
        if not address:
            raise click.UsageError("--address is required when a server-signer is used")
        return address, None
    try:
        private_key = load_private_key()
    except ValueError as exc:
        fail(exc)
    return address or address_of(private_key), private_key


@contextmanager
def open_address(network: str, address: Optional[str]) -> Iterator[Address]:
    """Yield a read-only address; the platform client is closed on exit."""
    config = load_config()
    if not address:
        try:
            address = address_of(load_private_key())
        except ValueError as exc:
            fail(exc)
    with PlatformClient(config) as api:
        yield Address(network, address, api, config)


@contextmanager
def open_wallet_address(network: str, wallet_id: str, address: Optional[str]) -> Iterator[WalletAddress]:
    """Yield a wallet address holding the local key, unless a server-signer is configured."""
    config = load_config()
    address_id, private_key = _resolve_address(config, address)
    with PlatformClient(config) as api:
        yield WalletAddress(network, address_id, wallet_id, api, config, key=private_key)

"""Shared fixtures for pactum tests."""

from __future__ import annotations

import pytest

from pactum.config import Configuration
from pactum.ledger.address import WalletAddress

from fakes import ADDRESS, NETWORK, PRIVATE_KEY, WALLET_ID, FakePlatform


@pytest.fixture()
def platform() -> FakePlatform:
    return FakePlatform()


@pytest.fixture()
def config() -> Configuration:
    return Configuration(api_key="test-key")


@pytest.fixture()
def delegated_config(config: Configuration) -> Configuration:
    return config.with_server_signer()


@pytest.fixture()
def wallet_address(platform: FakePlatform, config: Configuration) -> WalletAddress:
    return WalletAddress(NETWORK, ADDRESS, WALLET_ID, platform, config, key=PRIVATE_KEY)


@pytest.fixture()
def delegated_address(platform: FakePlatform, delegated_config: Configuration) -> WalletAddress:
    return WalletAddress(NETWORK, ADDRESS, WALLET_ID, platform, delegated_config)

"""
secp256k1 key storage for the local signing strategy.

The key lives in ``~/.pactum/.env`` as ``PRIVATE_KEY``, next to the platform
settings read by :meth:`pactum.config.Configuration.from_env`. The process
environment takes precedence over the file, as it does for configuration.

Dependencies: eth-account (no full web3.py needed), python-dotenv
"""

from __future__ import annotations

import os
import secrets
from pathlib import Path
from typing import Optional

from dotenv import dotenv_values, set_key
from eth_account import Account

from ..config import PACTUM_ENV

PRIVATE_KEY_VAR = "PRIVATE_KEY"


def normalize_private_key(private_key: str) -> str:
    """Return the key as 0x-prefixed lowercase hex."""
    private_key = private_key.strip()
    if not private_key.startswith("0x"):
        private_key = "0x" + private_key
    return private_key.lower()


def generate_eoa() -> tuple[str, str]:
    """
    Generate a new secp256k1 keypair.

    Returns:
        Tuple of (private_key_hex, checksummed address)
    """
    private_key = "0x" + secrets.token_hex(32)
    return private_key, address_of(private_key)


def address_of(private_key: str) -> str:
    return Account.from_key(normalize_private_key(private_key)).address


def save_private_key(private_key: str, env_path: Optional[Path] = None) -> Path:
    """
    Write PRIVATE_KEY into the .env file, keeping its other entries.

    The file is created readable by the owner only.
    """
    env_path = env_path or PACTUM_ENV
    env_path.parent.mkdir(parents=True, exist_ok=True)
    env_path.touch(mode=0o600, exist_ok=True)

    set_key(env_path, PRIVATE_KEY_VAR, normalize_private_key(private_key), quote_mode="never")
    if os.name != "nt":
        env_path.chmod(0o600)
    return env_path


def load_private_key(env_path: Optional[Path] = None) -> str:
    """
    Read PRIVATE_KEY from the environment, falling back to the .env file.

    Raises:
        ValueError: If neither holds a key
    """
    env_path = env_path or PACTUM_ENV
    private_key = os.environ.get(PRIVATE_KEY_VAR)
    if not private_key and env_path.exists():
        private_key = dotenv_values(env_path).get(PRIVATE_KEY_VAR)
    if not private_key:
        raise ValueError(f"PRIVATE_KEY not found. Run 'pactum keygen' or set PRIVATE_KEY in {env_path}")
    return normalize_private_key(private_key)

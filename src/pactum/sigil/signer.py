"""
Signing strategies.

Exactly one strategy is chosen per operation when it is built:

- LocalKeySigner: signs with a private key held in this process
- DelegatedSigner: signs nothing; a server-signer picks the operation up
  out of band and the caller observes it through ``wait``

Unsigned transaction payloads are hex-encoded JSON of an EIP-1559
transaction (chainId, nonce, maxPriorityFeePerGas, maxFeePerGas, gas, to,
value, input; integers as 0x-hex strings). Signed payloads are the hex of the
raw signed transaction, without a 0x prefix.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any, Optional, Protocol

from eth_account import Account
from eth_account.signers.local import LocalAccount
from eth_utils import to_checksum_address

from ..errors import KeyAlreadySetError, KeyNotLoadedError
from .eth import normalize_private_key

if TYPE_CHECKING:
    from ..config import Configuration
    from ..ledger.operation import Operation


def decode_unsigned_payload(unsigned_payload: str) -> dict[str, Any]:
    """
    Decode an unsigned payload into an eth-account transaction dict.

    Args:
        unsigned_payload: Hex-encoded JSON transaction

    Returns:
        Transaction dict ready for ``Account.sign_transaction``

    Raises:
        ValueError: If the payload is not hex-encoded JSON
    """
    try:
        parsed = json.loads(bytes.fromhex(unsigned_payload.removeprefix("0x")).decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise ValueError("Unsigned payload is not hex-encoded JSON") from exc

    return {
        "type": 2,
        "chainId": int(parsed["chainId"], 16),
        "nonce": int(parsed["nonce"], 16),
        "maxPriorityFeePerGas": int(parsed["maxPriorityFeePerGas"], 16),
        "maxFeePerGas": int(parsed["maxFeePerGas"], 16),
        "gas": int(parsed["gas"], 16),
        "to": to_checksum_address(parsed["to"]),
        "value": int(parsed["value"], 16),
        "data": parsed.get("input") or "0x",
        "accessList": [],
    }


def encode_unsigned_payload(transaction: dict[str, Any]) -> str:
    """Inverse of :func:`decode_unsigned_payload`, as the platform builds payloads."""
    body = {
        "chainId": hex(transaction["chainId"]),
        "nonce": hex(transaction["nonce"]),
        "maxPriorityFeePerGas": hex(transaction["maxPriorityFeePerGas"]),
        "maxFeePerGas": hex(transaction["maxFeePerGas"]),
        "gas": hex(transaction["gas"]),
        "to": transaction["to"],
        "value": hex(transaction["value"]),
        "input": transaction.get("data") or "0x",
    }
    return json.dumps(body).encode("utf-8").hex()


class SigningStrategy(Protocol):
    delegated: bool

    def sign(self, unsigned_payload: str) -> Optional[str]:
        ...

    def sign_hash(self, message_hash: str) -> Optional[str]:
        ...

    def sign_operation(self, operation: "Operation") -> "Operation":
        ...


class LocalKeySigner:
    """
    Signs with one locally held secp256k1 key.

    The key can be attached once; a second attempt raises
    :class:`KeyAlreadySetError`. The signer is not safe to share between
    threads signing at the same time.
    """

    delegated = False

    def __init__(self, private_key: Optional[str] = None) -> None:
        self._account: Optional[LocalAccount] = None
        if private_key is not None:
            self.attach_key(private_key)

    def attach_key(self, private_key: str) -> None:
        if self._account is not None:
            raise KeyAlreadySetError()
        self._account = Account.from_key(normalize_private_key(private_key))

    @property
    def has_key(self) -> bool:
        return self._account is not None

    @property
    def account(self) -> LocalAccount:
        if self._account is None:
            raise KeyNotLoadedError()
        return self._account

    @property
    def address(self) -> str:
        return self.account.address

    def export(self) -> str:
        """Return the 0x-prefixed private key hex."""
        return "0x" + bytes(self.account.key).hex()

    def sign(self, unsigned_payload: str) -> str:
        """
        Sign an unsigned transaction payload.

        Returns:
            Hex of the raw signed transaction (no 0x prefix)

        Raises:
            KeyNotLoadedError: If no key is attached
        """
        account = self.account
        signed = account.sign_transaction(decode_unsigned_payload(unsigned_payload))
        return bytes(signed.raw_transaction).hex()

    def sign_hash(self, message_hash: str) -> str:
        """
        Sign a 32-byte hash directly (no message prefix).

        Returns:
            0x-prefixed hex signature (r + s + v)
        """
        account = self.account
        signed = Account.unsafe_sign_hash(bytes.fromhex(message_hash.removeprefix("0x")), account.key)
        return "0x" + bytes(signed.signature).hex()

    def sign_operation(self, operation: "Operation") -> "Operation":
        return operation.sign(self)


class DelegatedSigner:
    """Leaves every operation for the server-signer."""

    delegated = True

    def sign(self, unsigned_payload: str) -> None:
        return None

    def sign_hash(self, message_hash: str) -> None:
        return None

    def sign_operation(self, operation: "Operation") -> "Operation":
        return operation


def signer_for(config: "Configuration", key_signer: Optional[LocalKeySigner] = None) -> SigningStrategy:
    """Pick the strategy for a new operation from the configuration."""
    if config.use_server_signer:
        return DelegatedSigner()
    return key_signer if key_signer is not None else LocalKeySigner()

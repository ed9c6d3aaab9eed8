"""A single on-chain transaction inside an operation."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from ..errors import AlreadySignedError
from ..utils import pretty_print_object, to_network_id


class TransactionStatus(str, Enum):
    PENDING = "pending"
    SIGNED = "signed"
    BROADCAST = "broadcast"
    COMPLETE = "complete"
    FAILED = "failed"
    UNSPECIFIED = "unspecified"

    @classmethod
    def parse(cls, value: Optional[str]) -> "TransactionStatus":
        value = _STATUS_ALIASES.get(value or "", value)
        try:
            return cls(value or cls.PENDING.value)
        except ValueError:
            return cls.UNSPECIFIED


# sponsored sends report "submitted" once handed to the network
_STATUS_ALIASES = {"submitted": "broadcast"}


_SIGNED_OR_LATER = {TransactionStatus.SIGNED, TransactionStatus.BROADCAST, TransactionStatus.COMPLETE}
_BROADCAST_OR_LATER = {TransactionStatus.BROADCAST, TransactionStatus.COMPLETE}
TERMINAL_STATUSES = {TransactionStatus.COMPLETE, TransactionStatus.FAILED}


@dataclass
class Transaction:
    unsigned_payload: str
    status: TransactionStatus = TransactionStatus.PENDING
    signed_payload: Optional[str] = None
    transaction_hash: Optional[str] = None
    network_id: Optional[str] = None
    from_address_id: Optional[str] = None
    to_address_id: Optional[str] = None
    transaction_link: Optional[str] = None
    block_hash: Optional[str] = None
    block_height: Optional[str] = None
    # unsigned_payload is a hash to sign as-is rather than an encoded transaction
    raw_hash: bool = False

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "Transaction":
        network_id = payload.get("network_id")
        return cls(
            unsigned_payload=payload.get("unsigned_payload") or "",
            status=TransactionStatus.parse(payload.get("status")),
            signed_payload=payload.get("signed_payload") or None,
            transaction_hash=payload.get("transaction_hash"),
            network_id=to_network_id(network_id) if network_id else None,
            from_address_id=payload.get("from_address_id"),
            to_address_id=payload.get("to_address_id"),
            transaction_link=payload.get("transaction_link"),
            block_hash=payload.get("block_hash"),
            block_height=payload.get("block_height"),
        )

    @property
    def signed(self) -> bool:
        return bool(self.signed_payload) or self.status in _SIGNED_OR_LATER

    @property
    def broadcast(self) -> bool:
        return self.status in _BROADCAST_OR_LATER

    @property
    def terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def apply_signature(self, signed_payload: str) -> None:
        if self.signed:
            raise AlreadySignedError()
        self.signed_payload = signed_payload
        self.status = TransactionStatus.SIGNED

    def mark_broadcast(self) -> None:
        if self.status not in _BROADCAST_OR_LATER:
            self.status = TransactionStatus.BROADCAST

    def __str__(self) -> str:
        return pretty_print_object(
            "Transaction", transaction_hash=self.transaction_hash, status=self.status.value
        )

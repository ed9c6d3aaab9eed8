"""Read-only records returned by address queries."""

from __future__ import annotations

import time
from dataclasses import dataclass
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Optional

from ..errors import OperationTimeoutError
from ..utils import format_decimal, pretty_print_object
from .amount import Asset, CryptoAmount
from .transaction import Transaction

if TYPE_CHECKING:
    from ..pneuma.api import RemoteBuilder

USD = "usd"
NATIVE = "native"


@dataclass(frozen=True)
class HistoricalBalance:
    amount: Decimal
    block_height: int
    block_hash: str
    asset: Asset

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "HistoricalBalance":
        asset = Asset.from_dict(payload["asset"])
        return cls(
            amount=asset.from_atomic_amount(payload.get("amount") or 0),
            block_height=int(payload.get("block_height") or 0),
            block_hash=payload.get("block_hash") or "",
            asset=asset,
        )

    def __str__(self) -> str:
        return pretty_print_object(
            "HistoricalBalance",
            amount=format_decimal(self.amount),
            block_height=self.block_height,
            block_hash=self.block_hash,
            asset_id=self.asset.asset_id,
        )


@dataclass(frozen=True)
class StakingReward:
    """A reward earned on one date, in USD or in the staked asset."""

    raw_amount: str
    date: str
    address_id: str
    asset: Asset
    format: str = USD

    @classmethod
    def from_dict(cls, payload: dict[str, Any], asset: Asset, format: str = USD) -> "StakingReward":
        return cls(
            raw_amount=str(payload.get("amount") or 0),
            date=payload.get("date") or "",
            address_id=payload.get("address_id") or "",
            asset=asset,
            format=format,
        )

    @property
    def amount(self) -> Decimal:
        # USD rewards come back in cents
        if self.format == USD:
            return Decimal(int(self.raw_amount)) / 100
        return self.asset.from_atomic_amount(self.raw_amount)

    def __str__(self) -> str:
        return pretty_print_object("StakingReward", date=self.date, amount=format_decimal(self.amount))


@dataclass(frozen=True)
class StakingBalance:
    date: str
    address_id: str
    bonded_stake: CryptoAmount
    unbonded_balance: CryptoAmount
    participant_type: str

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "StakingBalance":
        return cls(
            date=payload.get("date") or "",
            address_id=payload.get("address") or "",
            bonded_stake=CryptoAmount.from_dict(payload["bonded_stake"]),
            unbonded_balance=CryptoAmount.from_dict(payload["unbonded_balance"]),
            participant_type=payload.get("participant_type") or "",
        )

    def __str__(self) -> str:
        return pretty_print_object(
            "StakingBalance",
            date=self.date,
            address=self.address_id,
            bonded_stake=format_decimal(self.bonded_stake.amount),
            unbonded_balance=format_decimal(self.unbonded_balance.amount),
            participant_type=self.participant_type,
        )


@dataclass(frozen=True)
class AddressReputation:
    """Platform risk score for an address; negative scores are risky."""

    score: int
    metadata: dict[str, Any]

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "AddressReputation":
        return cls(score=int(payload.get("score") or 0), metadata=dict(payload.get("metadata") or {}))

    @property
    def risky(self) -> bool:
        return self.score < 0

    def __str__(self) -> str:
        return pretty_print_object("AddressReputation", score=self.score, **self.metadata)


class FaucetTransaction:
    """Testnet funds requested from the platform faucet."""

    def __init__(self, payload: dict[str, Any], api: "RemoteBuilder", network_id: str, address_id: str) -> None:
        self._api = api
        self.network_id = network_id
        self.address_id = address_id
        self._update(payload)

    def _update(self, payload: dict[str, Any]) -> None:
        self._model = payload
        self.transaction = Transaction.from_dict(payload.get("transaction") or payload)

    @property
    def transaction_hash(self) -> Optional[str]:
        return self.transaction.transaction_hash or self._model.get("transaction_hash")

    @property
    def transaction_link(self) -> Optional[str]:
        return self.transaction.transaction_link or self._model.get("transaction_link")

    @property
    def status(self) -> str:
        return self.transaction.status.value

    def reload(self) -> "FaucetTransaction":
        self._update(self._api.get_faucet_transaction(self.network_id, self.address_id, self.transaction_hash))
        return self

    def wait(self, interval_seconds: float = 0.2, timeout_seconds: float = 20) -> "FaucetTransaction":
        deadline = time.monotonic() + timeout_seconds
        while True:
            self.reload()
            if self.transaction.terminal:
                return self
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                raise OperationTimeoutError(self.transaction_hash, self.status, timeout_seconds)
            time.sleep(min(interval_seconds, remaining))

    def __str__(self) -> str:
        return pretty_print_object(
            "FaucetTransaction",
            transaction_hash=self.transaction_hash,
            transaction_link=self.transaction_link,
            status=self.status,
        )

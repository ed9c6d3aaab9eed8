"""
Asset amounts - conversion between whole units and atomic on-chain integers.

All arithmetic is done with :class:`decimal.Decimal` using a precision large
enough for the operands, so no amount is ever rounded through a float.
Conversion to atomic units truncates toward zero.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Context, Decimal, InvalidOperation
from typing import Any, Optional, Union

from ..errors import InvalidAmountError, UnsupportedAssetError
from ..utils import format_decimal, pretty_print_object, to_network_id

Number = Union[int, float, str, Decimal]

WEI_PER_ETHER = 10**18
WEI_PER_GWEI = 10**9
GWEI_PER_ETHER = 10**9

ETH_DECIMALS = 18
GWEI_DECIMALS = 9

# Alternate denominations of the native asset: alias -> (primary asset, decimals)
DENOMINATIONS: dict[str, tuple[str, int]] = {
    "eth": ("eth", ETH_DECIMALS),
    "gwei": ("eth", GWEI_DECIMALS),
    "wei": ("eth", 0),
}


def primary_denomination(asset_id: str) -> str:
    """Return the primary asset ID for a denomination alias (gwei -> eth)."""
    if asset_id in DENOMINATIONS:
        return DENOMINATIONS[asset_id][0]
    return asset_id


def to_decimal(amount: Number) -> Decimal:
    """Parse a human amount into a finite, non-negative Decimal."""
    if isinstance(amount, bool):
        raise InvalidAmountError(amount, "booleans are not amounts")
    if isinstance(amount, float):
        amount = str(amount)
    try:
        value = amount if isinstance(amount, Decimal) else Decimal(amount)
    except (InvalidOperation, TypeError, ValueError) as exc:
        raise InvalidAmountError(amount, "not a number") from exc
    if not value.is_finite():
        raise InvalidAmountError(amount, "must be finite")
    if value < 0:
        raise InvalidAmountError(amount)
    return value


@dataclass(frozen=True)
class Asset:
    network_id: str
    asset_id: str
    decimals: int
    display_name: Optional[str] = None
    address_id: Optional[str] = None

    def __post_init__(self) -> None:
        if isinstance(self.decimals, bool) or not isinstance(self.decimals, int) or self.decimals < 0:
            raise ValueError(f"decimals must be a non-negative integer, got {self.decimals!r}")

    @classmethod
    def from_dict(cls, payload: dict[str, Any], asset_id: Optional[str] = None) -> "Asset":
        """
        Build an Asset from a platform asset payload.

        Args:
            payload: ``{"network_id", "asset_id", "decimals", "contract_address"?}``
            asset_id: Denomination to express the asset in (e.g. ``gwei``).
                      Defaults to the payload's own asset ID.

        Raises:
            UnsupportedAssetError: If ``asset_id`` is not a denomination of the payload asset
        """
        model_asset_id = str(payload["asset_id"]).lower()
        decimals = int(payload.get("decimals") or 0)

        if asset_id and asset_id != model_asset_id:
            denomination = DENOMINATIONS.get(asset_id)
            if denomination is None or denomination[0] != model_asset_id:
                raise UnsupportedAssetError(asset_id)
            decimals = denomination[1]

        return cls(
            network_id=to_network_id(payload["network_id"]),
            asset_id=asset_id or model_asset_id,
            decimals=decimals,
            display_name=payload.get("display_name"),
            address_id=payload.get("contract_address"),
        )

    @property
    def primary_denomination(self) -> str:
        return primary_denomination(self.asset_id)

    def to_atomic_amount(self, amount: Number) -> int:
        return to_atomic(amount, self)

    def from_atomic_amount(self, atomic_amount: Union[int, str]) -> Decimal:
        return from_atomic(atomic_amount, self)

    def __str__(self) -> str:
        return pretty_print_object(
            "Asset",
            network_id=self.network_id,
            asset_id=self.asset_id,
            decimals=self.decimals,
            address_id=self.address_id,
        )


def to_atomic(amount: Number, asset: Asset) -> int:
    """
    Convert a whole-unit amount into the asset's atomic units.

    The result is ``amount * 10**decimals`` truncated toward zero, e.g.
    ``0.5`` ETH -> ``500000000000000000`` wei, ``1.9`` wei -> ``1``.

    Raises:
        InvalidAmountError: If the amount is negative, non-finite or not a number
    """
    value = to_decimal(amount)
    digits = len(value.as_tuple().digits)
    context = Context(prec=digits + asset.decimals + 2)
    return int(value.scaleb(asset.decimals, context))


def from_atomic(atomic_amount: Union[int, str], asset: Asset) -> Decimal:
    """Convert atomic units into an exact whole-unit Decimal."""
    if isinstance(atomic_amount, bool):
        raise InvalidAmountError(atomic_amount, "booleans are not amounts")
    try:
        atomic = int(atomic_amount) if atomic_amount not in (None, "") else 0
    except (TypeError, ValueError) as exc:
        raise InvalidAmountError(atomic_amount, "atomic amounts must be integers") from exc
    return Decimal(f"{atomic}e-{asset.decimals}")


@dataclass(frozen=True)
class CryptoAmount:
    """An amount of an asset, expressed in whole units of ``asset_id``."""

    amount: Decimal
    asset: Asset
    asset_id: str = ""

    def __post_init__(self) -> None:
        if not self.asset_id:
            object.__setattr__(self, "asset_id", self.asset.asset_id)

    @classmethod
    def from_dict(cls, payload: dict[str, Any], asset_id: Optional[str] = None) -> "CryptoAmount":
        """Convert an ``{"amount": "<atomic>", "asset": {...}}`` payload."""
        asset = Asset.from_dict(payload["asset"], asset_id=asset_id)
        return cls(amount=asset.from_atomic_amount(payload.get("amount") or 0), asset=asset)

    def to_atomic_amount(self) -> int:
        return self.asset.to_atomic_amount(self.amount)

    def __str__(self) -> str:
        return pretty_print_object("CryptoAmount", amount=format_decimal(self.amount), asset_id=self.asset_id)


class BalanceMap(dict):
    """Balances keyed by asset ID, printed in a human-readable form."""

    @classmethod
    def from_balances(cls, balances: list[dict[str, Any]]) -> "BalanceMap":
        result = cls()
        for payload in balances:
            balance = CryptoAmount.from_dict(payload)
            result[balance.asset_id] = balance.amount
        return result

    def __str__(self) -> str:
        inner = ", ".join(f"{asset_id}: {format_decimal(amount)}" for asset_id, amount in self.items())
        return f"BalanceMap{{{inner}}}"

    __repr__ = __str__

"""Pre-flight checks run before any operation is built remotely."""

from __future__ import annotations

from typing import Optional, Protocol

from ..errors import AddressCannotSignError, InsufficientFundsError
from .amount import Number, to_decimal


class SigningCapable(Protocol):
    address_id: str

    @property
    def can_sign(self) -> bool:
        ...


class BalanceGuard:
    """
    Balance and signing-capability checks.

    The balance passed to :meth:`ensure_sufficient` must be fetched by the
    caller immediately before the check. Two concurrent spends from the same
    address can both pass; the platform rejects the loser downstream.
    """

    def __init__(self, delegated: bool = False) -> None:
        self.delegated = delegated

    @staticmethod
    def ensure_sufficient(
        current_balance: Number,
        requested_amount: Number,
        context: Optional[str] = None,
    ) -> None:
        available = to_decimal(current_balance)
        requested = to_decimal(requested_amount)
        if requested > available:
            raise InsufficientFundsError(requested, available, context=context)

    def ensure_can_sign(self, address: SigningCapable) -> None:
        if self.delegated:
            return
        if not address.can_sign:
            raise AddressCannotSignError(address.address_id)

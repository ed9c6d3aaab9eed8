"""
Error taxonomy for pactum.

Every error raised by the library derives from :class:`PactumError` and
carries the structured data (amounts, ids) needed to build an actionable
message without querying the platform again. ``exit_code`` is used by the
CLI.
"""

from __future__ import annotations

import json
from decimal import Decimal
from typing import Any, Optional, Sequence

import httpx


class PactumError(RuntimeError):
    exit_code: int = 1


class InvalidConfigurationError(PactumError):
    exit_code = 2


class InvalidAmountError(PactumError, ValueError):
    exit_code = 3

    def __init__(self, amount: Any, reason: str = "amount must be a non-negative number") -> None:
        self.amount = amount
        self.reason = reason
        super().__init__(f"Invalid amount {amount!r}: {reason}")


class UnsupportedAssetError(PactumError, ValueError):
    exit_code = 3

    def __init__(self, asset_id: str) -> None:
        self.asset_id = asset_id
        super().__init__(f"Unsupported asset ID: {asset_id}")


class InsufficientFundsError(PactumError):
    exit_code = 4

    def __init__(self, requested: Decimal, available: Decimal, context: Optional[str] = None) -> None:
        self.requested = requested
        self.available = available
        self.context = context
        where = f" ({context})" if context else ""
        super().__init__(f"Insufficient funds{where}: {requested} requested, but only {available} available")


class AddressCannotSignError(PactumError):
    exit_code = 5

    def __init__(self, address_id: Optional[str] = None) -> None:
        self.address_id = address_id
        super().__init__(
            "Address cannot sign transactions: no private key is loaded and server signing is disabled"
        )


class CrossNetworkTransferError(PactumError, ValueError):
    exit_code = 3

    def __init__(self, source_network_id: str, destination_network_id: str) -> None:
        self.source_network_id = source_network_id
        self.destination_network_id = destination_network_id
        super().__init__(
            f"Transfers must stay on one network: source is {source_network_id}, "
            f"destination is {destination_network_id}"
        )


class InvalidContractCallError(PactumError, ValueError):
    exit_code = 3

    def __init__(self, method: str, reason: str) -> None:
        self.method = method
        self.reason = reason
        super().__init__(f"Invalid call to {method}: {reason}")


class KeyAlreadySetError(PactumError):
    def __init__(self) -> None:
        super().__init__("Private key is already set")


class KeyNotLoadedError(PactumError):
    exit_code = 5

    def __init__(self) -> None:
        super().__init__("No private key is loaded")


class AlreadySignedError(PactumError):
    def __init__(self) -> None:
        super().__init__("Transaction is already signed")


class TransactionNotSignedError(PactumError):
    def __init__(self, operation_id: Optional[str] = None) -> None:
        self.operation_id = operation_id
        super().__init__(f"Operation {operation_id} must be signed before it can be broadcast")


class InvalidStateTransitionError(PactumError):
    def __init__(self, operation_id: Optional[str], current: str, target: str, reason: Optional[str] = None) -> None:
        self.operation_id = operation_id
        self.current = current
        self.target = target
        self.reason = reason
        why = f": {reason}" if reason else ""
        super().__init__(f"Operation {operation_id} cannot move from {current} to {target}{why}")


class OperationTimeoutError(PactumError):
    exit_code = 6

    def __init__(self, operation_id: Optional[str], state: str, timeout_seconds: float) -> None:
        self.operation_id = operation_id
        self.state = state
        self.timeout_seconds = timeout_seconds
        super().__init__(
            f"Operation {operation_id} did not reach a terminal state within "
            f"{timeout_seconds}s (last state: {state})"
        )


class PaginationLoopError(PactumError):
    def __init__(self, token: str) -> None:
        self.token = token
        super().__init__(f"Page token {token!r} was returned twice in one traversal")


# ============ Platform API errors ============


class APIError(PactumError):
    """An error returned by (or while reaching) the remote platform."""

    exit_code = 7

    def __init__(
        self,
        message: str = "API error",
        http_code: Optional[int] = None,
        api_code: Optional[str] = None,
        api_message: Optional[str] = None,
    ) -> None:
        self.http_code = http_code
        self.api_code = api_code
        self.api_message = api_message
        super().__init__(message)

    def __str__(self) -> str:
        lines = [super().__str__()]
        if self.http_code:
            lines.append(f"HTTP status code: {self.http_code}")
        if self.api_code:
            lines.append(f"API error code: {self.api_code}")
        if self.api_message:
            lines.append(f"API error message: {self.api_message}")
        return "\n".join(lines)

    @classmethod
    def from_response(cls, response: httpx.Response, default: Optional[type["APIError"]] = None) -> "APIError":
        """Build the most specific error for a failed platform response.

        A recognised ``code`` in the JSON body wins over ``default``; the
        faucet limit in particular is always raised as
        :class:`FaucetLimitReachedError`.
        """
        api_code: Optional[str] = None
        api_message: Optional[str] = None
        try:
            body = response.json()
        except (json.JSONDecodeError, ValueError):
            body = None
        if isinstance(body, dict):
            api_code = body.get("code")
            api_message = body.get("message")

        error_class = ERROR_CODES.get(api_code or "") or default or cls
        return error_class(
            "API error",
            http_code=response.status_code,
            api_code=api_code,
            api_message=api_message or (response.text or None),
        )


class UnauthorizedError(APIError):
    pass


class NotFoundError(APIError):
    pass


class RateLimitExceededError(APIError):
    pass


class FaucetLimitReachedError(APIError):
    pass


class UnimplementedError(APIError):
    pass


class InternalError(APIError):
    pass


class RemoteBuildError(APIError):
    """The platform refused or failed to build an operation."""


class BroadcastError(APIError):
    """Submitting signed payloads failed, possibly after partial acceptance."""

    def __init__(
        self,
        message: str = "Broadcast failed",
        http_code: Optional[int] = None,
        api_code: Optional[str] = None,
        api_message: Optional[str] = None,
        operation_id: Optional[str] = None,
        broadcast_indices: Sequence[int] = (),
        pending_indices: Sequence[int] = (),
    ) -> None:
        super().__init__(message, http_code=http_code, api_code=api_code, api_message=api_message)
        self.operation_id = operation_id
        self.broadcast_indices = tuple(broadcast_indices)
        self.pending_indices = tuple(pending_indices)

    @property
    def partial(self) -> bool:
        return bool(self.broadcast_indices) and bool(self.pending_indices)

    def __str__(self) -> str:
        text = super().__str__()
        if self.operation_id:
            text += f"\nOperation: {self.operation_id}"
        if self.partial:
            text += (
                f"\nPartially broadcast: transactions {list(self.broadcast_indices)} accepted, "
                f"{list(self.pending_indices)} pending"
            )
        return text


ERROR_CODES: dict[str, type[APIError]] = {
    "unauthorized": UnauthorizedError,
    "not_found": NotFoundError,
    "rate_limit_exceeded": RateLimitExceededError,
    "faucet_limit_reached": FaucetLimitReachedError,
    "unimplemented": UnimplementedError,
    "internal": InternalError,
}

"""Unit tests for pneuma.api (PlatformClient over a mocked transport)."""

from __future__ import annotations

import json
from typing import Callable

import httpx
import pytest

from pactum.config import Configuration
from pactum.errors import (
    APIError,
    BroadcastError,
    FaucetLimitReachedError,
    NotFoundError,
    RemoteBuildError,
    UnauthorizedError,
)
from pactum.ledger.operation import OperationKind
from pactum.pneuma.api import PlatformClient, broadcast_body

from fakes import ADDRESS, ETH, NETWORK, WALLET_ID

BASE_URL = "https://platform.test"

Handler = Callable[[httpx.Request], httpx.Response]


def make_client(handler: Handler, **config) -> PlatformClient:
    config = Configuration(api_url=BASE_URL, api_key="test-key", **config)
    return PlatformClient(config, client=httpx.Client(transport=httpx.MockTransport(handler), base_url=BASE_URL))


class Recorder:
    """Answers every request with one response and keeps the requests."""

    def __init__(self, status_code: int = 200, body=None) -> None:
        self.status_code = status_code
        self.body = body if body is not None else {}
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.status_code, json=self.body)

    @property
    def last_json(self) -> dict:
        return json.loads(self.requests[-1].content)


class TestBroadcastBody:
    def test_single(self) -> None:
        assert broadcast_body(OperationKind.TRANSFER, ["aa"]) == {"signed_payload": "aa"}

    def test_trade_sends_approval(self) -> None:
        assert broadcast_body(OperationKind.TRADE, ["approve", "trade"]) == {
            "signed_payload": "trade",
            "approve_transaction_signed_payload": "approve",
        }

    def test_staking_index(self) -> None:
        assert broadcast_body(OperationKind.STAKING, ["bb"], transaction_index=2) == {
            "signed_payload": "bb",
            "transaction_index": 2,
        }

    def test_nothing_to_broadcast(self) -> None:
        with pytest.raises(ValueError):
            broadcast_body(OperationKind.TRANSFER, [])


class TestRequests:
    def test_bearer_token(self) -> None:
        recorder = Recorder(body=ETH)
        make_client(recorder).get_asset(NETWORK, "eth")
        assert recorder.requests[0].headers["Authorization"] == "Bearer test-key"

    def test_asset_is_cached_per_primary_denomination(self) -> None:
        recorder = Recorder(body=ETH)
        client = make_client(recorder)
        assert client.get_asset("base_sepolia", "eth").decimals == 18
        assert client.get_asset(NETWORK, "gwei").decimals == 9
        assert len(recorder.requests) == 1
        assert recorder.requests[0].url.path == "/v1/networks/base-sepolia/assets/eth"

    def test_missing_balance_is_none(self) -> None:
        recorder = Recorder(404, {"code": "not_found", "message": "no balance"})
        assert make_client(recorder).get_balance(NETWORK, ADDRESS, "gwei") is None
        assert recorder.requests[0].url.path.endswith(f"/addresses/{ADDRESS}/balances/eth")

    def test_balance(self) -> None:
        recorder = Recorder(body={"amount": "2000000000", "asset": ETH})
        balance = make_client(recorder).get_balance(NETWORK, ADDRESS, "gwei")
        assert balance.amount == 2

    def test_list_balances_follows_pages(self) -> None:
        pages = [
            {"data": [{"amount": "1", "asset": ETH}], "has_more": True, "next_page": "p2"},
            {"data": [{"amount": "5", "asset": dict(ETH, asset_id="usdc", decimals=6)}], "has_more": False},
        ]
        seen: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request.url.params.get("page", ""))
            return httpx.Response(200, json=pages[len(seen) - 1])

        balances = make_client(handler).list_balances(NETWORK, ADDRESS)
        assert set(balances) == {"eth", "usdc"}
        assert seen == ["", "p2"]

    def test_page_params(self) -> None:
        recorder = Recorder(body={"data": [], "has_more": False})
        page = make_client(recorder, page_limit=7).list_operations(OperationKind.TRADE, WALLET_ID, ADDRESS, "tok")
        assert page.items == []
        url = recorder.requests[0].url
        assert url.path == f"/v1/wallets/{WALLET_ID}/addresses/{ADDRESS}/trades"
        assert url.params["limit"] == "7"
        assert url.params["page"] == "tok"


class TestOperations:
    def test_build_transfer_adds_network(self) -> None:
        recorder = Recorder(body={"transfer_id": "t-1"})
        make_client(recorder).build_operation(OperationKind.TRANSFER, "base_sepolia", WALLET_ID, ADDRESS, {"amount": "1"})
        assert recorder.requests[0].method == "POST"
        assert recorder.last_json == {"amount": "1", "network_id": "base-sepolia"}

    def test_build_error(self) -> None:
        recorder = Recorder(400, {"code": "invalid_amount", "message": "amount too small"})
        with pytest.raises(RemoteBuildError) as exc_info:
            make_client(recorder).build_operation(OperationKind.TRADE, NETWORK, WALLET_ID, ADDRESS, {})
        assert exc_info.value.http_code == 400
        assert exc_info.value.api_message == "amount too small"

    def test_known_code_wins_over_default(self) -> None:
        recorder = Recorder(401, {"code": "unauthorized", "message": "bad key"})
        with pytest.raises(UnauthorizedError):
            make_client(recorder).build_operation(OperationKind.TRADE, NETWORK, WALLET_ID, ADDRESS, {})

    def test_broadcast(self) -> None:
        recorder = Recorder(body={"trade_id": "t-1"})
        make_client(recorder).broadcast(OperationKind.TRADE, WALLET_ID, ADDRESS, "t-1", ["a", "b"])
        assert recorder.requests[0].url.path.endswith("/trades/t-1/broadcast")
        assert recorder.last_json == {"signed_payload": "b", "approve_transaction_signed_payload": "a"}

    def test_broadcast_error(self) -> None:
        recorder = Recorder(502, {"message": "node down"})
        with pytest.raises(BroadcastError):
            make_client(recorder).broadcast(OperationKind.TRANSFER, WALLET_ID, ADDRESS, "t-1", ["a"])

    def test_get_operation_without_wallet(self) -> None:
        recorder = Recorder(body={"id": "s-1"})
        make_client(recorder).get_operation(OperationKind.STAKING, NETWORK, None, ADDRESS, "s-1")
        assert recorder.requests[0].url.path == f"/v1/networks/base-sepolia/addresses/{ADDRESS}/staking_operations/s-1"

    def test_staking_context(self) -> None:
        recorder = Recorder(body={"context": {"stakeable_balance": {"amount": "1", "asset": ETH}}})
        context = make_client(recorder).get_staking_context(NETWORK, ADDRESS, "eth", {"mode": "default"})
        assert set(context) == {"stakeable_balance"}
        assert recorder.last_json["options"] == {"mode": "default"}


class TestErrors:
    def test_faucet_limit(self) -> None:
        recorder = Recorder(429, {"code": "faucet_limit_reached", "message": "slow down"})
        with pytest.raises(FaucetLimitReachedError):
            make_client(recorder).request_faucet_funds(NETWORK, ADDRESS)

    def test_not_found(self) -> None:
        recorder = Recorder(404, {"code": "not_found"})
        with pytest.raises(NotFoundError):
            make_client(recorder).get_asset(NETWORK, "doge")

    def test_non_json_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500, text="upstream exploded")

        with pytest.raises(APIError) as exc_info:
            make_client(handler).get_asset(NETWORK, "eth")
        assert exc_info.value.api_message == "upstream exploded"
        assert "HTTP status code: 500" in str(exc_info.value)

    def test_transport_failure(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(APIError, match="connection refused") as exc_info:
            make_client(handler).get_asset(NETWORK, "eth")
        assert isinstance(exc_info.value.__cause__, httpx.ConnectError)

    def test_transport_failure_during_broadcast(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        with pytest.raises(BroadcastError):
            make_client(handler).broadcast(OperationKind.TRANSFER, WALLET_ID, ADDRESS, "t-1", ["a"])

"""Shared fixtures and fakes. No test touches the network."""
from typing import Any, Callable, Dict, List, Optional

import pytest

from onchain.keys import LedgerAccount
from paper_trader.models import Signal, SubscriberAccount
from shared.enums import Side
from shared.errors import FeedUnavailable, LedgerRequestError

OPERATOR_KEY = "0x" + "11" * 32
SUBSCRIBER_KEY = "0x" + "22" * 32
MODULE_ADDR = "0x" + "ab" * 32


# =============================================================================
# FEED
# =============================================================================


def sample(time: str, entry: float, side: str = "LONG", stop: float = 0.0, target: float = 0.0) -> Dict[str, Any]:
    return {
        "time": time,
        "entry_price": entry,
        "signal": side,
        "stop_loss": stop,
        "take_profit": target,
    }


def feed_document(series: Dict[str, List[Dict[str, Any]]], key: str = "forecast_today_hourly") -> Dict[str, Any]:
    return {key: series}


class FakeFeedClient:
    """Returns queued documents in order; an Exception entry is raised."""

    def __init__(self, *responses: Any):
        self.responses = list(responses)
        self.calls = 0

    def fetch(self) -> Dict[str, Any]:
        self.calls += 1
        response = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(response, Exception):
            raise response
        return response


# =============================================================================
# LEDGER
# =============================================================================


class FakeAptosClient:
    """
    In-memory stand-in for AptosRestClient.

    reject(function_id, args) -> bool decides whether a submission fails.
    """

    def __init__(
        self,
        resources: Optional[Dict[tuple, Dict[str, Any]]] = None,
        reject: Optional[Callable[[str, List[Any]], bool]] = None,
    ):
        self.resources = resources or {}
        self.reject = reject or (lambda function, args: False)
        self.submissions: List[Dict[str, Any]] = []
        self.resource_reads = 0

    def get_account_resource(self, address: str, resource_type: str) -> Optional[Dict[str, Any]]:
        self.resource_reads += 1
        return self.resources.get((address, resource_type))

    def submit_entry_function(self, sender, function: str, arguments: List[Any], wait: bool = True) -> str:
        record = {"sender": sender.address, "function": function, "arguments": arguments}
        self.submissions.append(record)
        if self.reject(function, arguments):
            record["accepted"] = False
            raise LedgerRequestError(f"rejected {function}", status_code=400)
        record["accepted"] = True
        return f"0x{len(self.submissions):064x}"

    def posted(self) -> List[Dict[str, Any]]:
        return [s for s in self.submissions if s["function"].endswith("::post_signal")]


# =============================================================================
# FIXTURES
# =============================================================================


@pytest.fixture
def operator():
    return LedgerAccount.from_hex(OPERATOR_KEY)


@pytest.fixture
def subscriber_key():
    return LedgerAccount.from_hex(SUBSCRIBER_KEY)


@pytest.fixture
def make_signal():
    def _make(symbol="BTC", side=Side.LONG, entry=100.0, observed_at="2025-01-01T10:00:00Z"):
        return Signal(
            symbol=symbol,
            side=side,
            entry_price=entry,
            stop_loss=0.0,
            take_profit=0.0,
            observed_at=observed_at,
        )
    return _make


@pytest.fixture
def make_account(subscriber_key):
    def _make(subscriber_id="1001", balance=10_000.0, allocation=0.25, leverage=5, **kwargs):
        return SubscriberAccount(
            subscriber_id=subscriber_id,
            address=subscriber_key.address,
            signing_key=subscriber_key.private_key_hex,
            paper_balance=balance,
            allocation_fraction=allocation,
            leverage=leverage,
            **kwargs,
        )
    return _make


@pytest.fixture
def feed_down():
    return FeedUnavailable("Signal feed HTTP 503")

# =============================================================================
# TELETRADE - Stores, Sanitizing and Identity Unit Tests
# =============================================================================

import json

import pytest

from app.identity import Admin, Regular, designate_admin, enroll, resolve_identity
from app.stores import JsonStateStore, JsonSubscriberStore
from collector.gate import SchedulerState
from paper_trader.models import Position, SubscriberAccount
from shared.enums import Side


@pytest.fixture
def store(tmp_path):
    return JsonSubscriberStore(tmp_path / "users.json", default_leverage=5, start_balance=10_000.0)


@pytest.fixture
def state_store(tmp_path):
    return JsonStateStore(tmp_path / "state.json")


class TestSanitizing:

    def test_rejects_records_without_address_or_key(self):
        assert SubscriberAccount.from_dict("1", {"address": "abc", "signing_key": "k"}) is None
        assert SubscriberAccount.from_dict("1", {"address": "0xabc"}) is None
        assert SubscriberAccount.from_dict("1", "garbage") is None

    def test_clamps_and_defaults(self):
        account = SubscriberAccount.from_dict(
            "1",
            {
                "address": "0xabc",
                "signing_key": "0x11",
                "leverage": 250,
                "paper_balance": -5,
                "allocation_fraction": 1.5,
                "auto_trade_enabled": 1,
                "positions": [{"symbol": "btc", "side": "LONG", "entry_price": 100, "leverage": 3, "collateral": 10},
                              {"symbol": "eth", "side": "SIDEWAYS"}],
            },
            default_leverage=5,
            start_balance=1000.0,
        )

        assert account.leverage == 100
        assert account.paper_balance == 0.0
        assert account.allocation_fraction is None
        assert account.auto_trade_enabled is True
        assert account.monitoring_enabled is False
        assert [p.symbol for p in account.positions] == ["BTC"]

    def test_non_numeric_uses_defaults(self):
        account = SubscriberAccount.from_dict(
            "1",
            {"address": "0xabc", "signing_key": "0x11", "leverage": "x", "paper_balance": None},
            default_leverage=7,
            start_balance=1234.0,
        )

        assert account.leverage == 7
        assert account.paper_balance == 1234.0

    def test_infinite_numbers_use_defaults(self):
        account = SubscriberAccount.from_dict(
            "1",
            {
                "address": "0xabc",
                "signing_key": "0x11",
                "leverage": float("inf"),
                "paper_balance": float("inf"),
                "positions": [{"symbol": "btc", "side": "LONG", "entry_price": 100, "leverage": float("inf")}],
            },
            default_leverage=7,
            start_balance=1234.0,
        )

        assert account.leverage == 7
        assert account.paper_balance == 1234.0
        assert account.positions == []


class TestJsonSubscriberStore:

    def test_enroll_new_subscriber(self, store):
        account = store.ensure("1001")

        assert account.address.startswith("0x")
        assert account.auto_trade_enabled is True
        assert account.monitoring_enabled is False
        assert account.leverage == 5
        assert account.paper_balance == 10_000.0
        assert account.allocation_fraction is None
        assert store.get("1001").address == account.address

    def test_ensure_keeps_existing_account(self, store):
        first = store.ensure("1001")
        first.paper_balance = 42.0
        store.save(first)

        again = store.ensure("1001")

        assert again.address == first.address
        assert again.paper_balance == 42.0

    def test_positions_persist(self, store):
        account = store.ensure("1001")
        account.positions.append(Position("BTC", Side.SHORT, 100.0, 5, 250.0, 1.0))
        store.save(account)

        loaded = store.get("1001")

        assert loaded.positions == account.positions

    def test_unusable_records_skipped(self, store):
        store.path.write_text(json.dumps({"bad": {"address": "nope"}, "good": {"address": "0x1", "signing_key": "0x2"}}))

        assert list(store.load()) == ["good"]

    def test_infinity_in_file_does_not_abort_load(self, store):
        store.path.write_text(
            '{"a": {"address": "0x1", "signing_key": "0x2", "leverage": Infinity},'
            ' "b": {"address": "0x3", "signing_key": "0x4", "leverage": 3}}'
        )

        accounts = store.load()

        assert accounts["a"].leverage == 5
        assert accounts["b"].leverage == 3

    def test_corrupt_file_reads_empty(self, store):
        store.path.write_text("{not json")

        assert store.load() == {}

    def test_no_temp_files_left(self, store):
        store.ensure("1001")

        assert [p.name for p in store.path.parent.iterdir()] == ["users.json"]


class TestJsonStateStore:

    def test_roundtrip(self, state_store):
        assert state_store.load() == SchedulerState()

        state_store.save(SchedulerState(last_accepted_key="k", admin_subscriber_id="7", consecutive_failures=3))

        loaded = state_store.load()
        assert loaded.last_accepted_key == "k"
        assert loaded.admin_subscriber_id == "7"
        assert loaded.consecutive_failures == 0
        assert json.loads(state_store.path.read_text()) == {
            "lastAcceptedSignalKey": "k",
            "adminSubscriberId": "7",
        }


class TestIdentity:

    def test_resolve(self):
        assert resolve_identity("7", "7") == Admin("7")
        assert resolve_identity("8", "7") == Regular("8")
        assert resolve_identity("8", None) == Regular("8")

    def test_first_admin_sticks(self, state_store):
        assert designate_admin(state_store, "7").admin_subscriber_id == "7"
        assert designate_admin(state_store, "8").admin_subscriber_id == "7"

    def test_admin_bound_to_operator(self, store, operator):
        store.ensure("7")

        account = enroll(store, Admin("7"), operator)

        assert account.is_admin
        assert account.address == operator.address
        assert account.signing_key == operator.private_key_hex
        assert account.monitoring_enabled

    def test_regular_keeps_own_account(self, store, operator):
        account = enroll(store, Regular("8"), operator)

        assert not account.is_admin
        assert account.address != operator.address

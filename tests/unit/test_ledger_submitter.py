# =============================================================================
# TELETRADE - Ledger Submitter Unit Tests
# =============================================================================
#
# Tests cover:
# - Variant argument encoding (8-arg / 2-arg / 3-arg)
# - Per-variant retry with doubling backoff
# - Fallback to the next variant, first accepted wins
# - SubmissionFailed after every variant is exhausted
# - Best-effort warm-up (register agent, link user) never aborts
#
# =============================================================================

from unittest.mock import MagicMock

import pytest

from onchain.aptos_client import AptosRestClient
from onchain.envelope import encode_envelope
from onchain.submitter import LedgerSubmitter, linked_agent, same_address
from onchain.variants import DEFAULT_VARIANTS, SubmissionMetadata
from shared.errors import SubmissionFailed
from tests.conftest import MODULE_ADDR, FakeAptosClient

KEY = bytes(range(32))


@pytest.fixture
def envelope():
    return encode_envelope(KEY, b'{"symbol":"BTC"}', b"teletrade")


@pytest.fixture
def metadata(operator):
    return SubmissionMetadata(counterparty=operator.address, timestamp=1_700_000_000)


def _linked_resources(operator, signer):
    """Operator already registered and signer already linked: no warm-up txns."""
    return {
        (operator.address, f"{MODULE_ADDR}::agent_registry::Agent"): {"max_leverage": "10"},
        (signer.address, f"{MODULE_ADDR}::agent_registry::UserConfig"): {"agent": {"inner": operator.address}},
    }


def _submitter(client, operator, sleeps, **kwargs):
    return LedgerSubmitter(client, MODULE_ADDR, operator, sleep=sleeps.append, **kwargs)


class TestVariants:

    def test_priority_order(self):
        assert [v.name for v in DEFAULT_VARIANTS] == ["full", "blob", "counterparty_blob"]

    def test_full_variant_arguments(self, envelope, metadata):
        args = DEFAULT_VARIANTS[0].encode(envelope, metadata)
        content_hash = "0x" + envelope.content_hash.hex()

        assert args == [
            metadata.counterparty,
            content_hash,
            content_hash,
            "0x" + envelope.ciphertext.hex(),
            "0x" + envelope.iv.hex(),
            "0x" + envelope.aad.hex(),
            "0x" + envelope.tag.hex(),
            "1700000000",
        ]

    def test_reduced_variants(self, envelope, metadata):
        blob = "0x" + envelope.ciphertext.hex()

        assert DEFAULT_VARIANTS[1].encode(envelope, metadata) == [blob, "1700000000"]
        assert DEFAULT_VARIANTS[2].encode(envelope, metadata) == [metadata.counterparty, blob, "1700000000"]

    def test_function_id(self):
        assert DEFAULT_VARIANTS[0].function_id("0xabc") == "0xabc::signal_vault::post_signal"


class TestSubmit:

    def test_first_variant_accepted(self, operator, subscriber_key, envelope, metadata):
        client = FakeAptosClient(resources=_linked_resources(operator, subscriber_key))
        sleeps = []

        tx_hash = _submitter(client, operator, sleeps).submit(envelope, subscriber_key, metadata)

        assert tx_hash.startswith("0x")
        assert len(client.submissions) == 1
        assert len(client.posted()[0]["arguments"]) == 8
        assert client.posted()[0]["sender"] == subscriber_key.address
        assert sleeps == []

    def test_retries_with_doubling_backoff_then_falls_through(self, operator, subscriber_key, envelope, metadata):
        client = FakeAptosClient(
            resources=_linked_resources(operator, subscriber_key),
            reject=lambda function, args: len(args) == 8,
        )
        sleeps = []

        _submitter(client, operator, sleeps, backoff_base_s=1.0).submit(envelope, subscriber_key, metadata)

        arg_counts = [len(s["arguments"]) for s in client.posted()]
        assert arg_counts == [8, 8, 8, 2]
        assert sleeps == [1.0, 2.0]

    def test_third_variant_after_two_rejections(self, operator, subscriber_key, envelope, metadata):
        client = FakeAptosClient(
            resources=_linked_resources(operator, subscriber_key),
            reject=lambda function, args: len(args) != 3,
        )

        _submitter(client, operator, [], max_attempts=1).submit(envelope, subscriber_key, metadata)

        assert [len(s["arguments"]) for s in client.posted()] == [8, 2, 3]

    def test_all_variants_rejected(self, operator, subscriber_key, envelope, metadata):
        client = FakeAptosClient(
            resources=_linked_resources(operator, subscriber_key),
            reject=lambda function, args: True,
        )
        sleeps = []

        with pytest.raises(SubmissionFailed) as exc_info:
            _submitter(client, operator, sleeps).submit(envelope, subscriber_key, metadata)

        assert exc_info.value.reason == "all variants failed"
        assert len(client.posted()) == 9
        assert sleeps == [1.0, 2.0] * 3

    def test_invalid_max_attempts(self, operator):
        with pytest.raises(ValueError):
            LedgerSubmitter(FakeAptosClient(), MODULE_ADDR, operator, max_attempts=0)


class TestWarmUp:

    def test_registers_agent_and_links_signer(self, operator, subscriber_key, envelope, metadata):
        client = FakeAptosClient()

        _submitter(client, operator, []).submit(envelope, subscriber_key, metadata)

        functions = [s["function"] for s in client.submissions]
        assert functions == [
            f"{MODULE_ADDR}::agent_registry::register_agent",
            f"{MODULE_ADDR}::agent_registry::link_user",
            f"{MODULE_ADDR}::signal_vault::post_signal",
        ]
        register = client.submissions[0]
        assert register["sender"] == operator.address
        assert register["arguments"] == [operator.public_key_hex, "10", "0x"]
        assert client.submissions[1]["arguments"] == [operator.address]

    def test_warm_up_failure_does_not_abort(self, operator, subscriber_key, envelope, metadata):
        client = FakeAptosClient(reject=lambda function, args: "agent_registry" in function)

        tx_hash = _submitter(client, operator, []).submit(envelope, subscriber_key, metadata)

        assert tx_hash
        assert client.posted()[0]["accepted"]

    def test_agent_checked_once(self, operator, subscriber_key, envelope, metadata):
        client = FakeAptosClient(resources=_linked_resources(operator, subscriber_key))
        submitter = _submitter(client, operator, [])

        submitter.submit(envelope, subscriber_key, metadata)
        submitter.submit(envelope, subscriber_key, metadata)

        # one Agent read + two UserConfig reads
        assert client.resource_reads == 3

    def test_linked_signer_is_not_relinked(self, operator, subscriber_key, envelope, metadata):
        client = FakeAptosClient(resources=_linked_resources(operator, subscriber_key))
        submitter = _submitter(client, operator, [])

        submitter.submit(envelope, subscriber_key, metadata)
        submitter.submit(envelope, subscriber_key, metadata)

        assert [s["function"] for s in client.submissions] == [f"{MODULE_ADDR}::signal_vault::post_signal"] * 2

    def test_signer_linked_elsewhere_is_relinked(self, operator, subscriber_key, envelope, metadata):
        resources = _linked_resources(operator, subscriber_key)
        resources[(subscriber_key.address, f"{MODULE_ADDR}::agent_registry::UserConfig")] = {
            "agent": {"inner": "0x" + "cd" * 32},
        }
        client = FakeAptosClient(resources=resources)

        _submitter(client, operator, []).submit(envelope, subscriber_key, metadata)

        assert client.submissions[0]["function"] == f"{MODULE_ADDR}::agent_registry::link_user"


class TestAddressHelpers:

    def test_linked_agent_shapes(self):
        assert linked_agent({"agent": {"inner": "0x2"}}) == "0x2"
        assert linked_agent({"agent": "0x2"}) == "0x2"
        assert linked_agent({"agent": {"inner": None}}) is None
        assert linked_agent(None) is None

    def test_same_address(self):
        assert same_address("0x00AB", "ab")
        assert same_address("0x" + "0" * 62 + "01", "0x1")
        assert not same_address("0x1", "0x2")
        assert not same_address(None, "0x1")


class TestMalformedNodeResponses:

    def test_malformed_account_body_falls_through_every_variant(self, operator, subscriber_key, envelope, metadata):
        response = MagicMock()
        response.status_code = 200
        response.ok = True
        response.text = ""
        response.json.return_value = {}
        session = MagicMock()
        session.request.return_value = response
        client = AptosRestClient("https://node.test/v1", session=session, sleep=lambda s: None)
        sleeps = []

        with pytest.raises(SubmissionFailed, match="all variants failed"):
            _submitter(client, operator, sleeps).submit(envelope, subscriber_key, metadata)

        # 3 variants x (2 backoff sleeps between 3 attempts)
        assert sleeps == [1.0, 2.0] * 3

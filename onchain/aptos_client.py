# =============================================================================
# TELETRADE - APTOS FULLNODE REST CLIENT
# =============================================================================
#
# Minimal client for the Aptos fullnode REST API (v1):
#   GET  /                                   ledger info (chain id)
#   GET  /accounts/{addr}                    sequence number
#   GET  /accounts/{addr}/resource/{type}    resource (404 => absent)
#   POST /transactions/encode_submission     BCS signing message for a txn
#   POST /transactions                       signed submission
#   GET  /transactions/by_hash/{hash}        commit status
#
# Every failure of a single call (HTTP error, VM rejection, wait timeout)
# raises LedgerRequestError. Retry policy lives in the submitter, not here.
#
# =============================================================================

import logging
import time
from typing import Any, Callable, Dict, List, Optional

import requests

from onchain.keys import LedgerAccount
from shared.enums import AptosNetwork
from shared.errors import LedgerRequestError

logger = logging.getLogger(__name__)

NETWORK_URLS = {
    AptosNetwork.MAINNET: "https://fullnode.mainnet.aptoslabs.com/v1",
    AptosNetwork.TESTNET: "https://fullnode.testnet.aptoslabs.com/v1",
    AptosNetwork.DEVNET: "https://fullnode.devnet.aptoslabs.com/v1",
}

APT_COIN_STORE = "0x1::coin::CoinStore<0x1::aptos_coin::AptosCoin>"
OCTAS_PER_APT = 100_000_000


def resolve_node_url(network: AptosNetwork, node_url: Optional[str] = None) -> str:
    """Fullnode base URL for a network (explicit node_url always wins)."""
    if node_url:
        url = node_url.rstrip("/")
        return url if url.endswith("/v1") else f"{url}/v1"
    if network is AptosNetwork.CUSTOM:
        return NETWORK_URLS[AptosNetwork.TESTNET]
    return NETWORK_URLS[network]


class AptosRestClient:
    """
    Aptos REST client with explicit timeouts.

    Features:
    - Entry-function submission signed locally with Ed25519
    - Wait-for-commit polling with a bounded deadline
    - Resource reads that map 404 to None
    """

    DEFAULT_TIMEOUT = 30  # seconds, per HTTP call
    WAIT_TIMEOUT = 30  # seconds, for commit
    WAIT_POLL_INTERVAL = 1.0  # seconds
    MAX_GAS_AMOUNT = 200_000
    GAS_UNIT_PRICE = 100
    EXPIRATION_SECONDS = 600

    def __init__(
        self,
        base_url: str,
        timeout: float = DEFAULT_TIMEOUT,
        wait_timeout: float = WAIT_TIMEOUT,
        session: Optional[requests.Session] = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize the client.

        Args:
            base_url: Fullnode URL including /v1
            timeout: Per-request timeout in seconds
            wait_timeout: Maximum seconds to wait for a transaction to commit
            session: Optional requests session (injected in tests)
            sleep: Sleep function (injected in tests)
            clock: Wall clock (injected in tests)
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.wait_timeout = wait_timeout
        self.session = session or requests.Session()
        self._sleep = sleep
        self._clock = clock
        self._chain_id: Optional[int] = None

    # -------------------------------------------------------------------------
    # HTTP
    # -------------------------------------------------------------------------

    def _request(self, method: str, path: str, json_body: Any = None) -> requests.Response:
        url = f"{self.base_url}{path}"
        try:
            return self.session.request(method, url, json=json_body, timeout=self.timeout)
        except requests.RequestException as e:
            raise LedgerRequestError(f"{method} {path} failed: {e}") from e

    def _json(self, response: requests.Response, what: str) -> Any:
        if not response.ok:
            detail = response.text[:200] if response.text else ""
            raise LedgerRequestError(
                f"{what}: HTTP {response.status_code} {detail}".strip(),
                status_code=response.status_code,
            )
        try:
            return response.json()
        except ValueError as e:
            raise LedgerRequestError(f"{what}: malformed JSON: {e}") from e

    # -------------------------------------------------------------------------
    # READS
    # -------------------------------------------------------------------------

    def chain_id(self) -> int:
        if self._chain_id is None:
            info = self._json(self._request("GET", "/"), "ledger info")
            try:
                self._chain_id = int(info["chain_id"])
            except (KeyError, TypeError, ValueError) as e:
                raise LedgerRequestError(f"ledger info: malformed response: {e!r}") from e
        return self._chain_id

    def sequence_number(self, address: str) -> int:
        """Next sequence number for address (0 for an account not yet on chain)."""
        response = self._request("GET", f"/accounts/{address}")
        if response.status_code == 404:
            return 0
        data = self._json(response, f"account {address}")
        try:
            return int(data["sequence_number"])
        except (KeyError, TypeError, ValueError) as e:
            raise LedgerRequestError(f"account {address}: malformed response: {e!r}") from e

    def get_account_resource(self, address: str, resource_type: str) -> Optional[Dict[str, Any]]:
        """
        Read one resource.

        Returns:
            The resource's data mapping, or None if the resource is absent
        """
        response = self._request("GET", f"/accounts/{address}/resource/{resource_type}")
        if response.status_code == 404:
            return None
        body = self._json(response, f"resource {resource_type}")
        return body.get("data", {}) if isinstance(body, dict) else None

    def get_apt_balance(self, address: str) -> float:
        """APT balance in whole coins; 0.0 when the coin store is absent."""
        data = self.get_account_resource(address, APT_COIN_STORE)
        if not data:
            return 0.0
        try:
            return int(data["coin"]["value"]) / OCTAS_PER_APT
        except (KeyError, TypeError, ValueError):
            return 0.0

    # -------------------------------------------------------------------------
    # WRITES
    # -------------------------------------------------------------------------

    def _build_raw(self, sender: LedgerAccount, function: str, arguments: List[Any]) -> Dict[str, Any]:
        return {
            "sender": sender.address,
            "sequence_number": str(self.sequence_number(sender.address)),
            "max_gas_amount": str(self.MAX_GAS_AMOUNT),
            "gas_unit_price": str(self.GAS_UNIT_PRICE),
            "expiration_timestamp_secs": str(int(self._clock()) + self.EXPIRATION_SECONDS),
            "payload": {
                "type": "entry_function_payload",
                "function": function,
                "type_arguments": [],
                "arguments": arguments,
            },
        }

    def submit_entry_function(
        self,
        sender: LedgerAccount,
        function: str,
        arguments: List[Any],
        wait: bool = True,
    ) -> str:
        """
        Sign and submit one entry-function call.

        Args:
            sender: Signing account
            function: Fully-qualified entry function (addr::module::name)
            arguments: JSON-encoded Move arguments
            wait: Block until the transaction is committed

        Returns:
            Transaction hash

        Raises:
            LedgerRequestError: any HTTP failure, VM failure, or wait timeout
        """
        raw = self._build_raw(sender, function, arguments)

        signing_message = self._json(
            self._request("POST", "/transactions/encode_submission", raw),
            "encode_submission",
        )
        if not isinstance(signing_message, str):
            raise LedgerRequestError("encode_submission: expected a hex string")
        try:
            message = bytes.fromhex(signing_message[2:] if signing_message.startswith("0x") else signing_message)
        except ValueError as e:
            raise LedgerRequestError(f"encode_submission: not a hex string: {e}") from e

        signed = dict(raw)
        signed["signature"] = {
            "type": "ed25519_signature",
            "public_key": sender.public_key_hex,
            "signature": "0x" + sender.sign(message).hex(),
        }

        result = self._json(self._request("POST", "/transactions", signed), f"submit {function}")
        tx_hash = result.get("hash") if isinstance(result, dict) else None
        if not tx_hash:
            raise LedgerRequestError(f"submit {function}: response has no hash")

        logger.debug(f"Submitted {function} from {sender.address}: {tx_hash}")
        if wait:
            self.wait_for_transaction(tx_hash)
        return tx_hash

    def wait_for_transaction(self, tx_hash: str) -> Dict[str, Any]:
        """
        Poll until tx_hash is committed.

        Raises:
            LedgerRequestError: committed with failure, or not committed in time
        """
        deadline = self._clock() + self.wait_timeout
        while True:
            response = self._request("GET", f"/transactions/by_hash/{tx_hash}")
            if response.status_code != 404:
                txn = self._json(response, f"transaction {tx_hash}")
                if not isinstance(txn, dict):
                    raise LedgerRequestError(f"transaction {tx_hash}: malformed response")
                if txn.get("type") != "pending_transaction":
                    if not txn.get("success", False):
                        raise LedgerRequestError(
                            f"Transaction {tx_hash} failed: {txn.get('vm_status', 'unknown')}"
                        )
                    return txn
            if self._clock() >= deadline:
                raise LedgerRequestError(f"Timed out waiting for transaction {tx_hash}")
            self._sleep(self.WAIT_POLL_INTERVAL)

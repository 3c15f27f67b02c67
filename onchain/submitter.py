# =============================================================================
# TELETRADE - LEDGER SUBMITTER
# =============================================================================
#
# Posts one encrypted envelope to the remote ledger.
#
# FLOW:
# 1. Warm-up (best effort, never aborts):
#    - operator registered as agent   (agent_registry::register_agent)
#    - signer linked to the operator  (agent_registry::link_user)
# 2. For each CallVariant in priority order:
#    - up to max_attempts submissions, backoff doubling between attempts
#    - first accepted submission wins
# 3. All variants exhausted -> SubmissionFailed("all variants failed")
#
# =============================================================================

import logging
import time
from typing import Callable, Optional, Sequence

from onchain.aptos_client import AptosRestClient
from onchain.envelope import EncryptedEnvelope
from onchain.keys import LedgerAccount
from onchain.variants import DEFAULT_VARIANTS, CallVariant, SubmissionMetadata
from shared.best_effort import attempt_best_effort
from shared.errors import LedgerRequestError, SubmissionFailed
from shared.logging_config import AuditLogger

logger = logging.getLogger(__name__)

AGENT_RESOURCE = "agent_registry::Agent"
USER_CONFIG_RESOURCE = "agent_registry::UserConfig"
AGENT_MAX_LEVERAGE = 10


def linked_agent(user_config: Optional[dict]) -> Optional[str]:
    """
    Agent address from a UserConfig resource.

    The node renders the Move Option<address> as {"inner": "0x..."};
    a bare string is accepted too.
    """
    if not isinstance(user_config, dict):
        return None
    agent = user_config.get("agent")
    if isinstance(agent, dict):
        agent = agent.get("inner")
    return agent if isinstance(agent, str) and agent else None


def same_address(a: Optional[str], b: Optional[str]) -> bool:
    """Compare account addresses ignoring case, 0x prefix and leading zeros."""
    if not a or not b:
        return False

    def _norm(address: str) -> str:
        address = address.lower()
        if address.startswith("0x"):
            address = address[2:]
        return address.lstrip("0")

    return _norm(a) == _norm(b)


class LedgerSubmitter:
    """
    Resilient envelope submission with variant fallback.

    submit(envelope, signer, metadata) -> transaction hash
    """

    MAX_ATTEMPTS = 3
    BACKOFF_BASE = 1.0  # seconds

    def __init__(
        self,
        client: AptosRestClient,
        module_addr: str,
        operator: LedgerAccount,
        variants: Sequence[CallVariant] = DEFAULT_VARIANTS,
        max_attempts: int = MAX_ATTEMPTS,
        backoff_base_s: float = BACKOFF_BASE,
        agent_max_leverage: int = AGENT_MAX_LEVERAGE,
        sleep: Callable[[float], None] = time.sleep,
        audit: Optional[AuditLogger] = None,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        self.client = client
        self.module_addr = module_addr
        self.operator = operator
        self.variants = tuple(variants)
        self.max_attempts = max_attempts
        self.backoff_base_s = backoff_base_s
        self.agent_max_leverage = agent_max_leverage
        self._sleep = sleep
        self.audit = audit
        self._agent_ready = False

    # -------------------------------------------------------------------------
    # WARM-UP
    # -------------------------------------------------------------------------

    def _resource(self, name: str) -> str:
        return f"{self.module_addr}::{name}"

    def ensure_agent(self) -> Optional[str]:
        """Register the operator as an agent if its Agent resource is absent."""
        if self._agent_ready:
            return None
        if self.client.get_account_resource(self.operator.address, self._resource(AGENT_RESOURCE)) is not None:
            self._agent_ready = True
            return None

        tx_hash = self.client.submit_entry_function(
            self.operator,
            self._resource("agent_registry::register_agent"),
            [self.operator.public_key_hex, str(self.agent_max_leverage), "0x"],
        )
        self._agent_ready = True
        logger.info(f"Operator registered as agent: {tx_hash}")
        return tx_hash

    def ensure_link(self, signer: LedgerAccount) -> Optional[str]:
        """Link signer to the operator unless its UserConfig already points there."""
        config = self.client.get_account_resource(signer.address, self._resource(USER_CONFIG_RESOURCE))
        if same_address(linked_agent(config), self.operator.address):
            return None

        tx_hash = self.client.submit_entry_function(
            signer,
            self._resource("agent_registry::link_user"),
            [self.operator.address],
        )
        logger.info(f"Linked {signer.address} to operator: {tx_hash}")
        return tx_hash

    # -------------------------------------------------------------------------
    # SUBMISSION
    # -------------------------------------------------------------------------

    def _submit_variant(
        self,
        variant: CallVariant,
        envelope: EncryptedEnvelope,
        signer: LedgerAccount,
        metadata: SubmissionMetadata,
    ) -> Optional[str]:
        function = variant.function_id(self.module_addr)
        arguments = variant.encode(envelope, metadata)
        backoff = self.backoff_base_s

        for attempt in range(1, self.max_attempts + 1):
            try:
                return self.client.submit_entry_function(signer, function, arguments)
            except LedgerRequestError as e:
                logger.warning(
                    f"Variant '{variant.name}' attempt {attempt}/{self.max_attempts} failed: {e}"
                )
                if attempt < self.max_attempts:
                    self._sleep(backoff)
                    backoff *= 2
        return None

    def submit(
        self,
        envelope: EncryptedEnvelope,
        signer: LedgerAccount,
        metadata: SubmissionMetadata,
    ) -> str:
        """
        Post envelope, signed by signer.

        Args:
            envelope: Fresh envelope for this signal
            signer: Account that owns the stored record
            metadata: Counterparty address and timestamp

        Returns:
            Transaction hash of the accepted variant

        Raises:
            SubmissionFailed: every variant was rejected
        """
        attempt_best_effort(self.ensure_agent, "register agent")
        attempt_best_effort(lambda: self.ensure_link(signer), "link user")

        content_hash = "0x" + envelope.content_hash.hex()
        for variant in self.variants:
            tx_hash = self._submit_variant(variant, envelope, signer, metadata)
            if tx_hash:
                logger.info(f"Signal {content_hash[:18]} posted via '{variant.name}': {tx_hash}")
                self._audit("LEDGER_SUBMITTED", {
                    "signer": signer.address,
                    "variant": variant.name,
                    "content_hash": content_hash,
                    "tx_hash": tx_hash,
                })
                return tx_hash

        self._audit("LEDGER_SUBMISSION_FAILED", {
            "signer": signer.address,
            "content_hash": content_hash,
            "variants": [v.name for v in self.variants],
        })
        raise SubmissionFailed("all variants failed")

    def _audit(self, event_type: str, details: dict) -> None:
        if self.audit is not None:
            self.audit.log_event(event_type, details)

# =============================================================================
# TELETRADE - LEDGER CALL VARIANTS
# =============================================================================
#
# The vault's accepted call shape differs by deployment version. Each shape
# is one CallVariant; the submitter tries DEFAULT_VARIANTS in list order and
# stops at the first one the ledger accepts.
#
# Adding a shape = appending a CallVariant, never a new branch.
#
# Argument encoding (Aptos JSON):
#   address      "0x..." string
#   vector<u8>   "0x..." hex string
#   u64          decimal string
#
# =============================================================================

from dataclasses import dataclass
from typing import Any, Callable, List

from onchain.envelope import EncryptedEnvelope

POST_SIGNAL = "signal_vault::post_signal"


@dataclass(frozen=True)
class SubmissionMetadata:
    """Per-call context that is not part of the envelope."""
    counterparty: str  # operator (agent) address
    timestamp: int  # unix seconds


def _hex(data: bytes) -> str:
    return "0x" + data.hex()


def _full_args(env: EncryptedEnvelope, meta: SubmissionMetadata) -> List[Any]:
    # content_hash fills both the storage-key and event-id slots
    return [
        meta.counterparty,
        _hex(env.content_hash),
        _hex(env.content_hash),
        _hex(env.ciphertext),
        _hex(env.iv),
        _hex(env.aad),
        _hex(env.tag),
        str(meta.timestamp),
    ]


def _blob_args(env: EncryptedEnvelope, meta: SubmissionMetadata) -> List[Any]:
    return [_hex(env.ciphertext), str(meta.timestamp)]


def _counterparty_blob_args(env: EncryptedEnvelope, meta: SubmissionMetadata) -> List[Any]:
    return [meta.counterparty, _hex(env.ciphertext), str(meta.timestamp)]


@dataclass(frozen=True)
class CallVariant:
    """One accepted call shape of the remote entry point."""
    name: str
    entry: str  # module::function, relative to the module address
    encode: Callable[[EncryptedEnvelope, SubmissionMetadata], List[Any]]

    def function_id(self, module_addr: str) -> str:
        return f"{module_addr}::{self.entry}"


DEFAULT_VARIANTS = (
    CallVariant("full", POST_SIGNAL, _full_args),
    CallVariant("blob", POST_SIGNAL, _blob_args),
    CallVariant("counterparty_blob", POST_SIGNAL, _counterparty_blob_args),
)

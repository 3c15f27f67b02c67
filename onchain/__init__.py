# =============================================================================
# TELETRADE - ON-CHAIN MODULE
# =============================================================================
#
# Encrypted signal envelopes and their resilient submission to the Aptos
# ledger. This package never touches paper balances.
#
# CONTENTS:
# - envelope.py      AES-256-GCM envelope codec + key derivation
# - keys.py          Ed25519 ledger accounts
# - aptos_client.py  Fullnode REST client
# - variants.py      Accepted call shapes of the vault entry point
# - submitter.py     Warm-up, retries, variant fallback
#
# =============================================================================

from onchain.envelope import (
    DEFAULT_AAD,
    EncryptedEnvelope,
    derive_signal_key,
    encode_envelope,
    encode_payload,
)
from onchain.keys import LedgerAccount, derive_address, normalize_private_key
from onchain.aptos_client import AptosRestClient, resolve_node_url
from onchain.variants import DEFAULT_VARIANTS, CallVariant, SubmissionMetadata
from onchain.submitter import LedgerSubmitter

__all__ = [
    "DEFAULT_AAD",
    "EncryptedEnvelope",
    "derive_signal_key",
    "encode_envelope",
    "encode_payload",
    "LedgerAccount",
    "derive_address",
    "normalize_private_key",
    "AptosRestClient",
    "resolve_node_url",
    "DEFAULT_VARIANTS",
    "CallVariant",
    "SubmissionMetadata",
    "LedgerSubmitter",
]

# =============================================================================
# TELETRADE - SIGNAL ENVELOPE CODEC
# =============================================================================
#
# AES-256-GCM, fresh random 12-byte nonce per call, associated data bound
# into the 16-byte tag. content_hash = SHA-256(plaintext), independent of
# the cipher; it is used both as the ledger storage key and as the event
# identifier.
#
# WRITE-ONLY: decryption happens in the ledger's own consumer, not here.
#
# KEY MANAGEMENT:
# An explicit 32-byte key (SIGNAL_KEY_HEX) is used verbatim. Otherwise the
# key is SHA-256 of the operator's raw signing key, so every signal of one
# operator deployment shares one static symmetric key until rotated.
# Accepted trade-off: simple to operate, one key compromise exposes all
# envelopes of that deployment.
#
# =============================================================================

import hashlib
import json
import os
from dataclasses import dataclass
from typing import Any, Dict, Optional

from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from shared.errors import ConfigurationError

KEY_SIZE = 32
NONCE_SIZE = 12
TAG_SIZE = 16
DEFAULT_AAD = b"teletrade"


@dataclass(frozen=True)
class EncryptedEnvelope:
    """Authenticated-encrypted signal plus plaintext digest. Never mutated."""
    iv: bytes
    aad: bytes
    ciphertext: bytes
    tag: bytes
    content_hash: bytes

    def __post_init__(self):
        if len(self.iv) != NONCE_SIZE:
            raise ValueError(f"iv must be {NONCE_SIZE} bytes")
        if len(self.tag) != TAG_SIZE:
            raise ValueError(f"tag must be {TAG_SIZE} bytes")
        if len(self.content_hash) != 32:
            raise ValueError("content_hash must be 32 bytes")

    def to_hex_dict(self) -> Dict[str, str]:
        """0x-prefixed hex of every field (audit log / ledger arguments)."""
        return {
            "iv": "0x" + self.iv.hex(),
            "aad": "0x" + self.aad.hex(),
            "ciphertext": "0x" + self.ciphertext.hex(),
            "tag": "0x" + self.tag.hex(),
            "content_hash": "0x" + self.content_hash.hex(),
        }


def encode_envelope(key32: bytes, plaintext: bytes, aad: bytes = DEFAULT_AAD) -> EncryptedEnvelope:
    """
    Encrypt plaintext into a fresh envelope.

    Args:
        key32: 256-bit key
        plaintext: Bytes to protect
        aad: Associated data bound into the tag

    Returns:
        EncryptedEnvelope
    """
    if len(key32) != KEY_SIZE:
        raise ValueError(f"key must be {KEY_SIZE} bytes, got {len(key32)}")

    iv = os.urandom(NONCE_SIZE)
    sealed = AESGCM(key32).encrypt(iv, plaintext, aad)
    # cryptography appends the tag to the ciphertext
    ciphertext, tag = sealed[:-TAG_SIZE], sealed[-TAG_SIZE:]

    return EncryptedEnvelope(
        iv=iv,
        aad=bytes(aad),
        ciphertext=ciphertext,
        tag=tag,
        content_hash=hashlib.sha256(plaintext).digest(),
    )


def encode_payload(key32: bytes, payload: Dict[str, Any], aad: bytes = DEFAULT_AAD) -> EncryptedEnvelope:
    """JSON-serialize payload (compact separators) and encrypt it."""
    body = json.dumps(payload, separators=(",", ":")).encode("utf-8")
    return encode_envelope(key32, body, aad)


def derive_signal_key(explicit_key_hex: Optional[str], signing_key_raw: bytes) -> bytes:
    """
    Resolve the envelope key.

    Args:
        explicit_key_hex: Configured 32-byte hex key (with or without 0x), or None
        signing_key_raw: Operator's raw Ed25519 private key bytes

    Returns:
        32-byte key

    Raises:
        ConfigurationError: explicit key is not 32 bytes of hex
    """
    if explicit_key_hex:
        text = explicit_key_hex[2:] if explicit_key_hex.lower().startswith("0x") else explicit_key_hex
        try:
            key = bytes.fromhex(text)
        except ValueError:
            raise ConfigurationError("SIGNAL_KEY_HEX is not valid hex")
        if len(key) != KEY_SIZE:
            raise ConfigurationError(f"SIGNAL_KEY_HEX must be {KEY_SIZE} bytes")
        return key
    return hashlib.sha256(signing_key_raw).digest()

# =============================================================================
# TELETRADE - LEDGER ACCOUNT KEYS
# =============================================================================
#
# Ed25519 accounts for the Aptos ledger.
#   address = sha3_256(public_key || 0x00)   (single-key authentication scheme)
#
# Accepted private key formats: 64 hex chars, optional "0x", optional
# AIP-80 "ed25519-priv-" prefix.
#
# =============================================================================

import hashlib
from dataclasses import dataclass

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey

from shared.errors import ConfigurationError

AIP80_PREFIX = "ed25519-priv-"
ED25519_SCHEME = b"\x00"


def normalize_private_key(raw: str) -> str:
    """Normalize a private key string to 0x-prefixed lowercase hex."""
    text = (raw or "").strip()
    if text.startswith(AIP80_PREFIX):
        text = text[len(AIP80_PREFIX):]
    if text.lower().startswith("0x"):
        text = text[2:]
    return "0x" + text.lower()


def _private_key_bytes(normalized: str) -> bytes:
    try:
        key = bytes.fromhex(normalized[2:])
    except ValueError:
        raise ConfigurationError("Private key is not valid hex")
    if len(key) != 32:
        raise ConfigurationError(f"Ed25519 private key must be 32 bytes, got {len(key)}")
    return key


def derive_address(public_key: bytes) -> str:
    """Aptos account address for an Ed25519 public key."""
    return "0x" + hashlib.sha3_256(public_key + ED25519_SCHEME).hexdigest()


@dataclass(frozen=True)
class LedgerAccount:
    """An Ed25519 signer on the remote ledger."""
    private_key: Ed25519PrivateKey

    @classmethod
    def from_hex(cls, raw: str) -> "LedgerAccount":
        """
        Load an account from a private key string.

        Raises:
            ConfigurationError: key is not 32 bytes of hex
        """
        key_bytes = _private_key_bytes(normalize_private_key(raw))
        return cls(private_key=Ed25519PrivateKey.from_private_bytes(key_bytes))

    @classmethod
    def generate(cls) -> "LedgerAccount":
        return cls(private_key=Ed25519PrivateKey.generate())

    @property
    def private_key_bytes(self) -> bytes:
        return self.private_key.private_bytes(
            encoding=serialization.Encoding.Raw,
            format=serialization.PrivateFormat.Raw,
            encryption_algorithm=serialization.NoEncryption(),
        )

    @property
    def private_key_hex(self) -> str:
        return "0x" + self.private_key_bytes.hex()

    @property
    def public_key_bytes(self) -> bytes:
        return self.private_key.public_key().public_bytes(
            encoding=serialization.Encoding.Raw,
            format=serialization.PublicFormat.Raw,
        )

    @property
    def public_key_hex(self) -> str:
        return "0x" + self.public_key_bytes.hex()

    @property
    def address(self) -> str:
        return derive_address(self.public_key_bytes)

    def sign(self, message: bytes) -> bytes:
        return self.private_key.sign(message)

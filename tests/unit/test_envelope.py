# =============================================================================
# TELETRADE - Envelope Codec and Ledger Key Unit Tests
# =============================================================================
#
# Tests cover:
# - Field sizes, fresh nonce per call, AAD binding
# - content_hash is SHA-256 of the plaintext
# - Key derivation (explicit key vs. hash of signing key)
# - Ed25519 key normalization and address derivation
#
# =============================================================================

import hashlib

import pytest
from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from onchain.envelope import (
    EncryptedEnvelope,
    derive_signal_key,
    encode_envelope,
    encode_payload,
)
from onchain.keys import LedgerAccount, derive_address, normalize_private_key
from shared.errors import ConfigurationError

KEY = bytes(range(32))


class TestEncodeEnvelope:

    def test_field_sizes(self):
        env = encode_envelope(KEY, b"hello", b"teletrade")

        assert len(env.iv) == 12
        assert len(env.tag) == 16
        assert len(env.ciphertext) == len(b"hello")
        assert env.aad == b"teletrade"

    def test_content_hash_is_plaintext_digest(self):
        env = encode_envelope(KEY, b"hello")

        assert env.content_hash == hashlib.sha256(b"hello").digest()

    def test_fresh_nonce_per_call(self):
        first = encode_envelope(KEY, b"same")
        second = encode_envelope(KEY, b"same")

        assert first.iv != second.iv
        assert first.ciphertext != second.ciphertext
        assert first.content_hash == second.content_hash

    def test_decrypts_with_matching_aad_only(self):
        env = encode_envelope(KEY, b"payload", b"teletrade")
        cipher = AESGCM(KEY)

        assert cipher.decrypt(env.iv, env.ciphertext + env.tag, b"teletrade") == b"payload"
        with pytest.raises(InvalidTag):
            cipher.decrypt(env.iv, env.ciphertext + env.tag, b"other")

    def test_rejects_short_key(self):
        with pytest.raises(ValueError):
            encode_envelope(b"short", b"x")

    def test_payload_is_compact_json(self):
        env = encode_payload(KEY, {"symbol": "BTC", "auto": True})
        plaintext = AESGCM(KEY).decrypt(env.iv, env.ciphertext + env.tag, env.aad)

        assert plaintext == b'{"symbol":"BTC","auto":true}'

    def test_hex_dict(self):
        env = encode_envelope(KEY, b"x")
        hexed = env.to_hex_dict()

        assert hexed["iv"] == "0x" + env.iv.hex()
        assert set(hexed) == {"iv", "aad", "ciphertext", "tag", "content_hash"}

    def test_envelope_validates_sizes(self):
        with pytest.raises(ValueError):
            EncryptedEnvelope(iv=b"\x00" * 8, aad=b"", ciphertext=b"", tag=b"\x00" * 16, content_hash=b"\x00" * 32)


class TestDeriveSignalKey:

    def test_explicit_key_used_verbatim(self):
        assert derive_signal_key("0x" + KEY.hex(), b"ignored") == KEY
        assert derive_signal_key(KEY.hex(), b"ignored") == KEY

    def test_derived_from_signing_key(self):
        raw = b"\x11" * 32

        assert derive_signal_key(None, raw) == hashlib.sha256(raw).digest()
        assert derive_signal_key("", raw) == derive_signal_key(None, raw)

    def test_bad_explicit_key(self):
        with pytest.raises(ConfigurationError):
            derive_signal_key("zz" * 32, b"")
        with pytest.raises(ConfigurationError):
            derive_signal_key("ab" * 16, b"")


class TestLedgerAccount:

    def test_normalizes_prefixes(self):
        hex_key = "AB" * 32

        assert normalize_private_key(hex_key) == "0x" + "ab" * 32
        assert normalize_private_key("0x" + hex_key) == "0x" + "ab" * 32
        assert normalize_private_key("ed25519-priv-0x" + hex_key) == "0x" + "ab" * 32

    def test_roundtrip_and_address(self):
        account = LedgerAccount.from_hex("0x" + "11" * 32)

        assert account.private_key_hex == "0x" + "11" * 32
        assert len(account.public_key_bytes) == 32
        assert account.address == derive_address(account.public_key_bytes)
        assert account.address.startswith("0x") and len(account.address) == 66

    def test_signature_verifies(self):
        account = LedgerAccount.generate()
        signature = account.sign(b"message")

        account.private_key.public_key().verify(signature, b"message")

    def test_rejects_bad_keys(self):
        with pytest.raises(ConfigurationError):
            LedgerAccount.from_hex("not-hex")
        with pytest.raises(ConfigurationError):
            LedgerAccount.from_hex("0x" + "11" * 16)

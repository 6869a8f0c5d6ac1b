"""
Unit tests for the per-user crypto adapter: round trip, legacy plaintext, wrong keys.

Run with: python -m pytest tests/test_crypto.py -v
"""
from __future__ import annotations

import logging

from cryptography.fernet import Fernet

from agenda.crypto import CryptoAdapter, PassedThrough, Recovered


def test_round_trip_recovers_plaintext(crypto):
    """decrypt(encrypt(p, u), u) == p and the stored value is not the plaintext."""
    token = crypto.encrypt("Pay the rent", "alice")
    assert token != "Pay the rent"
    assert crypto.decrypt(token, "alice") == "Pay the rent"


def test_round_trip_keeps_unicode(crypto):
    """Accents and emoji survive the round trip."""
    text = "Reunião às 9h ☕"
    assert crypto.decrypt(crypto.encrypt(text, "alice"), "alice") == text


def test_encrypt_is_noop_without_text_or_user(crypto):
    """Empty plaintext or missing user id returns the input unchanged."""
    assert crypto.encrypt("", "alice") == ""
    assert crypto.encrypt(None, "alice") is None
    assert crypto.encrypt("hello", None) == "hello"
    assert crypto.encrypt("hello", "") == "hello"


def test_legacy_plaintext_passes_through(crypto):
    """Records written before encryption read back as themselves."""
    assert crypto.decrypt("buy milk", "alice") == "buy milk"
    assert crypto.try_decrypt("buy milk", "alice") == PassedThrough("buy milk")


def test_wrong_user_never_recovers_and_never_raises(crypto):
    """A token sealed for alice stays opaque for bob."""
    token = crypto.encrypt("diary", "alice")
    assert crypto.decrypt(token, "bob") == token
    assert isinstance(crypto.try_decrypt(token, "bob"), PassedThrough)


def test_other_secret_cannot_read_tokens(crypto):
    """Keys depend on the application secret too."""
    token = crypto.encrypt("diary", "alice")
    other = CryptoAdapter("another-secret")
    assert other.decrypt(token, "alice") == token


def test_try_decrypt_reports_recovered(crypto):
    """A good token is reported as Recovered."""
    token = crypto.encrypt("hello", "alice")
    assert crypto.try_decrypt(token, "alice") == Recovered("hello")


def test_empty_decryption_result_passes_through(crypto):
    """A valid token of an empty string is treated as a failed decryption."""
    token = Fernet(crypto.derive_key("alice")).encrypt(b"").decode("utf-8")
    assert crypto.decrypt(token, "alice") == token


def test_derive_key_is_deterministic_per_user(crypto):
    """Same inputs give the same key; different users get different keys."""
    assert crypto.derive_key("alice") == crypto.derive_key("alice")
    assert crypto.derive_key("alice") != crypto.derive_key("bob")
    assert CryptoAdapter("test-app-secret").derive_key("alice") == crypto.derive_key("alice")


def test_missing_secret_warns_but_still_works(caplog):
    """No secret configured: a warning is logged and round trips still work."""
    with caplog.at_level(logging.WARNING, logger="agenda.crypto"):
        adapter = CryptoAdapter("")
    assert "AGENDA_APP_SECRET is not defined" in caplog.text
    assert adapter.decrypt(adapter.encrypt("note", "alice"), "alice") == "note"

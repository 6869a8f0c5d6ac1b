"""Per-user symmetric encryption of stored text fields.

Every user gets a Fernet key derived from the application secret and the user id.
Records written before encryption was introduced are still plain strings; decrypting
them falls back to the input so they keep reading as themselves.
"""
from __future__ import annotations

import base64
import hashlib
import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Union

from cryptography.fernet import Fernet, InvalidToken

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Recovered:
    text: str


@dataclass(frozen=True)
class PassedThrough:
    original: str


DecryptResult = Union[Recovered, PassedThrough]


class CryptoAdapter:
    def __init__(self, app_secret: str) -> None:
        if not app_secret:
            logger.warning("AGENDA_APP_SECRET is not defined. Stored text will not be protected securely.")
        self._secret = app_secret or ""
        self._fernet_for = lru_cache(maxsize=64)(self._build_fernet)

    def derive_key(self, user_id: str) -> bytes:
        digest = hashlib.sha256(f"{self._secret}-{user_id}".encode("utf-8")).digest()
        return base64.urlsafe_b64encode(digest)

    def _build_fernet(self, user_id: str) -> Fernet:
        return Fernet(self.derive_key(user_id))

    def encrypt(self, plaintext, user_id):
        if not plaintext or not user_id:
            return plaintext
        try:
            token = self._fernet_for(str(user_id)).encrypt(str(plaintext).encode("utf-8"))
            return token.decode("utf-8")
        except Exception as exc:
            logger.exception("Encryption error: %s", exc)
            return plaintext

    def try_decrypt(self, ciphertext, user_id) -> DecryptResult:
        if not ciphertext or not user_id:
            return PassedThrough(ciphertext)
        try:
            raw = self._fernet_for(str(user_id)).decrypt(str(ciphertext).encode("utf-8"))
            text = raw.decode("utf-8")
        except (InvalidToken, ValueError, TypeError):
            # Legacy plaintext, or a token sealed under another key.
            return PassedThrough(ciphertext)
        if not text:
            return PassedThrough(ciphertext)
        return Recovered(text)

    def decrypt(self, ciphertext, user_id):
        result = self.try_decrypt(ciphertext, user_id)
        if isinstance(result, Recovered):
            return result.text
        return result.original

"""
Credential encryption — encrypt / decrypt bearer tokens at rest.

Uses AES-256-GCM from the ``cryptography`` library.  Every encryption draws a
fresh 12-byte nonce, which is prepended to the ciphertext; the whole blob is
base64-encoded for storage::

    base64( nonce(12) ‖ ciphertext ‖ tag(16) )

The key is loaded from ``config.token_encryption_key``
(env var: ``TOKEN_ENCRYPTION_KEY``) and must be exactly 32 bytes.  Unlike a
best-effort cipher there is no plaintext fallback: a missing key is a startup
error and any ciphertext that fails authentication raises
``DecryptionFailedError``.
"""

from __future__ import annotations

import binascii
import logging
import os
from base64 import b64decode, b64encode
from typing import Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from config.settings import ENCRYPTION_KEY_BYTES, config
from connectors.errors import ConfigurationError, DecryptionFailedError

logger = logging.getLogger(__name__)

NONCE_BYTES = 12
_TAG_BYTES = 16


class CredentialCipher:
    """Authenticated symmetric encryption for stored credentials."""

    def __init__(self, key: bytes | str):
        raw = key.encode() if isinstance(key, str) else key
        if len(raw) != ENCRYPTION_KEY_BYTES:
            raise ConfigurationError(
                f"encryption key must be exactly {ENCRYPTION_KEY_BYTES} bytes, got {len(raw)}"
            )
        self._aead = AESGCM(raw)

    def encrypt(self, plaintext: str) -> str:
        """Encrypt *plaintext* under a fresh nonce and return the text-encoded blob."""
        nonce = os.urandom(NONCE_BYTES)
        sealed = self._aead.encrypt(nonce, plaintext.encode("utf-8"), None)
        return b64encode(nonce + sealed).decode("ascii")

    def decrypt(self, blob: str) -> str:
        """
        Authenticate and decrypt a blob produced by :meth:`encrypt`.

        Raises ``DecryptionFailedError`` on malformed encoding, truncated
        data, a tag mismatch or a wrong key.  Never returns partial output.
        """
        try:
            data = b64decode(blob.encode("ascii"), validate=True)
        except (binascii.Error, UnicodeEncodeError):
            raise DecryptionFailedError("ciphertext is not valid base64") from None

        if len(data) < NONCE_BYTES + _TAG_BYTES:
            raise DecryptionFailedError("ciphertext too short")

        nonce, sealed = data[:NONCE_BYTES], data[NONCE_BYTES:]
        try:
            plaintext = self._aead.decrypt(nonce, sealed, None)
        except InvalidTag:
            raise DecryptionFailedError("ciphertext failed authentication") from None

        try:
            return plaintext.decode("utf-8")
        except UnicodeDecodeError:
            raise DecryptionFailedError("decrypted credential is not valid UTF-8") from None


_cipher: Optional[CredentialCipher] = None


def get_cipher() -> CredentialCipher:
    """Lazy-initialise the process-wide cipher from configuration once."""
    global _cipher

    if _cipher is None:
        if not config.token_encryption_key:
            raise ConfigurationError("TOKEN_ENCRYPTION_KEY is required (32 bytes for AES-256)")
        _cipher = CredentialCipher(config.token_encryption_key)
        logger.info("Credential encryption enabled (AES-256-GCM)")
    return _cipher

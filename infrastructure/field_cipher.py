"""
Symmetric Field Cipher
======================
AES-256-GCM encryption of a single text field into a self-describing
envelope:

    base64(iv) ":" base64(tag) ":" base64(ciphertext)

A fresh 16-byte IV is drawn for every call, so encrypting the same
plaintext twice yields different envelopes.
"""

import base64
import binascii
import os
from typing import Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.primitives.kdf.scrypt import Scrypt
from loguru import logger

from config.settings import Settings
from core.exceptions import ConfigurationError, EnvelopeFormatError, IntegrityError

KEY_LENGTH = 32
IV_LENGTH = 16
TAG_LENGTH = 16
SEPARATOR = ":"

_DEV_PASSPHRASE = b"viral-prompt-secret-key-dev-only"
_DEV_SALT = b"salt"
_SELF_TEST_TEXT = "This is a test prompt for AI encryption"


def derive_key(secret: Optional[str]) -> bytes:
    """
    Resolve the 256-bit key.

    An operator secret is used as raw UTF-8 bytes, zero-padded or truncated
    to 32 bytes (not hashed). Without one, a fixed development passphrase
    is stretched with scrypt.
    """
    if secret:
        raw = secret.encode("utf-8")
        if len(raw) < KEY_LENGTH:
            return raw + b"\x00" * (KEY_LENGTH - len(raw))
        return raw[:KEY_LENGTH]

    logger.warning(
        "ENCRYPTION_KEY is not set: using the development fallback key. "
        "Prompt text encrypted with it is NOT protected. Never run production like this."
    )
    kdf = Scrypt(salt=_DEV_SALT, length=KEY_LENGTH, n=2**14, r=8, p=1)
    return kdf.derive(_DEV_PASSPHRASE)


def _b64decode(segment: str) -> bytes:
    return base64.b64decode(segment.encode("ascii"), validate=True)


def looks_encrypted(value: str) -> bool:
    """
    True when `value` has the exact envelope shape: three base64 segments
    with a 16-byte IV and a 16-byte tag.

    Does not prove the envelope decrypts; it only guards against
    encrypting an envelope a second time.
    """
    parts = value.split(SEPARATOR)
    if len(parts) != 3:
        return False
    try:
        iv, tag, _ = (_b64decode(part) for part in parts)
    except (binascii.Error, ValueError, UnicodeEncodeError):
        return False
    return len(iv) == IV_LENGTH and len(tag) == TAG_LENGTH


class FieldCipher:
    """Process-wide authenticated cipher for the protected prompt field."""

    def __init__(self, secret: Optional[str] = None, *, key: Optional[bytes] = None):
        if key is not None and len(key) != KEY_LENGTH:
            raise ConfigurationError(f"Field cipher key must be {KEY_LENGTH} bytes")
        self._key = key if key is not None else derive_key(secret)
        self.uses_fallback_key = key is None and not secret

    @classmethod
    def from_settings(cls, settings: Settings) -> "FieldCipher":
        """
        Build the cipher from configuration.

        Raises:
            ConfigurationError: production deployment without ENCRYPTION_KEY
        """
        if not settings.encryption.configured:
            if settings.is_production:
                raise ConfigurationError(
                    "ENCRYPTION_KEY must be set in production; refusing to use the fallback key"
                )
            return cls(None)
        return cls(settings.encryption.key.get_secret_value())

    def encrypt(self, plaintext: str) -> str:
        iv = os.urandom(IV_LENGTH)
        encryptor = Cipher(algorithms.AES(self._key), modes.GCM(iv)).encryptor()
        ciphertext = encryptor.update(plaintext.encode("utf-8")) + encryptor.finalize()

        return SEPARATOR.join(
            base64.b64encode(part).decode("ascii") for part in (iv, encryptor.tag, ciphertext)
        )

    def decrypt(self, envelope: str) -> str:
        """
        Open an envelope.

        Raises:
            EnvelopeFormatError: not exactly three base64 segments, or wrong IV/tag size
            IntegrityError: tag verification failed (tampering or wrong key)
        """
        parts = envelope.split(SEPARATOR)
        if len(parts) != 3:
            raise EnvelopeFormatError(context={"segments": len(parts)})

        try:
            iv, tag, ciphertext = (_b64decode(part) for part in parts)
        except (binascii.Error, ValueError, UnicodeEncodeError) as e:
            raise EnvelopeFormatError("Envelope segment is not valid base64", cause=e)

        if len(iv) != IV_LENGTH or len(tag) != TAG_LENGTH:
            raise EnvelopeFormatError(
                "Envelope IV or tag has the wrong length",
                context={"iv_length": len(iv), "tag_length": len(tag)},
            )

        decryptor = Cipher(algorithms.AES(self._key), modes.GCM(iv, tag)).decryptor()
        try:
            plaintext = decryptor.update(ciphertext) + decryptor.finalize()
        except InvalidTag as e:
            raise IntegrityError(cause=e)

        try:
            return plaintext.decode("utf-8")
        except UnicodeDecodeError as e:
            raise IntegrityError("Decrypted payload is not valid UTF-8", cause=e)

    def self_test(self) -> bool:
        """Round-trip a known string. A startup sanity check, not a proof."""
        try:
            ok = self.decrypt(self.encrypt(_SELF_TEST_TEXT)) == _SELF_TEST_TEXT
        except (EnvelopeFormatError, IntegrityError) as e:
            logger.error(f"Field cipher self-test raised: {e}")
            return False

        if ok:
            logger.info("Field cipher self-test passed")
        else:
            logger.error("Field cipher self-test failed: round trip mismatch")
        return ok

# backend/app/security/hashing.py
"""
Password storage.

    stored = base64url(IV || AES-CTR(key, bcrypt(secret)))

where `secret` is derived from the raw 64-byte SHA-512 digest the client
sent. bcrypt only reads 72 bytes and stops at NUL, so the digest is
reduced to base64(SHA-256(digest)) first (44 printable bytes).
"""
import base64
import binascii
import hashlib
import logging

import bcrypt

from backend.app.core import errors
from backend.app.security.cipher import AesCtrCipher
from backend.app.security.validator import decode_password_field

logger = logging.getLogger(__name__)


def _bcrypt_secret(password: str) -> bytes:
    hex_digest = decode_password_field(password)
    raw = binascii.unhexlify(hex_digest)
    return base64.b64encode(hashlib.sha256(raw).digest())


class PasswordCipher:
    def __init__(self, cipher: AesCtrCipher, rounds: int = 12):
        self._cipher = cipher
        self._rounds = rounds
        # Target for dummy_verify(); same cost as real hashes
        self._dummy_hash = bcrypt.hashpw(b"strongbox-dummy", bcrypt.gensalt(rounds))

    def cipher(self, password: str) -> str:
        """Hash a validated password field and encrypt the hash for storage."""
        hashed = bcrypt.hashpw(_bcrypt_secret(password), bcrypt.gensalt(self._rounds))
        return base64.urlsafe_b64encode(self._cipher.encrypt(hashed)).decode("ascii")

    def verify(self, password: str, stored: str) -> bool:
        """
        Constant-time comparison of a submitted password against a stored one.

        Raises:
            DecodeFailure: stored value is not valid base64url
            CipherError: stored value cannot be decrypted
        """
        try:
            encrypted = base64.urlsafe_b64decode(stored.encode("ascii"))
        except (binascii.Error, ValueError) as e:
            logger.error(f"Stored password is not valid base64: {e}")
            raise errors.DecodeFailure()

        hashed = self._cipher.decrypt(encrypted)
        try:
            secret = _bcrypt_secret(password)
        except errors.InvalidPasswordFormatError:
            return False

        try:
            return bcrypt.checkpw(secret, hashed)
        except (ValueError, TypeError) as e:
            logger.error(f"Decrypted password hash is invalid: {e}")
            raise errors.CipherError()

    def dummy_verify(self) -> None:
        """Spend one bcrypt verification so unknown users cost the same."""
        bcrypt.checkpw(b"strongbox-dummy-mismatch", self._dummy_hash)

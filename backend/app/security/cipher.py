# backend/app/security/cipher.py
"""
AES-CTR helper used for every at-rest secret (stored password hashes and
file contents).

Layout of a ciphertext: IV (16 random bytes) || AES-CTR(key, plaintext).
The key is loaded once at start-up and never changes afterwards.
"""
import logging
import os

from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from backend.app.core import errors

logger = logging.getLogger(__name__)

IV_SIZE = 16
KEY_SIZES = (16, 24, 32)


class AesCtrCipher:
    """Stateless apart from the immutable key."""

    def __init__(self, key: bytes):
        if len(key) not in KEY_SIZES:
            raise errors.ConfigurationError(
                f"cipher's key must be 16, 24 or 32 bytes long, got {len(key)}"
            )
        self._key = bytes(key)

    @property
    def key(self) -> bytes:
        return self._key

    def encrypt(self, plaintext: bytes) -> bytes:
        iv = os.urandom(IV_SIZE)
        encryptor = Cipher(algorithms.AES(self._key), modes.CTR(iv)).encryptor()
        return iv + encryptor.update(plaintext) + encryptor.finalize()

    def decrypt(self, ciphertext: bytes) -> bytes:
        if len(ciphertext) < IV_SIZE:
            raise errors.DecodeFailure("ciphertext too short")
        iv, body = ciphertext[:IV_SIZE], ciphertext[IV_SIZE:]
        try:
            decryptor = Cipher(algorithms.AES(self._key), modes.CTR(iv)).decryptor()
            return decryptor.update(body) + decryptor.finalize()
        except ValueError as e:
            logger.error(f"AES-CTR decryption failed: {e}")
            raise errors.CipherError()

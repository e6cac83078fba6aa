"""
Password hashing.

Salted PBKDF2-SHA256 from hashlib. Encoded form:

    pbkdf2_sha256$<iterations>$<salt hex>$<hash hex>

The iteration count travels with the hash, so raising it in settings only
affects new registrations.
"""

import hashlib
import hmac
import secrets
from typing import Optional

from pocketledger.config import get_settings


ALGORITHM = "pbkdf2_sha256"
SALT_BYTES = 16


class PasswordHasher:
    """Hash and verify passwords."""

    def __init__(self, iterations: Optional[int] = None):
        self._iterations = iterations or get_settings().security.password_hash_iterations

    @property
    def iterations(self) -> int:
        return self._iterations

    def hash(self, password: str) -> str:
        salt = secrets.token_bytes(SALT_BYTES)
        digest = self._derive(password, salt, self._iterations)
        return f"{ALGORITHM}${self._iterations}${salt.hex()}${digest.hex()}"

    def verify(self, password: str, encoded: str) -> bool:
        """
        Check a password against an encoded hash.

        Malformed hashes never verify.
        """
        try:
            algorithm, iterations, salt_hex, digest_hex = encoded.split("$")
            if algorithm != ALGORITHM:
                return False
            salt = bytes.fromhex(salt_hex)
            expected = bytes.fromhex(digest_hex)
            rounds = int(iterations)
        except ValueError:
            return False
        if rounds < 1:
            return False

        actual = self._derive(password, salt, rounds)
        return hmac.compare_digest(actual, expected)

    @staticmethod
    def _derive(password: str, salt: bytes, iterations: int) -> bytes:
        return hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, iterations)

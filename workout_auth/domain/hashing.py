"""
Credential hashing - bcrypt for passwords and verification codes.

Both secrets go through the same adaptive-cost hash so that a leaked
verification table is as expensive to brute force as the user table.
"""

import bcrypt

from .exceptions import HashingError


class BcryptHasher:
    """
    Implements CredentialHasher protocol via bcrypt.

    bcrypt.checkpw() compares in constant time; compare() never raises on
    mismatch or on a malformed digest.
    """

    def __init__(self, rounds: int = 10) -> None:
        self._rounds = rounds
        # Compared against when an account does not exist so that an
        # unknown email costs the same bcrypt work as a wrong password.
        self.dummy_hash = self.hash("dummy_password_for_timing_safety")

    def hash(self, secret: str) -> str:
        try:
            return bcrypt.hashpw(secret.encode(), bcrypt.gensalt(rounds=self._rounds)).decode()
        except (ValueError, OSError) as e:
            raise HashingError(f"bcrypt hashing failed: {e}") from e

    def compare(self, digest: str, secret: str) -> bool:
        try:
            return bcrypt.checkpw(secret.encode(), digest.encode())
        except ValueError:
            return False

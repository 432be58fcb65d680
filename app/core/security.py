# /app/core/security.py

"""
Password hashing and token generation for the SQL provider.

Passwords are hashed with bcrypt (salt embedded in the hash). Session and
refresh tokens are opaque random strings; they carry no claims and are only
meaningful to the store that issued them.
"""

import logging
import secrets

import bcrypt

logger = logging.getLogger(__name__)


class PasswordHasher:
    """Secure password hashing using bcrypt.

    Example:
        >>> hasher = PasswordHasher(rounds=4)
        >>> hashed = hasher.hash("secure_password")
        >>> hasher.verify("secure_password", hashed)
        True
    """

    def __init__(self, rounds: int = 12) -> None:
        self._rounds = rounds

    def hash(self, password: str) -> str:
        if not password:
            raise ValueError("Password cannot be empty")
        salt = bcrypt.gensalt(rounds=self._rounds)
        return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")

    def verify(self, password: str, password_hash: str) -> bool:
        if not password or not password_hash:
            return False
        try:
            return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
        except ValueError:
            # Malformed hash in the database.
            logger.warning("Stored password hash could not be parsed")
            return False


def generate_token(nbytes: int = 32) -> str:
    """Returns a URL-safe random token."""
    return secrets.token_urlsafe(nbytes)

"""One-way hashing of secret material.

Client secrets are hashed with bcrypt through passlib: salted, adaptive and
verified in constant time. Access and refresh tokens need to be looked up
and checked for uniqueness by their hash, so they use a deterministic
SHA-256 digest instead.
"""

import hashlib
import logging

from passlib.context import CryptContext

from oauth2_model.config import get_settings
from oauth2_model.core.constants import BCRYPT_MAX_SECRET_BYTES

logger = logging.getLogger(__name__)


class SecretHasher:
    """Salted bcrypt hashing with constant-time verification.

    bcrypt only reads the first 72 bytes of its input. Longer secrets are
    refused when hashing and never verify.
    """

    def __init__(self, rounds: int | None = None) -> None:
        self.rounds = rounds or get_settings().oauth2_bcrypt_rounds
        self._context = CryptContext(
            schemes=["bcrypt"],
            deprecated="auto",
            bcrypt__rounds=self.rounds,
            bcrypt__truncate_error=True,
        )

    def hash(self, secret: str) -> str:
        """Hash a secret. The salt is embedded in the returned string.

        Raises:
            ValueError: If the secret is longer than bcrypt can hash
        """
        return self._context.hash(secret)

    def verify(self, secret: str, hashed: str | None) -> bool:
        """Check ``secret`` against a stored hash.

        A missing or malformed hash never verifies.
        """
        if not hashed or secret is None:
            return False
        if len(secret.encode("utf-8")) > BCRYPT_MAX_SECRET_BYTES:
            return False
        try:
            return self._context.verify(secret, hashed)
        except ValueError as e:
            logger.warning("Stored secret hash could not be read: %s", e)
            return False


def hashify(token: str) -> str:
    """Deterministic one-way digest used to store and look up tokens."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()

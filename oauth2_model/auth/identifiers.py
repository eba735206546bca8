"""Random identifier generation with a bounded uniqueness retry."""

import logging
import secrets
from collections.abc import Callable

from oauth2_model.config import get_settings
from oauth2_model.core.exceptions import GenerationExhausted

logger = logging.getLogger(__name__)


class IdGenerator:
    """Produce cryptographically random, printable, fixed-length identifiers.

    The random source is injectable so tests can supply a deterministic
    sequence. It receives the byte count and returns a string.
    """

    def __init__(
        self,
        token_bytes: int | None = None,
        max_attempts: int | None = None,
        random_source: Callable[[int], str] | None = None,
    ) -> None:
        settings = get_settings()
        self.token_bytes = token_bytes or settings.oauth2_token_bytes
        self.max_attempts = max_attempts or settings.oauth2_max_generation_attempts
        self._random_source = random_source or secrets.token_urlsafe

    def random_string(self, nbytes: int | None = None) -> str:
        """Draw a single random identifier without any uniqueness check.

        ``nbytes`` overrides the configured byte count for this draw.
        """
        return self._random_source(nbytes or self.token_bytes)

    def generate(self, is_unique: Callable[[str], bool], what: str = "identifier") -> str:
        """Return the first random candidate accepted by ``is_unique``.

        Args:
            is_unique: Predicate answering whether a candidate is unused
            what: Label used in log lines and in the failure message

        Returns:
            The accepted identifier

        Raises:
            GenerationExhausted: If no candidate passes within ``max_attempts``
        """
        for attempt in range(1, self.max_attempts + 1):
            candidate = self.random_string()
            if is_unique(candidate):
                return candidate
            logger.warning(
                "Generated %s collided (attempt %d/%d)", what, attempt, self.max_attempts
            )
        raise GenerationExhausted(self.max_attempts, what)

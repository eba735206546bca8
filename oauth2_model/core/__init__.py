"""Core functionality for the OAuth2 credential model."""

from .constants import (
    BCRYPT_ROUNDS_DEFAULT,
    MAX_GENERATION_ATTEMPTS_DEFAULT,
    TOKEN_BYTES_DEFAULT,
    ResponseType,
)
from .decorators import track_operation
from .exceptions import (
    ConflictError,
    GenerationExhausted,
    OAuth2ModelError,
    StoreError,
    ValidationError,
)
from .logging import configure_logging, logger

__all__ = [
    # Core
    "configure_logging",
    "logger",
    "track_operation",
    # Errors
    "ConflictError",
    "GenerationExhausted",
    "OAuth2ModelError",
    "StoreError",
    "ValidationError",
    # Constants
    "BCRYPT_ROUNDS_DEFAULT",
    "MAX_GENERATION_ATTEMPTS_DEFAULT",
    "TOKEN_BYTES_DEFAULT",
    "ResponseType",
]

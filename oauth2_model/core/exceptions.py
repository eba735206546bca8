"""Custom exceptions for the OAuth2 credential model."""

# ========================================
# Base Exceptions
# ========================================


class OAuth2ModelError(Exception):
    """Base exception for all OAuth2 model errors."""


# ========================================
# Validation Exceptions
# ========================================


class ValidationError(OAuth2ModelError):
    """Malformed input: bad redirect URI, missing owner or client reference.

    Reported to the caller and never retried.
    """

    def __init__(self, errors: list[str] | str):
        if isinstance(errors, str):
            errors = [errors]
        self.errors = list(errors)
        super().__init__("; ".join(self.errors))


# ========================================
# Store Exceptions
# ========================================


class StoreError(OAuth2ModelError):
    """Base exception for record store failures."""


class ConflictError(StoreError):
    """A save violated a unique constraint held by the store."""

    def __init__(self, field: str, message: str | None = None):
        self.field = field
        super().__init__(message or f"Unique constraint violated on {field}")


# ========================================
# Generation Exceptions
# ========================================


class GenerationExhausted(OAuth2ModelError):
    """No unique identifier could be produced within the attempt budget."""

    def __init__(self, attempts: int, what: str = "identifier"):
        self.attempts = attempts
        self.what = what
        super().__init__(f"Could not generate a unique {what} after {attempts} attempts")

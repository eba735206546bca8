"""Protocol constants and defaults for the OAuth2 credential model."""

from enum import Enum

# ========================================
# Response Types
# ========================================


class ResponseType(str, Enum):
    """Authorization response types understood by the grant engine.

    The HTTP endpoint maps the wire-level ``response_type`` parameter onto
    one of these values before calling into the engine.
    """

    CODE = "code"
    TOKEN = "token"
    CODE_AND_TOKEN = "code_and_token"

    @classmethod
    def _missing_(cls, value):
        if isinstance(value, str):
            normalized = value.strip().lower().replace("-", "_").replace(" ", "_")
            for member in cls:
                if member.value == normalized:
                    return member
        return None


# ========================================
# Generation Defaults
# ========================================

TOKEN_BYTES_DEFAULT = 32  # Random bytes per code/token/client id (43 url-safe chars)
MAX_GENERATION_ATTEMPTS_DEFAULT = 10  # Bounded retry for unique generation

# ========================================
# Hashing Defaults
# ========================================

BCRYPT_ROUNDS_DEFAULT = 12  # Work factor for client secrets
BCRYPT_ROUNDS_MIN = 4  # Lowest work factor bcrypt accepts
BCRYPT_MAX_SECRET_BYTES = 72  # bcrypt ignores input past this length
CLIENT_SECRET_BYTES_MAX = 54  # Random bytes whose url-safe encoding fits in 72 chars

# ========================================
# Scope
# ========================================

SCOPE_SEPARATOR = " "  # Stored scope strings are space-delimited

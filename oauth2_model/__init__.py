"""
OAuth2 Model - credential data model and lifecycle engine.

This package issues, hash-stores, exchanges and validates OAuth2 credentials
(authorization codes, access tokens and refresh tokens) scoped to a
(resource owner, client) pair. HTTP endpoints call into it; it does not
route requests itself.
"""

__version__ = "0.1.0"

from oauth2_model.config.settings import Settings, get_settings, reset_settings
from oauth2_model.core.constants import ResponseType
from oauth2_model.core.decorators import track_operation
from oauth2_model.core.exceptions import (
    ConflictError,
    GenerationExhausted,
    OAuth2ModelError,
    StoreError,
    ValidationError,
)
from oauth2_model.auth import (
    Authorization,
    AuthorizationEngine,
    Client,
    ClientOwner,
    ClientRegistry,
    IdGenerator,
    OwnerRef,
    ResourceOwner,
    SecretHasher,
    StoredOwner,
    as_owner_ref,
    hashify,
)
from oauth2_model.database import FileStore, InMemoryStore, Store, create_store

__all__ = [
    "Authorization",
    "AuthorizationEngine",
    "Client",
    "ClientOwner",
    "ClientRegistry",
    "ConflictError",
    "FileStore",
    "GenerationExhausted",
    "IdGenerator",
    "InMemoryStore",
    "OAuth2ModelError",
    "OwnerRef",
    "ResourceOwner",
    "ResponseType",
    "SecretHasher",
    "Settings",
    "Store",
    "StoreError",
    "StoredOwner",
    "ValidationError",
    "__version__",
    "as_owner_ref",
    "create_store",
    "get_settings",
    "hashify",
    "reset_settings",
    "track_operation",
]

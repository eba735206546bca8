"""OAuth2 credential lifecycle.

Clients are registered through ``ClientRegistry``; codes and tokens are
issued, exchanged and checked through ``AuthorizationEngine``.
"""

from oauth2_model.auth.authorizations import AuthorizationEngine
from oauth2_model.auth.clients import ClientRegistry
from oauth2_model.auth.hashing import SecretHasher, hashify
from oauth2_model.auth.identifiers import IdGenerator
from oauth2_model.auth.owners import ClientOwner, ResourceOwner, StoredOwner, as_owner_ref
from oauth2_model.auth.records import (
    Authorization,
    Client,
    OwnerRef,
    ValidationResult,
    validate_authorization,
    validate_client,
    validate_redirect_uri,
)

__all__ = [
    "Authorization",
    "AuthorizationEngine",
    "Client",
    "ClientOwner",
    "ClientRegistry",
    "IdGenerator",
    "OwnerRef",
    "ResourceOwner",
    "SecretHasher",
    "StoredOwner",
    "ValidationResult",
    "as_owner_ref",
    "hashify",
    "validate_authorization",
    "validate_client",
    "validate_redirect_uri",
]

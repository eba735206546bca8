"""Uniqueness and validity checks shared by the reference stores.

Each check compares a candidate record against the records already stored
(excluding the candidate's own previous version) and raises on the first
violated constraint.
"""

from collections.abc import Iterable
from datetime import UTC, datetime

from oauth2_model.auth.records import (
    Authorization,
    Client,
    validate_authorization,
    validate_client,
)
from oauth2_model.core.exceptions import ConflictError


def check_client(client: Client, stored: Iterable[Client]) -> None:
    """Validate a client and enforce global uniqueness of ``client_id``."""
    validate_client(client).raise_for_errors()
    for other in stored:
        if other.id == client.id:
            continue
        if client.client_id and other.client_id == client.client_id:
            raise ConflictError("client_id")


def check_authorization(authorization: Authorization, stored: Iterable[Authorization]) -> None:
    """Validate an authorization and enforce every per-client and global constraint."""
    validate_authorization(authorization).raise_for_errors()
    for other in stored:
        if other.id == authorization.id:
            continue
        same_client = other.client_id == authorization.client_id
        if same_client and other.owner == authorization.owner:
            raise ConflictError("owner", "Authorization already exists for this owner and client")
        if same_client and authorization.code and other.code == authorization.code:
            raise ConflictError("code")
        if authorization.access_token_hash and other.access_token_hash == authorization.access_token_hash:
            raise ConflictError("access_token_hash")
        if (
            same_client
            and authorization.refresh_token_hash
            and other.refresh_token_hash == authorization.refresh_token_hash
        ):
            raise ConflictError("refresh_token_hash")


def stamp(entity: Client | Authorization) -> None:
    """Set created_at on first save and updated_at on every save."""
    now = datetime.now(UTC)
    if entity.created_at is None:
        entity.created_at = now
    entity.updated_at = now


def detach(entity):
    """Copy a record through its public fields only, dropping plaintext attributes."""
    return type(entity).model_validate(entity.model_dump())

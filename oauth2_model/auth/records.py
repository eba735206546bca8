"""Pydantic records for OAuth clients and authorizations.

These models define what the record store persists. One-time plaintext
values (client secret, access token, refresh token) are kept on private
attributes, which never appear in ``model_dump`` or ``model_dump_json``
and so never reach storage.
"""

import re
import uuid
from collections.abc import Iterable
from datetime import datetime
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr

from oauth2_model.auth.hashing import hashify
from oauth2_model.core.constants import SCOPE_SEPARATOR
from oauth2_model.core.exceptions import ValidationError

_WHITESPACE = re.compile(r"\s")


def _new_record_id() -> str:
    return uuid.uuid4().hex


class OwnerRef(BaseModel):
    """Tagged reference to any entity that can own clients or grant access."""

    model_config = ConfigDict(frozen=True)

    owner_type: str
    owner_id: str

    def __str__(self) -> str:
        return f"{self.owner_type}:{self.owner_id}"


class Client(BaseModel):
    """A registered application."""

    id: str = Field(default_factory=_new_record_id)
    client_id: str = ""
    name: str = ""
    redirect_uri: str = ""
    client_secret_hash: str = ""
    owner: OwnerRef | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    _client_secret: str | None = PrivateAttr(default=None)

    @property
    def client_secret(self) -> str | None:
        """Plaintext secret, only on the instance returned by registration."""
        return self._client_secret

    def assign_secret(self, secret: str, secret_hash: str) -> None:
        self._client_secret = secret
        self.client_secret_hash = secret_hash


class Authorization(BaseModel):
    """Credentials granted to one client on behalf of one resource owner."""

    id: str = Field(default_factory=_new_record_id)
    owner: OwnerRef | None = None
    client_id: str = ""
    code: str | None = None
    access_token_hash: str | None = None
    refresh_token_hash: str | None = None
    expires_at: datetime | None = None
    scope: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    _access_token: str | None = PrivateAttr(default=None)
    _refresh_token: str | None = PrivateAttr(default=None)

    @property
    def access_token(self) -> str | None:
        return self._access_token

    @property
    def refresh_token(self) -> str | None:
        return self._refresh_token

    def set_access_token(self, token: str | None) -> None:
        """Keep the plaintext in memory and store only its digest."""
        self._access_token = token or None
        self.access_token_hash = hashify(token) if token else ""

    def set_refresh_token(self, token: str | None) -> None:
        self._refresh_token = token or None
        self.refresh_token_hash = hashify(token) if token else ""

    def has_code(self) -> bool:
        return bool(self.code)

    def has_access_token(self) -> bool:
        return bool(self.access_token_hash)

    def has_refresh_token(self) -> bool:
        return bool(self.refresh_token_hash)


# ========================================
# Scope helpers
# ========================================


def scope_tokens(scope: str | Iterable[str] | None) -> list[str]:
    """Split a scope string or flatten an iterable of scope strings, keeping order."""
    if not scope:
        return []
    if isinstance(scope, str):
        return scope.split()
    tokens: list[str] = []
    for item in scope:
        tokens.extend(str(item).split())
    return tokens


def parse_scope(scope: str | None) -> set[str]:
    """Parse a stored space-delimited scope string into a set."""
    return set(scope_tokens(scope))


def merge_scope(existing: str | None, requested: str | Iterable[str] | None) -> str:
    """Union of existing and requested scopes, first-seen order, no duplicates."""
    merged = dict.fromkeys(scope_tokens(existing))
    merged.update(dict.fromkeys(scope_tokens(requested)))
    return SCOPE_SEPARATOR.join(merged)


# ========================================
# Validation
# ========================================


class ValidationResult(BaseModel):
    """Outcome of validating a record before it is saved."""

    valid: bool = True
    errors: list[str] = Field(default_factory=list)

    def raise_for_errors(self) -> None:
        if not self.valid:
            raise ValidationError(self.errors)


def validate_redirect_uri(redirect_uri: str | None) -> ValidationResult:
    """A redirect URI must parse and be absolute."""
    if not redirect_uri:
        return ValidationResult(valid=False, errors=["redirect_uri can't be blank"])

    if _WHITESPACE.search(redirect_uri):
        return ValidationResult(valid=False, errors=["redirect_uri must be a URI"])

    try:
        parsed = urlparse(redirect_uri)
    except ValueError:
        return ValidationResult(valid=False, errors=["redirect_uri must be a URI"])

    if not parsed.scheme:
        return ValidationResult(valid=False, errors=["redirect_uri must be an absolute URI"])
    if parsed.scheme in ("http", "https") and not parsed.netloc:
        return ValidationResult(valid=False, errors=["redirect_uri must be an absolute URI"])

    return ValidationResult()


def validate_client(client: Client) -> ValidationResult:
    """Presence and format checks for a client record."""
    errors: list[str] = []
    if not client.name:
        errors.append("name can't be blank")
    errors.extend(validate_redirect_uri(client.redirect_uri).errors)
    return ValidationResult(valid=not errors, errors=errors)


def validate_authorization(authorization: Authorization) -> ValidationResult:
    """An authorization must reference both its owner and its client."""
    errors: list[str] = []
    if authorization.owner is None:
        errors.append("owner can't be blank")
    if not authorization.client_id:
        errors.append("client can't be blank")
    return ValidationResult(valid=not errors, errors=errors)

"""Authorization lifecycle: grants, code exchange, expiry and scope checks.

An authorization moves between three states:

- pending: no tokens issued yet, possibly holding a code
- code-issued: holds an unexpired code and no access token
- token-issued: holds an access token hash and no code

Every write runs its generate-then-save cycle in a bounded loop. When the
store rejects a save with ``ConflictError`` the whole cycle is repeated;
after ``max_attempts`` conflicts the operation fails with
``GenerationExhausted``.
"""

import logging
import math
from collections.abc import Callable, Iterable
from datetime import UTC, datetime, timedelta
from typing import Any

from oauth2_model.auth.hashing import hashify
from oauth2_model.auth.identifiers import IdGenerator
from oauth2_model.auth.owners import as_owner_ref, owner_ref_of
from oauth2_model.auth.records import (
    Authorization,
    Client,
    OwnerRef,
    merge_scope,
    parse_scope,
    scope_tokens,
)
from oauth2_model.config import get_settings
from oauth2_model.core.constants import ResponseType
from oauth2_model.core.decorators import track_operation
from oauth2_model.core.exceptions import ConflictError, GenerationExhausted, ValidationError
from oauth2_model.database.base import Store

logger = logging.getLogger(__name__)

Duration = int | float | timedelta


def utc_now() -> datetime:
    return datetime.now(UTC)


def _as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC so comparisons never mix kinds."""
    return value if value.tzinfo else value.replace(tzinfo=UTC)


def client_id_of(client: Client | str | None) -> str:
    """Public id of a client argument given as a record or a bare id."""
    client_id = client.client_id if isinstance(client, Client) else client
    if not client_id:
        raise ValidationError("client can't be blank")
    return client_id


class AuthorizationEngine:
    """Issues, exchanges and checks authorizations held in a store."""

    def __init__(
        self,
        store: Store,
        id_generator: IdGenerator | None = None,
        clock: Callable[[], datetime] | None = None,
        default_duration: Duration | None = None,
    ) -> None:
        self.store = store
        self.id_generator = id_generator or IdGenerator()
        self.clock = clock or utc_now
        if default_duration is None:
            default_duration = get_settings().oauth2_default_duration
        self.default_duration = default_duration

    # ========== Credential minting ==========

    def create_code(self, client_id: str) -> str:
        """Mint a code unused by any authorization of this client."""
        return self.id_generator.generate(
            lambda code: not self.store.exists_authorization_with_code(client_id, code),
            what="code",
        )

    def create_access_token(self) -> str:
        """Mint an access token whose hash is unused system-wide."""
        return self.id_generator.generate(
            lambda token: not self.store.exists_authorization_with_access_token_hash(
                hashify(token)
            ),
            what="access_token",
        )

    def create_refresh_token(self, client_id: str) -> str:
        """Mint a refresh token whose hash is unused by this client."""
        return self.id_generator.generate(
            lambda token: not self.store.exists_authorization_with_refresh_token_hash(
                client_id, hashify(token)
            ),
            what="refresh_token",
        )

    def _mint_and_save(
        self,
        authorization: Authorization,
        mint: Callable[[Authorization], None],
        what: str,
    ) -> Authorization:
        max_attempts = self.id_generator.max_attempts
        for attempt in range(1, max_attempts + 1):
            mint(authorization)
            try:
                return self.store.save(authorization)
            except ConflictError as e:
                logger.warning(
                    "Conflict on %s while saving %s (attempt %d/%d)",
                    e.field,
                    what,
                    attempt,
                    max_attempts,
                )
        raise GenerationExhausted(max_attempts, what)

    # ========== Lookups ==========

    def find_for(self, owner: Any, client: Client | str) -> Authorization | None:
        """The authorization for an (owner, client) pair, if one exists."""
        return self.store.find_authorization(as_owner_ref(owner), client_id_of(client))

    def find_by_code(self, client: Client | str, code: str) -> Authorization | None:
        return self.store.find_authorization_by_code(client_id_of(client), code)

    def find_by_access_token(self, access_token: str) -> Authorization | None:
        """Resolve a presented bearer token to its authorization."""
        if not access_token:
            return None
        return self.store.find_authorization_by_access_token_hash(hashify(access_token))

    def find_by_refresh_token(self, client: Client | str, refresh_token: str) -> Authorization | None:
        if not refresh_token:
            return None
        return self.store.find_authorization_by_refresh_token_hash(
            client_id_of(client), hashify(refresh_token)
        )

    def authorizations_for(self, owner: Any) -> list[Authorization]:
        """Every authorization granted by ``owner``."""
        return self.store.list_authorizations(as_owner_ref(owner))

    # ========== Grants ==========

    def _apply_response_type(self, authorization: Authorization, response_type: ResponseType) -> None:
        client_id = authorization.client_id
        if response_type in (ResponseType.CODE_AND_TOKEN, ResponseType.CODE):
            if response_type is ResponseType.CODE_AND_TOKEN or not authorization.has_code():
                authorization.code = self.create_code(client_id)
        if response_type in (ResponseType.CODE_AND_TOKEN, ResponseType.TOKEN):
            if not authorization.has_access_token():
                authorization.set_access_token(self.create_access_token())
            if not authorization.has_refresh_token():
                authorization.set_refresh_token(self.create_refresh_token(client_id))

    def _apply_duration(self, authorization: Authorization, duration: Duration | None) -> None:
        if duration is None:
            duration = self.default_duration
        if duration is None:
            authorization.expires_at = None
            return
        if not isinstance(duration, timedelta):
            duration = timedelta(seconds=int(duration))
        authorization.expires_at = self.clock() + duration

    @track_operation("grant_for")
    def grant_for(
        self,
        owner: Any,
        client: Client | str,
        response_type: ResponseType | str,
        duration: Duration | None = None,
        scope: str | Iterable[str] | None = None,
    ) -> Authorization:
        """Find or create the (owner, client) authorization and issue credentials.

        Args:
            owner: Resource owner (``OwnerRef`` or anything with ``owner_ref``)
            client: Client record or its public id
            response_type: ``code``, ``token`` or ``code_and_token``
            duration: Lifetime in seconds or as a timedelta; None means no expiry
            scope: Scope tokens to add, as a space-delimited string or an iterable

        Returns:
            The saved authorization. Plaintext ``access_token`` and ``refresh_token``
            are readable on this instance only.

        Raises:
            ValidationError: On a missing owner/client or unknown response type
            GenerationExhausted: If the store keeps rejecting the generated values
        """
        owner_ref = as_owner_ref(owner)
        client_id = client_id_of(client)
        try:
            response_type = ResponseType(response_type)
        except ValueError:
            raise ValidationError(f"Unsupported response_type: {response_type!r}") from None

        # Iterators are consumed once; every attempt merges the same tokens
        requested = scope_tokens(scope) if scope is not None else None

        max_attempts = self.id_generator.max_attempts
        for attempt in range(1, max_attempts + 1):
            authorization = self.store.find_authorization(owner_ref, client_id) or Authorization(
                owner=owner_ref, client_id=client_id
            )
            self._apply_response_type(authorization, response_type)
            self._apply_duration(authorization, duration)
            if requested is not None:
                authorization.scope = merge_scope(authorization.scope, requested)

            try:
                self.store.save(authorization)
            except ConflictError as e:
                logger.warning(
                    "Conflict on %s while granting %s to client %s (attempt %d/%d)",
                    e.field,
                    response_type.value,
                    client_id,
                    attempt,
                    max_attempts,
                )
                continue

            logger.info(
                "Granted %s for %s to client %s", response_type.value, owner_ref, client_id
            )
            return authorization

        raise GenerationExhausted(max_attempts, "authorization")

    @track_operation("grant_access")
    def grant_access(
        self,
        owner: Any,
        client: Client | str,
        scopes: str | Iterable[str] | None = None,
    ) -> Authorization:
        """Record that ``owner`` trusts ``client``, merging any scopes. No credentials are minted."""
        owner_ref = as_owner_ref(owner)
        client_id = client_id_of(client)
        requested = scope_tokens(scopes) if scopes is not None else None

        max_attempts = self.id_generator.max_attempts
        for attempt in range(1, max_attempts + 1):
            authorization = self.store.find_authorization(owner_ref, client_id) or Authorization(
                owner=owner_ref, client_id=client_id
            )
            if requested is not None:
                authorization.scope = merge_scope(authorization.scope, requested)
            try:
                self.store.save(authorization)
            except ConflictError as e:
                logger.warning(
                    "Conflict on %s while granting access (attempt %d/%d)",
                    e.field,
                    attempt,
                    max_attempts,
                )
                continue
            return authorization
        raise GenerationExhausted(max_attempts, "authorization")

    @track_operation("exchange")
    def exchange(self, authorization: Authorization) -> Authorization:
        """Turn a code into an access token.

        The code is consumed and a new access token is minted. The refresh
        token is cleared in the same step, so an exchanged authorization
        cannot be refreshed.
        """

        def mint(a: Authorization) -> None:
            a.code = ""
            a.set_access_token(self.create_access_token())
            a.set_refresh_token(None)

        self._mint_and_save(authorization, mint, "access_token")
        logger.info("Exchanged code for client %s", authorization.client_id)
        return authorization

    @track_operation("generate_code")
    def generate_code(self, authorization: Authorization) -> str:
        """Return the authorization's code, minting and saving one if absent."""
        if authorization.has_code():
            return authorization.code
        self._mint_and_save(
            authorization,
            lambda a: setattr(a, "code", self.create_code(a.client_id)),
            "code",
        )
        return authorization.code

    @track_operation("generate_access_token")
    def generate_access_token(self, authorization: Authorization) -> str:
        """Mint and save an access token if absent and return its plaintext.

        An access token issued earlier is stored only as a hash, so its
        plaintext is returned only while it is still held in memory.
        """
        if authorization.has_access_token():
            return authorization.access_token or ""
        self._mint_and_save(
            authorization,
            lambda a: a.set_access_token(self.create_access_token()),
            "access_token",
        )
        return authorization.access_token

    def revoke(self, authorization: Authorization) -> None:
        self.store.delete(authorization)
        logger.info("Revoked authorization for client %s", authorization.client_id)

    # ========== Checks ==========

    def expired(self, authorization: Authorization) -> bool:
        if authorization.expires_at is None:
            return False
        return self.clock() > _as_utc(authorization.expires_at)

    def expires_in(self, authorization: Authorization) -> int | None:
        """Seconds until expiry, rounded up; None when the authorization never expires."""
        if authorization.expires_at is None:
            return None
        remaining = _as_utc(authorization.expires_at) - self.clock()
        return math.ceil(remaining.total_seconds())

    def scopes(self, authorization: Authorization) -> set[str]:
        return parse_scope(authorization.scope)

    def in_scope(self, authorization: Authorization, requested_scopes: str | Iterable[str]) -> bool:
        return set(scope_tokens(requested_scopes)) <= self.scopes(authorization)

    def grants_access(
        self,
        authorization: Authorization,
        user: Any,
        requested_scopes: str | Iterable[str] = (),
    ) -> bool:
        """True iff unexpired, owned by ``user`` and covering every requested scope."""
        if self.expired(authorization):
            return False
        user_ref: OwnerRef | None = owner_ref_of(user)
        if user_ref is None or user_ref != authorization.owner:
            return False
        return self.in_scope(authorization, requested_scopes)

"""
Base protocol/interface for record store implementations.
All store backends must implement this protocol.
"""

from typing import Protocol, TypeVar, runtime_checkable

from oauth2_model.auth.records import Authorization, Client, OwnerRef

RecordT = TypeVar("RecordT", Client, Authorization)


@runtime_checkable
class Store(Protocol):
    """
    Protocol defining the persistence contract for clients and authorizations.

    ``save`` must be atomic with respect to every uniqueness predicate below:
    a save that would break a constraint raises ``ConflictError`` and leaves
    the store unchanged. Absent values (``None`` or ``""``) never conflict.
    """

    # ========== Clients ==========

    def exists_client_with_id(self, client_id: str) -> bool:
        """Whether any client already uses this public id."""
        ...

    def find_client(self, client_id: str) -> Client | None:
        """Fetch a client by its public id."""
        ...

    def list_clients(self, owner: OwnerRef) -> list[Client]:
        """All clients registered by ``owner``."""
        ...

    # ========== Authorizations ==========

    def find_authorization(self, owner: OwnerRef, client_id: str) -> Authorization | None:
        """The single authorization for an (owner, client) pair, if any."""
        ...

    def find_authorization_by_code(self, client_id: str, code: str) -> Authorization | None:
        ...

    def find_authorization_by_access_token_hash(self, token_hash: str) -> Authorization | None:
        ...

    def find_authorization_by_refresh_token_hash(
        self,
        client_id: str,
        token_hash: str,
    ) -> Authorization | None:
        ...

    def exists_authorization_with_code(self, client_id: str, code: str) -> bool:
        """Whether this client already has an authorization holding ``code``."""
        ...

    def exists_authorization_with_access_token_hash(self, token_hash: str) -> bool:
        """Whether any authorization holds this access token hash."""
        ...

    def exists_authorization_with_refresh_token_hash(
        self,
        client_id: str,
        token_hash: str,
    ) -> bool:
        """Whether this client already has an authorization holding this refresh token hash."""
        ...

    def list_authorizations(self, owner: OwnerRef) -> list[Authorization]:
        """All authorizations granted by ``owner``."""
        ...

    # ========== Writes ==========

    def save(self, entity: RecordT) -> RecordT:
        """
        Insert or replace a record, checking validity and uniqueness atomically.

        Args:
            entity: Client or Authorization to persist

        Returns:
            The same instance, with timestamps stamped

        Raises:
            ValidationError: If the record fails its validation function
            ConflictError: If a uniqueness constraint would be violated
        """
        ...

    def delete(self, entity: Client | Authorization) -> None:
        """Remove a record. Removing a missing record is a no-op."""
        ...

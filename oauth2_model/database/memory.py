"""In-process record store.

Records live in dictionaries keyed by their internal id. A single lock
makes every ``save`` an atomic check-then-write, which is what the
uniqueness contract requires.
"""

import logging
import threading

from oauth2_model.auth.records import Authorization, Client, OwnerRef
from oauth2_model.database.constraints import (
    check_authorization,
    check_client,
    detach,
    stamp,
)

logger = logging.getLogger(__name__)


class InMemoryStore:
    """Store implementation backed by Python dictionaries."""

    def __init__(self) -> None:
        self._clients: dict[str, Client] = {}
        self._authorizations: dict[str, Authorization] = {}
        self._lock = threading.Lock()

    # ========== Clients ==========

    def exists_client_with_id(self, client_id: str) -> bool:
        return self.find_client(client_id) is not None

    def find_client(self, client_id: str) -> Client | None:
        with self._lock:
            for client in self._clients.values():
                if client.client_id == client_id:
                    return detach(client)
        return None

    def list_clients(self, owner: OwnerRef) -> list[Client]:
        with self._lock:
            return [detach(c) for c in self._clients.values() if c.owner == owner]

    # ========== Authorizations ==========

    def _find_one(self, predicate) -> Authorization | None:
        with self._lock:
            for authorization in self._authorizations.values():
                if predicate(authorization):
                    return detach(authorization)
        return None

    def find_authorization(self, owner: OwnerRef, client_id: str) -> Authorization | None:
        return self._find_one(lambda a: a.owner == owner and a.client_id == client_id)

    def find_authorization_by_code(self, client_id: str, code: str) -> Authorization | None:
        if not code:
            return None
        return self._find_one(lambda a: a.client_id == client_id and a.code == code)

    def find_authorization_by_access_token_hash(self, token_hash: str) -> Authorization | None:
        if not token_hash:
            return None
        return self._find_one(lambda a: a.access_token_hash == token_hash)

    def find_authorization_by_refresh_token_hash(
        self,
        client_id: str,
        token_hash: str,
    ) -> Authorization | None:
        if not token_hash:
            return None
        return self._find_one(
            lambda a: a.client_id == client_id and a.refresh_token_hash == token_hash
        )

    def exists_authorization_with_code(self, client_id: str, code: str) -> bool:
        return self.find_authorization_by_code(client_id, code) is not None

    def exists_authorization_with_access_token_hash(self, token_hash: str) -> bool:
        return self.find_authorization_by_access_token_hash(token_hash) is not None

    def exists_authorization_with_refresh_token_hash(
        self,
        client_id: str,
        token_hash: str,
    ) -> bool:
        return self.find_authorization_by_refresh_token_hash(client_id, token_hash) is not None

    def list_authorizations(self, owner: OwnerRef) -> list[Authorization]:
        with self._lock:
            return [detach(a) for a in self._authorizations.values() if a.owner == owner]

    # ========== Writes ==========

    def save(self, entity):
        with self._lock:
            if isinstance(entity, Client):
                check_client(entity, self._clients.values())
                stamp(entity)
                self._clients[entity.id] = detach(entity)
            elif isinstance(entity, Authorization):
                check_authorization(entity, self._authorizations.values())
                stamp(entity)
                self._authorizations[entity.id] = detach(entity)
            else:
                msg = f"Unsupported record type: {type(entity).__name__}"
                raise TypeError(msg)
        logger.debug("Saved %s %s", type(entity).__name__, entity.id)
        return entity

    def delete(self, entity: Client | Authorization) -> None:
        with self._lock:
            if isinstance(entity, Client):
                self._clients.pop(entity.id, None)
            else:
                self._authorizations.pop(entity.id, None)
        logger.debug("Deleted %s %s", type(entity).__name__, entity.id)

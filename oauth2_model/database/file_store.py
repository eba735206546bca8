"""JSON-file record store.

Each record is written to its own JSON file, providing persistence across
process restarts. Constraint checks scan the stored files under a
process-wide lock, so the store is safe for one process with many threads.
For multiple processes, use a database that enforces unique indexes.
"""

import logging
import os
import threading
from pathlib import Path
from typing import Any

from oauth2_model.auth.records import Authorization, Client, OwnerRef
from oauth2_model.core.exceptions import StoreError
from oauth2_model.database.constraints import (
    check_authorization,
    check_client,
    detach,
    stamp,
)

logger = logging.getLogger(__name__)


class FileStore:
    """Store implementation persisting records as JSON files on disk."""

    def __init__(self, storage_dir: str | Path = ".oauth_storage") -> None:
        self._storage_dir = Path(storage_dir)
        self._storage_dir.mkdir(parents=True, exist_ok=True)

        # Create subdirectories for each record type
        self._clients_dir = self._storage_dir / "clients"
        self._authorizations_dir = self._storage_dir / "authorizations"

        for dir_path in [self._clients_dir, self._authorizations_dir]:
            dir_path.mkdir(exist_ok=True)

        self._lock = threading.RLock()

        logger.info("Initialized FileStore with storage at %s", self._storage_dir)

    def _get_file_path(self, directory: Path, key: str) -> Path:
        """Get file path for a storage key (sanitized)."""
        # Sanitize key to prevent path traversal
        safe_key = key.replace("/", "_").replace("\\", "_").replace("..", "_")
        return directory / f"{safe_key}.json"

    def _read_entity(self, file_path: Path, model: type[Any]) -> Any:
        try:
            return model.model_validate_json(file_path.read_text())
        except (OSError, ValueError) as e:
            msg = f"Failed to read record {file_path.name}: {e}"
            raise StoreError(msg) from e

    def _read_all(self, directory: Path, model: type[Any]) -> list[Any]:
        return [self._read_entity(path, model) for path in sorted(directory.glob("*.json"))]

    def _write_entity(self, directory: Path, entity: Any) -> None:
        """Write a record through a temp file so readers never see a partial file."""
        file_path = self._get_file_path(directory, entity.id)
        tmp_path = file_path.with_suffix(".tmp")
        tmp_path.write_text(detach(entity).model_dump_json(indent=2))
        os.replace(tmp_path, file_path)

    def _delete_entity(self, directory: Path, key: str) -> None:
        file_path = self._get_file_path(directory, key)
        if file_path.exists():
            file_path.unlink()

    # ========== Clients ==========

    def _clients(self) -> list[Client]:
        return self._read_all(self._clients_dir, Client)

    def exists_client_with_id(self, client_id: str) -> bool:
        return self.find_client(client_id) is not None

    def find_client(self, client_id: str) -> Client | None:
        with self._lock:
            return next((c for c in self._clients() if c.client_id == client_id), None)

    def list_clients(self, owner: OwnerRef) -> list[Client]:
        with self._lock:
            return [c for c in self._clients() if c.owner == owner]

    # ========== Authorizations ==========

    def _authorizations(self) -> list[Authorization]:
        return self._read_all(self._authorizations_dir, Authorization)

    def _find_one(self, predicate) -> Authorization | None:
        with self._lock:
            return next((a for a in self._authorizations() if predicate(a)), None)

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
            return [a for a in self._authorizations() if a.owner == owner]

    # ========== Writes ==========

    def save(self, entity):
        with self._lock:
            if isinstance(entity, Client):
                check_client(entity, self._clients())
                stamp(entity)
                self._write_entity(self._clients_dir, entity)
            elif isinstance(entity, Authorization):
                check_authorization(entity, self._authorizations())
                stamp(entity)
                self._write_entity(self._authorizations_dir, entity)
            else:
                msg = f"Unsupported record type: {type(entity).__name__}"
                raise TypeError(msg)
        logger.debug("Saved %s %s", type(entity).__name__, entity.id)
        return entity

    def delete(self, entity: Client | Authorization) -> None:
        directory = self._clients_dir if isinstance(entity, Client) else self._authorizations_dir
        with self._lock:
            self._delete_entity(directory, entity.id)
        logger.debug("Deleted %s %s", type(entity).__name__, entity.id)

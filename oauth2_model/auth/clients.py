"""Client registration and credential checks."""

import logging
from typing import Any

from oauth2_model.auth.hashing import SecretHasher
from oauth2_model.auth.identifiers import IdGenerator
from oauth2_model.auth.owners import as_owner_ref
from oauth2_model.auth.records import Client, validate_client
from oauth2_model.core.constants import CLIENT_SECRET_BYTES_MAX
from oauth2_model.core.decorators import track_operation
from oauth2_model.core.exceptions import ConflictError, GenerationExhausted
from oauth2_model.database.base import Store

logger = logging.getLogger(__name__)


class ClientRegistry:
    """Issues client identities and verifies client secrets.

    A client's id and secret are generated together at registration. Only
    the bcrypt hash of the secret is persisted; the plaintext is handed back
    once and cannot be recovered afterwards.
    """

    def __init__(
        self,
        store: Store,
        id_generator: IdGenerator | None = None,
        hasher: SecretHasher | None = None,
    ) -> None:
        self.store = store
        self.id_generator = id_generator or IdGenerator()
        self.hasher = hasher or SecretHasher()

    def create_client_id(self) -> str:
        """Mint a public client id not yet used in the store."""
        return self.id_generator.generate(
            lambda candidate: not self.store.exists_client_with_id(candidate),
            what="client_id",
        )

    @track_operation("register_client")
    def register(
        self,
        name: str,
        redirect_uri: str,
        owner: Any = None,
    ) -> tuple[Client, str]:
        """Register a client and return it together with its one-time secret.

        Args:
            name: Display name of the application
            redirect_uri: Absolute URI the authorization endpoint redirects to
            owner: Entity registering the client (``OwnerRef`` or anything with ``owner_ref``)

        Returns:
            The saved client and the plaintext secret

        Raises:
            ValidationError: If the name is blank or the redirect URI is not absolute
            GenerationExhausted: If no unique client id could be stored
        """
        client = Client(
            name=name or "",
            redirect_uri=redirect_uri or "",
            owner=as_owner_ref(owner) if owner is not None else None,
        )
        validate_client(client).raise_for_errors()

        # Secrets must stay within what bcrypt reads
        secret = self.id_generator.random_string(
            min(self.id_generator.token_bytes, CLIENT_SECRET_BYTES_MAX)
        )
        client.assign_secret(secret, self.hasher.hash(secret))

        max_attempts = self.id_generator.max_attempts
        for attempt in range(1, max_attempts + 1):
            client.client_id = self.create_client_id()
            try:
                self.store.save(client)
            except ConflictError as e:
                logger.warning(
                    "Conflict on %s while registering client (attempt %d/%d)",
                    e.field,
                    attempt,
                    max_attempts,
                )
                continue
            logger.info("Registered client %s (%s)", client.client_id, client.name)
            return client, secret

        raise GenerationExhausted(max_attempts, "client_id")

    def verify_secret(self, client: Client, candidate_secret: str) -> bool:
        """Check a presented secret against the client's stored hash."""
        return self.hasher.verify(candidate_secret, client.client_secret_hash)

    def find(self, client_id: str) -> Client | None:
        return self.store.find_client(client_id)

    @track_operation("update_client")
    def update(
        self,
        client: Client,
        name: str | None = None,
        redirect_uri: str | None = None,
    ) -> Client:
        """Edit client metadata. The id and secret hash never change."""
        changes: dict[str, str] = {}
        if name is not None:
            changes["name"] = name
        if redirect_uri is not None:
            changes["redirect_uri"] = redirect_uri
        updated = client.model_copy(update=changes)
        validate_client(updated).raise_for_errors()
        self.store.save(updated)
        logger.info("Updated client %s", updated.client_id)
        return updated

    def clients_for(self, owner: Any) -> list[Client]:
        """Clients registered by ``owner``."""
        return self.store.list_clients(as_owner_ref(owner))

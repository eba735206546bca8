"""Capability interfaces for entities that own clients or grant access.

Any entity type can take part by exposing a stable ``owner_ref``. Entities
that also want to list their records implement ``ResourceOwner`` and/or
``ClientOwner``; ``StoredOwner`` does both on top of a store.
"""

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from oauth2_model.auth.records import Authorization, Client, OwnerRef
from oauth2_model.core.exceptions import ValidationError

if TYPE_CHECKING:
    from oauth2_model.database.base import Store


@runtime_checkable
class ResourceOwner(Protocol):
    """An entity on whose behalf access is granted."""

    @property
    def owner_ref(self) -> OwnerRef: ...

    def authorizations(self) -> list[Authorization]: ...


@runtime_checkable
class ClientOwner(Protocol):
    """An entity that registers client applications."""

    @property
    def owner_ref(self) -> OwnerRef: ...

    def clients(self) -> list[Client]: ...


def owner_ref_of(owner: Any) -> OwnerRef | None:
    """Tagged reference for ``owner``, or None when it exposes no identity."""
    if isinstance(owner, OwnerRef):
        return owner
    ref = getattr(owner, "owner_ref", None)
    return ref if isinstance(ref, OwnerRef) else None


def as_owner_ref(owner: Any) -> OwnerRef:
    """Resolve an owner argument to its tagged reference.

    Raises:
        ValidationError: If ``owner`` is missing or exposes no identity
    """
    ref = owner_ref_of(owner)
    if ref is not None:
        return ref
    if owner is None:
        raise ValidationError("owner can't be blank")
    raise ValidationError(f"{type(owner).__name__} does not expose an owner_ref")


class StoredOwner:
    """Owner identity whose clients and authorizations are read from a store."""

    def __init__(self, owner_type: str, owner_id: str, store: "Store") -> None:
        self._ref = OwnerRef(owner_type=owner_type, owner_id=str(owner_id))
        self._store = store

    @property
    def owner_ref(self) -> OwnerRef:
        return self._ref

    def authorizations(self) -> list[Authorization]:
        return self._store.list_authorizations(self._ref)

    def clients(self) -> list[Client]:
        return self._store.list_clients(self._ref)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, StoredOwner):
            return self._ref == other._ref
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._ref)

    def __repr__(self) -> str:
        return f"StoredOwner({self._ref})"

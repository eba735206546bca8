"""
Shared pytest fixtures and configuration for all tests.

bcrypt runs at its lowest work factor here so that suites registering many
clients stay fast. Time-dependent tests use ``FrozenClock`` instead of the
wall clock.
"""

import os
from datetime import UTC, datetime, timedelta

import pytest

# Set test environment variables BEFORE any package imports
os.environ["OAUTH2_BCRYPT_ROUNDS"] = "4"
os.environ["OAUTH2_STORE"] = "memory"
os.environ.pop("OAUTH2_DEFAULT_DURATION", None)

from oauth2_model.auth import (  # noqa: E402
    AuthorizationEngine,
    ClientRegistry,
    IdGenerator,
    SecretHasher,
    StoredOwner,
)
from oauth2_model.config import reset_settings  # noqa: E402
from oauth2_model.database import InMemoryStore  # noqa: E402


class FrozenClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2024, 1, 1, 12, 0, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now = self.now + timedelta(seconds=seconds)


class SequenceSource:
    """Deterministic random source replaying a fixed list of candidates."""

    def __init__(self, values):
        self.values = list(values)
        self.calls = 0

    def __call__(self, nbytes: int) -> str:
        value = self.values[self.calls % len(self.values)]
        self.calls += 1
        return value


@pytest.fixture(autouse=True)
def _fresh_settings():
    """Each test starts from settings rebuilt out of the environment."""
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def clock():
    return FrozenClock()


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def hasher():
    return SecretHasher(rounds=4)


@pytest.fixture
def registry(store, hasher):
    return ClientRegistry(store, id_generator=IdGenerator(), hasher=hasher)


@pytest.fixture
def engine(store, clock):
    return AuthorizationEngine(store, id_generator=IdGenerator(), clock=clock)


@pytest.fixture
def owner(store):
    """Resource owner granting access."""
    return StoredOwner("User", "42", store)


@pytest.fixture
def developer(store):
    """Owner registering client applications."""
    return StoredOwner("Developer", "7", store)


@pytest.fixture
def client(registry, developer):
    """A registered client."""
    registered, _secret = registry.register(
        "Test App", "https://app.example/callback", owner=developer
    )
    return registered

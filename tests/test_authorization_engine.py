"""
Tests for oauth2_model.auth.authorizations.

Test Coverage:
- grant_for() for each response type, expiry and scope merging
- exchange() of a code into an access token
- expired(), expires_in(), scopes(), in_scope(), grants_access()
- token lookups, grant_access(), generate_code(), generate_access_token(), revoke()
- conflict retry and GenerationExhausted
"""

from datetime import timedelta
from unittest.mock import MagicMock

import pytest

from oauth2_model.auth.authorizations import AuthorizationEngine
from oauth2_model.auth.hashing import hashify
from oauth2_model.auth.identifiers import IdGenerator
from oauth2_model.auth.owners import StoredOwner
from oauth2_model.auth.records import Authorization, OwnerRef
from oauth2_model.core.constants import ResponseType
from oauth2_model.core.exceptions import ConflictError, GenerationExhausted, ValidationError

from conftest import SequenceSource


class TestGrantForCode:
    """Test the code response type."""

    def test_creates_authorization_with_code(self, engine, owner, client):
        """A first grant creates the record and mints a code."""
        authorization = engine.grant_for(owner, client, "code")

        assert authorization.code
        assert authorization.owner == owner.owner_ref
        assert authorization.client_id == client.client_id
        assert not authorization.has_access_token()
        assert engine.find_for(owner, client).code == authorization.code

    def test_keeps_existing_code(self, engine, owner, client):
        """A second code grant reuses the stored code."""
        first = engine.grant_for(owner, client, "code")
        second = engine.grant_for(owner, client, "code")

        assert second.code == first.code
        assert second.id == first.id

    def test_one_record_per_owner_and_client(self, engine, owner, client):
        """Repeated grants never create a second authorization."""
        engine.grant_for(owner, client, "code")
        engine.grant_for(owner, client, "token")
        engine.grant_for(owner, client, ResponseType.CODE_AND_TOKEN)

        assert len(engine.authorizations_for(owner)) == 1
        assert len(owner.authorizations()) == 1

    def test_codes_unique_within_client(self, store, client, clock):
        """A code already used by the client is skipped."""
        source = SequenceSource(["shared", "shared", "other"])
        engine = AuthorizationEngine(store, IdGenerator(random_source=source), clock=clock)
        alice = OwnerRef(owner_type="User", owner_id="alice")
        bob = OwnerRef(owner_type="User", owner_id="bob")

        assert engine.grant_for(alice, client, "code").code == "shared"
        assert engine.grant_for(bob, client, "code").code == "other"

    def test_same_code_allowed_across_clients(self, store, registry, clock):
        """Two different clients may hold the same code string."""
        first, _ = registry.register("A", "https://a.example/cb")
        second, _ = registry.register("B", "https://b.example/cb")
        engine = AuthorizationEngine(
            store, IdGenerator(random_source=SequenceSource(["same"])), clock=clock
        )
        alice = OwnerRef(owner_type="User", owner_id="alice")

        assert engine.grant_for(alice, first, "code").code == "same"
        assert engine.grant_for(alice, second, "code").code == "same"


class TestGrantForToken:
    """Test the token response type."""

    def test_mints_access_and_refresh_tokens(self, engine, owner, client, store):
        """Plaintext tokens are returned; only hashes are stored."""
        authorization = engine.grant_for(owner, client, "token")

        assert authorization.access_token
        assert authorization.refresh_token
        assert authorization.access_token_hash == hashify(authorization.access_token)
        assert authorization.refresh_token_hash == hashify(authorization.refresh_token)

        stored = store.find_authorization(owner.owner_ref, client.client_id)
        assert stored.access_token is None
        assert stored.refresh_token is None
        assert authorization.access_token not in stored.model_dump_json()
        assert authorization.refresh_token not in stored.model_dump_json()

    def test_code_then_token_preserves_code(self, engine, owner, client):
        """The token branch leaves an existing code untouched."""
        code = engine.grant_for(owner, client, "code").code

        authorization = engine.grant_for(owner, client, "token")

        assert authorization.code == code
        assert authorization.has_access_token()
        assert authorization.has_refresh_token()

    def test_existing_tokens_kept(self, engine, owner, client):
        """A second token grant does not replace existing tokens."""
        first = engine.grant_for(owner, client, "token")
        second = engine.grant_for(owner, client, "token")

        assert second.access_token_hash == first.access_token_hash
        assert second.refresh_token_hash == first.refresh_token_hash
        assert second.access_token is None


class TestGrantForCodeAndToken:
    """Test the combined response type."""

    def test_always_mints_fresh_code(self, engine, owner, client):
        """The combined type overwrites any existing code."""
        first = engine.grant_for(owner, client, "code")

        second = engine.grant_for(owner, client, "code_and_token")

        assert second.code
        assert second.code != first.code
        assert second.has_access_token()
        assert second.has_refresh_token()

    def test_tokens_only_if_absent(self, engine, owner, client):
        """Existing tokens survive a combined grant."""
        first = engine.grant_for(owner, client, "token")

        second = engine.grant_for(owner, client, "code-and-token")

        assert second.access_token_hash == first.access_token_hash
        assert second.refresh_token_hash == first.refresh_token_hash


class TestGrantForOptions:
    """Test duration, scope and input validation."""

    def test_no_duration_never_expires(self, engine, owner, client):
        """Without a duration there is no expiry."""
        authorization = engine.grant_for(owner, client, "code")

        assert authorization.expires_at is None
        assert engine.expires_in(authorization) is None
        assert not engine.expired(authorization)

    def test_duration_sets_expiry(self, engine, owner, client, clock):
        """expires_at is now plus the duration."""
        authorization = engine.grant_for(owner, client, "code", duration=3600)

        assert authorization.expires_at == clock.now + timedelta(seconds=3600)
        assert engine.expires_in(authorization) == 3600

    def test_timedelta_duration(self, engine, owner, client, clock):
        """Durations may be given as timedeltas."""
        authorization = engine.grant_for(owner, client, "code", duration=timedelta(minutes=5))

        assert engine.expires_in(authorization) == 300

    def test_later_grant_without_duration_clears_expiry(self, engine, owner, client):
        """Omitting the duration on a later grant removes the expiry."""
        engine.grant_for(owner, client, "code", duration=60)

        authorization = engine.grant_for(owner, client, "token")

        assert authorization.expires_at is None

    def test_default_duration(self, store, owner, client, clock):
        """A configured default applies when no duration is given."""
        engine = AuthorizationEngine(store, clock=clock, default_duration=120)

        authorization = engine.grant_for(owner, client, "code")

        assert engine.expires_in(authorization) == 120

    def test_scope_string(self, engine, owner, client):
        """A space-delimited scope string is stored as a set."""
        authorization = engine.grant_for(owner, client, "code", scope="read write")

        assert engine.scopes(authorization) == {"read", "write"}
        assert authorization.scope == "read write"

    def test_scope_union(self, engine, owner, client):
        """Later grants add to the existing scope set."""
        engine.grant_for(owner, client, "code", scope="read")

        authorization = engine.grant_for(owner, client, "token", scope=["write", "read"])

        assert engine.scopes(authorization) == {"read", "write"}
        assert authorization.scope == "read write"

    def test_scope_union_idempotent(self, engine, owner, client):
        """Granting the same scope twice stores it once."""
        engine.grant_for(owner, client, "code", scope=["read"])
        authorization = engine.grant_for(owner, client, "code", scope=["read"])

        assert authorization.scope == "read"
        assert engine.scopes(authorization) == {"read"}

    def test_no_scope_keeps_existing(self, engine, owner, client):
        """Grants without a scope leave the stored scope alone."""
        engine.grant_for(owner, client, "code", scope="read")

        authorization = engine.grant_for(owner, client, "token")

        assert authorization.scope == "read"

    def test_unknown_response_type(self, engine, owner, client):
        """Unknown response types are rejected."""
        with pytest.raises(ValidationError):
            engine.grant_for(owner, client, "id_token")

    def test_missing_owner(self, engine, client):
        """An owner reference is required."""
        with pytest.raises(ValidationError):
            engine.grant_for(None, client, "code")

    def test_missing_client(self, engine, owner):
        """A client reference is required."""
        with pytest.raises(ValidationError):
            engine.grant_for(owner, None, "code")

    def test_accepts_client_id_string(self, engine, owner, client):
        """A bare public client id works as the client reference."""
        authorization = engine.grant_for(owner, client.client_id, "code")

        assert authorization.client_id == client.client_id


class TestExchange:
    """Test the code-to-token exchange."""

    def test_exchange_clears_code_and_refresh(self, engine, owner, client):
        """Exchange consumes the code, mints an access token and clears the refresh token."""
        authorization = engine.grant_for(owner, client, "code")

        engine.exchange(authorization)

        assert authorization.code == ""
        assert authorization.access_token
        assert authorization.access_token_hash == hashify(authorization.access_token)
        assert authorization.refresh_token_hash == ""
        assert authorization.refresh_token is None

    def test_exchange_replaces_prior_access_token(self, engine, owner, client):
        """The new access token hash differs from any earlier one."""
        authorization = engine.grant_for(owner, client, "code_and_token")
        prior = authorization.access_token_hash

        engine.exchange(authorization)

        assert authorization.access_token_hash
        assert authorization.access_token_hash != prior
        assert engine.find_by_access_token(authorization.access_token).id == authorization.id

    def test_exchange_persists(self, engine, owner, client, store):
        """The exchanged state is what the store holds."""
        authorization = engine.grant_for(owner, client, "code")
        code = authorization.code

        engine.exchange(authorization)

        stored = store.find_authorization(owner.owner_ref, client.client_id)
        assert stored.code == ""
        assert stored.refresh_token_hash == ""
        assert stored.access_token_hash == authorization.access_token_hash
        assert engine.find_by_code(client, code) is None

    def test_exchanged_codes_do_not_conflict(self, engine, client):
        """Cleared codes of two authorizations of one client never collide."""
        alice = OwnerRef(owner_type="User", owner_id="alice")
        bob = OwnerRef(owner_type="User", owner_id="bob")

        engine.exchange(engine.grant_for(alice, client, "code"))
        engine.exchange(engine.grant_for(bob, client, "code"))

        assert len(engine.authorizations_for(alice)) == 1
        assert len(engine.authorizations_for(bob)) == 1


class TestExpiry:
    """Test expired() and expires_in()."""

    def test_unset_never_expires(self, engine):
        """No expires_at means not expired."""
        assert not engine.expired(Authorization())

    def test_past_is_expired(self, engine, clock):
        """An instant in the past is expired."""
        authorization = Authorization(expires_at=clock.now - timedelta(seconds=1))

        assert engine.expired(authorization)

    def test_future_is_not_expired(self, engine, clock):
        """An instant in the future is not expired."""
        authorization = Authorization(expires_at=clock.now + timedelta(seconds=1))

        assert not engine.expired(authorization)

    def test_expires_after_clock_moves(self, engine, owner, client, clock):
        """Expiry is evaluated against the clock at read time."""
        authorization = engine.grant_for(owner, client, "token", duration=10)

        clock.advance(10)
        assert not engine.expired(authorization)

        clock.advance(1)
        assert engine.expired(authorization)

    def test_expires_in_rounds_up(self, engine, owner, client, clock):
        """Partial seconds round up."""
        authorization = engine.grant_for(owner, client, "token", duration=10)

        clock.advance(0.5)

        assert engine.expires_in(authorization) == 10

    def test_naive_expiry_treated_as_utc(self, engine, clock):
        """Naive datetimes compare as UTC."""
        naive = (clock.now - timedelta(seconds=5)).replace(tzinfo=None)

        assert engine.expired(Authorization(expires_at=naive))


class TestGrantsAccess:
    """Test scope-based access checks."""

    @pytest.fixture
    def granted(self, engine, owner, client):
        return engine.grant_for(owner, client, "token", scope="read write")

    def test_owner_with_granted_scope(self, engine, owner, granted):
        """Owner asking for a granted scope is allowed."""
        assert engine.grants_access(granted, owner, ["read"])
        assert engine.grants_access(granted, owner.owner_ref, "read write")

    def test_no_scopes_requested(self, engine, owner, granted):
        """Requesting nothing only checks owner and expiry."""
        assert engine.grants_access(granted, owner)

    def test_ungranted_scope(self, engine, owner, granted):
        """A scope outside the set is denied."""
        assert not engine.grants_access(granted, owner, ["admin"])
        assert not engine.grants_access(granted, owner, ["read", "admin"])

    def test_other_user(self, engine, store, granted):
        """A different owner is denied."""
        other = StoredOwner("User", "43", store)

        assert not engine.grants_access(granted, other, ["read"])
        assert not engine.grants_access(granted, StoredOwner("Team", "42", store), ["read"])

    def test_unidentifiable_user(self, engine, granted):
        """Users without an owner_ref are denied rather than raising."""
        assert not engine.grants_access(granted, object(), ["read"])
        assert not engine.grants_access(granted, None, ["read"])

    def test_expired(self, engine, owner, client, clock):
        """Expired authorizations grant nothing."""
        authorization = engine.grant_for(owner, client, "token", scope="read", duration=5)

        clock.advance(6)

        assert not engine.grants_access(authorization, owner, ["read"])

    def test_in_scope(self, engine, granted):
        """in_scope checks set containment only."""
        assert engine.in_scope(granted, ["write"])
        assert not engine.in_scope(granted, "write delete")

    def test_scopes_empty(self, engine):
        """Missing scope parses to the empty set."""
        assert engine.scopes(Authorization()) == set()
        assert engine.scopes(Authorization(scope="")) == set()


class TestLookups:
    """Test token and code lookups used by a token endpoint."""

    def test_find_by_access_token(self, engine, owner, client):
        """Presented bearer tokens resolve through their hash."""
        authorization = engine.grant_for(owner, client, "token")

        assert engine.find_by_access_token(authorization.access_token).id == authorization.id
        assert engine.find_by_access_token("unknown") is None
        assert engine.find_by_access_token("") is None

    def test_find_by_refresh_token_scoped_to_client(self, engine, registry, owner, client):
        """Refresh tokens only resolve for their own client."""
        authorization = engine.grant_for(owner, client, "token")
        other, _ = registry.register("Other", "https://other.example/cb")

        found = engine.find_by_refresh_token(client, authorization.refresh_token)

        assert found.id == authorization.id
        assert engine.find_by_refresh_token(other, authorization.refresh_token) is None

    def test_find_by_code(self, engine, owner, client):
        """Codes resolve within their client."""
        authorization = engine.grant_for(owner, client, "code")

        assert engine.find_by_code(client, authorization.code).id == authorization.id
        assert engine.find_by_code(client, "nope") is None


class TestGrantAccess:
    """Test grant_access() without minting credentials."""

    def test_creates_authorization_with_scopes(self, engine, owner, client):
        """The owner trusts the client with the given scopes."""
        authorization = engine.grant_access(owner, client, scopes=["read", "profile"])

        assert engine.scopes(authorization) == {"read", "profile"}
        assert not authorization.has_code()
        assert not authorization.has_access_token()

    def test_merges_into_existing(self, engine, owner, client):
        """Scopes add to an existing authorization."""
        engine.grant_for(owner, client, "code", scope="read")

        authorization = engine.grant_access(owner, client, scopes=["write"])

        assert authorization.scope == "read write"
        assert authorization.has_code()


class TestGenerateHelpers:
    """Test generate_code() and generate_access_token()."""

    def test_generate_code(self, engine, owner, client, store):
        """A missing code is minted and saved."""
        authorization = engine.grant_access(owner, client)

        code = engine.generate_code(authorization)

        assert code
        assert store.find_authorization(owner.owner_ref, client.client_id).code == code
        assert engine.generate_code(authorization) == code

    def test_generate_access_token(self, engine, owner, client):
        """A missing access token is minted and its plaintext returned."""
        authorization = engine.grant_access(owner, client)

        token = engine.generate_access_token(authorization)

        assert token
        assert engine.find_by_access_token(token).id == authorization.id

    def test_generate_access_token_existing(self, engine, owner, client):
        """An existing token is not replaced; reloaded records cannot show its plaintext."""
        issued = engine.grant_for(owner, client, "token")
        reloaded = engine.find_for(owner, client)

        assert engine.generate_access_token(issued) == issued.access_token
        assert engine.generate_access_token(reloaded) == ""
        assert reloaded.access_token_hash == issued.access_token_hash


class TestRevoke:
    """Test revoke()."""

    def test_revoke_deletes(self, engine, owner, client):
        """Revoked authorizations are gone from the store."""
        authorization = engine.grant_for(owner, client, "token")

        engine.revoke(authorization)

        assert engine.find_for(owner, client) is None
        assert engine.find_by_access_token(authorization.access_token) is None


class TestConflictRetry:
    """Test bounded retry when the store rejects saves."""

    def _mock_store(self):
        store = MagicMock()
        store.find_authorization.return_value = None
        store.exists_authorization_with_code.return_value = False
        store.exists_authorization_with_access_token_hash.return_value = False
        store.exists_authorization_with_refresh_token_hash.return_value = False
        return store

    def test_grant_retries_whole_cycle(self, clock):
        """A conflict re-runs lookup and generation before saving again."""
        store = self._mock_store()
        store.save.side_effect = [ConflictError("code"), None]
        engine = AuthorizationEngine(store, IdGenerator(), clock=clock)
        owner = OwnerRef(owner_type="User", owner_id="1")

        authorization = engine.grant_for(owner, "client-1", "code")

        assert store.save.call_count == 2
        assert store.find_authorization.call_count == 2
        first_saved = store.save.call_args_list[0].args[0]
        assert first_saved.code != authorization.code

    def test_grant_retry_keeps_scopes_from_generator(self, clock):
        """Scopes given as a one-shot iterator are still merged after a conflict."""
        store = self._mock_store()
        store.save.side_effect = [ConflictError("code"), None]
        engine = AuthorizationEngine(store, IdGenerator(), clock=clock)
        owner = OwnerRef(owner_type="User", owner_id="1")

        authorization = engine.grant_for(
            owner, "client-1", "code", scope=(s for s in ["read", "write"])
        )

        assert store.save.call_count == 2
        assert engine.scopes(authorization) == {"read", "write"}

    def test_grant_access_retry_keeps_scopes_from_generator(self, clock):
        """grant_access merges iterator scopes on every attempt."""
        store = self._mock_store()
        store.save.side_effect = [ConflictError("owner"), None]
        engine = AuthorizationEngine(store, IdGenerator(), clock=clock)
        owner = OwnerRef(owner_type="User", owner_id="1")

        authorization = engine.grant_access(owner, "client-1", iter(["profile"]))

        assert authorization.scope == "profile"

    def test_grant_exhausts(self, clock):
        """Persistent conflicts raise GenerationExhausted."""
        store = self._mock_store()
        store.save.side_effect = ConflictError("access_token_hash")
        engine = AuthorizationEngine(store, IdGenerator(max_attempts=4), clock=clock)
        owner = OwnerRef(owner_type="User", owner_id="1")

        with pytest.raises(GenerationExhausted) as exc_info:
            engine.grant_for(owner, "client-1", "token")

        assert exc_info.value.attempts == 4
        assert store.save.call_count == 4

    def test_exchange_retries_with_new_token(self, clock):
        """Exchange mints a new access token after a conflict."""
        store = self._mock_store()
        store.save.side_effect = [ConflictError("access_token_hash"), None]
        engine = AuthorizationEngine(store, IdGenerator(), clock=clock)
        authorization = Authorization(
            owner=OwnerRef(owner_type="User", owner_id="1"), client_id="client-1", code="abc"
        )

        engine.exchange(authorization)

        assert store.save.call_count == 2
        assert authorization.code == ""
        assert authorization.access_token

    def test_generation_exhausted_from_predicate(self, clock):
        """A store reporting every candidate as taken exhausts generation."""
        store = self._mock_store()
        store.exists_authorization_with_code.return_value = True
        engine = AuthorizationEngine(store, IdGenerator(max_attempts=3), clock=clock)

        with pytest.raises(GenerationExhausted):
            engine.grant_for(OwnerRef(owner_type="User", owner_id="1"), "client-1", "code")

        store.save.assert_not_called()

    def test_real_store_pair_conflict_resolves_to_existing(self, store, client, clock):
        """A racing insert for the same pair is retried against the winner's record."""
        owner = OwnerRef(owner_type="User", owner_id="1")
        engine = AuthorizationEngine(store, IdGenerator(), clock=clock)
        winner = Authorization(owner=owner, client_id=client.client_id, scope="read")

        real_find = store.find_authorization
        calls = {"n": 0}

        def racing_find(owner_ref, client_id):
            calls["n"] += 1
            if calls["n"] == 1:
                store.save(winner)
                return None
            return real_find(owner_ref, client_id)

        store.find_authorization = racing_find

        authorization = engine.grant_for(owner, client, "code", scope="write")

        assert authorization.id == winner.id
        assert authorization.scope == "read write"
        assert authorization.code


class TestEndToEnd:
    """Register, grant a code, exchange it."""

    def test_register_grant_exchange(self, registry, engine, owner):
        """The full lifecycle from registration to access token."""
        client, secret = registry.register("App", "https://app.example/callback")
        assert secret
        assert registry.verify_secret(client, secret)

        authorization = engine.grant_for(owner, client, "code", scope="read write")
        assert authorization.code
        assert engine.scopes(authorization) == {"read", "write"}
        assert authorization.expires_at is None

        engine.exchange(authorization)
        assert authorization.code == ""
        assert authorization.access_token_hash
        assert authorization.refresh_token_hash == ""

        bearer = engine.find_by_access_token(authorization.access_token)
        assert engine.grants_access(bearer, owner, ["read"])
        assert not engine.grants_access(bearer, owner, ["admin"])

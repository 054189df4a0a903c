"""Credential store and auth gateway."""

from __future__ import annotations

import pytest

from laundry.accounts.gateway import AuthGateway
from laundry.accounts.store import CredentialStore
from laundry.auth import create_token
from laundry.errors import (
    DuplicateEmail,
    Forbidden,
    InvalidCredentials,
    InvalidToken,
    NotFound,
    Unauthenticated,
    ValidationError,
)
from laundry.storage import JsonFileStorage, MemoryStorage


@pytest.fixture
def gateway(settings) -> AuthGateway:
    return AuthGateway(CredentialStore(MemoryStorage()), settings)


def _signup(gateway: AuthGateway, email: str = "alice@x.com", password: str = "longenough1"):
    return gateway.signup("Alice", "Smith", email, "5551234567", password)


class TestCredentialStore:
    def test_insert_and_lookup(self):
        store = CredentialStore(MemoryStorage())
        store.insert({"id": "1", "email": "a@x.com"})
        assert store.find_by_email("a@x.com")["id"] == "1"
        assert store.find_by_id("1")["email"] == "a@x.com"
        assert store.find_by_email("A@x.com") is None
        assert store.find_by_id("2") is None

    def test_duplicate_email(self):
        store = CredentialStore(MemoryStorage())
        store.insert({"id": "1", "email": "a@x.com"})
        with pytest.raises(DuplicateEmail):
            store.insert({"id": "2", "email": "a@x.com"})
        assert len(store.list_all()) == 1

    def test_update_and_delete_missing_user(self):
        store = CredentialStore(MemoryStorage())
        with pytest.raises(NotFound):
            store.update("nope", {"phone": "1"})
        with pytest.raises(NotFound):
            store.delete("nope")

    def test_every_mutation_rewrites_the_file(self, tmp_path):
        path = tmp_path / "users.json"
        store = CredentialStore(JsonFileStorage(path))
        store.insert({"id": "1", "email": "a@x.com"})
        store.update("1", {"phone": "123"})

        reloaded = CredentialStore(JsonFileStorage(path))
        assert reloaded.find_by_id("1")["phone"] == "123"

    def test_reads_are_copies(self):
        store = CredentialStore(MemoryStorage())
        store.insert({"id": "1", "email": "a@x.com"})
        store.find_by_id("1")["email"] = "changed@x.com"
        assert store.find_by_id("1")["email"] == "a@x.com"


class TestSignupAndLogin:
    def test_signup_hides_secrets(self, gateway):
        user = _signup(gateway)
        assert user["email"] == "alice@x.com"
        assert "password" not in user and "salt" not in user
        stored = gateway.users.find_by_email("alice@x.com")
        assert stored["password"] != "longenough1"
        assert stored["salt"]

    @pytest.mark.parametrize("blank", ["firstName", "lastName", "email", "phone", "password"])
    def test_signup_requires_every_field(self, gateway, blank):
        fields = {
            "firstName": "Alice",
            "lastName": "Smith",
            "email": "alice@x.com",
            "phone": "5551234567",
            "password": "longenough1",
        }
        fields[blank] = "  "
        with pytest.raises(ValidationError):
            gateway.signup(**fields)

    def test_signup_rejects_bad_email_and_short_password(self, gateway):
        with pytest.raises(ValidationError):
            _signup(gateway, email="not-an-email")
        with pytest.raises(ValidationError):
            _signup(gateway, password="short")

    def test_second_signup_with_same_email_fails(self, gateway):
        _signup(gateway)
        with pytest.raises(DuplicateEmail):
            _signup(gateway)

    def test_login_returns_verifiable_token(self, gateway):
        _signup(gateway)
        user, token = gateway.login("alice@x.com", "longenough1")
        assert user["email"] == "alice@x.com"
        assert gateway.authenticate(token)["id"] == user["id"]

    def test_unknown_email_and_wrong_password_look_the_same(self, gateway):
        _signup(gateway)
        with pytest.raises(InvalidCredentials) as unknown:
            gateway.login("bob@x.com", "longenough1")
        with pytest.raises(InvalidCredentials) as wrong:
            gateway.login("alice@x.com", "wrong-password")
        assert unknown.value.message == wrong.value.message

    def test_login_requires_both_fields(self, gateway):
        with pytest.raises(ValidationError):
            gateway.login("", "x")
        with pytest.raises(ValidationError):
            gateway.login("alice@x.com", "")


class TestAuthenticate:
    def test_missing_token(self, gateway):
        with pytest.raises(Unauthenticated):
            gateway.authenticate(None)

    def test_invalid_token(self, gateway):
        with pytest.raises(InvalidToken):
            gateway.authenticate("nonsense")

    def test_foreign_secret(self, gateway, settings):
        other = settings.model_copy(update={"jwt_secret": "other"})
        token = create_token({"id": "1", "email": "a@x.com"}, other)
        with pytest.raises(InvalidToken):
            gateway.authenticate(token)


class TestProfile:
    def test_update_profile_only_touches_allowed_fields(self, gateway):
        user = _signup(gateway)
        updated = gateway.update_profile(
            user["id"], {"firstName": "Alicia", "phone": "", "email": "evil@x.com"}
        )
        assert updated["firstName"] == "Alicia"
        assert updated["phone"] == "5551234567"
        assert updated["email"] == "alice@x.com"
        assert "updatedAt" in updated

    def test_profile_of_missing_user(self, gateway):
        with pytest.raises(NotFound):
            gateway.get_profile("ghost")

    def test_change_password(self, gateway):
        user = _signup(gateway)
        gateway.change_password(user["id"], "longenough1", "evenlonger2")
        with pytest.raises(InvalidCredentials):
            gateway.login("alice@x.com", "longenough1")
        assert gateway.login("alice@x.com", "evenlonger2")[0]["id"] == user["id"]

    def test_change_password_wrong_current(self, gateway):
        user = _signup(gateway)
        with pytest.raises(InvalidCredentials):
            gateway.change_password(user["id"], "not-it-at-all", "evenlonger2")

    def test_change_password_validation(self, gateway):
        user = _signup(gateway)
        with pytest.raises(ValidationError):
            gateway.change_password(user["id"], "", "evenlonger2")
        with pytest.raises(ValidationError):
            gateway.change_password(user["id"], "longenough1", "short")
        with pytest.raises(NotFound):
            gateway.change_password("ghost", "longenough1", "evenlonger2")


class TestAccountDeletion:
    def test_server_deployment_never_deletes(self, gateway):
        user = _signup(gateway)
        with pytest.raises(Forbidden):
            gateway.delete_account(user["id"])
        assert gateway.users.find_by_id(user["id"])

    def test_local_deployment_deletes(self, settings):
        local = AuthGateway(
            CredentialStore(MemoryStorage()),
            settings.model_copy(update={"deployment_mode": "local"}),
        )
        user = _signup(local)
        removed = local.delete_account(user["id"])
        assert removed["id"] == user["id"]
        assert "password" not in removed
        assert local.list_users() == []

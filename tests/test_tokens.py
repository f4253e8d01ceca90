"""Unit tests for auth/tokens.py -- password hashing, JWTs and login checks."""

import pytest
from sqlalchemy.exc import IntegrityError

from auth.models import User
from auth.store import UserStore
from auth.tokens import (
    authenticate_user,
    create_access_token,
    create_refresh_token,
    decode_access_token,
    decode_refresh_token,
    hash_password,
    verify_password,
)


@pytest.fixture
def user_store():
    s = UserStore("sqlite:///:memory:")
    s.create_user(User(username="alice", hashed_password=hash_password("Secret-pass1")))
    yield s
    s.close()


def test_password_roundtrip():
    hashed = hash_password("Secret-pass1")
    assert hashed != "Secret-pass1"
    assert verify_password("Secret-pass1", hashed)
    assert not verify_password("secret-pass1", hashed)


def test_verify_against_malformed_hash_is_false():
    assert verify_password("anything", "not-a-bcrypt-hash") is False


def test_access_token_carries_identity():
    payload = decode_access_token(create_access_token(7, "alice"))
    assert payload["sub"] == "alice"
    assert payload["user_id"] == 7


def test_token_types_are_not_interchangeable():
    access = create_access_token(7, "alice")
    refresh = create_refresh_token(7, "alice")
    assert decode_refresh_token(access) is None
    assert decode_access_token(refresh) is None
    assert decode_refresh_token(refresh)["sub"] == "alice"


def test_tampered_token_rejected():
    header, payload, signature = create_access_token(7, "alice").split(".")
    forged = f"{header}.{payload}.{'A' * len(signature)}"
    assert decode_access_token(forged) is None


def test_authenticate_user(user_store):
    assert authenticate_user(user_store, "alice", "Secret-pass1").username == "alice"
    assert authenticate_user(user_store, "alice", "wrong") is None
    assert authenticate_user(user_store, "nobody", "Secret-pass1") is None


def test_deactivated_user_still_authenticates_for_route_to_report(user_store):
    user = user_store.get_by_username("alice")
    user_store.update_user(user.id, is_active=False)
    found = authenticate_user(user_store, "alice", "Secret-pass1")
    assert found is not None
    assert found.is_active is False


def test_update_last_login(user_store):
    user = user_store.get_by_username("alice")
    assert user.last_login is None
    user_store.update_last_login(user.id)
    assert user_store.get_by_id(user.id).last_login


def test_username_lookup_ignores_case(user_store):
    assert user_store.get_by_username("ALICE").username == "alice"
    with pytest.raises(IntegrityError):
        user_store.create_user(User(username="Alice", hashed_password=hash_password("Secret-pass1")))

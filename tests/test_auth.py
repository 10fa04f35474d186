import pytest

from auth import LocalAuth, create_auth_service
from exceptions import AuthError, UserAlreadyExistsError


@pytest.fixture
def auth(store):
    return LocalAuth(store)


def test_sign_up_creates_user_profile_and_session(auth, store):
    session = auth.sign_up("Ana@Example.com", "secret1", "Ana Lima")
    assert session.access_token
    assert session.user.email == "ana@example.com"
    user_row = store.select_one("users", {"email": "ana@example.com"})
    assert user_row["password_hash"] != "secret1"
    assert store.select_one("profiles", {"id": user_row["id"]})["full_name"] == "Ana Lima"


def test_duplicate_sign_up_is_rejected(auth):
    auth.sign_up("ana@example.com", "secret1")
    with pytest.raises(UserAlreadyExistsError):
        auth.sign_up("ANA@example.com", "another1")


def test_sign_up_validates_credentials(auth):
    with pytest.raises(ValueError):
        auth.sign_up("not-an-email", "secret1")
    with pytest.raises(ValueError):
        auth.sign_up("ana@example.com", "123")


def test_sign_in_and_get_user(auth):
    auth.sign_up("ana@example.com", "secret1", "Ana")
    session = auth.sign_in("ana@example.com", "secret1")
    user = auth.get_user(session.access_token)
    assert user.email == "ana@example.com"
    assert user.full_name == "Ana"


def test_sign_in_with_wrong_password(auth):
    auth.sign_up("ana@example.com", "secret1")
    with pytest.raises(AuthError):
        auth.sign_in("ana@example.com", "wrong-password")
    with pytest.raises(AuthError):
        auth.sign_in("nobody@example.com", "secret1")


def test_sign_out_invalidates_token(auth):
    session = auth.sign_up("ana@example.com", "secret1")
    auth.sign_out(session.access_token)
    with pytest.raises(AuthError):
        auth.get_user(session.access_token)


def test_local_store_uses_local_auth(store):
    assert isinstance(create_auth_service(store), LocalAuth)

import re

import pytest

from invoicer.models.account import UserDefaults
from invoicer.services.auth import AuthService
from invoicer.services.storage import UserStorage

from conftest import SELLER


@pytest.fixture
def auth(store):
    return AuthService(store)


def test_create_api_key_format(auth):
    api_key = auth.create_api_key("user123")
    assert re.fullmatch(r"ak_user123_[a-f0-9]{32}", api_key)


def test_api_keys_are_unique(auth):
    assert auth.create_api_key("user789") != auth.create_api_key("user789")


def test_validate_and_revoke(auth):
    api_key = auth.create_api_key("revokeuser")
    assert auth.validate_api_key(api_key) == "revokeuser"

    auth.revoke_api_key(api_key)
    assert auth.validate_api_key(api_key) is None


def test_invalid_or_empty_key(auth):
    assert auth.validate_api_key("invalid-key") is None
    assert auth.validate_api_key("") is None


def test_revoking_one_key_keeps_others(auth):
    keys = {user: auth.create_api_key(user) for user in ("user1", "user2", "user3")}
    auth.revoke_api_key(keys["user2"])

    assert auth.validate_api_key(keys["user1"]) == "user1"
    assert auth.validate_api_key(keys["user2"]) is None
    assert auth.validate_api_key(keys["user3"]) == "user3"


def test_extract_api_key_from_header(auth):
    assert auth.extract_api_key_from_header("Bearer ak_user123_abcdef") == "ak_user123_abcdef"


@pytest.mark.parametrize("header", [
    "Basic dXNlcjpwYXNz",
    "Bearer",
    "Bearer ",
    "ak_user123_abcdef123456",
    "Token ak_user123_abcdef123456",
    "",
])
def test_extract_rejects_other_schemes(auth, header):
    assert auth.extract_api_key_from_header(header) is None


def test_extract_preserves_extra_whitespace(auth):
    assert auth.extract_api_key_from_header("Bearer  ak_1  ") == " ak_1  "


def test_authenticate_full_flow(auth, store):
    user = UserStorage(store).create_user(
        "flowuser", "Flow User", "flow@example.com", UserDefaults(seller=SELLER, currency="EUR")
    )
    api_key = auth.create_api_key(user.id)

    context = auth.authenticate(f"Bearer {api_key}")
    assert context.user_id == "flowuser"
    assert context.user == user

    auth.revoke_api_key(api_key)
    assert auth.authenticate(f"Bearer {api_key}") is None
    assert auth.authenticate(None) is None


def test_authenticate_key_without_user(auth):
    api_key = auth.create_api_key("ghost")
    assert auth.authenticate(f"Bearer {api_key}") is None

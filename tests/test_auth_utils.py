from datetime import datetime, timedelta, timezone

import pytest
from jose import jwt

from nexusbank import auth_utils
from nexusbank.config import settings


def test_password_round_trip():
    hashed = auth_utils.hash_password("password123")

    assert hashed.startswith("$argon2")
    assert auth_utils.verify_password("password123", hashed)
    assert not auth_utils.verify_password("password124", hashed)


@pytest.mark.parametrize("stored", ["", None, "not-a-hash"])
def test_unusable_stored_hash_never_verifies(stored):
    assert auth_utils.verify_password("password123", stored) is False


def test_token_carries_email_role_and_configured_expiry():
    before = datetime.now(timezone.utc)
    token = auth_utils.issue_access_token("jane@example.com", "customer")

    claims = auth_utils.read_access_token(token)

    assert claims.sub == "jane@example.com"
    assert claims.role == "customer"
    lifetime = claims.exp - before
    assert timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES - 1) < lifetime <= timedelta(
        minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES, seconds=1
    )


def test_expired_token_is_rejected():
    token = auth_utils.issue_access_token("jane@example.com", "admin", expires_minutes=-1)
    assert auth_utils.read_access_token(token) is None


def test_token_signed_with_another_key_is_rejected():
    token = jwt.encode(
        {"sub": "jane@example.com", "role": "admin", "exp": datetime.now(timezone.utc) + timedelta(minutes=5)},
        "someone-elses-key",
        algorithm=settings.ALGORITHM,
    )
    assert auth_utils.read_access_token(token) is None


def test_token_without_subject_is_rejected():
    token = jwt.encode(
        {"role": "admin", "exp": datetime.now(timezone.utc) + timedelta(minutes=5)},
        settings.SECRET_KEY,
        algorithm=settings.ALGORITHM,
    )
    assert auth_utils.read_access_token(token) is None


def test_unknown_role_is_not_issued():
    with pytest.raises(ValueError):
        auth_utils.issue_access_token("jane@example.com", "superuser")

"""Unit tests for password hashing and token issuance."""

from datetime import timedelta

import jwt
import pytest

from core import AuthError, InvalidTokenError, JwtTokenSigner, PwdlibPasswordHasher, get_settings
from models import User
from services.auth import ACCESS_TOKEN_TYPE, REFRESH_TOKEN_TYPE, TokenService
from services.auth.session import extract_access_token, extract_bearer_token

SECRET = "unit-test-secret-0123456789abcdefghij"


def _user() -> User:
    return User(
        id="3f0c7a4e-0000-4000-8000-000000000001",
        username="ada",
        email="ada@x.com",
        fullname="Ada Lovelace",
        avatar="https://media.test/avatars/a.png",
        password_hash="unused",
    )


def test_password_hasher_round_trip():
    hasher = PwdlibPasswordHasher()
    password_hash = hasher.hash("s3cret!")

    assert password_hash != "s3cret!"
    assert hasher.verify("s3cret!", password_hash)
    assert not hasher.verify("wrong", password_hash)


def test_password_hasher_rejects_unknown_hash_format():
    assert not PwdlibPasswordHasher().verify("s3cret!", "plaintext-not-a-hash")


def test_access_token_carries_identity_claims():
    service = TokenService(get_settings())
    user = _user()

    claims = service.verify_access(service.issue_access_token(user))

    assert claims["sub"] == user.id
    assert claims["username"] == "ada"
    assert claims["email"] == "ada@x.com"
    assert claims["fullname"] == "Ada Lovelace"
    assert claims["type"] == ACCESS_TOKEN_TYPE
    assert claims["exp"] - claims["iat"] == int(service.access_ttl.total_seconds())


def test_refresh_token_carries_subject_only():
    service = TokenService(get_settings())

    claims = service.verify_refresh(service.issue_refresh_token(_user()))

    assert claims["type"] == REFRESH_TOKEN_TYPE
    assert "email" not in claims
    assert "username" not in claims


def test_tokens_are_unique_per_issue():
    service = TokenService(get_settings())
    user = _user()

    assert service.issue_refresh_token(user) != service.issue_refresh_token(user)


def test_token_classes_use_separate_secrets():
    service = TokenService(get_settings())
    user = _user()

    with pytest.raises(InvalidTokenError):
        service.verify_refresh(service.issue_access_token(user))
    with pytest.raises(InvalidTokenError):
        service.verify_access(service.issue_refresh_token(user))


def test_verify_rejects_wrong_secret():
    signer = JwtTokenSigner()
    token = signer.sign({"sub": "user-1"}, SECRET, timedelta(minutes=5))

    with pytest.raises(AuthError):
        signer.verify(token, SECRET[::-1])


def test_verify_rejects_expired_token():
    signer = JwtTokenSigner()
    token = signer.sign({"sub": "user-1"}, SECRET, timedelta(seconds=-5))

    with pytest.raises(InvalidTokenError):
        signer.verify(token, SECRET)


def test_verify_requires_subject():
    service = TokenService(get_settings())
    secret = get_settings().access_token_secret.get_secret_value()
    token = jwt.encode({"iat": 0, "exp": 4_102_444_800, "type": "access"}, secret, algorithm="HS256")

    with pytest.raises(InvalidTokenError):
        service.verify_access(token)


def test_extract_bearer_token():
    assert extract_bearer_token("Bearer abc") == "abc"
    assert extract_bearer_token("bearer  abc ") == "abc"
    assert extract_bearer_token("Basic abc") is None
    assert extract_bearer_token("Bearer ") is None
    assert extract_bearer_token(None) is None


def test_cookie_token_wins_over_header():
    assert extract_access_token(cookie_token="cookie", authorization="Bearer header") == "cookie"
    assert extract_access_token(cookie_token=None, authorization="Bearer header") == "header"

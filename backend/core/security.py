"""Password hashing and token signing capabilities."""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime, timedelta, timezone
from typing import Any, Protocol
from uuid import uuid4

import jwt
from pwdlib import PasswordHash
from pwdlib.exceptions import UnknownHashError

from .exceptions import InvalidTokenError

PASSWORD_MAX_LENGTH = 128


class PasswordHasher(Protocol):
    def hash(self, password: str) -> str: ...

    def verify(self, password: str, password_hash: str) -> bool: ...


class TokenSigner(Protocol):
    def sign(
        self,
        claims: Mapping[str, Any],
        secret: str,
        expires_in: timedelta,
    ) -> str: ...

    def verify(self, token: str, secret: str) -> dict[str, Any]: ...


class PwdlibPasswordHasher:
    """Argon2 password hashing through pwdlib."""

    def __init__(self, password_hash: PasswordHash | None = None) -> None:
        self._password_hash = password_hash or PasswordHash.recommended()

    def hash(self, password: str) -> str:
        return self._password_hash.hash(password)

    def verify(self, password: str, password_hash: str) -> bool:
        try:
            return self._password_hash.verify(password, password_hash)
        except UnknownHashError:
            return False


class JwtTokenSigner:
    """HMAC-signed JWTs through PyJWT.

    Every token carries ``iat``, ``exp`` and a random ``jti`` so two tokens
    minted for the same subject within one second are still distinct.
    """

    def __init__(self, algorithm: str = "HS256") -> None:
        self.algorithm = algorithm

    def sign(
        self,
        claims: Mapping[str, Any],
        secret: str,
        expires_in: timedelta,
    ) -> str:
        issued_at = datetime.now(timezone.utc)
        payload = {
            **claims,
            "iat": issued_at,
            "exp": issued_at + expires_in,
            "jti": uuid4().hex,
        }
        return jwt.encode(payload, secret, algorithm=self.algorithm)

    def verify(self, token: str, secret: str) -> dict[str, Any]:
        try:
            return jwt.decode(
                token,
                secret,
                algorithms=[self.algorithm],
                options={"require": ["exp", "iat", "sub"]},
            )
        except jwt.InvalidTokenError as exc:
            raise InvalidTokenError() from exc


default_password_hasher = PwdlibPasswordHasher()


def hash_password(password: str) -> str:
    return default_password_hasher.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    return default_password_hasher.verify(password, password_hash)

"""Access and refresh token issuance."""

from __future__ import annotations

from datetime import timedelta
from typing import Any

from core import InvalidTokenError, JwtTokenSigner, Settings, TokenSigner
from models import User

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"


class TokenService:
    """Signs and verifies the two token classes from one immutable config."""

    def __init__(self, settings: Settings, signer: TokenSigner | None = None) -> None:
        self._signer = signer or JwtTokenSigner(settings.jwt_algorithm)
        self._access_secret = settings.access_token_secret.get_secret_value()
        self._refresh_secret = settings.refresh_token_secret.get_secret_value()
        self.access_ttl = timedelta(minutes=settings.access_token_expire_minutes)
        self.refresh_ttl = timedelta(minutes=settings.refresh_token_expire_minutes)

    def issue_access_token(self, user: User) -> str:
        return self._signer.sign(
            {
                "sub": user.id,
                "email": user.email,
                "username": user.username,
                "fullname": user.fullname,
                "type": ACCESS_TOKEN_TYPE,
            },
            self._access_secret,
            self.access_ttl,
        )

    def issue_refresh_token(self, user: User) -> str:
        return self._signer.sign(
            {"sub": user.id, "type": REFRESH_TOKEN_TYPE},
            self._refresh_secret,
            self.refresh_ttl,
        )

    def verify(self, token: str, secret: str) -> dict[str, Any]:
        """Return the claims of ``token`` or raise InvalidTokenError."""
        claims = self._signer.verify(token, secret)
        subject = claims.get("sub")
        if not isinstance(subject, str) or not subject:
            raise InvalidTokenError()
        return claims

    def verify_access(self, token: str) -> dict[str, Any]:
        return self._verify_typed(token, self._access_secret, ACCESS_TOKEN_TYPE)

    def verify_refresh(self, token: str) -> dict[str, Any]:
        return self._verify_typed(token, self._refresh_secret, REFRESH_TOKEN_TYPE)

    def _verify_typed(self, token: str, secret: str, token_type: str) -> dict[str, Any]:
        claims = self.verify(token, secret)
        if claims.get("type") != token_type:
            raise InvalidTokenError()
        return claims

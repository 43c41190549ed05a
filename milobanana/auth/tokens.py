"""Signed user tokens (HS256 JWT) carrying {userId, username}."""

from __future__ import annotations

import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

import jwt
from loguru import logger

from milobanana.config.schema import AuthConfig

ALGORITHM = "HS256"


class InvalidTokenError(Exception):
    """Token failed signature, expiry, issuer, audience or payload checks."""


@dataclass(frozen=True, slots=True)
class TokenPayload:
    user_id: int
    username: str


class TokenSigner:
    """Sign and verify user tokens against a fixed issuer and audience."""

    def __init__(
        self,
        secret: str,
        *,
        issuer: str,
        audience: str,
        ttl_seconds: int = 24 * 60 * 60,
    ):
        if not secret:
            raise ValueError("token signing secret must not be empty")
        self._secret = secret
        self.issuer = issuer
        self.audience = audience
        self.ttl_seconds = ttl_seconds

    @classmethod
    def from_config(cls, auth: AuthConfig) -> "TokenSigner":
        secret = auth.jwt_secret
        if not secret:
            logger.warning("JWT secret not configured; using a random per-process key (tokens reset on restart)")
            secret = secrets.token_urlsafe(48)
        return cls(secret, issuer=auth.issuer, audience=auth.audience, ttl_seconds=auth.token_ttl_seconds)

    def sign(self, payload: TokenPayload, *, now: datetime | None = None) -> str:
        issued = now or datetime.now(timezone.utc)
        claims: dict[str, Any] = {
            "userId": payload.user_id,
            "username": payload.username,
            "iat": issued,
            "exp": issued + timedelta(seconds=self.ttl_seconds),
            "iss": self.issuer,
            "aud": self.audience,
        }
        return jwt.encode(claims, self._secret, algorithm=ALGORITHM)

    def verify(self, token: str) -> TokenPayload:
        try:
            claims = jwt.decode(
                token,
                self._secret,
                algorithms=[ALGORITHM],
                issuer=self.issuer,
                audience=self.audience,
                options={"require": ["exp", "iss", "aud"]},
            )
        except jwt.PyJWTError as e:
            raise InvalidTokenError(str(e)) from e
        user_id = claims.get("userId")
        username = claims.get("username")
        if not isinstance(user_id, int) or isinstance(user_id, bool) or not isinstance(username, str):
            raise InvalidTokenError("token payload missing userId/username")
        return TokenPayload(user_id=user_id, username=username)

"""Credential primitives and per-request principal resolution."""

from milobanana.auth.passwords import PasswordHasher
from milobanana.auth.principal import (
    ADMIN,
    ANONYMOUS,
    AdminPrincipal,
    Anonymous,
    AuthRequirement,
    Principal,
    PrincipalResolver,
    UserPrincipal,
    parse_bearer,
)
from milobanana.auth.tokens import InvalidTokenError, TokenPayload, TokenSigner

__all__ = [
    "ADMIN",
    "ANONYMOUS",
    "AdminPrincipal",
    "Anonymous",
    "AuthRequirement",
    "InvalidTokenError",
    "PasswordHasher",
    "Principal",
    "PrincipalResolver",
    "TokenPayload",
    "TokenSigner",
    "UserPrincipal",
    "parse_bearer",
]

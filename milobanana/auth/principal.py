"""Per-request principal resolution from the Authorization header.

A caller is exactly one of ``Anonymous``, ``UserPrincipal`` or
``AdminPrincipal``. Admin is a capability granted by the shared admin secret,
not an identity, so ``AdminPrincipal`` carries no fields. Handlers
pattern-match on the variant instead of comparing secrets themselves.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Union

from loguru import logger

from milobanana.auth.tokens import InvalidTokenError, TokenSigner
from milobanana.config.schema import AuthConfig
from milobanana.utils.exceptions import AuthenticationError, AuthorizationError, ConfigurationError


@dataclass(frozen=True, slots=True)
class Anonymous:
    pass


@dataclass(frozen=True, slots=True)
class UserPrincipal:
    user_id: int
    username: str


@dataclass(frozen=True, slots=True)
class AdminPrincipal:
    pass


Principal = Union[Anonymous, UserPrincipal, AdminPrincipal]

ANONYMOUS = Anonymous()
ADMIN = AdminPrincipal()


class AuthRequirement(str, Enum):
    NONE = "none"
    USER = "user"
    ADMIN = "admin"
    USER_OR_ADMIN = "user_or_admin"


def parse_bearer(header: str | None) -> str | None:
    """Return the credential of ``Bearer <credential>``, or None."""
    if not header:
        return None
    parts = header.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        return None
    return parts[1]


class PrincipalResolver:
    """Classify the caller for one request against a declared requirement."""

    def __init__(self, auth: AuthConfig, signer: TokenSigner):
        self._admin_secret = auth.admin_password
        self._signer = signer

    @property
    def admin_configured(self) -> bool:
        return bool(self._admin_secret)

    def _is_admin_secret(self, credential: str) -> bool:
        return bool(self._admin_secret) and credential == self._admin_secret

    def _verify_user(self, credential: str) -> UserPrincipal | None:
        try:
            payload = self._signer.verify(credential)
        except InvalidTokenError as e:
            logger.debug("Rejected bearer token: {}", e)
            return None
        return UserPrincipal(user_id=payload.user_id, username=payload.username)

    def resolve(self, requirement: AuthRequirement, authorization: str | None) -> Principal:
        if requirement is AuthRequirement.NONE:
            return ANONYMOUS

        credential = parse_bearer(authorization)

        if requirement is AuthRequirement.ADMIN:
            if not self._admin_secret:
                raise ConfigurationError("Admin password not configured")
            if credential is None or not self._is_admin_secret(credential):
                raise AuthorizationError("Invalid admin credentials", http_status=401)
            return ADMIN

        if requirement is AuthRequirement.USER:
            if credential is None:
                raise AuthenticationError("Access token required", http_status=401)
            user = self._verify_user(credential)
            if user is None:
                raise AuthorizationError("Invalid or expired token", http_status=403)
            return user

        # USER_OR_ADMIN: the string compare is cheaper than verifying a signature.
        if credential is None:
            raise AuthenticationError("Access token or admin password required", http_status=401)
        if self._is_admin_secret(credential):
            return ADMIN
        user = self._verify_user(credential)
        if user is None:
            raise AuthorizationError("Invalid token or admin credentials", http_status=403)
        return user

import pytest

from milobanana.auth.principal import (
    ADMIN,
    ANONYMOUS,
    AuthRequirement,
    PrincipalResolver,
    UserPrincipal,
    parse_bearer,
)
from milobanana.auth.tokens import TokenPayload, TokenSigner
from milobanana.config.schema import AuthConfig
from milobanana.utils.exceptions import (
    AuthenticationError,
    AuthorizationError,
    ConfigurationError,
    RpcErrorCode,
)


def _resolver(admin_password: str = "admin-pw") -> tuple[PrincipalResolver, TokenSigner]:
    auth = AuthConfig(admin_password=admin_password, jwt_secret="jwt-key")
    signer = TokenSigner.from_config(auth)
    return PrincipalResolver(auth, signer), signer


def _bearer(value: str) -> str:
    return f"Bearer {value}"


def test_parse_bearer():
    assert parse_bearer("Bearer abc") == "abc"
    assert parse_bearer("bearer abc") == "abc"
    assert parse_bearer("Basic abc") is None
    assert parse_bearer("Bearer") is None
    assert parse_bearer("") is None
    assert parse_bearer(None) is None


def test_none_requirement_ignores_header():
    resolver, _ = _resolver()
    assert resolver.resolve(AuthRequirement.NONE, None) is ANONYMOUS
    assert resolver.resolve(AuthRequirement.NONE, "Bearer garbage") is ANONYMOUS


def test_user_requirement_with_valid_token():
    resolver, signer = _resolver()
    token = signer.sign(TokenPayload(3, "carol"))
    assert resolver.resolve(AuthRequirement.USER, _bearer(token)) == UserPrincipal(3, "carol")


def test_user_requirement_missing_credential_is_authentication_error():
    resolver, _ = _resolver()
    with pytest.raises(AuthenticationError) as exc:
        resolver.resolve(AuthRequirement.USER, None)
    assert exc.value.code is RpcErrorCode.AUTHENTICATION_ERROR
    assert exc.value.http_status == 401


def test_user_requirement_invalid_token_is_authorization_error():
    resolver, _ = _resolver()
    with pytest.raises(AuthorizationError) as exc:
        resolver.resolve(AuthRequirement.USER, _bearer("bogus"))
    assert exc.value.http_status == 403
    assert exc.value.message == "Invalid or expired token"


def test_user_requirement_does_not_accept_admin_secret():
    resolver, _ = _resolver()
    with pytest.raises(AuthorizationError):
        resolver.resolve(AuthRequirement.USER, _bearer("admin-pw"))


def test_admin_requirement():
    resolver, signer = _resolver()
    assert resolver.resolve(AuthRequirement.ADMIN, _bearer("admin-pw")) is ADMIN
    for header in (None, _bearer("wrong"), _bearer(signer.sign(TokenPayload(1, "a")))):
        with pytest.raises(AuthorizationError) as exc:
            resolver.resolve(AuthRequirement.ADMIN, header)
        assert exc.value.http_status == 401


def test_admin_requirement_unconfigured_secret_is_configuration_error():
    resolver, _ = _resolver(admin_password="")
    with pytest.raises(ConfigurationError) as exc:
        resolver.resolve(AuthRequirement.ADMIN, _bearer(""))
    assert exc.value.code is RpcErrorCode.INTERNAL_ERROR
    assert exc.value.http_status == 500


def test_user_or_admin():
    resolver, signer = _resolver()
    assert resolver.resolve(AuthRequirement.USER_OR_ADMIN, _bearer("admin-pw")) is ADMIN
    token = signer.sign(TokenPayload(9, "dave"))
    assert resolver.resolve(AuthRequirement.USER_OR_ADMIN, _bearer(token)) == UserPrincipal(9, "dave")
    with pytest.raises(AuthenticationError):
        resolver.resolve(AuthRequirement.USER_OR_ADMIN, None)
    with pytest.raises(AuthorizationError) as exc:
        resolver.resolve(AuthRequirement.USER_OR_ADMIN, _bearer("neither"))
    assert exc.value.http_status == 403


def test_user_or_admin_without_admin_secret_still_accepts_users():
    resolver, signer = _resolver(admin_password="")
    token = signer.sign(TokenPayload(2, "erin"))
    assert resolver.resolve(AuthRequirement.USER_OR_ADMIN, _bearer(token)) == UserPrincipal(2, "erin")

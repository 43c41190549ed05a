from datetime import datetime, timedelta, timezone

import jwt
import pytest

from milobanana.auth.passwords import PasswordHasher
from milobanana.auth.tokens import InvalidTokenError, TokenPayload, TokenSigner
from milobanana.config.schema import AuthConfig


def _signer(secret: str = "k1", **overrides) -> TokenSigner:
    kwargs = {"issuer": "milo-banana-backend", "audience": "milo-banana-client", "ttl_seconds": 3600}
    kwargs.update(overrides)
    return TokenSigner(secret, **kwargs)


@pytest.mark.parametrize("payload", [TokenPayload(1, "alice"), TokenPayload(987654, "wechat_abc_1700000000000")])
def test_sign_verify_round_trip(payload):
    signer = _signer()
    assert signer.verify(signer.sign(payload)) == payload


def test_claims_use_wire_names():
    token = _signer().sign(TokenPayload(5, "bob"))
    claims = jwt.decode(token, options={"verify_signature": False})
    assert claims["userId"] == 5
    assert claims["username"] == "bob"
    assert claims["iss"] == "milo-banana-backend"
    assert claims["aud"] == "milo-banana-client"
    assert claims["exp"] - claims["iat"] == 3600


@pytest.mark.parametrize(
    "other",
    [
        _signer("different-key"),
        _signer(issuer="someone-else"),
        _signer(audience="another-client"),
    ],
)
def test_verify_rejects_foreign_tokens(other):
    token = other.sign(TokenPayload(1, "alice"))
    with pytest.raises(InvalidTokenError):
        _signer().verify(token)


def test_verify_rejects_expired_token():
    signer = _signer()
    token = signer.sign(TokenPayload(1, "alice"), now=datetime.now(timezone.utc) - timedelta(hours=2))
    with pytest.raises(InvalidTokenError):
        signer.verify(token)


def test_verify_rejects_token_without_user_fields():
    token = jwt.encode(
        {"sub": "x", "iss": "milo-banana-backend", "aud": "milo-banana-client",
         "exp": datetime.now(timezone.utc) + timedelta(hours=1)},
        "k1",
        algorithm="HS256",
    )
    with pytest.raises(InvalidTokenError):
        _signer().verify(token)


def test_verify_rejects_garbage():
    with pytest.raises(InvalidTokenError):
        _signer().verify("not-a-token")


def test_empty_secret_not_allowed():
    with pytest.raises(ValueError):
        TokenSigner("", issuer="i", audience="a")


def test_from_config_generates_secret_when_unset():
    a = TokenSigner.from_config(AuthConfig())
    b = TokenSigner.from_config(AuthConfig())
    token = a.sign(TokenPayload(1, "alice"))
    assert a.verify(token).user_id == 1
    with pytest.raises(InvalidTokenError):
        b.verify(token)


def test_password_hasher():
    hasher = PasswordHasher(rounds=4)
    digest = hasher.hash("secret1")
    assert digest != "secret1"
    assert hasher.compare("secret1", digest)
    assert not hasher.compare("secret2", digest)
    assert not hasher.compare("secret1", "wechat_auth")
    assert not hasher.compare("secret1", "")

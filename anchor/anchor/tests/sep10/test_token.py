import time
from datetime import datetime, timezone

import jwt
import pytest
from stellar_sdk import Keypair, MuxedAccount

from anchor.exceptions import (
    InvalidSep10Token,
    TokenExpired,
    TokenIssuerMismatch,
    TokenMalformed,
    TokenNotYetValid,
    TokenSignatureInvalid,
)
from anchor.sep10.token import Sep10Jwt, validate_sep10_jwt
from anchor.tests.helpers import JWT_KEY, WEB_AUTH_ENDPOINT


def make_token(sub, **kwargs):
    now = int(time.time())
    values = dict(iss=WEB_AUTH_ENDPOINT, sub=sub, iat=now - 10, exp=now + 3600)
    values.update(kwargs)
    return Sep10Jwt(**values)


def test_sub_stellar_account():
    kp = Keypair.random()
    token = make_token(kp.public_key)
    assert token.account == kp.public_key
    assert token.memo is None
    assert token.muxed_account is None
    assert token.muxed_id is None


def test_sub_stellar_account_and_memo():
    kp = Keypair.random()
    token = make_token(f"{kp.public_key}:123")
    assert token.account == kp.public_key
    assert token.memo == 123
    assert token.muxed_account is None


def test_sub_muxed_account():
    muxed = MuxedAccount(Keypair.random().public_key, 123)
    token = make_token(muxed.account_muxed)
    assert token.account == muxed.account_id
    assert token.muxed_account == muxed.account_muxed
    assert token.muxed_id == 123
    assert token.memo is None


@pytest.mark.parametrize(
    "sub",
    [
        "",
        "GTEST",
        f"{Keypair.random().public_key}:abc",
        f"{Keypair.random().public_key}:²",
        f"{Keypair.random().public_key}:18446744073709551616",
        "a:b:c",
        "MTEST",
    ],
)
def test_invalid_sub(sub):
    with pytest.raises(TokenMalformed):
        make_token(sub)


def test_invalid_client_domain():
    with pytest.raises(TokenMalformed):
        make_token(Keypair.random().public_key, client_domain="https://wallet.com")


def test_payload_omits_unset_claims():
    token = make_token(Keypair.random().public_key)
    assert set(token.payload.keys()) == {"iss", "sub", "iat", "exp"}
    token = make_token(
        Keypair.random().public_key,
        jti="abc",
        home_domain="testanchor.stellar.org",
        client_domain="wallet.com",
    )
    assert token.payload["jti"] == "abc"
    assert token.payload["home_domain"] == "testanchor.stellar.org"
    assert token.payload["client_domain"] == "wallet.com"


def test_sign_and_validate():
    kp = Keypair.random()
    token = make_token(kp.public_key, jti="abc", client_domain="wallet.com")

    validated = Sep10Jwt.validate(
        token.sign(JWT_KEY), JWT_KEY, issuer=WEB_AUTH_ENDPOINT
    )

    assert validated.payload == token.payload
    assert validated.issuer == WEB_AUTH_ENDPOINT
    assert validated.issued_at == datetime.fromtimestamp(token.iat, tz=timezone.utc)
    assert validated.expires_at == datetime.fromtimestamp(token.exp, tz=timezone.utc)


def test_signed_with_hs256():
    encoded = make_token(Keypair.random().public_key).sign(JWT_KEY)
    assert jwt.get_unverified_header(encoded)["alg"] == "HS256"


def test_validate_wrong_secret():
    encoded = make_token(Keypair.random().public_key).sign(JWT_KEY)
    with pytest.raises(TokenSignatureInvalid):
        Sep10Jwt.validate(encoded, "another-secret-that-is-at-least-32-bytes")


def test_validate_wrong_issuer():
    encoded = make_token(Keypair.random().public_key).sign(JWT_KEY)
    with pytest.raises(TokenIssuerMismatch):
        Sep10Jwt.validate(encoded, JWT_KEY, issuer="https://other.com/auth")


def test_validate_expired():
    now = int(time.time())
    encoded = make_token(
        Keypair.random().public_key, iat=now - 7200, exp=now - 3600
    ).sign(JWT_KEY)
    with pytest.raises(TokenExpired):
        Sep10Jwt.validate(encoded, JWT_KEY)


def test_validate_not_yet_valid():
    now = int(time.time())
    encoded = make_token(
        Keypair.random().public_key, iat=now + 3600, exp=now + 7200
    ).sign(JWT_KEY)
    with pytest.raises(TokenNotYetValid):
        Sep10Jwt.validate(encoded, JWT_KEY)


def test_validate_boundaries():
    token = make_token(Keypair.random().public_key, iat=1000, exp=2000)
    encoded = token.sign(JWT_KEY)
    assert Sep10Jwt.validate(encoded, JWT_KEY, now=1000).sub == token.sub
    assert Sep10Jwt.validate(encoded, JWT_KEY, now=2000).sub == token.sub
    with pytest.raises(TokenExpired):
        Sep10Jwt.validate(encoded, JWT_KEY, now=2001)


def test_validate_missing_claim():
    encoded = jwt.encode(
        {"iss": WEB_AUTH_ENDPOINT, "sub": Keypair.random().public_key},
        JWT_KEY,
        algorithm="HS256",
    )
    with pytest.raises(TokenMalformed):
        Sep10Jwt.validate(encoded, JWT_KEY)


@pytest.mark.parametrize("token", ["", "not.a.jwt", None])
def test_validate_garbage(token):
    with pytest.raises(TokenMalformed):
        Sep10Jwt.validate(token, JWT_KEY)


def test_validate_empty_secret():
    encoded = make_token(Keypair.random().public_key).sign(JWT_KEY)
    with pytest.raises(TokenMalformed):
        Sep10Jwt.validate(encoded, "")


def test_validate_sep10_jwt():
    encoded = make_token(Keypair.random().public_key).sign(JWT_KEY)
    assert isinstance(validate_sep10_jwt(encoded, JWT_KEY), Sep10Jwt)
    with pytest.raises(InvalidSep10Token):
        validate_sep10_jwt(encoded, JWT_KEY, issuer="https://other.com/auth")

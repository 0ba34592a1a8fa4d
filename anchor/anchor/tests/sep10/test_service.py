from unittest.mock import Mock

import pytest
from stellar_sdk import Keypair

from anchor.exceptions import (
    ClientDomainError,
    ErrorKind,
    InvalidSepRequest,
    SepNotAuthorized,
    SignatureVerificationError,
)
from anchor.sep10.service import Sep10Service
from anchor.sep10.signers import AccountSignerSet, Signer
from anchor.sep10.token import Sep10Jwt
from anchor.tests.helpers import (
    HOME_DOMAIN,
    JWT_KEY,
    NETWORK_PASSPHRASE,
    WEB_AUTH_ENDPOINT,
    make_config,
    sign_xdr,
)


def make_service(signer_sets=None, signing_key=None, **config):
    signer_sets = signer_sets or {}
    loader = Mock()
    loader.load.side_effect = lambda account: signer_sets.get(
        account, AccountSignerSet.master_key_only(account)
    )
    resolver = Mock()
    resolver.signing_key.return_value = signing_key
    return Sep10Service(
        make_config(**config), signer_loader=loader, client_domain_resolver=resolver
    )


def test_challenge_response():
    service = make_service()
    body = service.challenge({"account": Keypair.random().public_key})
    assert set(body.keys()) == {"transaction", "network_passphrase"}
    assert body["network_passphrase"] == NETWORK_PASSPHRASE
    service.client_domain_resolver.signing_key.assert_not_called()


def test_challenge_policy_order():
    service = make_service(client_attribution_required=True)
    with pytest.raises(InvalidSepRequest) as e:
        service.challenge(
            {"account": "bad", "home_domain": "other.com", "memo": "x"}
        )
    assert e.value.kind == ErrorKind.UNSUPPORTED_HOME_DOMAIN

    with pytest.raises(InvalidSepRequest) as e:
        service.challenge({"account": "bad", "memo": "x"})
    assert e.value.kind == ErrorKind.INVALID_ACCOUNT

    with pytest.raises(InvalidSepRequest) as e:
        service.challenge({"account": Keypair.random().public_key, "memo": "x"})
    assert e.value.kind == ErrorKind.CLIENT_DOMAIN_REQUIRED


def test_challenge_denied_client_domain_not_resolved():
    service = make_service(
        client_attribution_required=True, client_attribution_denylist=("wallet.com",)
    )
    with pytest.raises(SepNotAuthorized) as e:
        service.challenge(
            {"account": Keypair.random().public_key, "client_domain": "wallet.com"}
        )
    assert e.value.status_code == 403
    service.client_domain_resolver.signing_key.assert_not_called()


def test_challenge_resolver_error_propagates():
    service = make_service()
    service.client_domain_resolver.signing_key.side_effect = ClientDomainError(
        ErrorKind.TOML_NOT_FOUND, "not found", "wallet.com"
    )
    with pytest.raises(ClientDomainError):
        service.challenge(
            {"account": Keypair.random().public_key, "client_domain": "wallet.com"}
        )


def test_token_for_client_domain():
    client_kp, client_domain_kp = Keypair.random(), Keypair.random()
    service = make_service(signing_key=client_domain_kp.public_key)
    body = service.challenge(
        {"account": client_kp.public_key, "client_domain": "wallet.com"}
    )
    signed_xdr = sign_xdr(body["transaction"], client_kp, client_domain_kp)

    encoded = service.token({"transaction": signed_xdr})["token"]

    token = Sep10Jwt.validate(encoded, JWT_KEY, issuer=WEB_AUTH_ENDPOINT)
    assert token.account == client_kp.public_key
    assert token.client_domain == "wallet.com"
    assert token.home_domain == HOME_DOMAIN
    assert token.exp - token.iat == service.config.jwt_timeout
    loaded = [c[0][0] for c in service.signer_loader.load.call_args_list]
    assert loaded == [client_kp.public_key, client_domain_kp.public_key]


def test_client_account_checked_before_client_domain():
    client_kp, client_domain_kp = Keypair.random(), Keypair.random()
    service = make_service(
        signer_sets={
            client_kp.public_key: AccountSignerSet(
                client_kp.public_key,
                (
                    Signer(client_kp.public_key, 1),
                    Signer(client_domain_kp.public_key, 1),
                ),
                1,
            )
        },
        signing_key=client_domain_kp.public_key,
    )
    body = service.challenge(
        {"account": client_kp.public_key, "client_domain": "wallet.com"}
    )

    with pytest.raises(SignatureVerificationError) as e:
        service.token(
            {"transaction": sign_xdr(body["transaction"], client_domain_kp)}
        )

    assert e.value.kind == ErrorKind.MISSING_CLIENT_DOMAIN_SIGNATURE


def test_token_unrecognized_signature():
    client_kp = Keypair.random()
    service = make_service()
    body = service.challenge({"account": client_kp.public_key})

    with pytest.raises(SignatureVerificationError) as e:
        service.token(
            {"transaction": sign_xdr(body["transaction"], client_kp, Keypair.random())}
        )

    assert e.value.kind == ErrorKind.UNRECOGNIZED_SIGNATURES


def test_challenge_optional_attribution_not_allowed_client_domain():
    service = make_service(client_attribution_allowlist=("allowed.com",))
    with pytest.raises(SepNotAuthorized) as e:
        service.challenge(
            {"account": Keypair.random().public_key, "client_domain": "other.com"}
        )
    assert e.value.kind == ErrorKind.CLIENT_DOMAIN_NOT_ALLOWED
    assert e.value.message == "unable to process"
    service.client_domain_resolver.signing_key.assert_not_called()

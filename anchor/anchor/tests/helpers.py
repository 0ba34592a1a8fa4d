"""Helper functions to use across tests."""
import os
import json
import time
import base64
from typing import List, Optional

from stellar_sdk import Account, Keypair, Network, TransactionBuilder
from stellar_sdk.transaction_envelope import TransactionEnvelope

from anchor import settings
from anchor.sep10.config import Sep10Config

SERVER_KP = Keypair.random()
JWT_KEY = "a-test-secret-that-is-at-least-32-bytes-long"
HOME_DOMAIN = "testanchor.stellar.org"
WEB_AUTH_DOMAIN = "auth.testanchor.stellar.org"
WEB_AUTH_ENDPOINT = "https://auth.testanchor.stellar.org/auth"
NETWORK_PASSPHRASE = Network.TESTNET_NETWORK_PASSPHRASE


def make_config(**kwargs) -> Sep10Config:
    values = dict(
        signing_seed=SERVER_KP.secret,
        jwt_key=JWT_KEY,
        home_domains=(HOME_DOMAIN,),
        web_auth_domain=WEB_AUTH_DOMAIN,
        web_auth_endpoint=WEB_AUTH_ENDPOINT,
        network_passphrase=NETWORK_PASSPHRASE,
    )
    values.update(kwargs)
    return Sep10Config(**values)


def nonce() -> bytes:
    return base64.b64encode(os.urandom(48))


def build_transaction(
    client_account: str,
    source: Optional[str] = None,
    sequence: int = -1,
    home_domain: str = HOME_DOMAIN,
    nonce_value: Optional[bytes] = None,
    web_auth_domain: Optional[str] = WEB_AUTH_DOMAIN,
    client_domain: Optional[str] = None,
    client_domain_key: Optional[str] = None,
    memo: Optional[int] = None,
    time_bounds: Optional[tuple] = None,
    signers: Optional[List[Keypair]] = None,
    network_passphrase: str = NETWORK_PASSPHRASE,
) -> TransactionEnvelope:
    """
    Build a challenge by hand so individual parts of it can be malformed.
    Signed by the server unless ``signers`` is passed.
    """
    now = int(time.time())
    builder = TransactionBuilder(
        source_account=Account(source or SERVER_KP.public_key, sequence),
        network_passphrase=network_passphrase,
        base_fee=100,
    ).append_manage_data_op(
        data_name=f"{home_domain} auth",
        data_value=nonce_value if nonce_value is not None else nonce(),
        source=client_account,
    )
    if web_auth_domain is not None:
        builder.append_manage_data_op(
            data_name="web_auth_domain",
            data_value=web_auth_domain,
            source=SERVER_KP.public_key,
        )
    if client_domain is not None:
        builder.append_manage_data_op(
            data_name="client_domain",
            data_value=client_domain,
            source=client_domain_key,
        )
    if memo is not None:
        builder.add_id_memo(memo)
    builder.add_time_bounds(*(time_bounds or (now, now + 900)))
    envelope = builder.build()
    for kp in signers if signers is not None else [SERVER_KP]:
        envelope.sign(kp)
    return envelope


def sign_xdr(
    envelope_xdr: str, *keypairs: Keypair, network_passphrase: str = NETWORK_PASSPHRASE
) -> str:
    envelope = TransactionEnvelope.from_xdr(
        envelope_xdr, network_passphrase=network_passphrase
    )
    for kp in keypairs:
        envelope.sign(kp)
    return envelope.to_xdr()


def account_json(account_id: str, signers: List[tuple], med_threshold: int) -> dict:
    """A Horizon account response with ``(key, weight)`` signers."""
    return {
        "account_id": account_id,
        "sequence": "1",
        "signers": [
            {"key": key, "weight": weight, "type": "ed25519_public_key"}
            for key, weight in signers
        ],
        "thresholds": {
            "low_threshold": 0,
            "med_threshold": med_threshold,
            "high_threshold": med_threshold,
        },
    }


def sep10(client, address, *keypairs):
    response = client.get(f"/auth?account={address}", follow=True)
    content = json.loads(response.content)
    client_signed_envelope_xdr = sign_xdr(
        content["transaction"],
        *keypairs,
        network_passphrase=settings.STELLAR_NETWORK_PASSPHRASE,
    )
    response = client.post(
        "/auth",
        data={"transaction": client_signed_envelope_xdr},
        content_type="application/json",
    )
    content = json.loads(response.content)
    encoded_jwt = content["token"]
    assert encoded_jwt
    return encoded_jwt

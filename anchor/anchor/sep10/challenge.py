"""
Parsing of ``GET /auth`` requests and construction of SEP-10 challenge
transactions.

See: https://github.com/stellar/stellar-protocol/blob/master/ecosystem/sep-0010.md#challenge
"""
import os
import time
import base64
from dataclasses import dataclass
from typing import Mapping, Optional

from stellar_sdk import Account, Keypair, MuxedAccount, TransactionBuilder

from anchor.exceptions import ErrorKind, InvalidSepRequest
from anchor.sep10.config import Sep10Config
from anchor.utils import getLogger

NONCE_BYTES = 48
MAX_UINT64 = 2**64 - 1
BASE_FEE = 100

WEB_AUTH_DOMAIN_KEY = "web_auth_domain"
CLIENT_DOMAIN_KEY = "client_domain"


def is_muxed_account(account: str) -> bool:
    return account.startswith("M")


def validate_account(account: str) -> str:
    """
    Return ``account`` if it is a valid Stellar (G...) or muxed (M...)
    account address.

    :raises InvalidSepRequest: the address cannot be decoded
    """
    try:
        if is_muxed_account(account):
            MuxedAccount.from_account(account)
        else:
            Keypair.from_public_key(account)
    except (ValueError, TypeError):
        raise InvalidSepRequest(
            ErrorKind.INVALID_ACCOUNT, f"client wallet account {account} is invalid"
        )
    return account


def parse_memo(account: str, memo: Optional[str]) -> Optional[int]:
    """
    Convert the ``memo`` query parameter to the value of an ``id`` memo.

    :raises InvalidSepRequest: the memo is passed with a muxed account or is
        not an unsigned 64-bit integer
    """
    if memo is None:
        return None
    if is_muxed_account(account):
        raise InvalidSepRequest(
            ErrorKind.MEMO_WITH_MUXED_ACCOUNT, "memo not allowed for muxed accounts"
        )
    if not (memo.isascii() and memo.isdigit()) or int(memo) > MAX_UINT64:
        raise InvalidSepRequest(ErrorKind.INVALID_MEMO, f"invalid memo value: {memo}")
    return int(memo)


@dataclass(frozen=True)
class ChallengeRequest:
    """
    The query parameters of ``GET /auth``.

    ``account`` is the G... or M... address the client wishes to authenticate,
    ``memo`` is only permitted with G... addresses, ``home_domain`` selects one
    of the server's home domains and ``client_domain`` is supplied by clients
    that want to prove which wallet software they are using.
    """

    account: str
    memo: Optional[str] = None
    home_domain: Optional[str] = None
    client_domain: Optional[str] = None

    @classmethod
    def from_query_params(cls, params: Mapping) -> "ChallengeRequest":
        account = params.get("account")
        if not account:
            raise InvalidSepRequest(ErrorKind.MISSING_FIELD, "Account is not set")
        if not isinstance(account, str):
            raise InvalidSepRequest(
                ErrorKind.INVALID_FIELD_TYPE, "Invalid account. Must be string."
            )
        optional = {}
        for param, attr in [
            ("memo", "memo"),
            ("home_domain", "home_domain"),
            ("client_domain", "client_domain"),
        ]:
            value = params.get(param)
            if value in (None, ""):
                continue
            if not isinstance(value, str):
                raise InvalidSepRequest(
                    ErrorKind.INVALID_FIELD_TYPE,
                    f"Invalid {param} value. Must be string.",
                )
            optional[attr] = value
        return cls(account=account, **optional)


class ChallengeBuilder:
    """
    Builds challenge transactions signed by the server's signing key.

    The returned transaction has a sequence number of 0, the server account
    as its source, time bounds of ``[now - grace, now + auth_timeout]`` and
    the following ManageData operations:

    1. ``"<home_domain> auth"`` with a random 48 byte nonce encoded as base64,
       sourced by the client account
    2. ``"web_auth_domain"`` with the web auth domain, sourced by the server
    3. ``"client_domain"`` with the client domain, sourced by the client
       domain's signing key (only if a client domain was requested)
    """

    def __init__(self, config: Sep10Config, logger=None):
        self.config = config
        self.logger = logger or getLogger(__name__)

    def build(
        self,
        account: str,
        home_domain: str,
        memo: Optional[int] = None,
        client_domain: Optional[str] = None,
        client_signing_key: Optional[str] = None,
        now: Optional[int] = None,
    ) -> str:
        """
        Return the base64-encoded XDR of a new challenge transaction.
        """
        validate_account(account)
        if memo is not None and is_muxed_account(account):
            raise InvalidSepRequest(
                ErrorKind.MEMO_WITH_MUXED_ACCOUNT, "memo not allowed for muxed accounts"
            )
        if home_domain not in self.config.home_domains:
            raise InvalidSepRequest(
                ErrorKind.UNSUPPORTED_HOME_DOMAIN,
                f"home_domain {home_domain} not supported",
            )
        if bool(client_domain) != bool(client_signing_key):
            raise InvalidSepRequest(
                ErrorKind.INVALID_CLIENT_DOMAIN,
                "client_domain and its signing key must be provided together",
            )

        server_keypair = self.config.signing_keypair
        if now is None:
            now = int(time.time())
        nonce = base64.b64encode(os.urandom(NONCE_BYTES))

        builder = (
            TransactionBuilder(
                source_account=Account(server_keypair.public_key, -1),
                network_passphrase=self.config.network_passphrase,
                base_fee=BASE_FEE,
            )
            .append_manage_data_op(
                data_name=f"{home_domain} auth", data_value=nonce, source=account
            )
            .append_manage_data_op(
                data_name=WEB_AUTH_DOMAIN_KEY,
                data_value=self.config.web_auth_domain,
                source=server_keypair.public_key,
            )
            .add_time_bounds(
                now - self.config.timebounds_grace, now + self.config.auth_timeout
            )
        )
        if memo is not None:
            builder.add_id_memo(memo)
        if client_domain:
            builder.append_manage_data_op(
                data_name=CLIENT_DOMAIN_KEY,
                data_value=client_domain,
                source=client_signing_key,
            )

        envelope = builder.build()
        envelope.sign(server_keypair)
        self.logger.debug(
            f"built challenge {envelope.hash_hex()} for account {account}"
        )
        return envelope.to_xdr()

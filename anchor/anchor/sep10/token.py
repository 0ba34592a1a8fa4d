import time
from datetime import datetime, timezone
from urllib.parse import urlparse
from typing import Dict, Optional

import jwt
from jwt.exceptions import (
    ExpiredSignatureError,
    ImmatureSignatureError,
    InvalidIssuerError,
    InvalidSignatureError,
    InvalidTokenError,
)
from stellar_sdk import Keypair, MuxedAccount
from stellar_sdk.exceptions import (
    Ed25519PublicKeyInvalidError,
    MuxedEd25519AccountInvalidError,
)

from anchor.exceptions import (
    TokenExpired,
    TokenIssuerMismatch,
    TokenMalformed,
    TokenNotYetValid,
    TokenSignatureInvalid,
)

ALGORITHM = "HS256"
MAX_UINT64 = 2**64 - 1


class Sep10Jwt:
    """
    An object representing the authenticated session of the client.

    Tokens are minted by ``POST /auth`` once a challenge has been verified and
    are passed back by clients in the ``Authorization`` header of requests to
    other endpoints, where :meth:`validate` turns them back into this object.

    The ``sub`` claim identifies the client in one of three forms: a Stellar
    account (``G...``), a Stellar account and memo (``G...:<memo>``), or a
    muxed account (``M...``).
    """

    _REQUIRED_FIELDS = {"iss", "sub", "iat", "exp"}

    def __init__(
        self,
        iss: str,
        sub: str,
        iat: int,
        exp: int,
        jti: Optional[str] = None,
        home_domain: Optional[str] = None,
        client_domain: Optional[str] = None,
    ):
        self.iss = iss
        self.sub = sub
        self.iat = iat
        self.exp = exp
        self.jti = jti
        self.home_domain = home_domain
        self.client_domain = client_domain

        self.account_id = None
        self.memo = None
        self.muxed_account_id = None
        self.muxed_id = None
        if not isinstance(sub, str) or not sub:
            raise TokenMalformed(f"improperly formatted 'sub' value: {sub}")
        if sub.startswith("M"):
            try:
                muxed_account = MuxedAccount.from_account(sub)
            except (MuxedEd25519AccountInvalidError, ValueError):
                raise TokenMalformed(f"invalid muxed account address: {sub}")
            self.muxed_account_id = sub
            self.account_id = muxed_account.account_id
            self.muxed_id = muxed_account.account_muxed_id
        elif ":" in sub:
            try:
                self.account_id, memo = sub.split(":")
            except ValueError:
                raise TokenMalformed(f"improperly formatted 'sub' value: {sub}")
            if not (memo.isascii() and memo.isdigit()) or int(memo) > MAX_UINT64:
                raise TokenMalformed(
                    f"invalid memo in 'sub' value, expected 64-bit integer: {memo}"
                )
            self.memo = int(memo)
        else:
            self.account_id = sub

        try:
            Keypair.from_public_key(self.account_id)
        except Ed25519PublicKeyInvalidError:
            raise TokenMalformed(f"invalid Stellar public key: {sub}")

        if (
            client_domain
            and urlparse(f"https://{client_domain}").netloc != client_domain
        ):
            raise TokenMalformed("'client_domain' must be a hostname")

    @classmethod
    def from_payload(cls, payload: Dict) -> "Sep10Jwt":
        if not cls._REQUIRED_FIELDS.issubset(set(payload.keys())):
            raise TokenMalformed(
                "jwt is missing one of the required fields: "
                f"{', '.join(sorted(cls._REQUIRED_FIELDS))}"
            )
        try:
            iat, exp = int(payload["iat"]), int(payload["exp"])
        except (TypeError, ValueError):
            raise TokenMalformed("invalid iat or exp value")
        return cls(
            iss=payload["iss"],
            sub=payload["sub"],
            iat=iat,
            exp=exp,
            jti=payload.get("jti"),
            home_domain=payload.get("home_domain"),
            client_domain=payload.get("client_domain"),
        )

    @classmethod
    def validate(
        cls,
        token: str,
        secret: str,
        issuer: Optional[str] = None,
        now: Optional[int] = None,
    ) -> "Sep10Jwt":
        """
        Verify the signature of ``token`` and return the session it encodes.

        The token is accepted if ``iat <= now <= exp`` and, when ``issuer`` is
        passed, its ``iss`` claim is exactly ``issuer``.

        :raises TokenMalformed: the secret is empty or the token can't be decoded
        :raises TokenSignatureInvalid: the token was not signed with ``secret``
        :raises TokenIssuerMismatch: the ``iss`` claim doesn't match ``issuer``
        :raises TokenNotYetValid: ``iat`` is in the future
        :raises TokenExpired: ``exp`` is in the past
        """
        if not secret or not isinstance(secret, str):
            raise TokenMalformed("invalid jwt secret")
        if not token or not isinstance(token, str):
            raise TokenMalformed("unable to decode jwt: token must be a string")
        try:
            payload = jwt.decode(
                token,
                secret,
                algorithms=[ALGORITHM],
                issuer=issuer,
                options={
                    "require": sorted(cls._REQUIRED_FIELDS),
                    "verify_exp": False,
                    "verify_iat": False,
                    "verify_nbf": False,
                },
            )
        except InvalidSignatureError:
            raise TokenSignatureInvalid("jwt signature verification failed")
        except InvalidIssuerError:
            raise TokenIssuerMismatch(f"jwt issuer does not match {issuer}")
        except ExpiredSignatureError:
            raise TokenExpired("jwt is expired")
        except ImmatureSignatureError:
            raise TokenNotYetValid("jwt is not yet valid")
        except InvalidTokenError as e:
            raise TokenMalformed(f"unable to decode jwt: {e}")

        session = cls.from_payload(payload)
        if now is None:
            now = int(time.time())
        if now < session.iat:
            raise TokenNotYetValid("jwt is not yet valid")
        if now > session.exp:
            raise TokenExpired("jwt is expired")
        return session

    @property
    def payload(self) -> dict:
        """
        The claims of the token. ``jti``, ``home_domain`` and ``client_domain``
        are only present if set.
        """
        payload = {
            "iss": self.iss,
            "sub": self.sub,
            "iat": self.iat,
            "exp": self.exp,
        }
        if self.jti is not None:
            payload["jti"] = self.jti
        if self.home_domain is not None:
            payload["home_domain"] = self.home_domain
        if self.client_domain is not None:
            payload["client_domain"] = self.client_domain
        return payload

    def sign(self, secret: str) -> str:
        return jwt.encode(self.payload, secret, algorithm=ALGORITHM)

    @property
    def account(self) -> str:
        """
        The Stellar account (`G...`) authenticated. Note that a muxed account
        could have been authenticated, in which case `Sep10Jwt.muxed_account`
        should be used.
        """
        return self.account_id

    @property
    def muxed_account(self) -> Optional[str]:
        """
        The M-address specified in the payload's ``sub`` value, if present
        """
        return self.muxed_account_id

    @property
    def issuer(self) -> str:
        return self.iss

    @property
    def issued_at(self) -> datetime:
        return datetime.fromtimestamp(self.iat, tz=timezone.utc)

    @property
    def expires_at(self) -> datetime:
        return datetime.fromtimestamp(self.exp, tz=timezone.utc)


def validate_sep10_jwt(
    token: str, secret: str, issuer: Optional[str] = None
) -> Sep10Jwt:
    return Sep10Jwt.validate(token, secret, issuer=issuer)

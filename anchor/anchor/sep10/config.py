from dataclasses import dataclass, field
from types import ModuleType
from typing import Optional, Tuple

from stellar_sdk import Keypair

from anchor.exceptions import InvalidConfig


@dataclass(frozen=True)
class Sep10Config:
    """
    The configuration shared by every SEP-10 component.

    Instances are immutable and validated on construction, so a component
    holding one never has to re-check it while serving a request.
    """

    signing_seed: str
    jwt_key: str
    home_domains: Tuple[str, ...]
    web_auth_domain: str
    web_auth_endpoint: str
    network_passphrase: str
    horizon_url: str = "https://horizon-testnet.stellar.org"
    auth_timeout: int = 15 * 60
    jwt_timeout: int = 24 * 60 * 60
    timebounds_grace: int = 5 * 60
    client_attribution_required: bool = False
    client_attribution_request_timeout: int = 3
    client_attribution_allowlist: Optional[Tuple[str, ...]] = None
    client_attribution_denylist: Optional[Tuple[str, ...]] = None
    known_custodial_accounts: Tuple[str, ...] = ()
    use_http: bool = False
    signing_key: str = field(init=False)

    def __post_init__(self):
        if not self.home_domains:
            raise InvalidConfig(
                "Invalid sep 10 config: list of home domains is empty"
            )
        if any(d.startswith("http") for d in self.home_domains):
            raise InvalidConfig("SEP10_HOME_DOMAINS must only be hostnames")
        try:
            signing_key = Keypair.from_secret(self.signing_seed).public_key
        except (ValueError, TypeError) as e:
            raise InvalidConfig(
                "Invalid secret config: SEP-10 signing seed is not a valid secret seed"
            ) from e
        object.__setattr__(self, "signing_key", signing_key)
        if not self.jwt_key:
            raise InvalidConfig("Invalid secret config: SERVER_JWT_KEY is not set")
        if not self.web_auth_domain:
            raise InvalidConfig("Invalid sep 10 config: web auth domain is empty")
        if self.auth_timeout <= 0:
            raise InvalidConfig("SEP10_AUTH_TIMEOUT must be positive")
        if self.jwt_timeout <= 0:
            raise InvalidConfig("SEP10_JWT_TIMEOUT must be positive")
        if self.timebounds_grace < 0:
            raise InvalidConfig("SEP10_TIMEBOUNDS_GRACE must not be negative")

    @property
    def signing_keypair(self) -> Keypair:
        return Keypair.from_secret(self.signing_seed)

    @classmethod
    def from_settings(cls, settings: ModuleType) -> "Sep10Config":
        """
        Snapshot the values of :mod:`anchor.settings` (or any object exposing
        the same attribute names).
        """

        def optional_tuple(value):
            return tuple(value) if value else None

        return cls(
            signing_seed=settings.SIGNING_SEED,
            jwt_key=settings.SERVER_JWT_KEY,
            home_domains=tuple(settings.SEP10_HOME_DOMAINS or ()),
            web_auth_domain=settings.SEP10_WEB_AUTH_DOMAIN,
            web_auth_endpoint=settings.SEP10_WEB_AUTH_ENDPOINT,
            network_passphrase=settings.STELLAR_NETWORK_PASSPHRASE,
            horizon_url=settings.HORIZON_URI,
            auth_timeout=settings.SEP10_AUTH_TIMEOUT,
            jwt_timeout=settings.SEP10_JWT_TIMEOUT,
            timebounds_grace=settings.SEP10_TIMEBOUNDS_GRACE,
            client_attribution_required=bool(
                settings.SEP10_CLIENT_ATTRIBUTION_REQUIRED
            ),
            client_attribution_request_timeout=(
                settings.SEP10_CLIENT_ATTRIBUTION_REQUEST_TIMEOUT
            ),
            client_attribution_allowlist=optional_tuple(
                settings.SEP10_CLIENT_ATTRIBUTION_ALLOWLIST
            ),
            client_attribution_denylist=optional_tuple(
                settings.SEP10_CLIENT_ATTRIBUTION_DENYLIST
            ),
            known_custodial_accounts=tuple(
                settings.SEP10_KNOWN_CUSTODIAL_ACCOUNTS or ()
            ),
            use_http=bool(settings.LOCAL_MODE),
        )

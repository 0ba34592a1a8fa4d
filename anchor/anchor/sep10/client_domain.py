"""
Resolution of the ``SIGNING_KEY`` a client domain publishes in its SEP-1
stellar.toml file.

See: https://github.com/stellar/stellar-protocol/blob/master/ecosystem/sep-0010.md#verifying-the-client-domain
"""
import requests
import toml
from requests import RequestException
from stellar_sdk.strkey import StrKey

from anchor.exceptions import ClientDomainError, ErrorKind
from anchor.utils import getLogger

TOML_PATH = "/.well-known/stellar.toml"

logger = getLogger(__name__)


def stellar_toml_url(domain: str, use_http: bool = False) -> str:
    protocol = "http://" if use_http else "https://"
    return f"{protocol}{domain}{TOML_PATH}"


def fetch_stellar_toml(domain: str, timeout: int, use_http: bool = False) -> dict:
    """
    Download and parse the stellar.toml file of ``domain``.

    :raises ClientDomainError: the file could not be downloaded, was not
        found, or is not valid TOML
    """
    not_found = f"client signing key not found for domain {domain}"
    url = stellar_toml_url(domain, use_http)
    logger.debug(f"fetching {url}")
    try:
        response = requests.get(url, timeout=timeout)
    except RequestException as e:
        raise ClientDomainError(
            ErrorKind.TOML_NOT_LOADED,
            f"{not_found} : Stellar toml could not be loaded: {e}",
            domain,
        )
    if response.status_code != 200:
        raise ClientDomainError(
            ErrorKind.TOML_NOT_FOUND,
            f"{not_found} : Stellar toml not found. Response status code "
            f"{response.status_code}",
            domain,
        )
    try:
        return toml.loads(response.text)
    except toml.TomlDecodeError as e:
        raise ClientDomainError(
            ErrorKind.TOML_UNPARSABLE,
            f"{not_found} : Stellar toml could not be parsed: {e}",
            domain,
        )


class ClientDomainResolver:
    def __init__(self, timeout: int = 3, use_http: bool = False, logger=None):
        self.timeout = timeout
        self.use_http = use_http
        self.logger = logger or getLogger(__name__)

    def signing_key(self, domain: str) -> str:
        """
        Return the ``SIGNING_KEY`` published by ``domain``.

        :raises ClientDomainError: the stellar.toml file could not be loaded,
            or its ``SIGNING_KEY`` is missing or not a valid public key
        """
        contents = fetch_stellar_toml(domain, self.timeout, self.use_http)
        signing_key = contents.get("SIGNING_KEY")
        if not signing_key:
            raise ClientDomainError(
                ErrorKind.SIGNING_KEY_MISSING,
                f"client signing key not found for domain {domain}",
                domain,
            )
        if not (
            isinstance(signing_key, str)
            and StrKey.is_valid_ed25519_public_key(signing_key)
        ):
            raise ClientDomainError(
                ErrorKind.SIGNING_KEY_INVALID,
                f"invalid SIGNING_KEY value on {domain} stellar.toml",
                domain,
            )
        self.logger.info(f"resolved SIGNING_KEY {signing_key} for {domain}")
        return signing_key

"""
Anchor-specific settings. This is not django.conf.settings.
"""
import os
import environ
from urllib.parse import urlparse
from django.conf import settings
from django.core.exceptions import ImproperlyConfigured
from stellar_sdk import Network
from stellar_sdk.server import Server
from stellar_sdk.keypair import Keypair
from stellar_sdk.exceptions import Ed25519SecretSeedInvalidError


def env_or_settings(variable, required=True, bool=False, list=False, int=False):
    try:
        if bool:
            return env.bool(variable)
        elif list:
            return env.list(variable)
        elif int:
            return env.int(variable)
        else:
            return env(variable)
    except ImproperlyConfigured as e:
        if hasattr(settings, "ANCHOR_" + variable):
            return getattr(settings, "ANCHOR_" + variable)
        elif required:
            raise e
        else:
            return None


env = environ.Env()
env_file = os.path.join(getattr(settings, "BASE_DIR", ""), ".env")
if os.path.exists(env_file):
    env.read_env(env_file)
elif hasattr(settings, "ANCHOR_ENV_PATH"):
    if os.path.exists(settings.ANCHOR_ENV_PATH):
        env.read_env(settings.ANCHOR_ENV_PATH)
    else:
        raise ImproperlyConfigured(
            f"Could not find env file at {settings.ANCHOR_ENV_PATH}"
        )

SIGNING_SEED = env_or_settings("SIGNING_SEED")
try:
    SIGNING_KEY = Keypair.from_secret(SIGNING_SEED).public_key
except (Ed25519SecretSeedInvalidError, ValueError, TypeError):
    raise ImproperlyConfigured("Invalid SIGNING_SEED")

SERVER_JWT_KEY = env_or_settings("SERVER_JWT_KEY")

STELLAR_NETWORK_PASSPHRASE = (
    env_or_settings("STELLAR_NETWORK_PASSPHRASE", required=False)
    or Network.TESTNET_NETWORK_PASSPHRASE
)

HORIZON_URI = (
    env_or_settings("HORIZON_URI", required=False)
    or "https://horizon-testnet.stellar.org"
)
if not HORIZON_URI.startswith("http"):
    raise ImproperlyConfigured("HORIZON_URI must include a protocol (http or https)")
HORIZON_SERVER = Server(horizon_url=HORIZON_URI)

LOCAL_MODE = env_or_settings("LOCAL_MODE", bool=True, required=False) or False

HOST_URL = env_or_settings("HOST_URL")
if not HOST_URL.startswith("http"):
    raise ImproperlyConfigured("HOST_URL must include a protocol (http or https)")
elif LOCAL_MODE and HOST_URL.startswith("https"):
    raise ImproperlyConfigured("HOST_URL uses HTTPS but LOCAL_MODE only supports HTTP")
elif not LOCAL_MODE and not HOST_URL.startswith("https"):
    raise ImproperlyConfigured("HOST_URL uses HTTP but LOCAL_MODE is off")

SEP10_HOME_DOMAINS = env_or_settings(
    "SEP10_HOME_DOMAINS", list=True, required=False
) or [urlparse(HOST_URL).netloc]
if any(d.startswith("http") for d in SEP10_HOME_DOMAINS):
    raise ImproperlyConfigured("SEP10_HOME_DOMAINS must only be hostnames")

SEP10_WEB_AUTH_DOMAIN = (
    env_or_settings("SEP10_WEB_AUTH_DOMAIN", required=False)
    or urlparse(HOST_URL).netloc
)

SEP10_WEB_AUTH_ENDPOINT = env_or_settings(
    "SEP10_WEB_AUTH_ENDPOINT", required=False
) or os.path.join(HOST_URL, "auth")

SEP10_AUTH_TIMEOUT = (
    env_or_settings("SEP10_AUTH_TIMEOUT", int=True, required=False) or 15 * 60
)
SEP10_JWT_TIMEOUT = (
    env_or_settings("SEP10_JWT_TIMEOUT", int=True, required=False) or 24 * 60 * 60
)
SEP10_TIMEBOUNDS_GRACE = env_or_settings(
    "SEP10_TIMEBOUNDS_GRACE", int=True, required=False
)
if SEP10_TIMEBOUNDS_GRACE is None:
    SEP10_TIMEBOUNDS_GRACE = 5 * 60

SEP10_CLIENT_ATTRIBUTION_REQUIRED = (
    env_or_settings("SEP10_CLIENT_ATTRIBUTION_REQUIRED", bool=True, required=False)
    or False
)
SEP10_CLIENT_ATTRIBUTION_REQUEST_TIMEOUT = (
    env_or_settings(
        "SEP10_CLIENT_ATTRIBUTION_REQUEST_TIMEOUT", int=True, required=False
    )
    or 3
)
SEP10_CLIENT_ATTRIBUTION_ALLOWLIST = env_or_settings(
    "SEP10_CLIENT_ATTRIBUTION_ALLOWLIST", list=True, required=False
)
SEP10_CLIENT_ATTRIBUTION_DENYLIST = env_or_settings(
    "SEP10_CLIENT_ATTRIBUTION_DENYLIST", list=True, required=False
)
SEP10_KNOWN_CUSTODIAL_ACCOUNTS = env_or_settings(
    "SEP10_KNOWN_CUSTODIAL_ACCOUNTS", list=True, required=False
)

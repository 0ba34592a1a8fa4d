"""
Configures Django for the test suites. The SEP-10 signing seed is generated
for every test session.
"""
import django
from django.conf import settings
from stellar_sdk import Keypair

SIGNING_SEED = Keypair.random().secret
SERVER_JWT_KEY = "a-test-secret-that-is-at-least-32-bytes-long"


def pytest_configure():
    settings.configure(
        SECRET_KEY="test",
        DEBUG=True,
        ALLOWED_HOSTS=["*"],
        INSTALLED_APPS=[
            "django.contrib.contenttypes",
            "django.contrib.auth",
            "rest_framework",
            "corsheaders",
            "anchor",
        ],
        MIDDLEWARE=[
            "corsheaders.middleware.CorsMiddleware",
            "django.middleware.common.CommonMiddleware",
        ],
        ROOT_URLCONF="anchor.urls",
        DATABASES={
            "default": {"ENGINE": "django.db.backends.sqlite3", "NAME": ":memory:"}
        },
        TEMPLATES=[
            {
                "BACKEND": "django.template.backends.django.DjangoTemplates",
                "APP_DIRS": True,
            }
        ],
        CORS_ALLOW_ALL_ORIGINS=True,
        ANCHOR_SIGNING_SEED=SIGNING_SEED,
        ANCHOR_SERVER_JWT_KEY=SERVER_JWT_KEY,
        ANCHOR_HOST_URL="http://testserver",
        ANCHOR_LOCAL_MODE=True,
    )
    django.setup()

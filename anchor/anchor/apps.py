from django.apps import AppConfig
from django.core.exceptions import ImproperlyConfigured


class AnchorConfig(AppConfig):
    name = "anchor"
    verbose_name = "Anchor SEP-10 Authentication"

    def ready(self):
        """
        Initialize the app
        """
        from anchor import settings  # loads internal settings
        from anchor import cors  # loads CORS signals
        from anchor.sep10.config import Sep10Config

        self.check_middleware()
        self.check_protocol()
        Sep10Config.from_settings(settings)

    @staticmethod
    def check_middleware():
        from django.conf import settings as django_settings

        cors_middleware_path = "corsheaders.middleware.CorsMiddleware"
        if cors_middleware_path not in django_settings.MIDDLEWARE:
            raise ImproperlyConfigured(
                f"{cors_middleware_path} is not installed in settings.MIDDLEWARE"
            )

    @staticmethod
    def check_protocol():
        from anchor import settings
        from anchor.utils import getLogger
        from django.conf import settings as django_settings

        logger = getLogger(__name__)
        if getattr(django_settings, "SECURE_PROXY_SSL_HEADER", None):
            logger.debug(
                "SECURE_PROXY_SSL_HEADER should only be set if the anchor is "
                "running behind an HTTPS reverse proxy."
            )
        elif not (
            settings.LOCAL_MODE
            or getattr(django_settings, "SECURE_SSL_REDIRECT", False)
        ):
            logger.debug(
                "SECURE_SSL_REDIRECT is required to redirect HTTP traffic to HTTPS"
            )

"""This module defines helpers shared by the SEP-10 endpoints."""
from logging import getLogger as get_logger, LoggerAdapter

from rest_framework import status
from rest_framework.response import Response


class AnchorLoggerAdapter(LoggerAdapter):
    def process(self, msg, kwargs):
        return f"{self.extra['python_path']}: {msg}", kwargs


def getLogger(name):
    return AnchorLoggerAdapter(get_logger(name), extra={"python_path": name})


def render_error_response(
    description: str,
    status_code: int = status.HTTP_400_BAD_REQUEST,
    content_type: str = "application/json",
) -> Response:
    """
    Renders an error response in Django.
    """
    return Response(
        {"error": description}, status=status_code, content_type=content_type
    )

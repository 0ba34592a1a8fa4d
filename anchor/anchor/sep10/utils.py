from rest_framework import status
from rest_framework.request import Request

from anchor import settings
from anchor.exceptions import InvalidSep10Token, TokenMalformed
from anchor.sep10.token import Sep10Jwt
from anchor.utils import getLogger, render_error_response

logger = getLogger(__name__)


def check_auth(request, func, *args, **kwargs):
    """
    Check SEP 10 authentication in a request.
    Else call the original view function.
    """
    try:
        token = validate_jwt_request(request)
    except InvalidSep10Token as e:
        logger.info(f"Rejected SEP-10 token: {e}")
        return render_error_response(str(e), status_code=status.HTTP_403_FORBIDDEN)
    return func(token, request, *args, **kwargs)


def validate_sep10_token():
    """Decorator to validate the SEP 10 token in a request."""

    def decorator(view):
        def wrapper(request, *args, **kwargs):
            return check_auth(request, view, *args, **kwargs)

        return wrapper

    return decorator


def validate_jwt_request(request: Request) -> Sep10Jwt:
    """
    Validate the JSON web token in a request and return the session it encodes

    :raises InvalidSep10Token: missing or invalid JWT
    """
    # Django exposes the "Authorization" header as "HTTP_AUTHORIZATION".
    jwt_header = request.META.get("HTTP_AUTHORIZATION")
    if not jwt_header:
        raise TokenMalformed("JWT must be passed as 'Authorization' header")
    bad_format_error = TokenMalformed(
        "'Authorization' header must be formatted as 'Bearer <token>'"
    )
    if "Bearer" not in jwt_header:
        raise bad_format_error
    try:
        encoded_jwt = jwt_header.split(" ")[1]
    except IndexError:
        raise bad_format_error
    if not encoded_jwt:
        raise bad_format_error
    return Sep10Jwt.validate(
        encoded_jwt, settings.SERVER_JWT_KEY, issuer=settings.SEP10_WEB_AUTH_ENDPOINT
    )

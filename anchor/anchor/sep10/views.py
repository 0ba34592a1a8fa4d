"""
This module implements the logic for the authentication endpoint, as per SEP 10.
This defines a standard way for wallets and anchors to create authenticated web sessions
on behalf of a user who holds a Stellar account.

See: https://github.com/stellar/stellar-protocol/blob/master/ecosystem/sep-0010.md
"""
from rest_framework.views import APIView
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.parsers import JSONParser, MultiPartParser, FormParser
from rest_framework.renderers import JSONRenderer, BrowsableAPIRenderer

from anchor import settings
from anchor.exceptions import ErrorKind, Sep10Error
from anchor.sep10.client_domain import ClientDomainResolver
from anchor.sep10.config import Sep10Config
from anchor.sep10.service import Sep10Service
from anchor.sep10.signers import HorizonSignerLoader
from anchor.utils import getLogger, render_error_response

INVALID_REQUEST_PREFIX = "Invalid request. "
PARSE_ERRORS = (ErrorKind.MISSING_FIELD, ErrorKind.INVALID_FIELD_TYPE)
logger = getLogger(__name__)


def get_service() -> Sep10Service:
    config = Sep10Config.from_settings(settings)
    return Sep10Service(
        config,
        signer_loader=HorizonSignerLoader(
            config.horizon_url, server=settings.HORIZON_SERVER, logger=logger
        ),
        client_domain_resolver=ClientDomainResolver(
            timeout=config.client_attribution_request_timeout,
            use_http=config.use_http,
            logger=logger,
        ),
        logger=logger,
    )


class SEP10Auth(APIView):
    """
    `GET /auth` can be used to get a challenge Stellar transaction.
    The client can then sign it using their private key and hit `POST /auth`
    to receive a JSON web token. That token can be used to authenticate calls
    to the other endpoints of the anchor.
    """

    parser_classes = [JSONParser, MultiPartParser, FormParser]
    renderer_classes = [JSONRenderer, BrowsableAPIRenderer]

    def get(self, request: Request, *_args, **_kwargs) -> Response:
        try:
            body = get_service().challenge(request.GET)
        except Sep10Error as e:
            logger.info(f"Rejected challenge request: {e.message}")
            if e.kind in PARSE_ERRORS:
                return render_error_response(
                    INVALID_REQUEST_PREFIX + e.message, status_code=e.status_code
                )
            return render_error_response(e.message, status_code=e.status_code)
        return Response(body)

    def post(self, request: Request, *_args, **_kwargs) -> Response:
        try:
            body = get_service().token(request.data)
        except Sep10Error as e:
            logger.info(f"Rejected challenge: {e.message}")
            return render_error_response(
                INVALID_REQUEST_PREFIX + e.message, status_code=e.status_code
            )
        return Response(body)

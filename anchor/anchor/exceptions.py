"""
Errors raised while issuing and verifying SEP-10 challenges.

Every failure carries an :class:`ErrorKind` so callers can branch on the
category of the failure, and a message that is returned verbatim to the
client in the ``{"error": ...}`` response body.
"""
from enum import Enum

from django.core.exceptions import ImproperlyConfigured
from rest_framework import status


class ErrorKind(Enum):
    # request parsing and policy
    MISSING_FIELD = "missing_field"
    INVALID_FIELD_TYPE = "invalid_field_type"
    UNSUPPORTED_HOME_DOMAIN = "unsupported_home_domain"
    INVALID_ACCOUNT = "invalid_account"
    INVALID_CLIENT_DOMAIN = "invalid_client_domain"
    CUSTODIAL_CLIENT_DOMAIN = "custodial_client_domain"
    CLIENT_DOMAIN_REQUIRED = "client_domain_required"
    CLIENT_DOMAIN_NOT_ALLOWED = "client_domain_not_allowed"
    MEMO_WITH_MUXED_ACCOUNT = "memo_with_muxed_account"
    INVALID_MEMO = "invalid_memo"

    # challenge structure
    UNPARSABLE_TRANSACTION = "unparsable_transaction"
    FEE_BUMP_TRANSACTION = "fee_bump_transaction"
    INVALID_SOURCE_ACCOUNT = "invalid_source_account"
    INVALID_SEQUENCE_NUMBER = "invalid_sequence_number"
    UNSUPPORTED_MEMO_TYPE = "unsupported_memo_type"
    MISSING_TIMEBOUNDS = "missing_timebounds"
    INFINITE_TIMEBOUNDS = "infinite_timebounds"
    OUTSIDE_TIMEBOUNDS = "outside_timebounds"
    MISSING_OPERATIONS = "missing_operations"
    INVALID_OPERATION_TYPE = "invalid_operation_type"
    MISSING_OPERATION_SOURCE = "missing_operation_source"
    UNRECOGNIZED_HOME_DOMAIN = "unrecognized_home_domain"
    MISSING_OPERATION_VALUE = "missing_operation_value"
    INVALID_NONCE = "invalid_nonce"
    UNRECOGNIZED_OPERATION = "unrecognized_operation"
    WEB_AUTH_DOMAIN_MISMATCH = "web_auth_domain_mismatch"

    # signatures
    NO_SIGNATURES = "no_signatures"
    MISSING_SERVER_SIGNATURE = "missing_server_signature"
    DUPLICATE_SERVER_SIGNATURE = "duplicate_server_signature"
    MISSING_CLIENT_SIGNATURE = "missing_client_signature"
    MISSING_CLIENT_DOMAIN_SIGNATURE = "missing_client_domain_signature"
    THRESHOLD_NOT_MET = "threshold_not_met"
    UNRECOGNIZED_SIGNATURES = "unrecognized_signatures"

    # external resolution
    TOML_NOT_LOADED = "toml_not_loaded"
    TOML_NOT_FOUND = "toml_not_found"
    TOML_UNPARSABLE = "toml_unparsable"
    SIGNING_KEY_MISSING = "signing_key_missing"
    SIGNING_KEY_INVALID = "signing_key_invalid"
    ACCOUNT_NOT_LOADED = "account_not_loaded"


class Sep10Error(Exception):
    """
    Base class of every per-request SEP-10 failure.

    ``str(error)`` is the message sent to the client.
    """

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, kind: ErrorKind, message: str):
        super().__init__(message)
        self.kind = kind
        self.message = message


class InvalidSepRequest(Sep10Error):
    pass


class SepNotAuthorized(Sep10Error):
    status_code = status.HTTP_403_FORBIDDEN


class ChallengeValidationError(Sep10Error):
    pass


class SignatureVerificationError(Sep10Error):
    pass


class ClientDomainError(Sep10Error):
    def __init__(self, kind: ErrorKind, message: str, domain: str):
        super().__init__(kind, message)
        self.domain = domain


class AccountNotLoaded(Sep10Error):
    pass


class InvalidConfig(ImproperlyConfigured):
    pass


class InvalidSep10Token(ValueError):
    """
    Raised when a SEP-10 JSON web token cannot be used to authenticate a
    request. Subclasses identify the reason.
    """


class TokenMalformed(InvalidSep10Token):
    pass


class TokenSignatureInvalid(InvalidSep10Token):
    pass


class TokenIssuerMismatch(InvalidSep10Token):
    pass


class TokenNotYetValid(InvalidSep10Token):
    pass


class TokenExpired(InvalidSep10Token):
    pass

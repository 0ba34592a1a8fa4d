"""
Structural and server-signature validation of client-signed challenge
transactions submitted to ``POST /auth``.

See: https://github.com/stellar/stellar-protocol/blob/master/ecosystem/sep-0010.md#verification
"""
import time
import base64
import binascii
from dataclasses import dataclass
from typing import List, Mapping, Optional, Tuple, Union

from stellar_sdk import (
    FeeBumpTransactionEnvelope,
    IdMemo,
    Keypair,
    MuxedAccount,
    NoneMemo,
    TransactionEnvelope,
)
from stellar_sdk.decorated_signature import DecoratedSignature
from stellar_sdk.operation import ManageData

from anchor.exceptions import (
    ChallengeValidationError,
    ErrorKind,
    InvalidSepRequest,
    SignatureVerificationError,
)
from anchor.sep10.challenge import CLIENT_DOMAIN_KEY, WEB_AUTH_DOMAIN_KEY, NONCE_BYTES
from anchor.sep10.config import Sep10Config
from anchor.sep10.signers import signature_is_valid
from anchor.utils import getLogger

ENCODED_NONCE_LENGTH = 64


@dataclass(frozen=True)
class ValidationRequest:
    """The body of ``POST /auth``."""

    transaction: str

    @classmethod
    def from_data(cls, data: Mapping) -> "ValidationRequest":
        if not isinstance(data, Mapping):
            raise InvalidSepRequest(ErrorKind.INVALID_FIELD_TYPE, "Invalid body.")
        transaction = data.get("transaction")
        if transaction is None or transaction == "":
            raise InvalidSepRequest(ErrorKind.MISSING_FIELD, "Transaction is not set")
        if not isinstance(transaction, str):
            raise InvalidSepRequest(
                ErrorKind.INVALID_FIELD_TYPE, "Invalid transaction. Must be string."
            )
        return cls(transaction=transaction)


@dataclass(frozen=True)
class ManageDataOp:
    name: str
    value: Optional[bytes]
    source: Optional[MuxedAccount]


@dataclass(frozen=True)
class OtherOp:
    type_name: str
    source: Optional[MuxedAccount]


ChallengeOp = Union[ManageDataOp, OtherOp]


def decode_operation(operation) -> ChallengeOp:
    if isinstance(operation, ManageData):
        return ManageDataOp(
            name=operation.data_name,
            value=operation.data_value,
            source=operation.source,
        )
    return OtherOp(type_name=type(operation).__name__, source=operation.source)


@dataclass(frozen=True)
class ValidatedChallenge:
    """
    A challenge that passed every structural check and carries exactly one
    valid server signature.

    ``client_account_id`` is the source of the first operation as the client
    requested it (G... or M...), ``account_id`` the underlying G... address.
    ``client_signatures`` holds every signature except the server's.
    """

    envelope: TransactionEnvelope
    client_account_id: str
    account_id: str
    muxed_id: Optional[int]
    memo: Optional[int]
    home_domain: str
    client_domain: Optional[str]
    client_domain_account_id: Optional[str]
    client_signatures: Tuple[DecoratedSignature, ...]

    @property
    def min_time(self) -> int:
        return self.envelope.transaction.preconditions.time_bounds.min_time

    @property
    def hash_hex(self) -> str:
        return self.envelope.hash_hex()


class ChallengeValidator:
    """
    Runs the ordered checks of a SEP-10 challenge. The checks form a linear
    sequence: the first failing check raises and nothing after it runs.
    """

    def __init__(self, config: Sep10Config, logger=None):
        self.config = config
        self.logger = logger or getLogger(__name__)

    def validate(
        self, envelope_xdr: str, now: Optional[int] = None
    ) -> ValidatedChallenge:
        envelope = self._parse(envelope_xdr)
        tx = envelope.transaction
        server_account_id = self.config.signing_key

        if tx.source.universal_account_id != server_account_id:
            raise ChallengeValidationError(
                ErrorKind.INVALID_SOURCE_ACCOUNT,
                "Transaction source account is not equal to server account.",
            )
        if tx.sequence != 0:
            raise ChallengeValidationError(
                ErrorKind.INVALID_SEQUENCE_NUMBER,
                "The transaction sequence number should be zero.",
            )
        memo = self._check_memo(tx.memo)
        self._check_timebounds(tx, now)

        operations = [decode_operation(op) for op in tx.operations]
        if not operations:
            raise ChallengeValidationError(
                ErrorKind.MISSING_OPERATIONS,
                "Transaction requires at least one ManageData operation.",
            )
        client_account, home_domain = self._check_first_operation(operations[0])
        if memo is not None and client_account.account_muxed_id is not None:
            raise ChallengeValidationError(
                ErrorKind.MEMO_WITH_MUXED_ACCOUNT,
                "Memos are not permitted if the client account is muxed.",
            )
        client_domain, client_domain_account_id = self._check_subsequent_operations(
            operations[1:]
        )
        client_signatures = self._check_server_signature(envelope)

        self.logger.debug(
            f"challenge {envelope.hash_hex()} is well formed and signed by the server"
        )
        return ValidatedChallenge(
            envelope=envelope,
            client_account_id=client_account.universal_account_id,
            account_id=client_account.account_id,
            muxed_id=client_account.account_muxed_id,
            memo=memo,
            home_domain=home_domain,
            client_domain=client_domain,
            client_domain_account_id=client_domain_account_id,
            client_signatures=client_signatures,
        )

    def _parse(self, envelope_xdr: str) -> TransactionEnvelope:
        passphrase = self.config.network_passphrase
        try:
            if FeeBumpTransactionEnvelope.is_fee_bump_transaction_envelope(
                envelope_xdr
            ):
                envelope = FeeBumpTransactionEnvelope.from_xdr(envelope_xdr, passphrase)
            else:
                envelope = TransactionEnvelope.from_xdr(envelope_xdr, passphrase)
        except Exception as e:
            raise ChallengeValidationError(
                ErrorKind.UNPARSABLE_TRANSACTION, "Transaction could not be parsed"
            ) from e
        if isinstance(envelope, FeeBumpTransactionEnvelope):
            raise ChallengeValidationError(
                ErrorKind.FEE_BUMP_TRANSACTION,
                "Transaction cannot be a fee bump transaction",
            )
        return envelope

    @staticmethod
    def _check_memo(memo) -> Optional[int]:
        if isinstance(memo, IdMemo):
            return memo.memo_id
        elif memo is None or isinstance(memo, NoneMemo):
            return None
        raise ChallengeValidationError(
            ErrorKind.UNSUPPORTED_MEMO_TYPE, "Only memo type `id` is supported"
        )

    def _check_timebounds(self, tx, now: Optional[int]):
        time_bounds = tx.preconditions.time_bounds if tx.preconditions else None
        if time_bounds is None:
            raise ChallengeValidationError(
                ErrorKind.MISSING_TIMEBOUNDS, "Transaction requires timebounds"
            )
        if time_bounds.max_time == 0:
            raise ChallengeValidationError(
                ErrorKind.INFINITE_TIMEBOUNDS,
                "Transaction requires non-infinite timebounds.",
            )
        if now is None:
            now = int(time.time())
        grace = self.config.timebounds_grace
        if not (
            time_bounds.min_time - grace <= now <= time_bounds.max_time + grace
        ):
            raise ChallengeValidationError(
                ErrorKind.OUTSIDE_TIMEBOUNDS,
                "Transaction is not within range of the specified timebounds.",
            )

    def _check_first_operation(self, operation: ChallengeOp):
        if not isinstance(operation, ManageDataOp):
            raise ChallengeValidationError(
                ErrorKind.INVALID_OPERATION_TYPE, "Operation type should be ManageData."
            )
        if operation.source is None:
            raise ChallengeValidationError(
                ErrorKind.MISSING_OPERATION_SOURCE,
                "Operation must have a source account.",
            )
        home_domain = next(
            (d for d in self.config.home_domains if f"{d} auth" == operation.name),
            None,
        )
        if home_domain is None:
            raise ChallengeValidationError(
                ErrorKind.UNRECOGNIZED_HOME_DOMAIN,
                "The transaction operation key name does not include one of the "
                "expected home domains.",
            )
        if operation.value is None:
            raise ChallengeValidationError(
                ErrorKind.MISSING_OPERATION_VALUE,
                "The transaction operation value should not be null.",
            )
        if len(operation.value) != ENCODED_NONCE_LENGTH:
            raise ChallengeValidationError(
                ErrorKind.INVALID_NONCE,
                "Random nonce encoded as base64 should be 64 bytes long.",
            )
        try:
            nonce = base64.b64decode(operation.value, validate=True)
        except (binascii.Error, ValueError):
            nonce = b""
        if len(nonce) != NONCE_BYTES:
            raise ChallengeValidationError(
                ErrorKind.INVALID_NONCE,
                "Random nonce before encoding as base64 should be 48 bytes long.",
            )
        return operation.source, home_domain

    def _check_subsequent_operations(self, operations: List[ChallengeOp]):
        client_domain, client_domain_account_id = None, None
        for operation in operations:
            if not isinstance(operation, ManageDataOp):
                raise ChallengeValidationError(
                    ErrorKind.INVALID_OPERATION_TYPE,
                    "Operation type should be ManageData.",
                )
            if operation.source is None:
                raise ChallengeValidationError(
                    ErrorKind.MISSING_OPERATION_SOURCE,
                    "Operation should have a source account.",
                )
            if operation.name not in (WEB_AUTH_DOMAIN_KEY, CLIENT_DOMAIN_KEY) or (
                operation.name != CLIENT_DOMAIN_KEY
                and operation.source.universal_account_id != self.config.signing_key
            ):
                raise ChallengeValidationError(
                    ErrorKind.UNRECOGNIZED_OPERATION,
                    "Subsequent operations are unrecognized.",
                )
            if operation.value is None:
                raise ChallengeValidationError(
                    ErrorKind.MISSING_OPERATION_VALUE,
                    f"{operation.name} operation value should not be null.",
                )
            value = operation.value.decode(errors="replace")
            if operation.name == WEB_AUTH_DOMAIN_KEY:
                if value != self.config.web_auth_domain:
                    raise ChallengeValidationError(
                        ErrorKind.WEB_AUTH_DOMAIN_MISMATCH,
                        "web_auth_domain operation value does not match "
                        f"{self.config.web_auth_domain}",
                    )
            else:
                client_domain = value
                client_domain_account_id = operation.source.account_id
        return client_domain, client_domain_account_id

    def _check_server_signature(
        self, envelope: TransactionEnvelope
    ) -> Tuple[DecoratedSignature, ...]:
        if not envelope.signatures:
            raise SignatureVerificationError(
                ErrorKind.NO_SIGNATURES, "Transaction has no signatures."
            )
        server_keypair = Keypair.from_public_key(self.config.signing_key)
        tx_hash = envelope.hash()
        server_signatures = [
            s
            for s in envelope.signatures
            if signature_is_valid(server_keypair, tx_hash, s)
        ]
        if not server_signatures:
            raise SignatureVerificationError(
                ErrorKind.MISSING_SERVER_SIGNATURE,
                f"Transaction not signed by server: {self.config.signing_key}",
            )
        if len(server_signatures) > 1:
            raise SignatureVerificationError(
                ErrorKind.DUPLICATE_SERVER_SIGNATURE,
                f"Invalid number of server signatures: {len(server_signatures)}",
            )
        return tuple(s for s in envelope.signatures if s is not server_signatures[0])

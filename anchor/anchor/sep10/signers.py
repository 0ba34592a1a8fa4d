"""
Resolution of account signers and verification of the signature weight a
challenge carries for an account.
"""
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

from stellar_sdk import Keypair
from stellar_sdk.decorated_signature import DecoratedSignature
from stellar_sdk.exceptions import (
    BadSignatureError,
    BaseRequestError,
    NotFoundError,
)
from stellar_sdk.server import Server

from anchor.exceptions import (
    AccountNotLoaded,
    ErrorKind,
    SignatureVerificationError,
)
from anchor.utils import getLogger

ED25519_SIGNER_TYPE = "ed25519_public_key"


def signature_is_valid(
    keypair: Keypair, tx_hash: bytes, signature: DecoratedSignature
) -> bool:
    try:
        keypair.verify(tx_hash, signature.signature)
    except (BadSignatureError, ValueError):
        return False
    return True


@dataclass(frozen=True)
class Signer:
    key: str
    weight: int


@dataclass(frozen=True)
class AccountSignerSet:
    """
    The Ed25519 signers of an account and the threshold their combined weight
    must meet. Signers with a weight of 0 (such as a disabled master key) are
    never included.
    """

    account_id: str
    signers: Tuple[Signer, ...]
    threshold: int

    @classmethod
    def from_horizon(cls, account_id: str, account_json: dict) -> "AccountSignerSet":
        signers = tuple(
            Signer(key=s["key"], weight=int(s["weight"]))
            for s in account_json.get("signers", [])
            if s.get("type") == ED25519_SIGNER_TYPE and int(s["weight"]) > 0
        )
        threshold = int(account_json["thresholds"]["med_threshold"])
        return cls(account_id=account_id, signers=signers, threshold=threshold)

    @classmethod
    def master_key_only(cls, account_id: str) -> "AccountSignerSet":
        """
        The signers of an account that does not exist on the network yet,
        which can only be controlled by its own keypair.
        """
        return cls(
            account_id=account_id,
            signers=(Signer(key=account_id, weight=1),),
            threshold=1,
        )


class HorizonSignerLoader:
    """
    Fetches signer sets from Horizon. Nothing is cached: a signer removed from
    an account must stop being accepted immediately.
    """

    def __init__(self, horizon_url: str, server: Optional[Server] = None, logger=None):
        self.horizon_url = horizon_url
        self.server = server or Server(horizon_url=horizon_url)
        self.logger = logger or getLogger(__name__)

    def load(self, account_id: str) -> AccountSignerSet:
        try:
            account_json = self.server.accounts().account_id(account_id).call()
        except NotFoundError:
            self.logger.info(
                f"Account {account_id} does not exist, using its master key to verify"
            )
            return AccountSignerSet.master_key_only(account_id)
        except BaseRequestError as e:
            raise AccountNotLoaded(
                ErrorKind.ACCOUNT_NOT_LOADED,
                f"Could not fetch account from horizon {self.horizon_url} Error: {e}",
            )
        return AccountSignerSet.from_horizon(account_id, account_json)


@dataclass(frozen=True)
class WeightResult:
    account_id: str
    weight: int
    threshold: int
    signers_found: Tuple[str, ...]


class SignatureWeightVerifier:
    """
    Attributes signatures over a transaction hash to the signers of one or
    more accounts.

    The verifier owns a pool of signatures. Every signature that is matched to
    a signer of an account is removed from the pool, so it cannot count
    towards the threshold of another account checked afterwards. Accounts are
    checked in the order :meth:`verify` is called.
    """

    def __init__(
        self, tx_hash: bytes, signatures: Iterable[DecoratedSignature], logger=None
    ):
        self.tx_hash = tx_hash
        self._unused: List[DecoratedSignature] = list(signatures)
        self.logger = logger or getLogger(__name__)

    @property
    def remaining(self) -> Tuple[DecoratedSignature, ...]:
        return tuple(self._unused)

    def verify(
        self,
        signer_set: AccountSignerSet,
        missing_kind: ErrorKind,
        missing_message: str,
    ) -> WeightResult:
        """
        Consume the signatures made by ``signer_set``'s signers and check
        their combined weight against the set's threshold.

        :raises SignatureVerificationError: no signature matched a signer, or
            the matched weight is below the threshold
        """
        weight, found = 0, []
        keypairs = [(s, Keypair.from_public_key(s.key)) for s in signer_set.signers]
        for signature in list(self._unused):
            for signer, keypair in keypairs:
                if signer.key in found:
                    continue
                if signature_is_valid(keypair, self.tx_hash, signature):
                    self._unused.remove(signature)
                    found.append(signer.key)
                    weight += signer.weight
                    break

        if not found:
            raise SignatureVerificationError(missing_kind, missing_message)
        if weight < signer_set.threshold:
            raise SignatureVerificationError(
                ErrorKind.THRESHOLD_NOT_MET,
                f"Signers with weight {weight} do not meet threshold "
                f"{signer_set.threshold}",
            )
        self.logger.debug(
            f"signers {found} of {signer_set.account_id} provided weight {weight}"
        )
        return WeightResult(
            account_id=signer_set.account_id,
            weight=weight,
            threshold=signer_set.threshold,
            signers_found=tuple(found),
        )

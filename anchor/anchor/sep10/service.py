"""
The SEP-10 orchestrator: issues challenges for ``GET /auth`` and exchanges
verified challenges for session tokens on ``POST /auth``.

The service holds nothing but its configuration and collaborators, so a
single instance can serve any number of requests.
"""
from typing import Mapping, Optional
from urllib.parse import urlparse

from anchor.exceptions import (
    ErrorKind,
    InvalidSepRequest,
    SepNotAuthorized,
    SignatureVerificationError,
)
from anchor.sep10.challenge import (
    ChallengeBuilder,
    ChallengeRequest,
    parse_memo,
    validate_account,
)
from anchor.sep10.client_domain import ClientDomainResolver
from anchor.sep10.config import Sep10Config
from anchor.sep10.signers import HorizonSignerLoader, SignatureWeightVerifier
from anchor.sep10.token import Sep10Jwt
from anchor.sep10.validator import (
    ChallengeValidator,
    ValidatedChallenge,
    ValidationRequest,
)
from anchor.utils import getLogger


class Sep10Service:
    def __init__(
        self,
        config: Sep10Config,
        signer_loader: Optional[HorizonSignerLoader] = None,
        client_domain_resolver: Optional[ClientDomainResolver] = None,
        logger=None,
    ):
        self.config = config
        self.logger = logger or getLogger(__name__)
        self.signer_loader = signer_loader or HorizonSignerLoader(
            config.horizon_url, logger=self.logger
        )
        self.client_domain_resolver = client_domain_resolver or ClientDomainResolver(
            timeout=config.client_attribution_request_timeout,
            use_http=config.use_http,
            logger=self.logger,
        )
        self.builder = ChallengeBuilder(config, logger=self.logger)
        self.validator = ChallengeValidator(config, logger=self.logger)

    ###############
    # GET functions
    ###############
    def challenge(self, params: Mapping) -> dict:
        """
        Validate the query parameters of ``GET /auth`` and return the response
        body containing a new challenge transaction.

        :raises Sep10Error: the request was rejected
        """
        request = ChallengeRequest.from_query_params(params)
        home_domain = self._resolve_home_domain(request.home_domain)
        validate_account(request.account)
        client_domain = self._resolve_client_domain(request)
        memo = parse_memo(request.account, request.memo)

        client_signing_key = None
        if client_domain:
            client_signing_key = self.client_domain_resolver.signing_key(client_domain)

        transaction = self.builder.build(
            account=request.account,
            home_domain=home_domain,
            memo=memo,
            client_domain=client_domain,
            client_signing_key=client_signing_key,
        )
        self.logger.info(f"Returning SEP-10 challenge for account {request.account}")
        return {
            "transaction": transaction,
            "network_passphrase": self.config.network_passphrase,
        }

    def _resolve_home_domain(self, home_domain: Optional[str]) -> str:
        if home_domain is None:
            return self.config.home_domains[0]
        elif home_domain not in self.config.home_domains:
            raise InvalidSepRequest(
                ErrorKind.UNSUPPORTED_HOME_DOMAIN,
                f"home_domain {home_domain} not supported",
            )
        return home_domain

    def _resolve_client_domain(self, request: ChallengeRequest) -> Optional[str]:
        """
        Apply the client attribution policy and return the client domain to
        include in the challenge, if any.
        """
        client_domain = request.client_domain
        if (
            client_domain
            and urlparse(f"https://{client_domain}").netloc != client_domain
        ):
            raise InvalidSepRequest(
                ErrorKind.INVALID_CLIENT_DOMAIN,
                "client_domain must be a valid hostname",
            )

        custodial = request.account in self.config.known_custodial_accounts
        if custodial:
            if client_domain:
                raise InvalidSepRequest(
                    ErrorKind.CUSTODIAL_CLIENT_DOMAIN,
                    "client_domain must not be specified if the account is an "
                    "custodial-wallet account",
                )
            return None

        required = self.config.client_attribution_required
        if required and not client_domain:
            raise InvalidSepRequest(
                ErrorKind.CLIENT_DOMAIN_REQUIRED, "client_domain is required"
            )
        if client_domain and not self._client_domain_allowed(client_domain):
            self.logger.info(f"client_domain {client_domain} is not allowed")
            raise SepNotAuthorized(
                ErrorKind.CLIENT_DOMAIN_NOT_ALLOWED, "unable to process"
            )
        return client_domain

    def _client_domain_allowed(self, client_domain: str) -> bool:
        denylist = self.config.client_attribution_denylist
        allowlist = self.config.client_attribution_allowlist
        if denylist and client_domain in denylist:
            return False
        if allowlist is not None and client_domain not in allowlist:
            return False
        return True

    ################
    # POST functions
    ################
    def token(self, data: Mapping) -> dict:
        """
        Verify the challenge in the body of ``POST /auth`` and return the
        response body containing the session token.

        :raises Sep10Error: the challenge was rejected
        """
        request = ValidationRequest.from_data(data)
        self.logger.info("Validating challenge transaction")
        challenge = self.validator.validate(request.transaction)
        self.verify_signatures(challenge)
        return {"token": self.generate_jwt(challenge).sign(self.config.jwt_key)}

    def verify_signatures(self, challenge: ValidatedChallenge):
        """
        Check that the client account's signers, and the client domain's
        signers when a ``client_domain`` operation is present, signed the
        challenge with enough weight. The client account is checked first; a
        signature counted for it is not available to the client domain.
        """
        verifier = SignatureWeightVerifier(
            challenge.envelope.hash(), challenge.client_signatures, logger=self.logger
        )
        client_signers = self.signer_loader.load(challenge.account_id)
        result = verifier.verify(
            client_signers,
            ErrorKind.MISSING_CLIENT_SIGNATURE,
            "Invalid number of valid client account signatures: 0",
        )
        self.logger.info(
            f"Challenge verified using account signers: {list(result.signers_found)}"
        )

        if challenge.client_domain_account_id:
            client_domain_signers = self.signer_loader.load(
                challenge.client_domain_account_id
            )
            verifier.verify(
                client_domain_signers,
                ErrorKind.MISSING_CLIENT_DOMAIN_SIGNATURE,
                "Invalid number of valid client domain account signatures: 0",
            )

        if verifier.remaining:
            raise SignatureVerificationError(
                ErrorKind.UNRECOGNIZED_SIGNATURES,
                "Transaction has unrecognized signatures.",
            )

    def generate_jwt(self, challenge: ValidatedChallenge) -> Sep10Jwt:
        """
        Build the session for a verified challenge.

        See: https://github.com/stellar/stellar-protocol/blob/master/ecosystem/sep-0010.md#token
        """
        self.logger.info(
            f"Generating SEP-10 token for account {challenge.client_account_id}"
        )
        # iat is the minimum time bound so the token for a given challenge is
        # always the same
        issued_at = challenge.min_time
        if challenge.muxed_id is not None or challenge.memo is None:
            sub = challenge.client_account_id
        else:
            sub = f"{challenge.client_account_id}:{challenge.memo}"
        return Sep10Jwt(
            iss=self.config.web_auth_endpoint,
            sub=sub,
            iat=issued_at,
            exp=issued_at + self.config.jwt_timeout,
            jti=challenge.hash_hex,
            home_domain=challenge.home_domain,
            client_domain=challenge.client_domain,
        )

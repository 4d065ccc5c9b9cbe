"""Simulated in-memory transport.

An offline stand-in for a real ACME server.  Accounts, authorizations
and challenges live in process memory; challenges become valid after
a configurable number of polls and certificates are issued by a
throwaway self-signed CA.  Used for dry runs of a configuration and
by the test suite.

Configuration name: ``simulated``.  Options (``transport.options``):

- ``validate_after_polls``: refreshes before a triggered challenge
  turns valid (default 1)
- ``fail_domains``: domains whose challenges turn invalid instead
- ``offered_types``: challenge types offered per authorization
  (default: all known types)
- ``agreement_uri``: terms of service URI for new accounts
- ``preauthorized_domains``: domains whose challenges start valid
"""

from __future__ import annotations

import logging
import secrets
import threading
from dataclasses import replace
from typing import TYPE_CHECKING, Any

from cryptography import x509
from cryptography.hazmat.primitives.asymmetric import ec

from acmedrive.core.proofs import key_authorization
from acmedrive.core.types import (
    AccountStatus,
    AuthorizationStatus,
    ChallengeStatus,
    ChallengeType,
)
from acmedrive.crypto.certs import certificate_to_pem, self_signed_certificate, sign_csr
from acmedrive.models import (
    Account,
    AlreadyExists,
    Authorization,
    Challenge,
    Created,
    Credential,
    RegistrationResult,
    SigningRequest,
)
from acmedrive.transport.base import AcmeTransport, TransportError

if TYPE_CHECKING:
    from acmedrive.config.settings import TransportSettings

log = logging.getLogger(__name__)

_DEFAULT_AGREEMENT_URI = "https://simulated.invalid/terms"


class SimulatedTransport(AcmeTransport):
    """In-memory ACME server simulation.

    Thread-safe: the concurrent coordinator polls several challenges
    from worker threads, so every state change happens under one lock.
    """

    def __init__(self, settings: TransportSettings) -> None:
        super().__init__(settings)
        opts: dict[str, Any] = dict(settings.options or {})
        self._validate_after = int(opts.get("validate_after_polls", 1))
        self._fail_domains = frozenset(opts.get("fail_domains", ()))
        self._preauthorized = frozenset(opts.get("preauthorized_domains", ()))
        self._offered = tuple(
            ChallengeType(t) for t in opts.get("offered_types", [t.value for t in ChallengeType])
        )
        self._agreement_uri = opts.get("agreement_uri", _DEFAULT_AGREEMENT_URI)

        self._lock = threading.Lock()
        self._accounts: dict[str, Account] = {}
        self._by_thumbprint: dict[str, str] = {}
        self._challenge_domains: dict[str, str] = {}
        self._challenges: dict[str, Challenge] = {}
        self._polls: dict[str, int] = {}
        self._certificates: dict[str, tuple[str, list[str]]] = {}

        self._ca_key = ec.generate_private_key(ec.SECP256R1())
        self._ca_cert = self_signed_certificate(
            self._ca_key,
            ["simulated-root.acmedrive.invalid"],
            validity_days=365,
            ca=True,
        )

    def _url(self, kind: str) -> str:
        base = self.directory_url.rstrip("/")
        return f"{base}/{kind}/{secrets.token_hex(8)}"

    # -- account ------------------------------------------------------------

    def register(self, credential: Credential) -> RegistrationResult:
        with self._lock:
            existing = self._by_thumbprint.get(credential.thumbprint)
            if existing is not None:
                log.debug("Simulated: credential already registered at %s", existing)
                return AlreadyExists(existing)

            account = Account(
                location=self._url("acct"),
                public_key_thumbprint=credential.thumbprint,
                status=AccountStatus.VALID,
                agreement_accepted=False,
                agreement_uri=self._agreement_uri,
            )
            self._accounts[account.location] = account
            self._by_thumbprint[credential.thumbprint] = account.location
            return Created(account)

    def bind(self, location: str) -> Account:
        with self._lock:
            account = self._accounts.get(location)
        if account is None:
            msg = f"No account at {location}"
            raise TransportError(msg)
        return account

    def accept_agreement(self, account: Account, agreement_uri: str) -> Account:
        with self._lock:
            if account.location not in self._accounts:
                msg = f"No account at {account.location}"
                raise TransportError(msg)
            updated = replace(
                self._accounts[account.location],
                agreement_accepted=True,
                agreement_uri=agreement_uri,
            )
            self._accounts[account.location] = updated
            return updated

    # -- authorization ------------------------------------------------------

    def authorize_domain(self, account: Account, domain: str) -> Authorization:
        with self._lock:
            stored = self._accounts.get(account.location)
            if stored is None or not stored.agreement_accepted:
                msg = f"Account {account.location} has not accepted the agreement"
                raise TransportError(msg)

            preauthorized = domain in self._preauthorized
            status = ChallengeStatus.VALID if preauthorized else ChallengeStatus.PENDING
            challenges = []
            for ctype in self._offered:
                token = secrets.token_urlsafe(32)
                challenge = Challenge(
                    type=ctype,
                    token=token,
                    location=self._url("chall"),
                    status=status,
                    key_authorization=key_authorization(token, account.public_key_thumbprint),
                )
                self._challenges[challenge.location] = challenge
                self._challenge_domains[challenge.location] = domain
                self._polls[challenge.location] = 0
                challenges.append(challenge)

            return Authorization(
                domain=domain,
                location=self._url("authz"),
                status=(
                    AuthorizationStatus.VALID if preauthorized else AuthorizationStatus.PENDING
                ),
                challenges=tuple(challenges),
            )

    def trigger(self, challenge: Challenge) -> Challenge:
        with self._lock:
            current = self._lookup(challenge.location)
            if current.status == ChallengeStatus.PENDING:
                current = replace(current, status=ChallengeStatus.PROCESSING)
                self._challenges[current.location] = current
            return current

    def refresh(self, challenge: Challenge) -> Challenge:
        with self._lock:
            current = self._lookup(challenge.location)
            if current.status != ChallengeStatus.PROCESSING:
                return current

            self._polls[current.location] += 1
            if self._polls[current.location] >= self._validate_after:
                domain = self._challenge_domains[current.location]
                if domain in self._fail_domains:
                    current = replace(
                        current,
                        status=ChallengeStatus.INVALID,
                        error={
                            "type": "urn:ietf:params:acme:error:incorrectResponse",
                            "detail": f"Simulated validation failure for {domain}",
                        },
                    )
                else:
                    current = replace(current, status=ChallengeStatus.VALID)
                self._challenges[current.location] = current
            return current

    def _lookup(self, location: str) -> Challenge:
        current = self._challenges.get(location)
        if current is None:
            msg = f"No challenge at {location}"
            raise TransportError(msg)
        return current

    # -- certificate --------------------------------------------------------

    def request_certificate(self, account: Account, signing_request: SigningRequest) -> str:
        with self._lock:
            valid_domains = {
                self._challenge_domains[loc]
                for loc, ch in self._challenges.items()
                if ch.status == ChallengeStatus.VALID
            }
        missing = [d for d in signing_request.domains if d not in valid_domains]
        if missing:
            msg = f"Unauthorized domains in signing request: {', '.join(missing)}"
            raise TransportError(msg)

        try:
            csr = x509.load_der_x509_csr(signing_request.der)
            leaf = sign_csr(csr, self._ca_cert, self._ca_key)
        except (ValueError, x509.ExtensionNotFound) as exc:
            msg = f"Rejected signing request: {exc}"
            raise TransportError(msg) from exc

        location = self._url("cert")
        with self._lock:
            self._certificates[location] = (
                certificate_to_pem(leaf),
                [certificate_to_pem(self._ca_cert)],
            )
        return location

    def download_certificate(self, location: str) -> str:
        return self._certificate(location)[0]

    def download_chain(self, location: str) -> list[str]:
        return list(self._certificate(location)[1])

    def _certificate(self, location: str) -> tuple[str, list[str]]:
        with self._lock:
            entry = self._certificates.get(location)
        if entry is None:
            msg = f"No certificate at {location}"
            raise TransportError(msg)
        return entry

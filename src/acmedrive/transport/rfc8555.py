"""RFC 8555 transport backed by the ``acme`` client library.

Talks to a live ACME server (Let's Encrypt, or any RFC 8555 CA)
through ``acme.client.ClientV2``.  The library owns the wire protocol:
JWS signing, nonces, directory discovery and the order finalisation
loop.  This module only maps its resources onto the engine's models.

Configuration name: ``acme``.  Options (``transport.options``):

- ``email``: contact address sent with a new account
- ``verify_ssl``: verify the server certificate (default ``true``)
- ``user_agent``: HTTP user agent (default ``acmedrive/<version>``)
- ``finalize_timeout_seconds``: how long to wait for the final order
  to become valid (default 90)

RFC 8555 creates an account and records the terms of service
agreement in one request.  :meth:`RFC8555Transport.register` therefore
only asks whether the account key is already known; the account itself
is created by :meth:`RFC8555Transport.accept_agreement`.

Authorizations belong to orders in RFC 8555.  Each domain is authorized
through its own single-name order, and :meth:`request_certificate`
opens the final order for every domain.  The server reuses the valid
authorizations for that order.

The library client is stateful (nonces, the bound account), so every
call is serialised with a lock.
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Any

import josepy as jose
import requests
from acme import client as acme_client
from acme import errors as acme_errors
from acme import messages
from cryptography import x509
from cryptography.hazmat.primitives.asymmetric import ec, rsa

from acmedrive import __version__
from acmedrive.core.proofs import key_authorization
from acmedrive.core.types import (
    AccountStatus,
    AuthorizationStatus,
    ChallengeStatus,
    ChallengeType,
)
from acmedrive.crypto.certs import certificate_to_pem
from acmedrive.crypto.csr import CsrBuilder
from acmedrive.crypto.keys import ACCOUNT_KEY, DOMAIN_KEY, credential_for
from acmedrive.models import (
    Account,
    AlreadyExists,
    Authorization,
    Challenge,
    Created,
    RegistrationResult,
)
from acmedrive.transport.base import AcmeTransport, TransportError

if TYPE_CHECKING:
    from collections.abc import Iterator

    from cryptography.hazmat.primitives.asymmetric.types import PrivateKeyTypes

    from acmedrive.config.settings import TransportSettings
    from acmedrive.models import Credential, SigningRequest

log = logging.getLogger(__name__)

# acme:// shorthands for well-known directories
DIRECTORY_ALIASES: dict[str, str] = {
    "acme://letsencrypt.org": "https://acme-v02.api.letsencrypt.org/directory",
    "acme://letsencrypt.org/staging": "https://acme-staging-v02.api.letsencrypt.org/directory",
}

_RETRYABLE_CODES = frozenset({"rateLimited", "serverInternal", "badNonce"})


def resolve_directory_url(url: str) -> str:
    """Expand an ``acme://`` alias to its HTTPS directory URL."""
    resolved = DIRECTORY_ALIASES.get(url.rstrip("/"), url)
    if resolved.startswith("acme://"):
        msg = f"Unknown ACME directory alias '{url}'; known: {sorted(DIRECTORY_ALIASES)}"
        raise TransportError(msg)
    return resolved


def _jwk_for(key: PrivateKeyTypes) -> tuple[jose.JWK, jose.JWASignature]:
    if isinstance(key, rsa.RSAPrivateKey):
        return jose.JWKRSA(key=key), jose.RS256
    if isinstance(key, ec.EllipticCurvePrivateKey) and isinstance(key.curve, ec.SECP256R1):
        return jose.JWKEC(key=key), jose.ES256
    msg = f"Unsupported account key type: {type(key).__name__}"
    raise TransportError(msg)


def _is_retryable(exc: Exception) -> bool:
    """Guess whether a library failure is transient."""
    if isinstance(exc, messages.Error):
        return exc.code in _RETRYABLE_CODES
    if isinstance(exc, requests.exceptions.RequestException):
        return True
    exc_name = type(exc).__name__.lower()
    msg = str(exc).lower()
    return any(p in exc_name or p in msg for p in ("timeout", "connection", "503", "429"))


def _status(enum_cls: type, status: Any, fallback: Any) -> Any:
    name = getattr(status, "name", status)
    try:
        return enum_cls(name)
    except ValueError:
        return fallback


class RFC8555Transport(AcmeTransport):
    """Transport that drives a live ACME server through ``acme.client``."""

    def __init__(self, settings: TransportSettings) -> None:
        super().__init__(settings)
        opts: dict[str, Any] = dict(settings.options or {})
        self._email: str | None = opts.get("email")
        self._verify_ssl = bool(opts.get("verify_ssl", True))
        self._user_agent = opts.get("user_agent", f"acmedrive/{__version__}")
        self._finalize_timeout = float(opts.get("finalize_timeout_seconds", 90))

        self._lock = threading.RLock()
        self._client: Any = None
        self._jwk: jose.JWK | None = None
        self._thumbprint: str | None = None
        # challenge location -> (authorization resource, challenge body)
        self._challenges: dict[str, tuple[Any, Any]] = {}
        # certificate location -> (leaf PEM, chain PEMs)
        self._certificates: dict[str, tuple[str, list[str]]] = {}

    # -- session ------------------------------------------------------------

    def _key(self, identifier: str) -> PrivateKeyTypes:
        if self._key_provider is None:
            msg = "The acme transport needs a key provider; call use_key_provider() first"
            raise TransportError(msg)
        return self._key_provider.load_or_generate(identifier)

    def _acme(self) -> Any:
        """Return the library client, connecting on first use."""
        with self._lock:
            if self._client is None:
                account_key = self._key(ACCOUNT_KEY)
                self._jwk, alg = _jwk_for(account_key)
                self._thumbprint = credential_for(account_key).thumbprint
                url = resolve_directory_url(self.directory_url)
                with self._errors("Directory discovery"):
                    net = acme_client.ClientNetwork(
                        self._jwk,
                        alg=alg,
                        verify_ssl=self._verify_ssl,
                        user_agent=self._user_agent,
                    )
                    directory = acme_client.ClientV2.get_directory(url, net)
                    self._client = acme_client.ClientV2(directory, net)
                log.info("ACME: connected to %s", url)
            return self._client

    @contextmanager
    def _errors(self, action: str) -> Iterator[None]:
        try:
            yield
        except (acme_errors.Error, requests.exceptions.RequestException) as exc:
            msg = f"{action} failed ({type(exc).__name__}): {exc}"
            raise TransportError(msg, retryable=_is_retryable(exc)) from exc

    def close(self) -> None:
        with self._lock:
            if self._client is not None:
                self._client.net.session.close()
                self._client = None

    # -- account ------------------------------------------------------------

    def register(self, credential: Credential) -> RegistrationResult:
        client = self._acme()
        with self._lock:
            try:
                client.new_account(messages.NewRegistration(only_return_existing=True))
            except acme_errors.ConflictError as exc:
                log.debug("ACME: account key already registered at %s", exc.location)
                return AlreadyExists(exc.location)
            except messages.Error as exc:
                if not str(exc.typ).endswith(":accountDoesNotExist"):
                    msg = f"Account lookup failed: {exc}"
                    raise TransportError(msg, retryable=_is_retryable(exc)) from exc
            except (acme_errors.Error, requests.exceptions.RequestException) as exc:
                msg = f"Account lookup failed ({type(exc).__name__}): {exc}"
                raise TransportError(msg, retryable=_is_retryable(exc)) from exc
            else:
                msg = "Server returned a new account for an onlyReturnExisting lookup"
                raise TransportError(msg)

            # Created on the server once the agreement is committed
            return Created(
                Account(
                    location=client.directory["newAccount"],
                    public_key_thumbprint=credential.thumbprint,
                    status=AccountStatus.VALID,
                    agreement_accepted=False,
                    agreement_uri=client.directory.meta.terms_of_service,
                ),
            )

    def bind(self, location: str) -> Account:
        client = self._acme()
        with self._lock, self._errors(f"Binding to account {location}"):
            regr = client.query_registration(
                messages.RegistrationResource(uri=location, body=messages.Registration()),
            )
        return self._account_from(regr)

    def accept_agreement(self, account: Account, agreement_uri: str) -> Account:
        client = self._acme()
        registration = messages.NewRegistration.from_data(
            email=self._email,
            terms_of_service_agreed=True,
        )
        with self._lock:
            try:
                regr = client.new_account(registration)
            except acme_errors.ConflictError as exc:
                log.info("ACME: account appeared at %s meanwhile, binding to it", exc.location)
                return self.bind(exc.location)
            except (acme_errors.Error, requests.exceptions.RequestException) as exc:
                msg = f"Account creation failed ({type(exc).__name__}): {exc}"
                raise TransportError(msg, retryable=_is_retryable(exc)) from exc
        log.info("ACME: created account %s (terms %s)", regr.uri, agreement_uri or "none")
        return self._account_from(regr, agreement_uri=agreement_uri or None)

    def _account_from(self, regr: Any, agreement_uri: str | None = None) -> Account:
        status = _status(AccountStatus, regr.body.status or "valid", AccountStatus.DEACTIVATED)
        return Account(
            location=regr.uri,
            public_key_thumbprint=self._thumbprint or "",
            status=status,
            # An RFC 8555 account only exists once its terms were agreed to
            agreement_accepted=status == AccountStatus.VALID,
            agreement_uri=agreement_uri,
        )

    # -- authorization ------------------------------------------------------

    def authorize_domain(self, account: Account, domain: str) -> Authorization:
        client = self._acme()
        # Only the identifiers are read from this CSR; it is never finalised
        csr_pem = CsrBuilder().build([domain], self._key(DOMAIN_KEY)).pem.encode("ascii")
        with self._lock, self._errors(f"Order for {domain}"):
            order = client.new_order(csr_pem)
        if not order.authorizations:
            msg = f"Order {order.uri} for {domain} carries no authorization"
            raise TransportError(msg)
        return self._remember(order.authorizations[0])

    def trigger(self, challenge: Challenge) -> Challenge:
        client = self._acme()
        authzr, challb = self._lookup(challenge.location)
        with self._lock, self._errors(f"Triggering {challenge.location}"):
            resource = client.answer_challenge(challb, challb.response(self._jwk))
            self._challenges[challenge.location] = (authzr, resource.body)
        return self._challenge_from(resource.body)

    def refresh(self, challenge: Challenge) -> Challenge:
        client = self._acme()
        authzr, _ = self._lookup(challenge.location)
        with self._lock, self._errors(f"Polling {authzr.uri}"):
            updated, _response = client.poll(authzr)
        self._remember(updated)
        _, challb = self._lookup(challenge.location)
        return self._challenge_from(challb)

    def _lookup(self, location: str) -> tuple[Any, Any]:
        with self._lock:
            entry = self._challenges.get(location)
        if entry is None:
            msg = f"No challenge at {location}"
            raise TransportError(msg)
        return entry

    def _remember(self, authzr: Any) -> Authorization:
        challenges = []
        with self._lock:
            for challb in authzr.body.challenges:
                challenge = self._challenge_from(challb)
                if challenge is None:
                    continue
                self._challenges[challenge.location] = (authzr, challb)
                challenges.append(challenge)
        return Authorization(
            domain=authzr.body.identifier.value,
            location=authzr.uri,
            status=_status(AuthorizationStatus, authzr.body.status, AuthorizationStatus.INVALID),
            challenges=tuple(challenges),
        )

    def _challenge_from(self, challb: Any) -> Challenge | None:
        try:
            ctype = ChallengeType(challb.chall.typ)
        except ValueError:
            log.debug("ACME: skipping unsupported challenge type %s", challb.chall.typ)
            return None
        token = challb.chall.encode("token")
        error = None
        if challb.error is not None:
            error = {"type": challb.error.typ, "detail": challb.error.detail}
        return Challenge(
            type=ctype,
            token=token,
            location=challb.uri,
            status=_status(ChallengeStatus, challb.status, ChallengeStatus.INVALID),
            key_authorization=key_authorization(token, self._thumbprint or ""),
            error=error,
        )

    # -- certificate --------------------------------------------------------

    def request_certificate(self, account: Account, signing_request: SigningRequest) -> str:
        client = self._acme()
        # The library compares against a naive local deadline
        deadline = datetime.now() + timedelta(seconds=self._finalize_timeout)  # noqa: DTZ005
        with self._lock, self._errors("Certificate order"):
            order = client.new_order(signing_request.pem.encode("ascii"))
            order = client.finalize_order(order, deadline)

        try:
            certs = x509.load_pem_x509_certificates(order.fullchain_pem.encode("ascii"))
        except ValueError as exc:
            msg = f"Server returned an unreadable certificate chain: {exc}"
            raise TransportError(msg) from exc
        if not certs:
            msg = f"Order {order.uri} returned no certificate"
            raise TransportError(msg)

        location = order.body.certificate or order.uri
        pems = [certificate_to_pem(cert) for cert in certs]
        with self._lock:
            self._certificates[location] = (pems[0], pems[1:])
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

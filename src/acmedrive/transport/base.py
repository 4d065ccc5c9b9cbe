"""Abstract base class for ACME transports.

A transport is the session context the engine talks through: it is
bound to one service endpoint and one account credential, and it owns
everything below the orchestration layer (request signing, nonces,
payload construction).  The engine treats it as an opaque capability
and never inspects its internals.

All transports (built-in and custom) must inherit from
:class:`AcmeTransport` and implement every abstract method.  Failures
are reported by raising :class:`TransportError`; the engine never
retries them.
"""

from __future__ import annotations

import abc
import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from acmedrive.config.settings import TransportSettings
    from acmedrive.crypto.keys import KeyPairProvider
    from acmedrive.models import (
        Account,
        Authorization,
        Challenge,
        Credential,
        RegistrationResult,
        SigningRequest,
    )

log = logging.getLogger(__name__)


class TransportError(Exception):
    """Raised by transports on network or protocol-level failure.

    Parameters
    ----------
    detail:
        Human-readable description of the failure.
    retryable:
        Whether the failure is transient and the operation may be retried
        by the caller in a new run.

    """

    def __init__(self, detail: str, *, retryable: bool = False) -> None:
        self.detail = detail
        self.retryable = retryable
        super().__init__(detail)


class AcmeTransport(abc.ABC):
    """Base class for all transport implementations.

    Parameters
    ----------
    settings:
        The ``transport`` configuration section.

    """

    def __init__(self, settings: TransportSettings) -> None:
        self._settings = settings
        self._key_provider: KeyPairProvider | None = None

    @property
    def directory_url(self) -> str:
        return self._settings.directory_url

    def use_key_provider(self, provider: KeyPairProvider) -> None:
        """Hand over the source of the account and domain key pairs.

        Transports that sign their own requests load the account key
        from it.  Others ignore it.
        """
        self._key_provider = provider

    # -- account ------------------------------------------------------------

    @abc.abstractmethod
    def register(self, credential: Credential) -> RegistrationResult:
        """Attempt to create a new account for *credential*.

        Returns
        -------
        RegistrationResult
            :class:`~acmedrive.models.Created` with the new account, or
            :class:`~acmedrive.models.AlreadyExists` carrying the
            location of the account the credential is already bound to.

        """

    @abc.abstractmethod
    def bind(self, location: str) -> Account:
        """Bind the session to the existing account at *location*."""

    @abc.abstractmethod
    def accept_agreement(self, account: Account, agreement_uri: str) -> Account:
        """Commit the agreement acceptance and return the updated account.

        Must be a single request: either the server records the
        acceptance and the updated account is returned, or it raises.
        """

    # -- authorization ------------------------------------------------------

    @abc.abstractmethod
    def authorize_domain(self, account: Account, domain: str) -> Authorization:
        """Request (or fetch) the authorization for *domain*."""

    @abc.abstractmethod
    def trigger(self, challenge: Challenge) -> Challenge:
        """Tell the server the client is ready for validation.

        One-shot and not idempotent.  Returns the challenge as reported
        by the server after the trigger.
        """

    @abc.abstractmethod
    def refresh(self, challenge: Challenge) -> Challenge:
        """Re-fetch the challenge and return its current state."""

    # -- certificate --------------------------------------------------------

    @abc.abstractmethod
    def request_certificate(self, account: Account, signing_request: SigningRequest) -> str:
        """Submit the signing request; return the certificate location."""

    @abc.abstractmethod
    def download_certificate(self, location: str) -> str:
        """Download the PEM leaf certificate at *location*."""

    @abc.abstractmethod
    def download_chain(self, location: str) -> list[str]:
        """Download the PEM issuing chain of the certificate at *location*."""

    def close(self) -> None:  # noqa: B027
        """Release any session resources.  Default implementation is a no-op."""

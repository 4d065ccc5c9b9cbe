"""Top-level issuance workflow.

:class:`IssuanceCoordinator` runs one issuance end to end, in a fixed
order:

1. resolve the account (register, or bind to the existing one)
2. authorize every requested domain, stopping at the first failure
3. build the signing request and hand it to the certificate store
4. submit it, download the leaf and its chain
5. persist the chain

No signing request is ever submitted unless every domain is
authorized.  With ``issuance.concurrent_domains`` the domains are
authorized on a thread pool; the first failure cancels the remaining
domains and is re-raised once all workers have returned.
"""

from __future__ import annotations

import logging
import uuid
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import TYPE_CHECKING

from acmedrive.core.cancellation import CancellationToken
from acmedrive.core.errors import AccountUnusable, AgreementDeclined, AuthorizationFailed
from acmedrive.crypto.keys import ACCOUNT_KEY, DOMAIN_KEY, credential_for
from acmedrive.logging.setup import issuance_context
from acmedrive.models import Certificate

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from cryptography.hazmat.primitives.asymmetric.types import CertificateIssuerPrivateKeyTypes

    from acmedrive.config.settings import IssuanceSettings
    from acmedrive.crypto.csr import CsrBuilder
    from acmedrive.crypto.keys import KeyPairProvider
    from acmedrive.models import Account, Authorization, Credential
    from acmedrive.services.account import AccountResolver
    from acmedrive.services.authorization import DomainAuthorizer
    from acmedrive.storage import CertificateStore
    from acmedrive.transport.base import AcmeTransport

log = logging.getLogger(__name__)


def unique_domains(domains: Iterable[str]) -> list[str]:
    """Collapse duplicate domain names, keeping first-seen order."""
    return list(dict.fromkeys(domains))


class IssuanceCoordinator:
    """Drive a full certificate issuance.

    Parameters
    ----------
    settings:
        The ``issuance`` configuration section.
    transport:
        Session to the ACME server.
    account_resolver:
        Turns the credential into an issuance-ready account.
    authorizer:
        Authorizes a single domain.
    csr_builder:
        Builds the signing request from the domain key.
    store:
        Receives the signing request and the final chain.
    key_provider:
        Source of the account and domain keys, used by :meth:`run`.
    token:
        Run-wide cancellation token.

    """

    def __init__(
        self,
        settings: IssuanceSettings,
        transport: AcmeTransport,
        account_resolver: AccountResolver,
        authorizer: DomainAuthorizer,
        csr_builder: CsrBuilder,
        store: CertificateStore,
        key_provider: KeyPairProvider | None = None,
        token: CancellationToken | None = None,
    ) -> None:
        self._settings = settings
        self._transport = transport
        self._account_resolver = account_resolver
        self._authorizer = authorizer
        self._csr_builder = csr_builder
        self._store = store
        self._key_provider = key_provider
        self.token = token or CancellationToken()

    # -- entry points -------------------------------------------------------

    def run(self, domains: Sequence[str]) -> Certificate:
        """Load the account and domain keys, then :meth:`issue`."""
        if self._key_provider is None:
            msg = "IssuanceCoordinator.run() requires a key provider"
            raise RuntimeError(msg)
        account_key = self._key_provider.load_or_generate(ACCOUNT_KEY)
        domain_key = self._key_provider.load_or_generate(DOMAIN_KEY)
        return self.issue(credential_for(account_key), domains, domain_key)

    def issue(
        self,
        credential: Credential,
        domains: Sequence[str],
        domain_key: CertificateIssuerPrivateKeyTypes,
    ) -> Certificate:
        """Issue a certificate for *domains* and return it.

        Raises
        ------
        ValueError
            *domains* is empty.
        AgreementDeclined
            The account has not accepted the terms of service.
        AccountUnusable
            The account is deactivated or revoked.
        IssuanceError
            Any domain failed to authorize, or the run was cancelled.
        TransportError
            Propagated unchanged from the transport.

        """
        names = unique_domains(domains)
        if not names:
            msg = "At least one domain is required"
            raise ValueError(msg)

        run_id = uuid.uuid4().hex[:12]
        with issuance_context(run_id=run_id):
            log.info("Starting issuance for %s", ", ".join(names))

            account = self._account_resolver.resolve(credential)
            if not account.ready_for_issuance:
                if not account.agreement_accepted:
                    msg = f"Account {account.location} has not accepted the terms of service"
                    raise AgreementDeclined(msg)
                msg = f"Account {account.location} is {account.status}"
                raise AccountUnusable(msg)

            if self._settings.concurrent_domains and len(names) > 1:
                authorizations = self._authorize_concurrently(account, names, run_id)
            else:
                authorizations = self._authorize_sequentially(account, names)

            self.token.raise_if_cancelled()
            signing_request = self._csr_builder.build(names, domain_key)
            self._store.write_signing_request(signing_request)

            location = self._transport.request_certificate(account, signing_request)
            log.info("Certificate issued at %s", location)
            leaf = self._transport.download_certificate(location)
            chain = self._transport.download_chain(location)
            self._store.write_chain(leaf, chain)

            return Certificate(
                location=location,
                leaf_pem=leaf,
                chain_pems=tuple(chain),
                domains=tuple(names),
                authorizations=tuple(authorizations),
            )

    def close(self) -> None:
        self._transport.close()

    # -- authorization ------------------------------------------------------

    def _authorize_sequentially(self, account: Account, names: list[str]) -> list[Authorization]:
        authorizations = []
        for domain in names:
            with issuance_context(domain=domain):
                self.token.raise_if_cancelled(domain=domain)
                authorizations.append(self._authorize_one(account, domain, self.token))
        return authorizations

    def _authorize_concurrently(
        self,
        account: Account,
        names: list[str],
        run_id: str,
    ) -> list[Authorization]:
        children = {domain: self.token.child(domain) for domain in names}
        results: dict[str, Authorization] = {}
        first_error: Exception | None = None

        with ThreadPoolExecutor(
            max_workers=len(names),
            thread_name_prefix="acmedrive-authz",
        ) as executor:
            futures = {
                executor.submit(self._authorize_in_worker, account, domain, children[domain], run_id): domain
                for domain in names
            }
            for future in as_completed(futures):
                domain = futures[future]
                exc = future.exception()
                if exc is None:
                    results[domain] = future.result()
                    continue
                if first_error is None:
                    first_error = exc
                    log.warning("Authorization of %s failed, cancelling the other domains: %s", domain, exc)
                    for other, child in children.items():
                        if other != domain:
                            child.cancel(f"authorization of {domain} failed")
                else:
                    log.debug("Authorization of %s ended after cancellation: %s", domain, exc)

        if first_error is not None:
            raise first_error
        return [results[domain] for domain in names]

    def _authorize_in_worker(
        self,
        account: Account,
        domain: str,
        token: CancellationToken,
        run_id: str,
    ) -> Authorization:
        # Pool threads do not inherit the caller's logging context
        with issuance_context(run_id=run_id, domain=domain):
            token.raise_if_cancelled(domain=domain)
            return self._authorize_one(account, domain, token)

    def _authorize_one(self, account: Account, domain: str, token: CancellationToken) -> Authorization:
        authorization = self._authorizer.authorize(account, domain, token=token)
        if not authorization.is_satisfied:
            raise AuthorizationFailed(
                f"Authorization {authorization.location} is {authorization.status}",
                domain=domain,
                challenge_type=self._authorizer.challenge_type,
            )
        return authorization

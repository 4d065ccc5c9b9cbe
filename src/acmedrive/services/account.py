"""Account resolution: register, or bind to the existing account."""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING

from acmedrive.core.errors import AgreementDeclined
from acmedrive.interaction.renderer import AGREEMENT
from acmedrive.logging.sanitize import sanitize_for_logs
from acmedrive.models import AlreadyExists, Created

if TYPE_CHECKING:
    from acmedrive.interaction import InstructionRenderer, UserInteraction
    from acmedrive.models import Account, Credential
    from acmedrive.transport.base import AcmeTransport

log = logging.getLogger(__name__)


class AccountResolver:
    """Turn a credential into an account that is ready for issuance.

    A credential the server does not know yet creates a new account,
    which must then accept the terms of service.  A credential the
    server already knows is bound to its existing account without
    prompting.  Neither path retries.
    """

    def __init__(
        self,
        transport: AcmeTransport,
        interaction: UserInteraction,
        renderer: InstructionRenderer,
    ) -> None:
        self._transport = transport
        self._interaction = interaction
        self._renderer = renderer
        self._commit_lock = threading.Lock()

    def resolve(self, credential: Credential) -> Account:
        log.debug("Registering credential %s", sanitize_for_logs(credential.jwk))
        result = self._transport.register(credential)

        if isinstance(result, AlreadyExists):
            log.info("Credential already registered, binding to %s", result.location)
            return self._transport.bind(result.location)
        if isinstance(result, Created):
            log.info("Registered new account %s", result.account.location)
            return self._accept_agreement(result.account)

        msg = f"Unexpected registration result: {result!r}"
        raise TypeError(msg)

    def _accept_agreement(self, account: Account) -> Account:
        agreement_uri = account.agreement_uri or ""
        title, body = self._renderer.render(
            AGREEMENT,
            {
                "directory_url": self._transport.directory_url,
                "agreement_uri": agreement_uri,
            },
        )
        if not self._interaction.confirm(title, body):
            msg = f"Terms of service {agreement_uri or '(unspecified)'} were declined"
            raise AgreementDeclined(msg)

        with self._commit_lock:
            committed = self._transport.accept_agreement(account, agreement_uri)
        log.info("Account %s accepted the agreement %s", committed.location, agreement_uri)
        return committed

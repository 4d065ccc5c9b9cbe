"""Per-domain authorization orchestration."""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING

from acmedrive.core.errors import UnsupportedChallengeType, UserCancelled
from acmedrive.services.challenge import find_challenge

if TYPE_CHECKING:
    from acmedrive.challenge.registry import ChallengeRegistry
    from acmedrive.core.cancellation import CancellationToken
    from acmedrive.core.types import ChallengeType
    from acmedrive.interaction import InstructionRenderer, UserInteraction
    from acmedrive.models import Account, Authorization
    from acmedrive.services.challenge import ChallengePoller
    from acmedrive.transport.base import AcmeTransport

log = logging.getLogger(__name__)


class DomainAuthorizer:
    """Prove control of one domain with the configured challenge type.

    Parameters
    ----------
    transport:
        Session used to fetch the authorization.
    poller:
        Drives the selected challenge once the user has confirmed.
    registry:
        Source of the challenge preparer for ``challenge_type``.
    interaction:
        Asked to confirm that the proof material is published.
    renderer:
        Renders the instructions shown with the confirmation.
    challenge_type:
        The only challenge type this authorizer will use.

    """

    def __init__(
        self,
        transport: AcmeTransport,
        poller: ChallengePoller,
        registry: ChallengeRegistry,
        interaction: UserInteraction,
        renderer: InstructionRenderer,
        challenge_type: ChallengeType,
    ) -> None:
        self._transport = transport
        self._poller = poller
        self._registry = registry
        self._interaction = interaction
        self._renderer = renderer
        self.challenge_type = challenge_type
        # Concurrent domains share one console
        self._prompt_lock = threading.Lock()

    def authorize(
        self,
        account: Account,
        domain: str,
        token: CancellationToken | None = None,
    ) -> Authorization:
        """Authorize *domain* for *account* and return the final authorization.

        *token* overrides the poller's cancellation token, so concurrent
        runs can cancel one domain without touching the others.

        Raises
        ------
        UnsupportedChallengeType
            The server did not offer the configured challenge type.
        UserCancelled
            The user declined to continue after seeing the instructions.
        IssuanceCancelled
            The token was cancelled before the instructions were shown.

        """
        authorization = self._transport.authorize_domain(account, domain)
        log.info(
            "Authorization %s for %s is %s",
            authorization.location,
            domain,
            authorization.status,
        )

        challenge = find_challenge(authorization, self.challenge_type)
        if challenge is None:
            offered = ", ".join(c.type for c in authorization.challenges) or "none"
            raise UnsupportedChallengeType(
                f"Server did not offer a {self.challenge_type} challenge (offered: {offered})",
                domain=domain,
                challenge_type=self.challenge_type,
            )

        if challenge.is_valid:
            log.info("%s challenge for %s is already valid", self.challenge_type, domain)
            return authorization.with_challenge(challenge)

        poller = self._poller if token is None else self._poller.with_token(token)
        poller.token.raise_if_cancelled(domain=domain, challenge_type=self.challenge_type)

        preparer = self._registry.get_preparer(self.challenge_type)
        context = preparer.prepare(domain=domain, challenge=challenge)
        try:
            title, body = self._renderer.render(str(self.challenge_type), context)
            with self._prompt_lock:
                # A sibling may have failed while this domain waited for the console
                poller.token.raise_if_cancelled(domain=domain, challenge_type=self.challenge_type)
                confirmed = self._interaction.confirm(title, body)
            if not confirmed:
                raise UserCancelled(
                    "Challenge instructions were declined",
                    domain=domain,
                    challenge_type=self.challenge_type,
                )

            result = poller.drive(challenge, domain=domain)
        finally:
            preparer.cleanup(domain=domain, challenge=challenge)

        log.info("Domain %s authorized via %s", domain, self.challenge_type)
        return authorization.with_challenge(result)

"""Issuance coordinator factory.

Usage::

    from acmedrive.app import create_coordinator
    from acmedrive.config import get_config

    coordinator = create_coordinator(get_config().settings, interaction=ConsoleInteraction())
    certificate = coordinator.run(["example.com"])
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from acmedrive.challenge.registry import ChallengeRegistry
from acmedrive.core.cancellation import CancellationToken
from acmedrive.crypto.csr import CsrBuilder
from acmedrive.crypto.keys import FileKeyPairProvider
from acmedrive.interaction.renderer import InstructionRenderer
from acmedrive.services.account import AccountResolver
from acmedrive.services.authorization import DomainAuthorizer
from acmedrive.services.challenge import ChallengePoller
from acmedrive.services.issuance import IssuanceCoordinator
from acmedrive.storage.certificates import FileCertificateStore
from acmedrive.transport.registry import load_transport

if TYPE_CHECKING:
    from acmedrive.config.settings import DriveSettings
    from acmedrive.interaction.base import UserInteraction

log = logging.getLogger(__name__)


def create_coordinator(
    settings: DriveSettings,
    *,
    interaction: UserInteraction,
    token: CancellationToken | None = None,
) -> IssuanceCoordinator:
    """Wire every collaborator from *settings* into an :class:`IssuanceCoordinator`.

    Parameters
    ----------
    settings:
        Fully-built settings tree.
    interaction:
        Confirmation capability (console or auto-confirm).
    token:
        Run-wide cancellation token; a fresh one when ``None``.

    Raises
    ------
    TransportError
        The configured transport cannot be loaded.

    """
    token = token or CancellationToken()
    issuance = settings.issuance

    key_provider = FileKeyPairProvider(settings.storage, key_size=issuance.key_size)
    transport = load_transport(settings.transport)
    transport.use_key_provider(key_provider)
    renderer = InstructionRenderer(settings.interaction.templates_path)
    registry = ChallengeRegistry(settings.challenges, settings.storage)

    poller = ChallengePoller(
        transport,
        max_attempts=issuance.poll_max_attempts,
        interval=issuance.poll_interval_seconds,
        token=token,
    )
    authorizer = DomainAuthorizer(
        transport,
        poller,
        registry,
        interaction,
        renderer,
        issuance.challenge_type,
    )

    log.debug(
        "Coordinator wired: transport=%s challenge=%s attempts=%d interval=%ss concurrent=%s",
        settings.transport.backend,
        issuance.challenge_type,
        issuance.poll_max_attempts,
        issuance.poll_interval_seconds,
        issuance.concurrent_domains,
    )

    return IssuanceCoordinator(
        issuance,
        transport,
        AccountResolver(transport, interaction, renderer),
        authorizer,
        CsrBuilder(),
        FileCertificateStore(settings.storage),
        key_provider=key_provider,
        token=token,
    )

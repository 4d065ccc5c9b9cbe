"""Issuance service layer.

Each service owns one step of the issuance workflow and talks to the
server only through the transport.
"""

from acmedrive.services.account import AccountResolver
from acmedrive.services.authorization import DomainAuthorizer
from acmedrive.services.challenge import ChallengePoller, find_challenge
from acmedrive.services.issuance import IssuanceCoordinator

__all__ = [
    "AccountResolver",
    "ChallengePoller",
    "DomainAuthorizer",
    "IssuanceCoordinator",
    "find_challenge",
]

"""Pluggable challenge preparation.

Exports the abstract base class and the registry.
"""

from acmedrive.challenge.base import ChallengePreparer
from acmedrive.challenge.registry import ChallengeRegistry

__all__ = [
    "ChallengePreparer",
    "ChallengeRegistry",
]

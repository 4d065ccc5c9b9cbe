"""Authorization entity."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import TYPE_CHECKING

from acmedrive.core.types import AuthorizationStatus

if TYPE_CHECKING:
    from acmedrive.models.challenge import Challenge


@dataclass(frozen=True)
class Authorization:
    domain: str
    location: str
    status: AuthorizationStatus
    challenges: tuple[Challenge, ...] = ()

    @property
    def is_satisfied(self) -> bool:
        """True iff at least one offered challenge is valid."""
        return any(c.is_valid for c in self.challenges)

    def with_challenge(self, challenge: Challenge) -> Authorization:
        """Return a copy with *challenge* replacing the entry of the same type."""
        challenges = tuple(challenge if c.type == challenge.type else c for c in self.challenges)
        status = AuthorizationStatus.VALID if challenge.is_valid else self.status
        return replace(self, challenges=challenges, status=status)

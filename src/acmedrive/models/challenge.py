"""Challenge entity."""

from __future__ import annotations

from dataclasses import dataclass

from acmedrive.core.types import ChallengeStatus, ChallengeType


@dataclass(frozen=True)
class Challenge:
    type: ChallengeType
    token: str
    location: str
    status: ChallengeStatus
    key_authorization: str | None = None
    error: dict | None = None

    @property
    def is_valid(self) -> bool:
        return self.status == ChallengeStatus.VALID

    @property
    def is_invalid(self) -> bool:
        return self.status == ChallengeStatus.INVALID

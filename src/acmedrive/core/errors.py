"""Issuance failure taxonomy.

Every failure the engine raises on its own account derives from
:class:`IssuanceError` and carries the context needed to log it
meaningfully: the domain, the challenge type and the number of poll
attempts made, where those apply.

Hierarchy::

    IssuanceError
     +- UserCancelled
     |   +- AgreementDeclined
     +- AccountUnusable
     +- AuthorizationFailed
     |   +- UnsupportedChallengeType
     |   +- ChallengeInvalid
     |   +- ChallengeTimedOut
     +- IssuanceCancelled

Transport failures are *not* part of this hierarchy; they surface as
:class:`~acmedrive.transport.base.TransportError` and propagate unchanged.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from acmedrive.core.types import ChallengeType


class IssuanceError(Exception):
    """Base class for all issuance failures.

    Parameters
    ----------
    detail:
        Human-readable description of the failure.
    domain:
        The domain being authorized when the failure happened.
    challenge_type:
        The configured challenge type, when relevant.
    attempts:
        Number of poll attempts made before the failure.
    retryable:
        Whether a caller may reasonably retry in a new run.

    """

    def __init__(
        self,
        detail: str,
        *,
        domain: str | None = None,
        challenge_type: ChallengeType | None = None,
        attempts: int | None = None,
        retryable: bool = False,
    ) -> None:
        self.detail = detail
        self.domain = domain
        self.challenge_type = challenge_type
        self.attempts = attempts
        self.retryable = retryable
        super().__init__(detail)

    @property
    def context(self) -> dict[str, str | int]:
        """Structured context suitable for ``log.*(..., extra=...)``."""
        ctx: dict[str, str | int] = {}
        if self.domain is not None:
            ctx["domain"] = self.domain
        if self.challenge_type is not None:
            ctx["challenge_type"] = str(self.challenge_type)
        if self.attempts is not None:
            ctx["attempts"] = self.attempts
        return ctx

    def __str__(self) -> str:
        ctx = self.context
        if not ctx:
            return self.detail
        parts = ", ".join(f"{k}={v}" for k, v in ctx.items())
        return f"{self.detail} ({parts})"


class UserCancelled(IssuanceError):
    """The user declined at a confirmation point."""


class AgreementDeclined(UserCancelled):
    """The user refused the terms of service for a new account."""


class AccountUnusable(IssuanceError):
    """The bound account is deactivated or revoked on the server."""


class AuthorizationFailed(IssuanceError):
    """A domain could not be authorized."""


class UnsupportedChallengeType(AuthorizationFailed):
    """The server offered no challenge of the configured type."""


class ChallengeInvalid(AuthorizationFailed):
    """The server marked the challenge invalid.

    Never retried: a fresh authorization is required.
    """

    def __init__(self, detail: str, *, problem: dict | None = None, **kwargs) -> None:
        self.problem = problem
        super().__init__(detail, **kwargs)


class ChallengeTimedOut(AuthorizationFailed):
    """The poll budget ran out while the challenge was still pending."""

    def __init__(self, detail: str, **kwargs) -> None:
        kwargs.setdefault("retryable", True)
        super().__init__(detail, **kwargs)


class IssuanceCancelled(IssuanceError):
    """The run was cancelled (e.g. shutdown signal) while waiting."""

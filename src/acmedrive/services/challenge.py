"""Challenge selection and the challenge-completion poll loop.

:func:`find_challenge` picks the configured challenge out of an
authorization.  :class:`ChallengePoller` drives a single challenge
through ``NOT_TRIGGERED -> TRIGGERED -> VALID | INVALID``: it triggers
validation exactly once, then re-fetches the challenge at a fixed
interval until the server reports a terminal status or the attempt
budget runs out.

Only "still pending" is retried.  A transport failure propagates on
the spot and ``invalid`` is final.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from acmedrive.core.cancellation import CancellationToken
from acmedrive.core.errors import ChallengeInvalid, ChallengeTimedOut, IssuanceCancelled
from acmedrive.core.state import assert_transition, log_transition, poll_state_for
from acmedrive.core.types import PollState

if TYPE_CHECKING:
    from acmedrive.core.types import ChallengeType
    from acmedrive.models import Authorization, Challenge
    from acmedrive.transport.base import AcmeTransport

log = logging.getLogger(__name__)


def find_challenge(authorization: Authorization, challenge_type: ChallengeType) -> Challenge | None:
    """Return the challenge of *challenge_type* offered by *authorization*, or ``None``."""
    for challenge in authorization.challenges:
        if challenge.type == challenge_type:
            return challenge
    return None


class ChallengePoller:
    """Trigger a challenge and poll it to a terminal status.

    Parameters
    ----------
    transport:
        Session used for ``trigger`` and ``refresh``.
    max_attempts:
        Maximum number of re-fetches after the trigger.
    interval:
        Seconds to wait before each re-fetch.
    token:
        Cancellation token the waits are performed on.

    """

    def __init__(
        self,
        transport: AcmeTransport,
        *,
        max_attempts: int = 10,
        interval: float = 3.0,
        token: CancellationToken | None = None,
    ) -> None:
        if max_attempts < 1:
            msg = f"max_attempts must be at least 1, got {max_attempts}"
            raise ValueError(msg)
        if interval < 0:
            msg = f"interval must not be negative, got {interval}"
            raise ValueError(msg)
        self._transport = transport
        self.max_attempts = max_attempts
        self.interval = interval
        self.token = token or CancellationToken()

    def with_token(self, token: CancellationToken) -> ChallengePoller:
        """Return a poller with the same policy waiting on *token*."""
        return ChallengePoller(
            self._transport,
            max_attempts=self.max_attempts,
            interval=self.interval,
            token=token,
        )

    def drive(self, challenge: Challenge, *, domain: str) -> Challenge:
        """Drive *challenge* to ``valid`` and return its final state.

        Raises
        ------
        ChallengeInvalid
            The server marked the challenge invalid.
        ChallengeTimedOut
            The challenge was still pending after ``max_attempts`` re-fetches.
        IssuanceCancelled
            The token was cancelled during a wait.
        TransportError
            Propagated unchanged from the transport.

        """
        state = PollState.NOT_TRIGGERED

        if challenge.is_valid:
            self._move(challenge, state, PollState.VALID, reason="already valid")
            return challenge

        self.token.raise_if_cancelled(domain=domain, challenge_type=challenge.type, attempts=0)
        current = self._transport.trigger(challenge)
        state = self._move(challenge, state, PollState.TRIGGERED)

        attempts = 0
        while attempts < self.max_attempts:
            if current.is_invalid or current.is_valid:
                break
            if self.token.wait(self.interval):
                raise IssuanceCancelled(
                    f"Cancelled while waiting for challenge {challenge.location}: "
                    f"{self.token.reason}",
                    domain=domain,
                    challenge_type=challenge.type,
                    attempts=attempts,
                )
            attempts += 1
            current = self._transport.refresh(current)
            log.debug(
                "Challenge %s is %s after %d/%d re-fetch(es)",
                current.location,
                current.status,
                attempts,
                self.max_attempts,
            )

        terminal = poll_state_for(current.status)
        if terminal == PollState.VALID:
            self._move(current, state, PollState.VALID)
            return current
        if terminal == PollState.INVALID:
            self._move(current, state, PollState.INVALID, reason=_problem_detail(current.error))
            raise ChallengeInvalid(
                f"Challenge {current.location} was marked invalid: "
                f"{_problem_detail(current.error) or 'no detail given'}",
                problem=current.error,
                domain=domain,
                challenge_type=current.type,
                attempts=attempts,
            )

        msg = (
            f"Challenge {current.location} still {current.status} "
            f"after {attempts} re-fetch(es)"
        )
        raise ChallengeTimedOut(
            msg,
            domain=domain,
            challenge_type=current.type,
            attempts=attempts,
        )

    @staticmethod
    def _move(
        challenge: Challenge,
        current: PollState,
        target: PollState,
        *,
        reason: str | None = None,
    ) -> PollState:
        assert_transition(current, target)
        log_transition("challenge", challenge.location, current, target, reason=reason)
        return target


def _problem_detail(problem: dict | None) -> str | None:
    if not problem:
        return None
    return problem.get("detail") or problem.get("type")

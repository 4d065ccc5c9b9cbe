"""Client-side challenge poller state machine.

Defines the valid transitions of a single challenge run as observed
by the client.  All transitions are enforced via
:func:`assert_transition`.

Usage::

    from acmedrive.core.state import POLL_TRANSITIONS, assert_transition
    from acmedrive.core.types import PollState

    assert_transition(
        PollState.NOT_TRIGGERED, PollState.TRIGGERED,
        POLL_TRANSITIONS,
    )
"""

from __future__ import annotations

import logging

from acmedrive.core.types import ChallengeStatus, PollState

log = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Poll: not_triggered → triggered/valid, triggered → valid/invalid.
#       valid & invalid are terminal.  not_triggered → valid is the
#       short-circuit for a challenge that was already valid on entry.
# ---------------------------------------------------------------------------

POLL_TRANSITIONS: dict[PollState, frozenset[PollState]] = {
    PollState.NOT_TRIGGERED: frozenset({PollState.TRIGGERED, PollState.VALID}),
    PollState.TRIGGERED: frozenset({PollState.VALID, PollState.INVALID}),
    PollState.VALID: frozenset(),
    PollState.INVALID: frozenset(),
}

TERMINAL_STATES: frozenset[PollState] = frozenset({PollState.VALID, PollState.INVALID})


def poll_state_for(status: ChallengeStatus) -> PollState | None:
    """Map a server challenge status to a terminal poll state, if any.

    ``pending`` and ``processing`` are not terminal and return ``None``.
    """
    if status == ChallengeStatus.VALID:
        return PollState.VALID
    if status == ChallengeStatus.INVALID:
        return PollState.INVALID
    return None


def assert_transition(
    current: PollState,
    target: PollState,
    table: dict = POLL_TRANSITIONS,
) -> None:
    """Raise :class:`ValueError` if *current* → *target* is not allowed.

    Parameters
    ----------
    current:
        The current state of the run.
    target:
        The desired new state.
    table:
        Transition table, :data:`POLL_TRANSITIONS` by default.

    """
    allowed = table.get(current)
    if allowed is None:
        msg = f"Unknown state {current!r}"
        raise ValueError(msg)
    if target not in allowed:
        msg = (
            f"Invalid transition {current.value!r} -> {target.value!r}; "
            f"allowed targets: {sorted(s.value for s in allowed) or '(terminal)'}"
        )
        raise ValueError(msg)


def log_transition(
    resource_type: str,
    resource_id,
    from_state,
    to_state,
    *,
    reason: str | None = None,
) -> None:
    """Emit a structured log entry for a state transition.

    Parameters
    ----------
    resource_type:
        ``"challenge"`` for poller runs, ``"account"`` for agreement
        commits.
    resource_id:
        Location URI (or other identifier) of the resource.
    from_state:
        The previous state value.
    to_state:
        The new state value.
    reason:
        Optional human-readable reason for the transition.

    """
    extra = {
        "event": "state_transition",
        "resource_type": resource_type,
        "resource_id": str(resource_id),
        "from_status": from_state.value if hasattr(from_state, "value") else str(from_state),
        "to_status": to_state.value if hasattr(to_state, "value") else str(to_state),
    }
    if reason:
        extra["reason"] = reason
    log.info(
        "%s %s: %s -> %s%s",
        resource_type,
        resource_id,
        extra["from_status"],
        extra["to_status"],
        f" ({reason})" if reason else "",
        extra=extra,
    )

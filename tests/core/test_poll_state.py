"""Unit tests for acmedrive.core.state: the poller state machine."""

from __future__ import annotations

import logging

import pytest

from acmedrive.core.state import (
    POLL_TRANSITIONS,
    TERMINAL_STATES,
    assert_transition,
    log_transition,
    poll_state_for,
)
from acmedrive.core.types import ChallengeStatus, PollState

# ---------------------------------------------------------------------------
# TestPollTransitions
# ---------------------------------------------------------------------------


class TestPollTransitions:
    @pytest.mark.parametrize(
        "current,target",
        [
            (PollState.NOT_TRIGGERED, PollState.TRIGGERED),
            (PollState.NOT_TRIGGERED, PollState.VALID),
            (PollState.TRIGGERED, PollState.VALID),
            (PollState.TRIGGERED, PollState.INVALID),
        ],
    )
    def test_valid_transitions(self, current, target):
        assert_transition(current, target, POLL_TRANSITIONS)  # no exception

    @pytest.mark.parametrize("terminal", [PollState.VALID, PollState.INVALID])
    def test_terminal_states_reject_everything(self, terminal):
        for target in PollState:
            with pytest.raises(ValueError, match="Invalid transition"):
                assert_transition(terminal, target)

    def test_cannot_fail_before_trigger(self):
        with pytest.raises(ValueError, match="Invalid transition"):
            assert_transition(PollState.NOT_TRIGGERED, PollState.INVALID)

    def test_cannot_trigger_twice(self):
        with pytest.raises(ValueError, match="Invalid transition"):
            assert_transition(PollState.TRIGGERED, PollState.TRIGGERED)

    def test_unknown_state(self):
        with pytest.raises(ValueError, match="Unknown state"):
            assert_transition("bogus", PollState.VALID)

    def test_terminal_set(self):
        assert frozenset({PollState.VALID, PollState.INVALID}) == TERMINAL_STATES


# ---------------------------------------------------------------------------
# TestPollStateFor
# ---------------------------------------------------------------------------


class TestPollStateFor:
    def test_valid(self):
        assert poll_state_for(ChallengeStatus.VALID) == PollState.VALID

    def test_invalid(self):
        assert poll_state_for(ChallengeStatus.INVALID) == PollState.INVALID

    @pytest.mark.parametrize("status", [ChallengeStatus.PENDING, ChallengeStatus.PROCESSING])
    def test_non_terminal(self, status):
        assert poll_state_for(status) is None


# ---------------------------------------------------------------------------
# TestLogTransition
# ---------------------------------------------------------------------------


class TestLogTransition:
    def test_structured_extra(self, caplog):
        with caplog.at_level(logging.INFO, logger="acmedrive.core.state"):
            log_transition(
                "challenge",
                "https://acme.test/chall/1",
                PollState.TRIGGERED,
                PollState.INVALID,
                reason="unauthorized",
            )
        (record,) = caplog.records
        assert record.event == "state_transition"
        assert record.resource_type == "challenge"
        assert record.from_status == "triggered"
        assert record.to_status == "invalid"
        assert record.reason == "unauthorized"
        assert "(unauthorized)" in record.getMessage()

    def test_plain_strings(self, caplog):
        with caplog.at_level(logging.INFO, logger="acmedrive.core.state"):
            log_transition("account", "acct-1", "new", "agreed")
        (record,) = caplog.records
        assert record.from_status == "new"
        assert not hasattr(record, "reason")

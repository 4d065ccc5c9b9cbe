"""Unit tests for acmedrive.core.errors."""

from __future__ import annotations

import pytest

from acmedrive.core.errors import (
    AccountUnusable,
    AgreementDeclined,
    AuthorizationFailed,
    ChallengeInvalid,
    ChallengeTimedOut,
    IssuanceCancelled,
    IssuanceError,
    UnsupportedChallengeType,
    UserCancelled,
)
from acmedrive.core.types import ChallengeType


class TestHierarchy:
    @pytest.mark.parametrize(
        "cls,parent",
        [
            (UserCancelled, IssuanceError),
            (AgreementDeclined, UserCancelled),
            (AccountUnusable, IssuanceError),
            (AuthorizationFailed, IssuanceError),
            (UnsupportedChallengeType, AuthorizationFailed),
            (ChallengeInvalid, AuthorizationFailed),
            (ChallengeTimedOut, AuthorizationFailed),
            (IssuanceCancelled, IssuanceError),
        ],
    )
    def test_subclass(self, cls, parent):
        assert issubclass(cls, parent)

    def test_unusable_account_is_not_a_decline(self):
        assert not issubclass(AccountUnusable, UserCancelled)

    def test_cancelled_is_not_a_timeout(self):
        assert not issubclass(IssuanceCancelled, ChallengeTimedOut)
        assert not issubclass(IssuanceCancelled, AuthorizationFailed)


class TestContext:
    def test_str_without_context(self):
        assert str(IssuanceError("plain")) == "plain"

    def test_str_with_context(self):
        err = ChallengeTimedOut(
            "still pending",
            domain="example.com",
            challenge_type=ChallengeType.DNS_01,
            attempts=10,
        )
        assert str(err) == "still pending (domain=example.com, challenge_type=dns-01, attempts=10)"
        assert err.context == {"domain": "example.com", "challenge_type": "dns-01", "attempts": 10}

    def test_timeout_retryable_by_default(self):
        assert ChallengeTimedOut("x").retryable
        assert not ChallengeTimedOut("x", retryable=False).retryable

    def test_invalid_not_retryable(self):
        err = ChallengeInvalid("x", problem={"type": "urn:ietf:params:acme:error:dns"})
        assert not err.retryable
        assert err.problem["type"].endswith(":dns")

    def test_detail_preserved(self):
        assert UserCancelled("declined", domain="a.com").detail == "declined"

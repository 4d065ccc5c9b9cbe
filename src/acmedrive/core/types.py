"""Enumerated types for the acmedrive issuance engine.

All enums inherit from ``StrEnum`` so their ``.value`` is the plain
string the ACME server uses on the wire, and log records and JSON
output round-trip naturally.
"""

from __future__ import annotations

from enum import StrEnum

# ---------------------------------------------------------------------------
# Account
# ---------------------------------------------------------------------------


class AccountStatus(StrEnum):
    VALID = "valid"
    DEACTIVATED = "deactivated"
    REVOKED = "revoked"


# ---------------------------------------------------------------------------
# Authorization
# ---------------------------------------------------------------------------


class AuthorizationStatus(StrEnum):
    PENDING = "pending"
    VALID = "valid"
    INVALID = "invalid"
    EXPIRED = "expired"


# ---------------------------------------------------------------------------
# Challenge
# ---------------------------------------------------------------------------


class ChallengeStatus(StrEnum):
    PENDING = "pending"
    PROCESSING = "processing"
    VALID = "valid"
    INVALID = "invalid"


class ChallengeType(StrEnum):
    HTTP_01 = "http-01"
    DNS_01 = "dns-01"
    TLS_SNI_01 = "tls-sni-01"


# ---------------------------------------------------------------------------
# Poller (client-side view of a single challenge run)
# ---------------------------------------------------------------------------


class PollState(StrEnum):
    NOT_TRIGGERED = "not_triggered"
    TRIGGERED = "triggered"
    VALID = "valid"
    INVALID = "invalid"

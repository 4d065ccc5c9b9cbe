"""Account entity and the registration result variants."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from acmedrive.core.types import AccountStatus


@dataclass(frozen=True)
class Credential:
    """Public half of the account key pair, as presented to the server."""

    jwk: dict[str, Any]
    thumbprint: str


@dataclass(frozen=True)
class Account:
    location: str
    public_key_thumbprint: str
    status: AccountStatus = AccountStatus.VALID
    agreement_accepted: bool = False
    agreement_uri: str | None = None

    @property
    def ready_for_issuance(self) -> bool:
        return self.agreement_accepted and self.status == AccountStatus.VALID


# ---------------------------------------------------------------------------
# Registration result: tagged union returned by AcmeTransport.register()
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Created:
    """A brand-new account was registered for the credential."""

    account: Account


@dataclass(frozen=True)
class AlreadyExists:
    """The credential is already registered at *location*."""

    location: str


RegistrationResult = Created | AlreadyExists

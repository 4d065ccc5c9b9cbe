"""Domain entities of the issuance engine.

All entities are frozen dataclasses.  A status change yields a new
instance via :func:`dataclasses.replace`.
"""

from acmedrive.models.account import (
    Account,
    AlreadyExists,
    Created,
    Credential,
    RegistrationResult,
)
from acmedrive.models.authorization import Authorization
from acmedrive.models.certificate import Certificate, SigningRequest
from acmedrive.models.challenge import Challenge

__all__ = [
    "Account",
    "AlreadyExists",
    "Authorization",
    "Certificate",
    "Challenge",
    "Created",
    "Credential",
    "RegistrationResult",
    "SigningRequest",
]

"""Key pair, CSR and certificate helpers built on ``cryptography``."""

from acmedrive.crypto.csr import CsrBuilder
from acmedrive.crypto.keys import (
    ACCOUNT_KEY,
    DOMAIN_KEY,
    FileKeyPairProvider,
    KeyPairProvider,
    credential_for,
)

__all__ = [
    "ACCOUNT_KEY",
    "DOMAIN_KEY",
    "CsrBuilder",
    "FileKeyPairProvider",
    "KeyPairProvider",
    "credential_for",
]

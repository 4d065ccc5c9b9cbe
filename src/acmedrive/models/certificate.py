"""SigningRequest and Certificate entities."""

from __future__ import annotations

import base64
import textwrap
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable

    from acmedrive.models.authorization import Authorization


def join_pem(parts: Iterable[str]) -> str:
    """Concatenate PEM blocks, each ending in a newline."""
    return "".join(p if p.endswith("\n") else p + "\n" for p in parts)


@dataclass(frozen=True)
class SigningRequest:
    domains: tuple[str, ...]
    der: bytes

    @property
    def pem(self) -> str:
        body = "\n".join(textwrap.wrap(base64.b64encode(self.der).decode("ascii"), 64))
        return (
            "-----BEGIN CERTIFICATE REQUEST-----\n"
            f"{body}\n"
            "-----END CERTIFICATE REQUEST-----\n"
        )


@dataclass(frozen=True)
class Certificate:
    location: str
    leaf_pem: str
    chain_pems: tuple[str, ...] = ()
    domains: tuple[str, ...] = ()
    authorizations: tuple[Authorization, ...] = ()
    """The satisfied authorizations the certificate was issued on."""

    @property
    def full_chain_pem(self) -> str:
        """Leaf followed by the issuing chain, one PEM block after another."""
        return join_pem([self.leaf_pem, *self.chain_pems])

    def authorization_for(self, domain: str) -> Authorization | None:
        for authorization in self.authorizations:
            if authorization.domain == domain:
                return authorization
        return None

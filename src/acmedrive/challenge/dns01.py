"""DNS-01 challenge preparer (RFC 8555 §8.4).

The server queries ``_acme-challenge.{domain}`` for a TXT record
containing the base64url-encoded SHA-256 digest of the key
authorization.  Optionally checks, before the user is prompted,
whether the record is already visible through the configured
resolvers.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import dns.exception
import dns.resolver

from acmedrive.challenge.base import ChallengePreparer
from acmedrive.core.proofs import dns01_digest, dns01_record_name
from acmedrive.core.types import ChallengeType

if TYPE_CHECKING:
    from acmedrive.models import Challenge

log = logging.getLogger(__name__)


class Dns01Preparer(ChallengePreparer):
    """DNS-01 challenge preparer."""

    challenge_type = ChallengeType.DNS_01

    def prepare(self, *, domain: str, challenge: Challenge) -> dict[str, Any]:
        digest = dns01_digest(self._require_key_authorization(challenge))
        record_name = dns01_record_name(domain)

        propagation = None
        if getattr(self.settings, "check_propagation", False):
            propagation = self.record_visible(record_name, digest)

        return {
            "domain": domain,
            "record_name": record_name,
            "digest": digest,
            "propagation": propagation,
        }

    def record_visible(self, record_name: str, expected: str) -> bool:
        """Return True if a TXT record at *record_name* carries *expected*."""
        timeout = getattr(self.settings, "timeout_seconds", 10)
        resolvers = getattr(self.settings, "resolvers", ())

        resolver = dns.resolver.Resolver()
        if resolvers:
            resolver.nameservers = list(resolvers)
        resolver.lifetime = timeout

        try:
            answer = resolver.resolve(record_name, "TXT")
        except dns.exception.DNSException as exc:
            log.info("DNS-01: %s not resolvable yet: %s", record_name, exc)
            return False

        values = {b"".join(rdata.strings).decode("ascii", "replace") for rdata in answer}
        visible = expected in values
        log.info(
            "DNS-01: %s %s the expected value",
            record_name,
            "carries" if visible else "does not carry",
        )
        return visible

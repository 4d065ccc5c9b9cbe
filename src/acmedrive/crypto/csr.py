"""Certificate Signing Request construction."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.x509.oid import NameOID

from acmedrive.models import SigningRequest

if TYPE_CHECKING:
    from collections.abc import Sequence

    from cryptography.hazmat.primitives.asymmetric.types import CertificateIssuerPrivateKeyTypes

log = logging.getLogger(__name__)


class CsrBuilder:
    """Build a CSR binding the domain key pair to every requested domain.

    The first domain becomes the subject common name; all domains go
    into the SubjectAlternativeName extension.
    """

    def build(
        self,
        domains: Sequence[str],
        domain_key: CertificateIssuerPrivateKeyTypes,
    ) -> SigningRequest:
        if not domains:
            msg = "A signing request needs at least one domain"
            raise ValueError(msg)

        builder = (
            x509.CertificateSigningRequestBuilder()
            .subject_name(
                x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, domains[0])]),
            )
            .add_extension(
                x509.SubjectAlternativeName([x509.DNSName(d) for d in domains]),
                critical=False,
            )
        )
        csr = builder.sign(domain_key, hashes.SHA256())
        log.debug("Built signing request for %d domain(s)", len(domains))
        return SigningRequest(
            domains=tuple(domains),
            der=csr.public_bytes(serialization.Encoding.DER),
        )

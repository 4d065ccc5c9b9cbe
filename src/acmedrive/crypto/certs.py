"""Certificate-building helpers.

Shared by the TLS-SNI-01 preparer (self-signed validation
certificates) and the simulated transport (its throwaway issuing CA).
"""

from __future__ import annotations

import secrets
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.x509.oid import NameOID

if TYPE_CHECKING:
    from cryptography.hazmat.primitives.asymmetric.types import (
        CertificateIssuerPrivateKeyTypes,
        CertificateIssuerPublicKeyTypes,
    )


def random_serial() -> int:
    """Return a positive serial of at most 159 bits (RFC 5280 §4.1.2.2)."""
    return int.from_bytes(secrets.token_bytes(20), "big") >> 1


def self_signed_certificate(
    key: CertificateIssuerPrivateKeyTypes,
    names: list[str],
    *,
    validity_days: int = 7,
    ca: bool = False,
    common_name: str | None = None,
) -> x509.Certificate:
    """Build a self-signed certificate for *names*.

    The subject CN is *common_name*, or the first name when omitted.
    """
    if not names:
        msg = "At least one name is required"
        raise ValueError(msg)

    now = datetime.now(UTC)
    subject = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, common_name or names[0])])
    builder = (
        x509.CertificateBuilder()
        .subject_name(subject)
        .issuer_name(subject)
        .public_key(key.public_key())
        .serial_number(random_serial())
        .not_valid_before(now)
        .not_valid_after(now + timedelta(days=validity_days))
        .add_extension(
            x509.SubjectAlternativeName([x509.DNSName(n) for n in names]),
            critical=False,
        )
        .add_extension(
            x509.BasicConstraints(ca=ca, path_length=None),
            critical=True,
        )
    )
    return builder.sign(key, hashes.SHA256())


def sign_csr(
    csr: x509.CertificateSigningRequest,
    issuer_cert: x509.Certificate,
    issuer_key: CertificateIssuerPrivateKeyTypes,
    *,
    validity_days: int = 90,
) -> x509.Certificate:
    """Issue a leaf certificate for *csr* signed by *issuer_key*.

    The subject CN is the first DNS name of the CSR's SAN extension;
    the SAN is copied verbatim.
    """
    san_ext = csr.extensions.get_extension_for_class(x509.SubjectAlternativeName)
    dns_names = san_ext.value.get_values_for_type(x509.DNSName)
    if not dns_names:
        msg = "CSR SAN contains no DNS names"
        raise ValueError(msg)

    now = datetime.now(UTC)
    issuer_public: CertificateIssuerPublicKeyTypes = issuer_cert.public_key()  # type: ignore[assignment]
    builder = (
        x509.CertificateBuilder()
        .subject_name(x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, dns_names[0])]))
        .issuer_name(issuer_cert.subject)
        .public_key(csr.public_key())
        .serial_number(random_serial())
        .not_valid_before(now)
        .not_valid_after(now + timedelta(days=validity_days))
        .add_extension(san_ext.value, critical=False)
        .add_extension(x509.BasicConstraints(ca=False, path_length=None), critical=True)
        .add_extension(
            x509.AuthorityKeyIdentifier.from_issuer_public_key(issuer_public),
            critical=False,
        )
    )
    return builder.sign(issuer_key, hashes.SHA256())


def certificate_to_pem(cert: x509.Certificate) -> str:
    return cert.public_bytes(serialization.Encoding.PEM).decode("ascii")

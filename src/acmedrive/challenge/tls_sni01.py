"""TLS-SNI-01 challenge preparer.

The server opens a TLS connection with SNI set to the validation
subject (``<Z[0:32]>.<Z[32:64]>.acme.invalid``) and expects a
certificate whose SAN contains that subject.  This preparer generates
a fresh validation key pair and a matching self-signed certificate
and writes both into the storage directory, one pair per domain.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import TYPE_CHECKING, Any

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from acmedrive.challenge.base import ChallengePreparer
from acmedrive.core.proofs import tls_sni01_subject
from acmedrive.core.types import ChallengeType
from acmedrive.crypto.certs import certificate_to_pem, self_signed_certificate

if TYPE_CHECKING:
    from acmedrive.models import Challenge

log = logging.getLogger(__name__)

_PRIVATE_FILE_MODE = 0o600


def validation_files(domain: str) -> tuple[str, str]:
    """Return the key and certificate file names used for *domain*."""
    stem = "tlssni-" + domain.replace("*", "_")
    return f"{stem}.key", f"{stem}.crt"


class TlsSni01Preparer(ChallengePreparer):
    """TLS-SNI-01 challenge preparer."""

    challenge_type = ChallengeType.TLS_SNI_01

    def _directory(self) -> Path:
        return Path(getattr(self.storage, "directory", "."))

    def prepare(self, *, domain: str, challenge: Challenge) -> dict[str, Any]:
        subject = tls_sni01_subject(self._require_key_authorization(challenge))

        key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
        # The subject exceeds the 64 character CN limit; it only goes in the SAN.
        cert = self_signed_certificate(key, [subject], common_name="acme.invalid")

        directory = self._directory()
        directory.mkdir(parents=True, exist_ok=True)
        key_file, cert_file = validation_files(domain)
        key_path = directory / key_file
        cert_path = directory / cert_file

        pem = key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        )
        # A leftover key from an earlier run may carry a wider mode
        key_path.unlink(missing_ok=True)
        fd = os.open(key_path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, _PRIVATE_FILE_MODE)
        with os.fdopen(fd, "wb") as fh:
            fh.write(pem)
        cert_path.write_text(certificate_to_pem(cert), encoding="ascii")
        log.info("TLS-SNI-01: wrote validation certificate for %s to %s", subject, cert_path)

        return {
            "domain": domain,
            "subject": subject,
            "key_path": str(key_path),
            "cert_path": str(cert_path),
        }

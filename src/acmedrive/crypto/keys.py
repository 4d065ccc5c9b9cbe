"""Key pair provider.

:class:`FileKeyPairProvider` loads a PEM private key from disk, or
generates and persists a fresh RSA key when the file does not exist.
Within a run the same identifier always yields the same key object.

Keep the account key in a safe place: losing it means losing access
to the account.
"""

from __future__ import annotations

import abc
import logging
import os
import threading
from pathlib import Path
from typing import TYPE_CHECKING

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from acmedrive.core.proofs import compute_thumbprint, public_key_to_jwk
from acmedrive.models import Credential

if TYPE_CHECKING:
    from cryptography.hazmat.primitives.asymmetric.types import PrivateKeyTypes

    from acmedrive.config.settings import StorageSettings

log = logging.getLogger(__name__)

ACCOUNT_KEY = "account"
DOMAIN_KEY = "domain"

_PRIVATE_FILE_MODE = 0o600


class KeyPairProvider(abc.ABC):
    """Source of the account and domain key pairs."""

    @abc.abstractmethod
    def load_or_generate(self, identifier: str) -> PrivateKeyTypes:
        """Return the key pair for *identifier*, creating it if needed."""


class FileKeyPairProvider(KeyPairProvider):
    """Key pairs persisted as unencrypted PKCS#8 PEM files.

    Parameters
    ----------
    storage:
        The ``storage`` configuration section (directory and file names).
    key_size:
        RSA modulus size for newly generated keys.

    """

    def __init__(self, storage: StorageSettings, key_size: int = 2048) -> None:
        self._directory = Path(storage.directory)
        self._files = {
            ACCOUNT_KEY: storage.account_key_file,
            DOMAIN_KEY: storage.domain_key_file,
        }
        self._key_size = key_size
        self._cache: dict[str, PrivateKeyTypes] = {}
        self._lock = threading.Lock()

    def path_for(self, identifier: str) -> Path:
        filename = self._files.get(identifier, f"{identifier}.key")
        return self._directory / filename

    def load_or_generate(self, identifier: str) -> PrivateKeyTypes:
        with self._lock:
            key = self._cache.get(identifier)
            if key is None:
                key = self._load_or_generate(self.path_for(identifier))
                self._cache[identifier] = key
            return key

    def _load_or_generate(self, path: Path) -> PrivateKeyTypes:
        if path.exists():
            log.debug("Loading key pair from %s", path)
            return serialization.load_pem_private_key(path.read_bytes(), password=None)

        log.info("Generating %d-bit RSA key pair at %s", self._key_size, path)
        key = rsa.generate_private_key(public_exponent=65537, key_size=self._key_size)
        pem = key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        )
        path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, _PRIVATE_FILE_MODE)
        with os.fdopen(fd, "wb") as fh:
            fh.write(pem)
        return key


def credential_for(key: PrivateKeyTypes) -> Credential:
    """Build the public :class:`Credential` for an account key pair."""
    jwk = public_key_to_jwk(key.public_key())
    return Credential(jwk=jwk, thumbprint=compute_thumbprint(jwk))

"""Certificate store implementations."""

from __future__ import annotations

import abc
import logging
from pathlib import Path
from typing import TYPE_CHECKING

from acmedrive.models.certificate import join_pem

if TYPE_CHECKING:
    from collections.abc import Sequence

    from acmedrive.config.settings import StorageSettings
    from acmedrive.models import SigningRequest

log = logging.getLogger(__name__)


class CertificateStore(abc.ABC):
    """Destination for the artefacts of a successful run."""

    @abc.abstractmethod
    def write_chain(self, leaf: str, chain: Sequence[str]) -> None:
        """Persist the PEM leaf certificate followed by its chain."""

    def write_signing_request(self, signing_request: SigningRequest) -> None:  # noqa: B027
        """Persist the signing request for later use.  No-op by default."""


class FileCertificateStore(CertificateStore):
    """Write artefacts as PEM files under ``storage.directory``."""

    def __init__(self, storage: StorageSettings) -> None:
        self._directory = Path(storage.directory)
        self.chain_path = self._directory / storage.chain_file
        self.csr_path = self._directory / storage.csr_file

    def write_chain(self, leaf: str, chain: Sequence[str]) -> None:
        self._write(self.chain_path, join_pem([leaf, *chain]))
        log.info("Wrote certificate chain (%d certificate(s)) to %s", 1 + len(chain), self.chain_path)

    def write_signing_request(self, signing_request: SigningRequest) -> None:
        self._write(self.csr_path, signing_request.pem)
        log.debug("Wrote signing request to %s", self.csr_path)

    @staticmethod
    def _write(path: Path, content: str) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_name(path.name + ".tmp")
        tmp.write_text(content, encoding="ascii")
        tmp.replace(path)

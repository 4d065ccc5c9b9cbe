"""Tests for acmedrive.storage.certificates.FileCertificateStore."""

from __future__ import annotations

from acmedrive.config.settings import StorageSettings
from acmedrive.models import SigningRequest
from acmedrive.storage.certificates import FileCertificateStore

LEAF = "-----BEGIN CERTIFICATE-----\nLEAF\n-----END CERTIFICATE-----"
ISSUER = "-----BEGIN CERTIFICATE-----\nISSUER\n-----END CERTIFICATE-----\n"


class TestFileCertificateStore:
    def test_chain_written_leaf_first(self, tmp_path):
        store = FileCertificateStore(StorageSettings(directory=str(tmp_path / "out")))
        store.write_chain(LEAF, [ISSUER])

        content = (tmp_path / "out" / "domain-chain.crt").read_text(encoding="ascii")
        assert content == LEAF + "\n" + ISSUER
        assert content.index("LEAF") < content.index("ISSUER")

    def test_overwrite_leaves_no_temp_file(self, tmp_path):
        store = FileCertificateStore(StorageSettings(directory=str(tmp_path)))
        store.write_chain(LEAF, [])
        store.write_chain(LEAF, [ISSUER])
        assert sorted(p.name for p in tmp_path.iterdir()) == ["domain-chain.crt"]

    def test_signing_request_as_pem(self, tmp_path):
        store = FileCertificateStore(StorageSettings(directory=str(tmp_path), csr_file="req.csr"))
        request = SigningRequest(domains=("example.com",), der=b"\x30\x03\x02\x01\x00")
        store.write_signing_request(request)
        assert (tmp_path / "req.csr").read_text(encoding="ascii") == request.pem
        assert store.csr_path == tmp_path / "req.csr"

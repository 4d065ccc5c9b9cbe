"""Tests for acmedrive.crypto.csr.CsrBuilder and the SigningRequest model."""

from __future__ import annotations

import pytest
from cryptography import x509
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.serialization import Encoding
from cryptography.x509.oid import NameOID

from acmedrive.crypto.csr import CsrBuilder


@pytest.fixture(scope="module")
def domain_key():
    return ec.generate_private_key(ec.SECP256R1())


class TestCsrBuilder:
    def test_subject_and_san(self, domain_key):
        request = CsrBuilder().build(["example.com", "www.example.com"], domain_key)

        csr = x509.load_der_x509_csr(request.der)
        assert csr.is_signature_valid
        cn = csr.subject.get_attributes_for_oid(NameOID.COMMON_NAME)[0].value
        assert cn == "example.com"
        san = csr.extensions.get_extension_for_class(x509.SubjectAlternativeName)
        assert san.value.get_values_for_type(x509.DNSName) == ["example.com", "www.example.com"]
        assert request.domains == ("example.com", "www.example.com")

    def test_bound_to_domain_key(self, domain_key):
        request = CsrBuilder().build(["example.com"], domain_key)
        csr = x509.load_der_x509_csr(request.der)
        assert csr.public_key().public_numbers() == domain_key.public_key().public_numbers()

    def test_empty_domains(self, domain_key):
        with pytest.raises(ValueError, match="at least one domain"):
            CsrBuilder().build([], domain_key)

    def test_pem_round_trips_to_same_der(self, domain_key):
        request = CsrBuilder().build(["example.com"], domain_key)
        pem = request.pem
        assert pem.startswith("-----BEGIN CERTIFICATE REQUEST-----\n")
        assert pem.endswith("-----END CERTIFICATE REQUEST-----\n")
        assert all(len(line) <= 64 for line in pem.splitlines())
        csr = x509.load_pem_x509_csr(pem.encode("ascii"))
        assert csr.public_bytes(Encoding.DER) == request.der

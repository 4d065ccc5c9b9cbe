"""Certificate storage.

Persists the signing request and, once issuance succeeds, the combined
leaf + chain PEM file that a web server is configured with.
"""

from acmedrive.storage.certificates import CertificateStore, FileCertificateStore

__all__ = ["CertificateStore", "FileCertificateStore"]

"""acmedrive: client-side ACME issuance orchestration."""

__version__ = "1.0.0"

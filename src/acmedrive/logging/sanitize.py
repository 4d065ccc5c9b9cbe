"""Sensitive data sanitization for log output.

Provides :func:`sanitize_for_logs` which redacts private key material
(private JWK members, private key PEM bodies) from data structures
before they are logged.  Public material (public JWK members,
certificates, signing requests) passes through unchanged so it stays
useful for diagnostics.
"""

from __future__ import annotations

import re
from typing import Any

# JWK members that only exist on private keys (RFC 7518 §6)
_JWK_PRIVATE_FIELDS = frozenset({"d", "p", "q", "dp", "dq", "qi", "oth", "k"})

# PEM blocks whose label marks private key material
_PRIVATE_PEM_RE = re.compile(
    r"(-----BEGIN ((?:[A-Z0-9]+ )*PRIVATE KEY)-----)"
    r"([\s\S]*?)"
    r"(-----END \2-----)",
)


def sanitize_jwk(jwk: dict) -> dict:
    """Return a copy of *jwk* with private members replaced by ``[REDACTED]``."""
    return {
        key: "[REDACTED]" if key in _JWK_PRIVATE_FIELDS else value for key, value in jwk.items()
    }


def sanitize_pem(pem: str) -> str:
    """Replace the body of private key PEM blocks with ``[REDACTED]``.

    Preserves BEGIN/END markers so the type of object is still visible.
    """

    def _redact(m: re.Match) -> str:
        return f"{m.group(1)}\n[REDACTED]\n{m.group(4)}"

    return _PRIVATE_PEM_RE.sub(_redact, pem)


def sanitize_for_logs(data: Any) -> Any:  # noqa: ANN401
    """Recursively sanitize sensitive material in *data*.

    Handles dicts (JWK-like structures, PEM strings in values),
    lists, and plain strings.  Non-sensitive data passes through
    unchanged.
    """
    if isinstance(data, dict):
        # Detect JWK-like dicts by presence of "kty"
        if "kty" in data:
            return sanitize_jwk(data)
        return {k: sanitize_for_logs(v) for k, v in data.items()}

    if isinstance(data, (list, tuple)):
        return type(data)(sanitize_for_logs(item) for item in data)

    if isinstance(data, str):
        if "PRIVATE KEY-----" in data:
            return sanitize_pem(data)
        return data

    return data

"""JWK and challenge proof utilities (RFC 7517 / 7638 / 8555 §8).

Uses the ``cryptography`` library directly -- no josepy dependency.
Derives everything the client has to publish for a challenge from the
token and the account key: the key authorization, the DNS-01 TXT
digest and the TLS-SNI-01 validation subject.
"""

from __future__ import annotations

import base64
import hashlib
import json
import logging
from typing import TYPE_CHECKING, Any

from cryptography.hazmat.primitives.asymmetric import ec, rsa

if TYPE_CHECKING:
    from cryptography.hazmat.primitives.asymmetric.types import PublicKeyTypes

log = logging.getLogger(__name__)

DNS01_RECORD_PREFIX = "_acme-challenge"
"""Label prepended to the domain for the DNS-01 TXT record."""

HTTP01_PATH_PREFIX = "/.well-known/acme-challenge/"
"""Path under which the HTTP-01 token file must be served."""

TLS_SNI01_SUFFIX = ".acme.invalid"
"""Suffix of the TLS-SNI-01 validation subject."""

# Canonical JWK curve names by cryptography curve name
_EC_CURVE_NAMES: dict[str, tuple[str, int]] = {
    "secp256r1": ("P-256", 32),
    "secp384r1": ("P-384", 48),
    "secp521r1": ("P-521", 66),
}


# --- Base64url helpers (RFC 7515 §2) -------------------------------------


def b64url_encode(b: bytes) -> str:
    """Encode bytes to base64url without padding."""
    return base64.urlsafe_b64encode(b).rstrip(b"=").decode("ascii")


def _int_to_b64url(value: int, length: int | None = None) -> str:
    if length is None:
        length = max(1, (value.bit_length() + 7) // 8)
    return b64url_encode(value.to_bytes(length, "big"))


# --- JWK ----------------------------------------------------------------


def public_key_to_jwk(public_key: PublicKeyTypes) -> dict[str, Any]:
    """Build the public JWK dictionary for an RSA or EC public key.

    Raises
    ------
    ValueError
        For unsupported key types or curves.

    """
    if isinstance(public_key, rsa.RSAPublicKey):
        numbers = public_key.public_numbers()
        return {
            "kty": "RSA",
            "n": _int_to_b64url(numbers.n),
            "e": _int_to_b64url(numbers.e),
        }
    if isinstance(public_key, ec.EllipticCurvePublicKey):
        curve = _EC_CURVE_NAMES.get(public_key.curve.name)
        if curve is None:
            msg = f"Unsupported EC curve '{public_key.curve.name}'"
            raise ValueError(msg)
        crv, size = curve
        numbers = public_key.public_numbers()
        return {
            "kty": "EC",
            "crv": crv,
            "x": _int_to_b64url(numbers.x, size),
            "y": _int_to_b64url(numbers.y, size),
        }
    msg = f"Unsupported public key type '{type(public_key).__name__}'"
    raise ValueError(msg)


def compute_thumbprint(jwk_dict: dict[str, Any]) -> str:
    """Compute the RFC 7638 JWK Thumbprint using SHA-256.

    Construct the canonical JSON representation with required members
    in lexicographic order, then return the base64url-encoded SHA-256
    hash.
    """
    kty = jwk_dict.get("kty")

    if kty == "RSA":
        canonical = {
            "e": jwk_dict["e"],
            "kty": "RSA",
            "n": jwk_dict["n"],
        }
    elif kty == "EC":
        canonical = {
            "crv": jwk_dict["crv"],
            "kty": "EC",
            "x": jwk_dict["x"],
            "y": jwk_dict["y"],
        }
    else:
        msg = f"Cannot compute thumbprint for kty '{kty}'"
        raise ValueError(msg)

    # RFC 7638 requires members in lexicographic order, no whitespace
    canonical_json = json.dumps(
        canonical,
        sort_keys=True,
        separators=(",", ":"),
    )
    digest = hashlib.sha256(canonical_json.encode("ascii")).digest()
    return b64url_encode(digest)


# --- Challenge proofs ----------------------------------------------------


def key_authorization(token: str, thumbprint: str) -> str:
    """Return the key authorization string: ``token.thumbprint``."""
    return f"{token}.{thumbprint}"


def dns01_digest(key_authz: str) -> str:
    """Return the DNS-01 TXT value: base64url(SHA-256(key authorization))."""
    digest = hashlib.sha256(key_authz.encode("ascii")).digest()
    return b64url_encode(digest)


def dns01_record_name(domain: str) -> str:
    """Return the fully qualified TXT record name for *domain*."""
    return f"{DNS01_RECORD_PREFIX}.{domain.rstrip('.')}."


def http01_path(token: str) -> str:
    """Return the URL path the HTTP-01 token must be served under."""
    return f"{HTTP01_PATH_PREFIX}{token}"


def tls_sni01_subject(key_authz: str) -> str:
    """Return the TLS-SNI-01 validation subject.

    ``Z`` is the lowercase hex SHA-256 of the key authorization; the
    subject is ``Z[0:32] + "." + Z[32:64] + ".acme.invalid"``.
    """
    z = hashlib.sha256(key_authz.encode("ascii")).hexdigest()
    return f"{z[:32]}.{z[32:]}{TLS_SNI01_SUFFIX}"

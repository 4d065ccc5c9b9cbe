"""Typed, frozen dataclasses for every configuration section.

This module is the **single source of truth** for default values.
JSON Schema defaults exist only for documentation; these builders are
what the engine actually reads.

Access pattern::

    from acmedrive.config import get_config

    issuance = get_config().settings.issuance
    print(issuance.challenge_type, issuance.poll_max_attempts)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from acmedrive.core.types import ChallengeType

# ---------------------------------------------------------------------------
# Issuance
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class IssuanceSettings:
    """Issuance policy handed to the coordinator at construction."""

    challenge_type: ChallengeType = ChallengeType.HTTP_01
    key_size: int = 2048
    poll_max_attempts: int = 10
    poll_interval_seconds: float = 3.0
    concurrent_domains: bool = False


def _build_issuance(data: dict | None) -> IssuanceSettings:
    d = data or {}
    return IssuanceSettings(
        challenge_type=ChallengeType(d.get("challenge_type", "http-01")),
        key_size=d.get("key_size", 2048),
        poll_max_attempts=d.get("poll_max_attempts", 10),
        poll_interval_seconds=float(d.get("poll_interval_seconds", 3)),
        concurrent_domains=d.get("concurrent_domains", False),
    )


# ---------------------------------------------------------------------------
# Transport
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TransportSettings:
    """Transport backend selection and its backend-specific options."""

    backend: str = "simulated"
    directory_url: str = "acme://letsencrypt.org/staging"
    options: dict[str, Any] = field(default_factory=dict)


def _build_transport(data: dict | None) -> TransportSettings:
    d = data or {}
    return TransportSettings(
        backend=d.get("backend", "simulated"),
        directory_url=d.get("directory_url", "acme://letsencrypt.org/staging"),
        options=dict(d.get("options") or {}),
    )


# ---------------------------------------------------------------------------
# Storage
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class StorageSettings:
    """Where key pairs, the signing request and the chain are written."""

    directory: str = "."
    account_key_file: str = "user.key"
    domain_key_file: str = "domain.key"
    csr_file: str = "domain.csr"
    chain_file: str = "domain-chain.crt"


def _build_storage(data: dict | None) -> StorageSettings:
    d = data or {}
    return StorageSettings(
        directory=d.get("directory", "."),
        account_key_file=d.get("account_key_file", "user.key"),
        domain_key_file=d.get("domain_key_file", "domain.key"),
        csr_file=d.get("csr_file", "domain.csr"),
        chain_file=d.get("chain_file", "domain-chain.crt"),
    )


# ---------------------------------------------------------------------------
# Challenges
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Http01Settings:
    """HTTP-01 proof publication settings."""

    webroot: str | None = None


@dataclass(frozen=True)
class Dns01Settings:
    """DNS-01 propagation check settings."""

    check_propagation: bool = False
    resolvers: tuple[str, ...] = ()
    timeout_seconds: int = 10


@dataclass(frozen=True)
class ChallengeSettings:
    """Aggregate challenge configuration for all challenge types."""

    http01: Http01Settings = field(default_factory=Http01Settings)
    dns01: Dns01Settings = field(default_factory=Dns01Settings)
    custom: dict[str, str] = field(default_factory=dict)


def _build_challenges(data: dict | None) -> ChallengeSettings:
    d = data or {}
    h = d.get("http01") or {}
    dn = d.get("dns01") or {}
    return ChallengeSettings(
        http01=Http01Settings(
            webroot=h.get("webroot"),
        ),
        dns01=Dns01Settings(
            check_propagation=dn.get("check_propagation", False),
            resolvers=tuple(dn.get("resolvers", [])),
            timeout_seconds=dn.get("timeout_seconds", 10),
        ),
        custom=dict(d.get("custom") or {}),
    )


# ---------------------------------------------------------------------------
# Interaction
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class InteractionSettings:
    """Instruction template overrides."""

    templates_path: str | None = None


def _build_interaction(data: dict | None) -> InteractionSettings:
    d = data or {}
    return InteractionSettings(templates_path=d.get("templates_path"))


# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LoggingSettings:
    """Log level and output format (``text`` or ``json``)."""

    level: str = "INFO"
    format: str = "text"


def _build_logging(data: dict | None) -> LoggingSettings:
    d = data or {}
    return LoggingSettings(
        level=d.get("level", "INFO"),
        format=d.get("format", "text"),
    )


# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DriveSettings:
    issuance: IssuanceSettings = field(default_factory=IssuanceSettings)
    transport: TransportSettings = field(default_factory=TransportSettings)
    storage: StorageSettings = field(default_factory=StorageSettings)
    challenges: ChallengeSettings = field(default_factory=ChallengeSettings)
    interaction: InteractionSettings = field(default_factory=InteractionSettings)
    logging: LoggingSettings = field(default_factory=LoggingSettings)


def build_settings(data: dict) -> DriveSettings:
    """Build the full typed settings tree from raw config data.

    Called once during :class:`DriveConfig` initialization after
    schema validation and environment-variable resolution.
    """
    return DriveSettings(
        issuance=_build_issuance(data.get("issuance")),
        transport=_build_transport(data.get("transport")),
        storage=_build_storage(data.get("storage")),
        challenges=_build_challenges(data.get("challenges")),
        interaction=_build_interaction(data.get("interaction")),
        logging=_build_logging(data.get("logging")),
    )

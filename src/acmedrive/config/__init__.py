"""Configuration subsystem for acmedrive.

Public API::

    from acmedrive.config import get_config, DriveConfig

    # At startup (CLI only):
    DriveConfig(config_file="acmedrive.yaml")

    # Everywhere else:
    cfg = get_config()
    attempts = cfg.settings.issuance.poll_max_attempts   # typed access
    endpoint = cfg.get("transport.options.endpoint")      # dynamic dot-path
"""

from acmedrive.config.drive_config import (
    ConfigValidationError,
    DriveConfig,
    get_config,
)
from acmedrive.config.settings import (
    ChallengeSettings,
    Dns01Settings,
    DriveSettings,
    Http01Settings,
    InteractionSettings,
    IssuanceSettings,
    LoggingSettings,
    StorageSettings,
    TransportSettings,
    build_settings,
)

__all__ = [
    "ChallengeSettings",
    "ConfigValidationError",
    "Dns01Settings",
    # Core
    "DriveConfig",
    # Root
    "DriveSettings",
    # Sections
    "Http01Settings",
    "InteractionSettings",
    "IssuanceSettings",
    "LoggingSettings",
    "StorageSettings",
    "TransportSettings",
    "build_settings",
    "get_config",
]

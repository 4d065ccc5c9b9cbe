"""Logging subsystem for acmedrive.

Public API::

    from acmedrive.logging import configure_logging, issuance_context

    configure_logging(settings.logging)
"""

from acmedrive.logging.sanitize import sanitize_for_logs
from acmedrive.logging.setup import configure_logging, issuance_context

__all__ = ["configure_logging", "issuance_context", "sanitize_for_logs"]

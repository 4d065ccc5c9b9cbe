"""Application wiring for acmedrive.

Public API::

    from acmedrive.app import create_coordinator
"""

from acmedrive.app.factory import create_coordinator

__all__ = ["create_coordinator"]

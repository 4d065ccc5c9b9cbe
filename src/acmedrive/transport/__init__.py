"""Pluggable ACME transport system.

Exports the abstract base class, the structured error type and the
registry loader.
"""

from acmedrive.transport.base import AcmeTransport, TransportError
from acmedrive.transport.registry import load_transport

__all__ = [
    "AcmeTransport",
    "TransportError",
    "load_transport",
]

"""Transport registry.

Loads the configured transport by name and returns an initialised
:class:`AcmeTransport` instance.  Supports the built-in ``simulated``
and ``acme`` transports and custom transports via the ``ext:`` prefix.

Usage::

    from acmedrive.transport.registry import load_transport

    transport = load_transport(settings.transport)
    result = transport.register(credential)
"""

from __future__ import annotations

import importlib
import logging
from typing import TYPE_CHECKING

from acmedrive.transport.base import AcmeTransport, TransportError

if TYPE_CHECKING:
    from acmedrive.config.settings import TransportSettings

log = logging.getLogger(__name__)

# Maps config string → (module_path, class_name)
_BUILTIN_TRANSPORTS: dict[str, tuple[str, str]] = {
    "simulated": ("acmedrive.transport.simulated", "SimulatedTransport"),
    "acme": ("acmedrive.transport.rfc8555", "RFC8555Transport"),
}

_REQUIRED_METHODS = (
    "register",
    "bind",
    "accept_agreement",
    "authorize_domain",
    "trigger",
    "refresh",
    "request_certificate",
    "download_certificate",
    "download_chain",
)


def load_transport(settings: TransportSettings) -> AcmeTransport:
    """Load and return the configured transport.

    Raises
    ------
    TransportError
        If the transport cannot be loaded.

    """
    name = settings.backend

    if name in _BUILTIN_TRANSPORTS:
        return _load_builtin(name, settings)
    if name.startswith("ext:"):
        return _load_external(name[4:], settings)
    msg = (
        f"Unknown transport '{name}'; "
        f"built-in options: {sorted(_BUILTIN_TRANSPORTS)}. "
        f"Use 'ext:mypackage.module.ClassName' for custom transports."
    )
    raise TransportError(msg)


def _load_builtin(name: str, settings: TransportSettings) -> AcmeTransport:
    """Load a built-in transport."""
    mod_path, cls_name = _BUILTIN_TRANSPORTS[name]

    try:
        module = importlib.import_module(mod_path)
        cls = getattr(module, cls_name)
    except (ImportError, AttributeError) as exc:
        msg = f"Failed to load built-in transport '{name}': {exc}"
        raise TransportError(msg) from exc

    _validate_class(cls, name)
    transport = cls(settings)
    log.info("Loaded transport: %s", name)
    return transport


def _load_external(fqn: str, settings: TransportSettings) -> AcmeTransport:
    """Load a custom transport by fully-qualified class name.

    Parameters
    ----------
    fqn:
        e.g. ``"mycompany.acme.wire.Rfc8555Transport"``

    """
    module_path, _, cls_name = fqn.rpartition(".")
    if not module_path:
        msg = (
            f"Invalid external transport '{fqn}': must be fully "
            "qualified (e.g. 'mypackage.module.ClassName')"
        )
        raise TransportError(msg)

    try:
        module = importlib.import_module(module_path)
        cls = getattr(module, cls_name)
    except (ImportError, AttributeError) as exc:
        msg = f"Failed to load external transport '{fqn}': {exc}"
        raise TransportError(msg) from exc

    _validate_class(cls, f"ext:{fqn}")
    transport = cls(settings)
    log.info("Loaded external transport: %s", fqn)
    return transport


def _validate_class(cls: type, label: str) -> None:
    """Verify that a transport class implements the full interface."""
    if not (isinstance(cls, type) and issubclass(cls, AcmeTransport)):
        msg = f"Transport '{label}' is not a subclass of AcmeTransport"
        raise TransportError(msg)

    for method_name in _REQUIRED_METHODS:
        method = getattr(cls, method_name, None)
        if method is None or getattr(method, "__isabstractmethod__", False):
            msg = f"Transport '{label}' does not implement '{method_name}()'"
            raise TransportError(msg)

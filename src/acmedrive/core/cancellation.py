"""Cooperative cancellation for the poll loop.

:class:`CancellationToken` is the engine's only suspension primitive:
``wait(seconds)`` suspends for the interval or until the token is
cancelled, whichever comes first.  It is built on
:class:`threading.Event`, so the same poller runs unchanged on the
main thread or on a worker pool thread.

Tokens form a tree.  Cancelling a token cancels all of its children;
cancelling a child leaves the parent untouched.  The issuance
coordinator hands each concurrent domain a child of the run token so
the first failing domain can stop its siblings.
"""

from __future__ import annotations

import logging
import threading

from acmedrive.core.errors import IssuanceCancelled

log = logging.getLogger(__name__)


class CancellationToken:
    """A cancellable wait handle.

    Parameters
    ----------
    name:
        Label used in log messages.

    """

    def __init__(self, name: str = "run") -> None:
        self.name = name
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._children: list[CancellationToken] = []
        self._reason: str | None = None

    @property
    def cancelled(self) -> bool:
        """True once :meth:`cancel` has been called on this token or a parent."""
        return self._event.is_set()

    @property
    def reason(self) -> str | None:
        return self._reason

    def cancel(self, reason: str = "cancelled") -> None:
        """Cancel this token and every child token.  Idempotent."""
        with self._lock:
            if self._event.is_set():
                return
            self._reason = reason
            self._event.set()
            children = list(self._children)
        log.debug("Cancellation token '%s' cancelled: %s", self.name, reason)
        for child in children:
            child.cancel(reason)

    def child(self, name: str) -> CancellationToken:
        """Return a new token that is cancelled whenever this one is."""
        token = CancellationToken(name)
        with self._lock:
            self._children.append(token)
            already = self._event.is_set()
        if already:
            token.cancel(self._reason or "cancelled")
        return token

    def wait(self, seconds: float) -> bool:
        """Suspend for *seconds* or until cancelled.

        Returns ``True`` if the token was cancelled, ``False`` if the
        full interval elapsed.  Holds no lock while suspended.
        """
        return self._event.wait(timeout=seconds)

    def raise_if_cancelled(self, **context) -> None:
        """Raise :class:`IssuanceCancelled` if the token is cancelled."""
        if self._event.is_set():
            raise IssuanceCancelled(
                f"Issuance cancelled: {self._reason or 'cancelled'}",
                **context,
            )

"""Graceful shutdown coordinator.

Turns SIGTERM/SIGINT into a cancellation of the run token, so a poll
wait in progress returns at once and the run ends with
:class:`~acmedrive.core.errors.IssuanceCancelled` instead of being
killed mid-request.  Tracks in-flight operations so the caller can
tell what was interrupted.

Usage::

    from acmedrive.app.shutdown import ShutdownCoordinator

    shutdown = ShutdownCoordinator(token)
    shutdown.register_signals()

    with shutdown.track("issue"):
        coordinator.run(domains)
"""

from __future__ import annotations

import logging
import signal
import threading
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Generator

    from acmedrive.core.cancellation import CancellationToken

log = logging.getLogger(__name__)

_HANDLED_SIGNALS = (signal.SIGTERM, signal.SIGINT)


class ShutdownCoordinator:
    """Coordinates shutdown by cancelling the run token.

    Parameters
    ----------
    token:
        The run-wide cancellation token.

    """

    def __init__(self, token: CancellationToken) -> None:
        self._token = token
        self._shutdown_flag = threading.Event()
        self._in_flight: list[str] = []
        self._lock = threading.Lock()
        self._previous: dict[int, Any] = {}

    @property
    def is_shutting_down(self) -> bool:
        """True once :meth:`initiate` has been called."""
        return self._shutdown_flag.is_set()

    @property
    def in_flight(self) -> list[str]:
        """Names of the currently tracked operations."""
        with self._lock:
            return list(self._in_flight)

    @contextmanager
    def track(self, name: str) -> Generator[None, None, None]:
        """Context manager to track an in-flight operation."""
        if self._shutdown_flag.is_set():
            log.warning("Operation '%s' starting during shutdown", name)

        with self._lock:
            self._in_flight.append(name)
        try:
            yield
        finally:
            with self._lock:
                self._in_flight.remove(name)

    def initiate(self, reason: str = "shutdown requested") -> None:
        """Begin shutdown: cancel the run token.  Idempotent."""
        if self._shutdown_flag.is_set():
            return
        self._shutdown_flag.set()
        in_flight = self.in_flight
        log.info(
            "Shutdown initiated (%s), cancelling %s",
            reason,
            ", ".join(in_flight) if in_flight else "no tracked operations",
        )
        self._token.cancel(reason)

    def register_signals(self) -> None:
        """Register SIGTERM and SIGINT handlers to initiate shutdown.

        Must be called from the main thread.
        """
        try:
            for signum in _HANDLED_SIGNALS:
                self._previous[signum] = signal.signal(signum, self._signal_handler)
        except (ValueError, OSError):
            # Not in main thread
            log.debug("Could not register signal handlers (not main thread)")

    def restore_signals(self) -> None:
        """Reinstate the handlers that were active before :meth:`register_signals`."""
        for signum, previous in self._previous.items():
            try:
                signal.signal(signum, previous)
            except (ValueError, OSError):
                log.debug("Could not restore handler for %s", signal.Signals(signum).name)
        self._previous.clear()

    def _signal_handler(self, signum: int, frame) -> None:
        sig_name = signal.Signals(signum).name
        if self._shutdown_flag.is_set() and signum == signal.SIGINT:
            # Second Ctrl-C: stop waiting for a graceful end
            raise KeyboardInterrupt
        log.info("Received %s, cancelling the run", sig_name)
        self.initiate(f"received {sig_name}")

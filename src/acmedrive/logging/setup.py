"""Structured logging configuration for acmedrive.

Provides JSON and text formatters, an issuance-context filter that
injects the run id and the domain being worked on into every log
record, and a one-call ``configure_logging`` function driven by config
settings.

The context lives in :mod:`contextvars`, so each worker thread of a
concurrent run reports its own domain::

    with issuance_context(run_id=run_id):
        with issuance_context(domain="example.com"):
            log.info("authorizing")   # record.domain == "example.com"
"""

from __future__ import annotations

import contextlib
import contextvars
import json
import logging
import sys
from datetime import UTC, datetime
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterator

    from acmedrive.config.settings import LoggingSettings

_run_id: contextvars.ContextVar[str] = contextvars.ContextVar("acmedrive_run_id", default="-")
_domain: contextvars.ContextVar[str] = contextvars.ContextVar("acmedrive_domain", default="-")

# Attributes that are part of the standard LogRecord; everything
# else is considered "extra" and gets included in structured output.
_STANDARD_ATTRS = frozenset(
    {
        "args",
        "created",
        "exc_info",
        "exc_text",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "message",
        "module",
        "msecs",
        "msg",
        "name",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "stack_info",
        "taskName",
        "thread",
        "threadName",
        # Our own well-known context attributes (handled explicitly):
        "run_id",
        "domain",
    }
)


@contextlib.contextmanager
def issuance_context(*, run_id: str | None = None, domain: str | None = None) -> Iterator[None]:
    """Bind *run_id* and/or *domain* to log records emitted in the block."""
    tokens = []
    if run_id is not None:
        tokens.append((_run_id, _run_id.set(run_id)))
    if domain is not None:
        tokens.append((_domain, _domain.set(domain)))
    try:
        yield
    finally:
        for var, token in reversed(tokens):
            var.reset(token)


def current_run_id() -> str:
    return _run_id.get()


# ---------------------------------------------------------------------------
# Formatters
# ---------------------------------------------------------------------------


class StructuredFormatter(logging.Formatter):
    """JSON-lines formatter for machine consumption.

    Every record becomes a single JSON object on one line containing
    the standard fields plus any *extra* attributes passed by the
    caller or injected by filters.
    """

    def format(self, record: logging.LogRecord) -> str:
        record.message = record.getMessage()

        data: dict = {
            "timestamp": datetime.fromtimestamp(
                record.created,
                tz=UTC,
            ).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.message,
        }

        # Issuance context (set by IssuanceContextFilter)
        run_id = getattr(record, "run_id", None)
        if run_id not in (None, "-"):
            data["run_id"] = run_id

        domain = getattr(record, "domain", None)
        if domain not in (None, "-"):
            data["domain"] = domain

        # Caller-supplied extra fields
        for key, value in record.__dict__.items():
            if key not in _STANDARD_ATTRS and not key.startswith("_"):
                data.setdefault(key, value)

        if record.exc_info and record.exc_info[0] is not None:
            data["exception"] = self.formatException(record.exc_info)

        if record.stack_info:
            data["stack_info"] = self.formatStack(record.stack_info)

        return json.dumps(data, default=str)


class TextFormatter(logging.Formatter):
    """Human-readable formatter for console use."""

    _FMT = "%(asctime)s %(levelname)-8s [%(run_id)s] %(domain)s %(name)s: %(message)s"

    def __init__(self) -> None:
        super().__init__(fmt=self._FMT, datefmt="%Y-%m-%d %H:%M:%S")


# ---------------------------------------------------------------------------
# Filter
# ---------------------------------------------------------------------------


class IssuanceContextFilter(logging.Filter):
    """Inject the issuance context into every log record.

    Adds ``run_id`` and ``domain`` from the values bound by
    :func:`issuance_context`, falling back to ``"-"``.  Values passed
    explicitly through ``extra=`` win.
    """

    CONTEXT_ATTRS = frozenset({"run_id", "domain"})

    def filter(self, record: logging.LogRecord) -> bool:  # type: ignore[override]
        if not hasattr(record, "run_id"):
            record.run_id = _run_id.get()  # type: ignore[attr-defined]
        if not hasattr(record, "domain"):
            record.domain = _domain.get()  # type: ignore[attr-defined]
        return True


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def configure_logging(settings: LoggingSettings) -> logging.Logger:
    """Configure the ``acmedrive`` logger hierarchy from settings.

    Replaces any bootstrap handlers with properly formatted output.

    Returns the root ``acmedrive`` logger.
    """
    level = getattr(logging, settings.level.upper(), logging.INFO)

    root = logging.getLogger("acmedrive")
    root.setLevel(level)
    root.handlers.clear()
    root.propagate = False

    formatter: logging.Formatter
    formatter = StructuredFormatter() if settings.format == "json" else TextFormatter()

    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(formatter)
    console.addFilter(IssuanceContextFilter())
    root.addHandler(console)

    # dnspython is chatty at DEBUG
    logging.getLogger("dns").setLevel(logging.WARNING)

    return root

"""acmedrive command-line entry point.

Usage::

    acmedrive -c acmedrive.yaml issue example.com www.example.com
    acmedrive -c acmedrive.yaml --yes issue example.com
    acmedrive -c acmedrive.yaml --validate-only
    python -m acmedrive -c acmedrive.yaml issue example.com

Exit codes: 0 success, 1 configuration error, 2 issuance failure,
3 declined by the user, 130 interrupted.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

log = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_CONFIG = 1
EXIT_FAILED = 2
EXIT_DECLINED = 3
EXIT_INTERRUPTED = 130


def _get_version() -> str:
    from acmedrive import __version__

    return __version__


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="acmedrive",
        description="acmedrive: drive an ACME certificate issuance from the client side",
    )
    parser.add_argument(
        "-c",
        "--config",
        required=True,
        metavar="PATH",
        help="Path to the configuration file (YAML or JSON).",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        default=False,
        help="Enable debug output (full tracebacks, verbose logging).",
    )
    parser.add_argument(
        "--validate-only",
        action="store_true",
        default=False,
        help="Validate the configuration file and exit.",
    )
    parser.add_argument(
        "-y",
        "--yes",
        action="store_true",
        default=False,
        help="Accept the terms of service and every challenge prompt without asking.",
    )
    parser.add_argument(
        "-v",
        "--version",
        action="version",
        version=f"%(prog)s {_get_version()}",
    )

    subparsers = parser.add_subparsers(dest="command")

    issue_parser = subparsers.add_parser("issue", help="Obtain a certificate for one or more domains")
    issue_parser.add_argument("domains", nargs="+", metavar="DOMAIN", help="Domain names to certify")

    return parser


def _print_error(message: str) -> None:
    """Print a user-facing error to stderr."""
    print(f"acmedrive: error: {message}", file=sys.stderr)  # noqa: T201


def main(argv: list[str] | None = None) -> None:
    """CLI entry point.  Parses arguments, loads config, runs the issuance."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    # -- resolve config path ---
    config_path = Path(args.config)
    if not config_path.is_file():
        _print_error(f"configuration file not found: {config_path}")
        sys.exit(EXIT_CONFIG)

    # -- bootstrap logging early (basic stderr until config is loaded) ---
    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.WARNING,
        format="%(levelname)s: %(message)s",
        stream=sys.stderr,
    )

    # -- load & validate config ---
    try:
        from acmedrive.config import ConfigValidationError, DriveConfig

        config = DriveConfig(config_file=str(config_path))
    except ConfigValidationError as exc:
        _print_error(str(exc))
        sys.exit(EXIT_CONFIG)
    except Exception as exc:
        if args.debug:
            raise
        _print_error(f"failed to load configuration: {exc}")
        sys.exit(EXIT_CONFIG)

    # -- replace bootstrap logging with structured logging ---
    from acmedrive.logging import configure_logging

    configure_logging(config.settings.logging)
    if args.debug:
        logging.getLogger("acmedrive").setLevel(logging.DEBUG)

    if args.validate_only:
        _print_settings_summary(config)
        sys.exit(EXIT_OK)

    if args.command != "issue":
        parser.print_help(sys.stderr)
        sys.exit(EXIT_CONFIG)

    sys.exit(_run_issue(config, args))


def _run_issue(config, args) -> int:
    """Run one issuance and return the process exit code."""
    from acmedrive.app import create_coordinator
    from acmedrive.app.shutdown import ShutdownCoordinator
    from acmedrive.core.cancellation import CancellationToken
    from acmedrive.core.errors import IssuanceCancelled, IssuanceError, UserCancelled
    from acmedrive.interaction import AutoConfirmInteraction, ConsoleInteraction
    from acmedrive.transport.base import TransportError

    token = CancellationToken()
    interaction = AutoConfirmInteraction() if args.yes else ConsoleInteraction()

    try:
        coordinator = create_coordinator(config.settings, interaction=interaction, token=token)
    except (TransportError, ImportError, TypeError, ValueError) as exc:
        if args.debug:
            raise
        _print_error(f"cannot set up issuance: {exc}")
        return EXIT_CONFIG

    shutdown = ShutdownCoordinator(token)
    shutdown.register_signals()
    try:
        with shutdown.track("issue"):
            certificate = coordinator.run(args.domains)
    except IssuanceCancelled as exc:
        _print_error(str(exc))
        return EXIT_INTERRUPTED
    except UserCancelled as exc:
        _print_error(str(exc))
        return EXIT_DECLINED
    except (IssuanceError, TransportError) as exc:
        if args.debug:
            log.exception("Issuance failed")
        _print_error(str(exc))
        return EXIT_FAILED
    except KeyboardInterrupt:
        _print_error("interrupted")
        return EXIT_INTERRUPTED
    finally:
        shutdown.restore_signals()
        coordinator.close()

    storage = config.settings.storage
    chain_path = Path(storage.directory) / storage.chain_file
    print(f"Certificate issued for {', '.join(certificate.domains)}")  # noqa: T201
    print(f"  location: {certificate.location}")  # noqa: T201
    print(f"  chain:    {chain_path}")  # noqa: T201
    return EXIT_OK


def _print_settings_summary(config) -> None:
    """Print a short summary of the loaded configuration."""
    s = config.settings
    lines = [
        f"Configuration OK: {config!r}",
        f"  transport:      {s.transport.backend} ({s.transport.directory_url})",
        f"  challenge type: {s.issuance.challenge_type}",
        f"  key size:       {s.issuance.key_size}",
        f"  polling:        {s.issuance.poll_max_attempts} x {s.issuance.poll_interval_seconds:g}s",
        f"  concurrent:     {s.issuance.concurrent_domains}",
        f"  storage:        {s.storage.directory}",
    ]
    print("\n".join(lines))  # noqa: T201

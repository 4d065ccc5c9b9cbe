"""Root conftest for the acmedrive test suite."""

from __future__ import annotations

import logging
import sys
from dataclasses import replace
from pathlib import Path

import pytest
import yaml

# ---------------------------------------------------------------------------
# Make ``src/`` importable without installing the package
# ---------------------------------------------------------------------------
_SRC = str(Path(__file__).resolve().parent.parent / "src")
if _SRC not in sys.path:
    sys.path.insert(0, _SRC)

from acmedrive.core.cancellation import CancellationToken  # noqa: E402
from acmedrive.core.proofs import key_authorization  # noqa: E402
from acmedrive.core.types import (  # noqa: E402
    AccountStatus,
    AuthorizationStatus,
    ChallengeStatus,
    ChallengeType,
)
from acmedrive.interaction.base import UserInteraction  # noqa: E402
from acmedrive.models import (  # noqa: E402
    Account,
    AlreadyExists,
    Authorization,
    Challenge,
    Created,
)
from acmedrive.transport.base import AcmeTransport  # noqa: E402

# ---------------------------------------------------------------------------
# Minimal config data shared by multiple test modules
# ---------------------------------------------------------------------------


@pytest.fixture()
def minimal_config_data(tmp_path: Path) -> dict:
    """Return a dict containing a small but complete configuration."""
    return {
        "issuance": {"challenge_type": "http-01", "poll_interval_seconds": 0},
        "transport": {"backend": "simulated"},
        "storage": {"directory": str(tmp_path / "store")},
    }


@pytest.fixture()
def tmp_config_file(tmp_path: Path, minimal_config_data: dict) -> Path:
    """Write *minimal_config_data* to a temp YAML file and return its path."""
    cfg = tmp_path / "config.yaml"
    cfg.write_text(
        yaml.safe_dump(minimal_config_data, default_flow_style=False, sort_keys=False),
        encoding="utf-8",
    )
    return cfg


# ---------------------------------------------------------------------------
# Config singleton cleanup: autouse so every test gets a fresh slate
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def fresh_config():
    """Reset the DriveConfig singleton before and after every test."""
    from acmedrive.config.drive_config import DriveConfig

    DriveConfig.reset()
    yield
    DriveConfig.reset()


@pytest.fixture(autouse=True)
def restore_acmedrive_logger():
    """Undo ``configure_logging`` so caplog keeps seeing ``acmedrive`` records."""
    logger = logging.getLogger("acmedrive")
    saved = (list(logger.handlers), logger.level, logger.propagate)
    yield
    logger.handlers[:] = saved[0]
    logger.setLevel(saved[1])
    logger.propagate = saved[2]


# ---------------------------------------------------------------------------
# Test doubles
# ---------------------------------------------------------------------------


class InstantToken(CancellationToken):
    """Cancellation token whose waits return at once.

    Records every requested interval.  With ``cancel_on_wait=n`` the
    token cancels itself during the n-th wait.
    """

    def __init__(self, name: str = "test", cancel_on_wait: int | None = None) -> None:
        super().__init__(name)
        self.waits: list[float] = []
        self._cancel_on_wait = cancel_on_wait

    def wait(self, seconds: float) -> bool:
        self.waits.append(seconds)
        if self._cancel_on_wait is not None and len(self.waits) >= self._cancel_on_wait:
            self.cancel("test cancellation")
        return self.cancelled


class ScriptedInteraction(UserInteraction):
    """Answers prompts from a fixed script and records what was asked.

    A single bool answers every prompt; a list is consumed in order,
    repeating the last answer once exhausted.
    """

    def __init__(self, answers: bool | list[bool] = True) -> None:
        self._answers = answers if isinstance(answers, list) else [answers]
        self.prompts: list[tuple[str, str]] = []

    def confirm(self, title: str, message: str) -> bool:
        self.prompts.append((title, message))
        index = min(len(self.prompts) - 1, len(self._answers) - 1)
        return self._answers[index]


class ScriptedTransport(AcmeTransport):
    """Transport double driven by per-domain status scripts.

    Parameters
    ----------
    refresh_statuses:
        Statuses returned by successive ``refresh`` calls, either one
        list for every domain or a dict keyed by domain.  The last
        status repeats once a script is exhausted.
    trigger_status:
        Status reported by ``trigger``.
    initial_status:
        Status of every offered challenge when the authorization is fetched.
    offered_types:
        Challenge types offered in each authorization.
    existing_location:
        When set, ``register`` reports the credential as already
        registered at this location.

    """

    THUMBPRINT = "test-thumbprint"

    def __init__(
        self,
        refresh_statuses: list[ChallengeStatus] | dict[str, list[ChallengeStatus]] | None = None,
        *,
        trigger_status: ChallengeStatus = ChallengeStatus.PENDING,
        initial_status: ChallengeStatus = ChallengeStatus.PENDING,
        offered_types: tuple[ChallengeType, ...] = (ChallengeType.HTTP_01,),
        existing_location: str | None = None,
    ) -> None:
        from acmedrive.config.settings import TransportSettings

        super().__init__(TransportSettings(backend="simulated", directory_url="https://acme.test/directory"))
        self._refresh_statuses = refresh_statuses or [ChallengeStatus.VALID]
        self._trigger_status = trigger_status
        self._initial_status = initial_status
        self._offered = offered_types
        self._existing_location = existing_location

        self.calls: list[tuple[str, object]] = []
        self.trigger_calls: dict[str, int] = {}
        self.refresh_calls: dict[str, int] = {}
        self.signing_requests: list = []
        self._domains: dict[str, str] = {}

    # -- helpers ------------------------------------------------------------

    def _script_for(self, domain: str) -> list[ChallengeStatus]:
        if isinstance(self._refresh_statuses, dict):
            return self._refresh_statuses[domain]
        return self._refresh_statuses

    def _with_status(self, challenge: Challenge, status: ChallengeStatus) -> Challenge:
        error = None
        if status == ChallengeStatus.INVALID:
            error = {
                "type": "urn:ietf:params:acme:error:unauthorized",
                "detail": f"Scripted failure for {self._domains[challenge.location]}",
            }
        return replace(challenge, status=status, error=error)

    # -- account ------------------------------------------------------------

    def register(self, credential):
        self.calls.append(("register", credential))
        if self._existing_location is not None:
            return AlreadyExists(self._existing_location)
        return Created(
            Account(
                location="https://acme.test/acct/new",
                public_key_thumbprint=credential.thumbprint,
                status=AccountStatus.VALID,
                agreement_accepted=False,
                agreement_uri="https://acme.test/terms",
            ),
        )

    def bind(self, location):
        self.calls.append(("bind", location))
        return Account(
            location=location,
            public_key_thumbprint=self.THUMBPRINT,
            agreement_accepted=True,
        )

    def accept_agreement(self, account, agreement_uri):
        self.calls.append(("accept_agreement", agreement_uri))
        return replace(account, agreement_accepted=True, agreement_uri=agreement_uri)

    # -- authorization ------------------------------------------------------

    def authorize_domain(self, account, domain):
        self.calls.append(("authorize_domain", domain))
        challenges = []
        for ctype in self._offered:
            token = f"token-{domain}-{ctype}"
            location = f"https://acme.test/chall/{domain}/{ctype}"
            self._domains[location] = domain
            challenges.append(
                Challenge(
                    type=ctype,
                    token=token,
                    location=location,
                    status=self._initial_status,
                    key_authorization=key_authorization(token, account.public_key_thumbprint),
                ),
            )
        return Authorization(
            domain=domain,
            location=f"https://acme.test/authz/{domain}",
            status=AuthorizationStatus.PENDING,
            challenges=tuple(challenges),
        )

    def trigger(self, challenge):
        domain = self._domains[challenge.location]
        self.calls.append(("trigger", domain))
        self.trigger_calls[domain] = self.trigger_calls.get(domain, 0) + 1
        return self._with_status(challenge, self._trigger_status)

    def refresh(self, challenge):
        domain = self._domains[challenge.location]
        self.calls.append(("refresh", domain))
        count = self.refresh_calls.get(domain, 0)
        self.refresh_calls[domain] = count + 1
        script = self._script_for(domain)
        return self._with_status(challenge, script[min(count, len(script) - 1)])

    # -- certificate --------------------------------------------------------

    def request_certificate(self, account, signing_request):
        self.calls.append(("request_certificate", signing_request.domains))
        self.signing_requests.append(signing_request)
        return "https://acme.test/cert/1"

    def download_certificate(self, location):
        self.calls.append(("download_certificate", location))
        return "-----BEGIN CERTIFICATE-----\nLEAF\n-----END CERTIFICATE-----\n"

    def download_chain(self, location):
        self.calls.append(("download_chain", location))
        return ["-----BEGIN CERTIFICATE-----\nISSUER\n-----END CERTIFICATE-----\n"]


@pytest.fixture()
def instant_token() -> InstantToken:
    return InstantToken()


@pytest.fixture()
def scripted_interaction() -> ScriptedInteraction:
    return ScriptedInteraction()

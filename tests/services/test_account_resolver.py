"""Tests for acmedrive.services.account.AccountResolver."""

from __future__ import annotations

import logging
from unittest.mock import MagicMock

import pytest

from acmedrive.core.errors import AgreementDeclined, UserCancelled
from acmedrive.interaction.renderer import InstructionRenderer
from acmedrive.models import Account, AlreadyExists, Created, Credential
from acmedrive.services.account import AccountResolver
from acmedrive.transport.base import TransportError
from tests.conftest import ScriptedInteraction, ScriptedTransport

CREDENTIAL = Credential(
    jwk={"kty": "EC", "crv": "P-256", "x": "xx", "y": "yy", "d": "private-scalar"},
    thumbprint="thumb",
)


def _resolver(transport, interaction=None):
    return AccountResolver(transport, interaction or ScriptedInteraction(True), InstructionRenderer())


# ---------------------------------------------------------------------------
# Existing account (registration conflict)
# ---------------------------------------------------------------------------


class TestAlreadyExists:
    def test_binds_to_conflict_location(self):
        location = "https://acme.test/acct/existing-42"
        transport = ScriptedTransport(existing_location=location)
        interaction = ScriptedInteraction(False)

        account = _resolver(transport, interaction).resolve(CREDENTIAL)

        assert account.location == location
        assert ("bind", location) in transport.calls
        assert interaction.prompts == []
        assert not any(name == "accept_agreement" for name, _ in transport.calls)

    def test_bind_failure_propagates(self):
        transport = MagicMock()
        transport.register.return_value = AlreadyExists("https://acme.test/acct/gone")
        transport.bind.side_effect = TransportError("not found")
        with pytest.raises(TransportError, match="not found"):
            _resolver(transport).resolve(CREDENTIAL)


# ---------------------------------------------------------------------------
# New account
# ---------------------------------------------------------------------------


class TestCreated:
    def test_accepts_agreement(self):
        transport = ScriptedTransport()
        interaction = ScriptedInteraction(True)

        account = _resolver(transport, interaction).resolve(CREDENTIAL)

        assert account.agreement_accepted
        assert account.ready_for_issuance
        assert ("accept_agreement", "https://acme.test/terms") in transport.calls
        (title, body), = interaction.prompts
        assert title == "Accept Terms of Service"
        assert "https://acme.test/terms" in body
        assert "https://acme.test/directory" in body

    def test_declined_raises_agreement_declined(self):
        transport = ScriptedTransport()

        with pytest.raises(AgreementDeclined) as exc_info:
            _resolver(transport, ScriptedInteraction(False)).resolve(CREDENTIAL)

        assert isinstance(exc_info.value, UserCancelled)
        assert not any(name == "accept_agreement" for name, _ in transport.calls)

    def test_commit_failure_propagates(self):
        transport = MagicMock()
        transport.directory_url = "https://acme.test/directory"
        transport.register.return_value = Created(
            Account(location="https://acme.test/acct/1", public_key_thumbprint="thumb"),
        )
        transport.accept_agreement.side_effect = TransportError("server error")

        with pytest.raises(TransportError):
            _resolver(transport).resolve(CREDENTIAL)

    def test_returns_committed_account_not_original(self):
        original = Account(location="https://acme.test/acct/1", public_key_thumbprint="thumb")
        committed = Account(
            location="https://acme.test/acct/1",
            public_key_thumbprint="thumb",
            agreement_accepted=True,
            agreement_uri="",
        )
        transport = MagicMock()
        transport.directory_url = "https://acme.test/directory"
        transport.register.return_value = Created(original)
        transport.accept_agreement.return_value = committed

        assert _resolver(transport).resolve(CREDENTIAL) is committed
        assert not original.agreement_accepted


# ---------------------------------------------------------------------------
# Misc
# ---------------------------------------------------------------------------


class TestMisc:
    def test_register_failure_propagates(self):
        transport = MagicMock()
        transport.register.side_effect = TransportError("unreachable", retryable=True)
        with pytest.raises(TransportError) as exc_info:
            _resolver(transport).resolve(CREDENTIAL)
        assert exc_info.value.retryable
        transport.register.assert_called_once()

    def test_unexpected_result_type(self):
        transport = MagicMock()
        transport.register.return_value = object()
        with pytest.raises(TypeError, match="Unexpected registration result"):
            _resolver(transport).resolve(CREDENTIAL)

    def test_private_jwk_members_not_logged(self, caplog):
        transport = ScriptedTransport(existing_location="https://acme.test/acct/1")
        with caplog.at_level(logging.DEBUG, logger="acmedrive.services.account"):
            _resolver(transport).resolve(CREDENTIAL)
        assert "private-scalar" not in caplog.text
        assert "[REDACTED]" in caplog.text

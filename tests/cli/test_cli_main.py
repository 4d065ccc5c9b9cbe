"""Tests for acmedrive.cli.main: argument handling and exit codes."""

from __future__ import annotations

import io
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
import yaml

from acmedrive.cli.main import (
    EXIT_CONFIG,
    EXIT_DECLINED,
    EXIT_FAILED,
    EXIT_INTERRUPTED,
    EXIT_OK,
    main,
)
from acmedrive.core.errors import IssuanceCancelled

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _config(tmp_path: Path, **transport_options) -> Path:
    data = {
        "issuance": {"challenge_type": "http-01", "poll_interval_seconds": 0},
        "transport": {"backend": "simulated", "options": transport_options},
        "storage": {"directory": str(tmp_path / "store")},
        "logging": {"level": "WARNING"},
    }
    path = tmp_path / "acmedrive.yaml"
    path.write_text(yaml.safe_dump(data), encoding="utf-8")
    return path


def _exit_code(argv: list[str]) -> int:
    with pytest.raises(SystemExit) as exc_info:
        main(argv)
    return exc_info.value.code


# ---------------------------------------------------------------------------
# Configuration handling
# ---------------------------------------------------------------------------


class TestConfigHandling:
    def test_missing_config_file(self, tmp_path, capsys):
        assert _exit_code(["-c", str(tmp_path / "nope.yaml"), "issue", "example.com"]) == EXIT_CONFIG
        assert "configuration file not found" in capsys.readouterr().err

    def test_invalid_config(self, tmp_path, capsys):
        path = tmp_path / "bad.yaml"
        path.write_text("issuance:\n  poll_max_attempts: 0\n", encoding="utf-8")
        assert _exit_code(["-c", str(path), "issue", "example.com"]) == EXIT_CONFIG
        assert "poll_max_attempts must be at least 1" in capsys.readouterr().err

    def test_validate_only(self, tmp_path, capsys):
        assert _exit_code(["-c", str(_config(tmp_path)), "--validate-only"]) == EXIT_OK
        out = capsys.readouterr().out
        assert out.startswith("Configuration OK:")
        assert "challenge type: http-01" in out

    def test_no_command(self, tmp_path):
        assert _exit_code(["-c", str(_config(tmp_path))]) == EXIT_CONFIG

    def test_version(self, capsys):
        assert _exit_code(["--version"]) == 0
        assert "acmedrive" in capsys.readouterr().out

    def test_unloadable_transport(self, tmp_path, capsys):
        path = tmp_path / "ext.yaml"
        path.write_text(
            yaml.safe_dump({"transport": {"backend": "ext:no_such_module_xyz.Wire"}}),
            encoding="utf-8",
        )
        assert _exit_code(["-c", str(path), "issue", "example.com"]) == EXIT_CONFIG
        assert "cannot set up issuance" in capsys.readouterr().err


# ---------------------------------------------------------------------------
# Issuance
# ---------------------------------------------------------------------------


class TestIssue:
    def test_success_with_yes(self, tmp_path, capsys):
        code = _exit_code(["-c", str(_config(tmp_path)), "--yes", "issue", "example.com", "www.example.com"])
        assert code == EXIT_OK
        out = capsys.readouterr().out
        assert "Certificate issued for example.com, www.example.com" in out
        assert (tmp_path / "store" / "domain-chain.crt").is_file()

    def test_validation_failure(self, tmp_path, capsys):
        config = _config(tmp_path, fail_domains=["example.com"])
        assert _exit_code(["-c", str(config), "--yes", "issue", "example.com"]) == EXIT_FAILED
        assert "Simulated validation failure" in capsys.readouterr().err

    def test_declined_terms(self, tmp_path, monkeypatch, capsys):
        monkeypatch.setattr("sys.stdin", io.StringIO("n\n"))
        assert _exit_code(["-c", str(_config(tmp_path)), "issue", "example.com"]) == EXIT_DECLINED
        assert "declined" in capsys.readouterr().err

    def test_cancelled(self, tmp_path, capsys):
        coordinator = MagicMock()
        coordinator.run.side_effect = IssuanceCancelled("Issuance cancelled: received SIGTERM")
        with patch("acmedrive.app.create_coordinator", return_value=coordinator):
            code = _exit_code(["-c", str(_config(tmp_path)), "--yes", "issue", "example.com"])
        assert code == EXIT_INTERRUPTED
        coordinator.close.assert_called_once()
        assert "received SIGTERM" in capsys.readouterr().err

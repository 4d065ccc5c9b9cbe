"""Tests for acmedrive.interaction.renderer.InstructionRenderer."""

from __future__ import annotations

import pytest
from jinja2 import UndefinedError

from acmedrive.interaction import AGREEMENT, InstructionRenderer


class TestBuiltinTemplates:
    def test_http01_manual(self):
        title, body = InstructionRenderer().render(
            "http-01",
            {
                "domain": "example.com",
                "token": "tok",
                "path": "/.well-known/acme-challenge/tok",
                "content": "tok.thumb",
                "written_to": None,
            },
        )
        assert title == "Prepare HTTP-01 challenge for example.com"
        assert "Please create a file" in body
        assert "http://example.com/.well-known/acme-challenge/tok" in body
        assert "tok.thumb" in body

    def test_http01_written_to_webroot(self):
        _, body = InstructionRenderer().render(
            "http-01",
            {
                "domain": "example.com",
                "token": "tok",
                "path": "/.well-known/acme-challenge/tok",
                "content": "tok.thumb",
                "written_to": "/srv/www/.well-known/acme-challenge/tok",
            },
        )
        assert "was written to" in body
        assert "/srv/www/.well-known/acme-challenge/tok" in body

    @pytest.mark.parametrize(
        "propagation,expected",
        [(None, None), (True, "record is visible"), (False, "record not yet visible")],
    )
    def test_dns01_propagation(self, propagation, expected):
        _, body = InstructionRenderer().render(
            "dns-01",
            {
                "domain": "example.com",
                "record_name": "_acme-challenge.example.com.",
                "digest": "abc",
                "propagation": propagation,
            },
        )
        assert "_acme-challenge.example.com. IN TXT abc" in body
        if expected is None:
            assert "Propagation" not in body
        else:
            assert expected in body

    def test_tls_sni01(self):
        title, body = InstructionRenderer().render(
            "tls-sni-01",
            {
                "domain": "example.com",
                "subject": "a.b.acme.invalid",
                "key_path": "/k",
                "cert_path": "/c",
            },
        )
        assert "TLS-SNI-01" in title
        assert "https://a.b.acme.invalid" in body

    def test_agreement(self):
        title, body = InstructionRenderer().render(
            AGREEMENT,
            {"directory_url": "https://acme.test/dir", "agreement_uri": "https://acme.test/tos"},
        )
        assert title == "Accept Terms of Service"
        assert "https://acme.test/tos" in body

    def test_missing_variable_is_an_error(self):
        with pytest.raises(UndefinedError):
            InstructionRenderer().render(AGREEMENT, {"directory_url": "x"})


class TestOverrides:
    def test_user_template_wins(self, tmp_path):
        (tmp_path / "agreement_title.txt").write_text("Terms for {{ directory_url }}", encoding="utf-8")
        title, body = InstructionRenderer(str(tmp_path)).render(
            AGREEMENT,
            {"directory_url": "https://acme.test/dir", "agreement_uri": "https://acme.test/tos"},
        )
        assert title == "Terms for https://acme.test/dir"
        assert "Do you accept" in body

"""Tests for acmedrive.config.settings builders."""

from __future__ import annotations

import dataclasses

import pytest

from acmedrive.config.settings import DriveSettings, build_settings
from acmedrive.core.types import ChallengeType


class TestBuildSettings:
    def test_empty_data_matches_defaults(self):
        assert build_settings({}) == DriveSettings()

    def test_none_sections_tolerated(self):
        settings = build_settings({"issuance": None, "challenges": None})
        assert settings.issuance.challenge_type == ChallengeType.HTTP_01

    def test_interval_is_float(self):
        settings = build_settings({"issuance": {"poll_interval_seconds": 2}})
        assert isinstance(settings.issuance.poll_interval_seconds, float)

    def test_custom_preparers_copied(self):
        raw = {"challenges": {"custom": {"dns-01": "ext:a.b.C"}}}
        settings = build_settings(raw)
        raw["challenges"]["custom"]["http-01"] = "ext:x.y.Z"
        assert settings.challenges.custom == {"dns-01": "ext:a.b.C"}

    def test_frozen(self):
        settings = build_settings({})
        with pytest.raises(dataclasses.FrozenInstanceError):
            settings.issuance.poll_max_attempts = 5  # type: ignore[misc]

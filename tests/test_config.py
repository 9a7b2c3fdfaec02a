"""Tests for environment-driven settings."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from state_container.config import Settings
from state_container.domain.enums import DraftStrategy


class TestSettings:
    def test_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        for var in ("LOG_LEVEL", "DEFAULT_STRATEGY", "VALIDATE_PAYLOADS"):
            monkeypatch.delenv(f"STATE_CONTAINER_{var}", raising=False)
        s = Settings()
        assert s.log_level == "INFO"
        assert s.default_strategy is DraftStrategy.DRAFT
        assert s.validate_payloads is True

    def test_environment_overrides(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("STATE_CONTAINER_LOG_LEVEL", "DEBUG")
        monkeypatch.setenv("STATE_CONTAINER_DEFAULT_STRATEGY", "clone")
        monkeypatch.setenv("STATE_CONTAINER_VALIDATE_PAYLOADS", "false")
        s = Settings()
        assert s.log_level == "DEBUG"
        assert s.default_strategy is DraftStrategy.CLONE
        assert s.validate_payloads is False

    def test_invalid_strategy(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("STATE_CONTAINER_DEFAULT_STRATEGY", "deep")
        with pytest.raises(ValidationError):
            Settings()

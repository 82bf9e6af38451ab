# tests/unit/config/test_unit_settings.py — v1
"""Tests for config/settings.py — typed Settings and validation rules."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from protoscope.config.settings import ConfigurationError, Settings, load_settings


class TestSettingsDefaults:
    def test_default_providers(self):
        s = Settings(_env_file=None)
        assert s.retrieval_provider == "perplexity"
        assert s.generation_provider == "openai"

    def test_default_retry_policy(self):
        s = Settings(_env_file=None)
        assert s.max_retries == 3
        assert s.backoff_base_s == 2.0
        assert s.backoff_cap_s == 8.0

    def test_default_step_attempts(self):
        s = Settings(_env_file=None)
        assert s.step_max_attempts == 3

    def test_synthesis_enabled_by_default(self):
        assert Settings(_env_file=None).synthesis_enabled is True


class TestSettingsValidation:
    def test_zero_step_attempts_rejected(self):
        with pytest.raises(ValidationError, match="step_max_attempts"):
            Settings(_env_file=None, step_max_attempts=0)

    def test_negative_retries_rejected(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, max_retries=-1)

    def test_non_positive_timeout_rejected(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, retrieval_timeout_s=0)

    def test_cap_below_base_rejected(self):
        with pytest.raises(ConfigurationError, match="BACKOFF_CAP_S"):
            Settings(_env_file=None, backoff_base_s=4.0, backoff_cap_s=1.0)

    def test_domain_in_both_lists_rejected(self):
        with pytest.raises(ConfigurationError, match="example.com"):
            Settings(
                _env_file=None,
                citation_deny_domains="example.com",
                citation_allow_domains="Example.com, reuters.com",
            )


class TestSettingsHelpers:
    def test_domain_lists_parsed(self):
        s = Settings(_env_file=None, citation_deny_domains=" Spam.com ,, ads.net")
        assert s.citation_deny_domains_list == ["spam.com", "ads.net"]
        assert s.citation_allow_domains_list == []

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("GENERATION_MODEL", "gpt-4")
        monkeypatch.setenv("STEP_MAX_ATTEMPTS", "5")
        s = Settings(_env_file=None)
        assert s.generation_model == "gpt-4"
        assert s.step_max_attempts == 5

    def test_load_settings_overrides(self):
        s = load_settings(_env_file=None, max_retries=0)
        assert s.max_retries == 0

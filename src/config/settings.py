# src/config/settings.py — v1
"""Typed configuration loaded from .env via pydantic-settings.

Single source of truth for credentials, retry policy, timeouts and the
citation allow/deny lists. Components receive a Settings instance (or the
plain values they need) through their constructors.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigurationError(Exception):
    """Raised when configuration is internally inconsistent."""


class Settings(BaseSettings):
    """Application settings loaded from .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # === RETRIEVAL SERVICE ===
    retrieval_provider: str = "perplexity"
    retrieval_model: str = "sonar-pro"
    retrieval_base_url: str = "https://api.perplexity.ai"
    perplexity_api_key: str = ""
    retrieval_timeout_s: float = 30.0

    # === GENERATION SERVICE ===
    generation_provider: str = "openai"
    generation_model: str = "gpt-4-turbo"
    generation_temperature: float = 0.2
    generation_max_tokens: int = 4096
    openai_api_key: str = ""
    openai_base_url: str = ""
    generation_timeout_s: float = 60.0

    # === Retry / backoff ===
    max_retries: int = 3
    backoff_base_s: float = 2.0
    backoff_factor: float = 2.0
    backoff_cap_s: float = 8.0

    # === Protocol ===
    step_max_attempts: int = 3
    context_chunk_limit: int = 10
    schema_dir: Path | None = None

    # === Citations ===
    citation_deny_domains: str = ""
    citation_allow_domains: str = ""

    # === Synthesis ===
    synthesis_enabled: bool = True

    # === Logging ===
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "text"] = "json"
    log_file: Path | None = None
    log_rotation: str = "10MB"
    log_retention: int = 30

    # --- Validators ---

    @field_validator("max_retries", "context_chunk_limit")
    @classmethod
    def validate_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("must be >= 0")
        return v

    @field_validator("step_max_attempts")
    @classmethod
    def validate_step_attempts(cls, v: int) -> int:
        if v < 1:
            raise ValueError("step_max_attempts must be >= 1")
        return v

    @field_validator("retrieval_timeout_s", "generation_timeout_s")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("timeouts must be > 0")
        return v

    @model_validator(mode="after")
    def validate_config_consistency(self) -> Settings:
        """Validate cross-field consistency rules."""
        errors: list[str] = []

        if self.backoff_base_s < 0:
            errors.append("BACKOFF_BASE_S must be >= 0")

        if self.backoff_cap_s < self.backoff_base_s:
            errors.append("BACKOFF_CAP_S must be >= BACKOFF_BASE_S")

        overlap = set(self.citation_deny_domains_list) & set(
            self.citation_allow_domains_list
        )
        if overlap:
            errors.append(
                "Domains both allowed and denied: " + ", ".join(sorted(overlap))
            )

        if errors:
            raise ConfigurationError("; ".join(errors))

        return self

    # --- Helpers ---

    @property
    def citation_deny_domains_list(self) -> list[str]:
        """Parse comma-separated deny list (lower-cased)."""
        return [
            d.strip().lower()
            for d in self.citation_deny_domains.split(",")
            if d.strip()
        ]

    @property
    def citation_allow_domains_list(self) -> list[str]:
        """Parse comma-separated allow list (lower-cased)."""
        return [
            d.strip().lower()
            for d in self.citation_allow_domains.split(",")
            if d.strip()
        ]


def load_settings(**overrides: object) -> Settings:
    """Load settings from .env with optional overrides.

    Args:
        **overrides: Field-level overrides (for testing or per-run config).

    Returns:
        Validated Settings instance.

    Raises:
        ConfigurationError: If configuration is internally inconsistent.
    """
    return Settings(**overrides)  # type: ignore[arg-type]

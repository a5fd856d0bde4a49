"""Runtime configuration for the ambient scribe.

Settings are read from ``SCRIBE_``-prefixed environment variables (or a
``.env`` file) with defaults suitable for local development. Cadences and
thresholds live here so a deployment can tune them without code changes.
"""

from __future__ import annotations

import logging
import os
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ScribeSettings(BaseSettings):
    """Settings loaded from the environment.

    Example: ``SCRIBE_SYNTHESIS_INTERVAL_SECONDS=30`` halves the time between
    progressive note drafts.
    """

    model_config = SettingsConfigDict(
        env_prefix="SCRIBE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Speech-to-text
    deepgram_api_key: str | None = Field(
        default=None,
        description="Deepgram key. Falls back to DEEPGRAM_API_KEY when unset.",
    )
    transcription_model: str = Field(default="nova-3-medical")
    transcription_keyterms: list[str] = Field(
        default_factory=list,
        description="Nova-3 Medical keyterms for clinical vocabulary boosting.",
    )

    # Document synthesis
    synthesis_url: str = Field(default="http://localhost:8000/api/scribe/generate-soap")
    synthesis_token: str | None = Field(default=None)

    # Record store. Unset means sessions and profiles stay in memory.
    store_url: str | None = Field(default=None)
    store_api_key: str | None = Field(default=None)

    request_timeout_seconds: float = Field(default=60.0, gt=0)

    # Capture
    sample_rate: int = Field(default=16000, gt=0)
    segment_seconds: float = Field(
        default=1.0,
        gt=0,
        description="Recorder segment length; segments exist only so audio is flushable.",
    )

    # Cadences
    transcription_interval_seconds: float = Field(default=5.0, gt=0)
    synthesis_interval_seconds: float = Field(default=60.0, gt=0)

    # Thresholds
    min_clip_bytes: int = Field(
        default=2000,
        ge=0,
        description="Clips smaller than this are treated as silence and never sent.",
    )
    min_text_chars: int = Field(
        default=2,
        ge=0,
        description="Transcribed text must be longer than this after trimming.",
    )
    min_entries_for_synthesis: int = Field(default=3, ge=1)

    # Style learning
    style_history_limit: int = Field(default=10, ge=1)
    style_sample_chars: int = Field(default=500, ge=1)

    # Logging
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    def resolved_deepgram_key(self) -> str:
        return self.deepgram_api_key or os.environ.get("DEEPGRAM_API_KEY", "")


@lru_cache()
def get_settings() -> ScribeSettings:
    """Return the process-wide settings (parsed once).

    Tests that change the environment should call ``get_settings.cache_clear()``.
    """
    return ScribeSettings()


def get_settings_for_testing(**overrides: object) -> ScribeSettings:
    """Build an uncached settings instance with explicit overrides."""
    return ScribeSettings(**overrides)


def configure_logging(settings: ScribeSettings | None = None) -> None:
    """Apply the configured level and format to the root logger."""
    settings = settings or get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format=settings.log_format,
    )

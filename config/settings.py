"""Application settings loaded from environment variables.

Uses pydantic-settings for validation and type coercion. App-specific
settings use the ``HOSTEL_`` prefix; provider credentials and endpoints
use their canonical environment variable names via ``validation_alias``.
"""

from __future__ import annotations

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Central configuration for the complaint desk.

    Environment variables are loaded from a ``.env`` file when present.
    App-specific keys are prefixed with ``HOSTEL_``; Gemini / Chroma keys
    use their standard names (configured via ``validation_alias``).
    """

    model_config = SettingsConfigDict(
        env_prefix="HOSTEL_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
        env_parse_none_str="null",
    )

    # ── App ────────────────────────────────────────────────────────────
    env: Literal["development", "production"] = "development"

    # ── Gemini generateContent ─────────────────────────────────────────
    gemini_api_key: str = Field(default="", validation_alias="GEMINI_API_KEY")
    gemini_api_url: str = Field(
        default="https://generativelanguage.googleapis.com/v1beta/models/gemini-1.5-flash:generateContent",
        validation_alias="GEMINI_API_URL",
    )
    gemini_health_check_enabled: bool = Field(default=False, validation_alias="GEMINI_HEALTH_CHECK_ENABLED")

    # ── Gemini embedContent ────────────────────────────────────────────
    gemini_embed_url: str = Field(
        default="https://generativelanguage.googleapis.com/v1beta/models/embedding-001:embedContent",
        validation_alias="GEMINI_EMBED_URL",
    )
    gemini_embed_model: str = Field(default="models/embedding-001", validation_alias="GEMINI_EMBED_MODEL")

    # ── Chroma ─────────────────────────────────────────────────────────
    chroma_url: str = Field(default="", validation_alias="CHROMA_URL")
    chroma_collection: str = Field(default="hostel_complaints_embeddings", validation_alias="CHROMA_COLLECTION")
    chroma_sync_on_startup: bool = Field(default=False, validation_alias="CHROMA_SYNC_ON_STARTUP")

    # ── Vector search ──────────────────────────────────────────────────
    vector_backend: Literal["chroma", "memory"] = "chroma"
    # ``None`` (env value ``null``) flags any returned neighbour as a duplicate.
    duplicate_similarity_threshold: float | None = Field(default=0.90, ge=0.0, le=1.0)
    duplicate_query_k: int = Field(default=1, ge=1)

    # ── Outbound HTTP ──────────────────────────────────────────────────
    http_timeout_seconds: float = Field(default=20.0, gt=0)

    # ── Logging ────────────────────────────────────────────────────────
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    log_format: str = Field(default="json", validation_alias="LOG_FORMAT")

    # ── Derived Properties ─────────────────────────────────────────────

    @property
    def chroma_enabled(self) -> bool:
        return bool(self.chroma_url.strip())

    def validate_generation(self) -> None:
        """Fail fast on a missing or malformed Gemini key / URL.

        Called once at startup so a bad deployment never reaches the
        first complaint.  Raises :class:`ConfigurationError`.
        """
        from complaintdesk.errors import ConfigurationError

        key = self.gemini_api_key.strip()
        url = self.gemini_api_url.strip()

        if not key:
            raise ConfigurationError(
                "Gemini API key is missing. Set GEMINI_API_KEY "
                "(get one from https://aistudio.google.com/apikey)."
            )
        if any(ch in key for ch in ("\n", "\r", " ")):
            raise ConfigurationError("Gemini API key contains whitespace or newline characters.")
        if key.startswith('"') or key.endswith('"'):
            raise ConfigurationError("Gemini API key contains quotes. Remove quotes from the key.")

        if not url:
            raise ConfigurationError("Gemini API URL is missing.")
        if "?key=" in url:
            raise ConfigurationError("Gemini API URL must not contain the ?key= parameter.")
        if "/models/" not in url or ":generateContent" not in url:
            raise ConfigurationError("Gemini API URL must include /models/{model}:generateContent.")
        if any(ch in url for ch in ("\n", "\r", " ")):
            raise ConfigurationError("Gemini API URL contains whitespace or newline characters.")


# Module-level singleton: import ``settings`` everywhere.
settings = Settings()

"""
Configuration management: all values sourced from environment variables
(or a local .env file).  Explicit arguments to GeminiChat.start() win over
these defaults.
"""

from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ── Gemini ────────────────────────────────────────────────────────────────
    gemini_api_key: str = ""
    gemini_model: str = "gemini-2.5-flash"
    gemini_system_prompt: str = ""
    gemini_temperature: Optional[float] = None
    gemini_max_output_tokens: Optional[int] = None
    gemini_timeout_seconds: float = 60.0

    # ── Streaming ─────────────────────────────────────────────────────────────
    stream_close_timeout_seconds: float = 5.0

    # ── Logging ───────────────────────────────────────────────────────────────
    log_level: str = "INFO"
    log_file: str = ""                            # empty → console only
    log_rotation_bytes: int = 10 * 1024 * 1024    # 10 MB
    log_backup_count: int = 5


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()

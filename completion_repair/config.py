"""Application configuration using pydantic-settings."""

from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Service settings loaded from environment variables (prefix ``REPAIR_``)."""

    # Server
    port: int = 8080
    host: str = "0.0.0.0"

    # Logging
    log_level: str = "INFO"
    log_json_repairs: bool = True

    # Request limits
    max_content_chars: int = 1_000_000

    # Error capture (directory for failed-completion dumps, disabled when unset)
    error_log_dir: Optional[str] = None

    # Repetition repair
    min_repetitions_to_truncate: int = 10
    max_repetitions_to_keep: int = 3

    # Heuristic windows (characters)
    string_context_lookback: int = 500
    property_context_window: int = 150
    truncation_safety_buffer: int = 100

    # Iteration ceilings
    max_rule_passes: int = 50
    max_structure_passes: int = 80
    max_recursion_depth: int = 64
    max_diagnostics: int = 20

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="REPAIR_",
        case_sensitive=False,
        extra="ignore",
    )


# Global settings instance
settings = Settings()

"""
Configuration settings for Verify-X
"""

from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Verify-X configuration settings"""

    # Server Configuration
    server_port: int = 3001
    server_host: str = "0.0.0.0"
    log_level: str = "INFO"

    # Oracle Configuration
    use_real_llm: bool = False
    oracle_provider: str = "google"  # google, openai, anthropic, mock
    oracle_model: Optional[str] = None  # engine default when unset
    oracle_temperature: float = 0.1
    oracle_max_tokens: int = 200

    # Rate Limiting (fixed window)
    rate_limit_requests: int = 20
    rate_limit_window: float = 60.0

    # Retry / Backoff
    max_attempts: int = 3
    base_delay: float = 0.5
    max_delay: float = 5.0
    growth_factor: float = 1.5
    rate_limit_fallback_delay: float = 30.0
    max_rate_limit_retries: int = 5

    # Validator Panel
    validators_per_category: int = 4
    validator_batch_size: int = 4
    batch_delay: float = 1.5
    reasoning_max_chars: int = 200

    # Progress Tracking
    progress_stale_after: float = 300.0
    progress_cleanup_delay: float = 5.0
    progress_idle_retention: float = 900.0
    keepalive_interval: float = 30.0

    # Consensus
    tie_break: str = "false"  # false, true
    strong_majority_ratio: float = 0.75

    # In-memory result ledger
    max_reports_in_memory: int = 500

    class Config:
        env_prefix = "VERIFYX_"
        case_sensitive = False
        env_file = "config/secrets/.env.local"
        env_file_encoding = "utf-8"
        extra = "ignore"


def get_settings() -> Settings:
    """Load settings from the environment and env file"""
    return Settings()

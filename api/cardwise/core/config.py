from pydantic_settings import BaseSettings
from pydantic import field_validator
from typing import List
from pathlib import Path
import logging

from dotenv import load_dotenv

_logger = logging.getLogger(__name__)

# Look for .env in api directory (parent of cardwise package), then the working directory
api_dir = Path(__file__).parent.parent.parent
env_path = api_dir / ".env"

if env_path.exists():
    load_dotenv(env_path, override=False)
    _logger.info(f"Loaded .env file from: {env_path}")
else:
    current_env = Path(".env")
    if current_env.exists():
        load_dotenv(current_env, override=False)
        _logger.info(f"Loaded .env file from: {current_env.absolute()}")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    database_url: str = ""

    # API
    api_v1_prefix: str = "/api/v1"

    # CORS
    cors_origins: List[str] = ["*"]

    # Runtime
    environment: str = "production"
    log_level: str = "INFO"

    # Search and caching
    search_result_limit: int = 10
    cache_enabled: bool = True

    # Scheduler tables, one entry per rating (Again, Hard, Good, Easy, Perfect)
    srs_initial_stability: List[float] = [0.4872, 1.4003, 3.7145, 13.8206, 21.0]
    srs_initial_difficulty: List[float] = [7.2, 6.4, 5.3, 4.1, 3.2]
    srs_difficulty_delta: List[float] = [1.2, 0.6, 0.0, -0.6, -1.0]
    srs_growth_multiplier: List[float] = [0.0, 0.2272, 1.0, 2.8755, 3.6]

    # Scheduler bounds
    srs_difficulty_min: float = 1.0
    srs_difficulty_max: float = 10.0
    srs_min_stability: float = 0.1
    srs_max_stability: float = 36500.0
    srs_target_retention: float = 0.9
    srs_desired_retention: float = 0.9
    srs_max_interval_days: float = 36500.0
    srs_graduation_stability: float = 2.0
    srs_learning_step_minutes: float = 10.0
    srs_relearning_step_minutes: float = 10.0

    # Lapse formula coefficients
    srs_lapse_factor: float = 2.1072
    srs_lapse_difficulty_exponent: float = 0.0793
    srs_lapse_stability_exponent: float = 0.3246
    srs_lapse_retrievability_weight: float = 1.587

    # Recall (growth) formula coefficients
    srs_recall_factor: float = 1.6474
    srs_recall_stability_exponent: float = 0.1367
    srs_recall_retrievability_weight: float = 1.0461
    srs_short_term_growth: float = 1.0
    srs_review_min_growth: float = 0.05

    class Config:
        env_file = ".env"
        case_sensitive = False

    @field_validator(
        "srs_initial_stability",
        "srs_initial_difficulty",
        "srs_difficulty_delta",
        "srs_growth_multiplier",
    )
    @classmethod
    def validate_rating_table(cls, v):
        """Rating-indexed tables need exactly one entry per rating."""
        if len(v) != 5:
            raise ValueError(f"expected 5 values (one per rating), got {len(v)}")
        return v

    @property
    def is_development(self) -> bool:
        return self.environment.lower() in ("development", "dev", "local")


# Create settings instance
settings = Settings()

# Validate required DATABASE_URL
if not settings.database_url:
    raise ValueError("DATABASE_URL environment variable is required")

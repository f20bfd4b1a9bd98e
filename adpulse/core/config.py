"""
Settings and environment management module for the AdPulse backend.

Configuration is loaded with pydantic-settings from environment variables
(prefix ADPULSE_) and an optional .env file.

Environment Variables:
- ADPULSE_APP_NAME: Display name used in logs and the OpenAPI title
- ADPULSE_LOG_LEVEL: Root log level (default: INFO)
- ADPULSE_CORS_ORIGINS: JSON list of allowed dashboard origins
- ADPULSE_BREAKDOWN_WORKERS: Threads used for per-dimension breakdowns (1 = sequential)
- ADPULSE_BREAKDOWN_DIMENSIONS: JSON list of dimensions used for attribution

The statistical thresholds (5% / 10% severity bands, 30-sample minimum,
alpha 0.05, top-4 breakdowns) live as constants next to the code that applies
them; they define the engine's output and are not meant to vary per deployment.

Usage:
    from adpulse.core.config import get_settings

    settings = get_settings()
    workers = settings.breakdown_workers
"""

from functools import lru_cache
from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from adpulse.models.enums import BreakdownDimension


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Attributes:
        app_name: Display name for the API and startup logs.
        log_level: Root logging level name.
        cors_origins: Origins allowed to call the API from a browser.
        breakdown_workers: Thread pool size for per-dimension breakdowns.
            Values above 1 run the dimensions concurrently; results are
            identical to the sequential path.
        breakdown_dimensions: Dimensions used to attribute anomalies, in the
            order their breakdowns are concatenated before re-sorting.
    """

    model_config = SettingsConfigDict(
        env_prefix='ADPULSE_',
        env_file='.env',
        env_file_encoding='utf-8',
        extra='ignore',
        case_sensitive=False,
    )

    app_name: str = 'AdPulse API'

    log_level: str = 'INFO'

    # Next.js dashboard during local development
    cors_origins: List[str] = Field(
        default_factory=lambda: [
            'http://localhost:3000',
            'http://127.0.0.1:3000',
        ]
    )

    breakdown_workers: int = Field(default=1, ge=1)

    breakdown_dimensions: List[BreakdownDimension] = Field(
        default_factory=lambda: list(BreakdownDimension)
    )


@lru_cache()
def get_settings() -> Settings:
    """
    Get the application settings singleton.

    Returns:
        Settings: The cached settings instance.

    Raises:
        pydantic.ValidationError: If an environment variable has an invalid
            value (e.g. ADPULSE_BREAKDOWN_WORKERS=0).

    Note:
        To refresh settings in tests, clear the cache:
        >>> get_settings.cache_clear()
    """
    return Settings()

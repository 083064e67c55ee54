"""Configuration management using Pydantic Settings"""

from typing import Dict
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


# Sector risk multipliers based on industry volatility
DEFAULT_SECTOR_RISK_MULTIPLIERS: Dict[str, float] = {
    "Manufacturing": 1.2,
    "Construction": 1.3,
    "Agriculture": 1.4,
    "Retail": 1.1,
    "Services": 1.0,
    "Technology": 0.9,
    "Healthcare": 0.95,
    "Education": 0.9,
    "Real Estate": 1.25,
    "Transportation": 1.15,
    "Hospitality": 1.35,
}


class Settings(BaseSettings):
    """Engine configuration loaded from environment variables"""

    model_config = SettingsConfigDict(
        env_prefix="PORTFOLIO_RISK_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Service
    service_name: str = "portfolio-risk"
    log_level: str = "INFO"

    # Scoring data (env value is a JSON object, e.g. '{"Mining": 1.3}')
    sector_risk_multipliers: Dict[str, float] = Field(
        default_factory=lambda: dict(DEFAULT_SECTOR_RISK_MULTIPLIERS)
    )

    # Smart actions
    smart_action_limit: int = Field(default=5, ge=1, le=5)


settings = Settings()

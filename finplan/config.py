"""Simulation configuration management using Pydantic Settings."""

import logging
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from finplan.models.debt_payoff import DEFAULT_SAFETY_CAP_PERIODS
from finplan.models.stress_testing import DEFAULT_TRIALS, DEFAULT_VOLATILITY


class Settings(BaseSettings):
    """Simulation settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=False, extra="ignore"
    )

    # Application Environment
    app_env: str = Field(default="development", alias="FINPLAN_ENV")

    # Logging Configuration
    log_level: str = Field(default="INFO", alias="FINPLAN_LOG_LEVEL")

    # Debt payoff simulation
    safety_cap_periods: int = Field(
        default=DEFAULT_SAFETY_CAP_PERIODS,
        ge=1,
        le=1200,
        alias="FINPLAN_SAFETY_CAP_PERIODS",
    )

    # Monte Carlo
    monte_carlo_trials: int = Field(
        default=DEFAULT_TRIALS, ge=1, le=100000, alias="FINPLAN_MONTE_CARLO_TRIALS"
    )
    monte_carlo_volatility: float = Field(
        default=DEFAULT_VOLATILITY,
        ge=0,
        lt=1,
        alias="FINPLAN_MONTE_CARLO_VOLATILITY",
    )
    random_seed: Optional[int] = Field(
        default=None, ge=0, alias="FINPLAN_RANDOM_SEED"
    )

    @field_validator("app_env")
    @classmethod
    def validate_app_env(cls, v):
        """Validate application environment."""
        allowed_envs = {"development", "testing", "production"}
        if v not in allowed_envs:
            raise ValueError(f"FINPLAN_ENV must be one of {allowed_envs}")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v):
        """Validate log level."""
        allowed_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in allowed_levels:
            raise ValueError(f"FINPLAN_LOG_LEVEL must be one of {allowed_levels}")
        return v.upper()


def get_settings(env_file: Optional[str] = None) -> Settings:
    """Get a fresh settings instance."""
    if env_file is not None:
        return Settings(_env_file=env_file)
    return Settings()


def configure_logging(settings: Settings) -> None:
    """Apply the configured log level to the ``finplan`` logger hierarchy."""
    logging.basicConfig(
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logging.getLogger("finplan").setLevel(settings.log_level)

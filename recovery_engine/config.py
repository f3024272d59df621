"""Configuration management for the recovery engine."""

import os
from typing import Optional
from dotenv import load_dotenv

load_dotenv()


class Config:
    """Application configuration."""

    # Database
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./recovery_engine.db")

    # Application
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    DEFAULT_USER_ID: str = os.getenv("DEFAULT_USER_ID", "default")
    ATHLETE_AGE_YEARS: str = os.getenv("ATHLETE_AGE_YEARS", "")

    # History fetch windows (days)
    WORKOUT_LOOKBACK_DAYS: int = int(os.getenv("WORKOUT_LOOKBACK_DAYS", "14"))
    SLEEP_STRESS_LOOKBACK_DAYS: int = int(os.getenv("SLEEP_STRESS_LOOKBACK_DAYS", "7"))
    SNAPSHOT_LOOKBACK_DAYS: int = int(os.getenv("SNAPSHOT_LOOKBACK_DAYS", "14"))
    TREND_LOOKBACK_DAYS: int = int(os.getenv("TREND_LOOKBACK_DAYS", "28"))
    DELOAD_SNAPSHOT_DAYS: int = int(os.getenv("DELOAD_SNAPSHOT_DAYS", "28"))
    BEHAVIOR_LOOKBACK_DAYS: int = int(os.getenv("BEHAVIOR_LOOKBACK_DAYS", "60"))
    BEHAVIOR_WORKOUT_DAYS: int = int(os.getenv("BEHAVIOR_WORKOUT_DAYS", "7"))

    # History ranges offered to charts / the CLI
    HISTORY_RANGES = {
        "7d": 7,
        "30d": 30,
    }

    @classmethod
    def get_age_years(cls) -> Optional[float]:
        """Get the configured athlete age, if any."""
        if not cls.ATHLETE_AGE_YEARS:
            return None
        try:
            return float(cls.ATHLETE_AGE_YEARS)
        except ValueError:
            return None

    @classmethod
    def get_history_days(cls, range_key: str) -> int:
        """Map a history range key ("7d", "30d") to a number of days."""
        return cls.HISTORY_RANGES.get(range_key, 7)

    @classmethod
    def validate(cls) -> bool:
        """Validate required configuration."""
        if not cls.DATABASE_URL:
            raise ValueError("Missing DATABASE_URL. Please set DATABASE_URL")
        windows = {
            "WORKOUT_LOOKBACK_DAYS": cls.WORKOUT_LOOKBACK_DAYS,
            "SLEEP_STRESS_LOOKBACK_DAYS": cls.SLEEP_STRESS_LOOKBACK_DAYS,
            "SNAPSHOT_LOOKBACK_DAYS": cls.SNAPSHOT_LOOKBACK_DAYS,
            "TREND_LOOKBACK_DAYS": cls.TREND_LOOKBACK_DAYS,
            "DELOAD_SNAPSHOT_DAYS": cls.DELOAD_SNAPSHOT_DAYS,
            "BEHAVIOR_LOOKBACK_DAYS": cls.BEHAVIOR_LOOKBACK_DAYS,
        }
        for name, value in windows.items():
            if value <= 0:
                raise ValueError(f"{name} must be positive, got {value}")
        return True


config = Config()

"""
Configuration settings for the adaptive practice engine.

Uses Pydantic Settings for environment variable management with .env file support.
"""
from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ========================================
    # Database
    # ========================================
    database_url: str = Field(
        default="sqlite:///practice_engine.db",
        description="SQLAlchemy connection string (SQLite or PostgreSQL)",
    )

    # ========================================
    # Logging
    # ========================================
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Logging level",
    )
    log_file: str | None = Field(
        default=None,
        description="Optional log file path",
    )

    # ========================================
    # API Server
    # ========================================
    api_host: str = Field(
        default="127.0.0.1",
        description="API server host",
    )
    api_port: int = Field(
        default=8100,
        description="API server port",
    )

    # ========================================
    # Session Pacing & Rewards
    # ========================================
    exercises_per_minute: float = Field(
        default=1.5,
        description="Pacing constant converting target minutes to an exercise count",
    )
    reward_points_correct: int = Field(
        default=10,
        description="Reward points for a correct answer",
    )
    reward_points_incorrect: int = Field(
        default=2,
        description="Participation points for an incorrect answer",
    )
    streak_bonus_min_correct: int = Field(
        default=3,
        description="Correct answers within a session needed for the streak bonus",
    )
    require_unlocked_skill: bool = Field(
        default=False,
        description="Refuse to create sessions for skills the learner has not unlocked",
    )

    # ========================================
    # Mastery Thresholds
    # ========================================
    mastery_max_level: int = Field(
        default=5,
        description="Mastery level meaning 'mastered'",
    )
    mastery_min_attempts: int = Field(
        default=5,
        description="Attempts required at the current level before a level up",
    )
    mastery_accuracy_threshold: float = Field(
        default=0.70,
        description="Correct rate since the last level change needed to level up",
    )

    # ========================================
    # Exercise Quality
    # ========================================
    quality_default_score: int = Field(
        default=50,
        description="Initial quality score for new exercises",
    )
    quality_good_delta: int = Field(
        default=5,
        description="Score added by a 'good' rating",
    )
    quality_bad_delta: int = Field(
        default=10,
        description="Score removed by a 'bad' rating",
    )
    quality_flag_threshold: int = Field(
        default=20,
        description="Exercises rated 'bad' below this score are flagged",
    )
    quality_min_score: int = Field(default=0)
    quality_max_score: int = Field(default=100)

    # ========================================
    # Exercise Selection & Generation
    # ========================================
    session_excluded_exercise_types: list[str] = Field(
        default=["free_input"],
        description="Exercise types never served in sessions (ambiguous grading)",
    )
    generation_max_per_request: int = Field(
        default=5,
        description="Maximum exercises synthesized per selection call",
    )
    generator_url: str | None = Field(
        default=None,
        description="Exercise generator service base URL",
    )
    generator_timeout_seconds: float = Field(
        default=20.0,
        description="Timeout for one generation request",
    )

    # ========================================
    # XP / Streak Service
    # ========================================
    xp_service_url: str | None = Field(
        default=None,
        description="XP/streak service base URL",
    )
    xp_timeout_seconds: float = Field(
        default=5.0,
        description="Timeout for XP/streak requests",
    )

    def has_generator_configured(self) -> bool:
        """Check if an exercise generator service is configured."""
        return bool(self.generator_url)

    def has_xp_service_configured(self) -> bool:
        """Check if an XP/streak service is configured."""
        return bool(self.xp_service_url)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()

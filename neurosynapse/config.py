"""
Configuration Management for the Screening Core

Environment-based configuration using Pydantic Settings. Every scoring
threshold lives here as a named default that can be overridden through the
environment, a .env file, or per-session config overrides.
"""
from typing import List, Tuple
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="NEUROSYNAPSE_",
        case_sensitive=False,
        extra="ignore"
    )

    # Application
    app_name: str = "NeuroSynapse-PD Screening Core"
    app_version: str = "0.1.0"
    log_level: str = Field(default="INFO", description="Root log level for the package")

    # API Configuration
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    api_prefix: str = "/api/v1"
    cors_origins: List[str] = ["*"]

    # Test durations (seconds); reaching one triggers automatic finalization
    voice_test_duration_s: float = 10.0
    tremor_test_duration_s: float = 10.0
    gait_test_duration_s: float = 20.0
    facial_test_duration_s: float = 15.0
    spiral_test_duration_s: float = 20.0
    tapping_test_duration_s: float = 10.0
    questionnaire_test_duration_s: float = 600.0

    # Voice
    voice_sample_rate: float = 44100.0
    voice_calibration_s: float = 3.0
    voice_min_calibration_frames: int = 10
    voice_rolling_frames: int = 100
    voice_pitch_band: Tuple[float, float] = (80.0, 400.0)
    voice_silent_db: float = -50.0
    voice_quiet_db: float = -40.0
    voice_loud_db: float = -20.0
    voice_unstable_below: float = 70.0

    # Tremor
    tremor_sample_rate: float = 60.0
    tremor_window_ms: float = 5000.0
    tremor_min_samples: int = 30
    tremor_band: Tuple[float, float] = (3.0, 12.0)
    tremor_position_scale: float = 1000.0
    tremor_amplitude_weight: float = 10.0
    tremor_frequency_weight: float = 5.0

    # Gait
    gait_step_threshold: float = 0.15
    gait_slow_cadence: float = 80.0
    gait_fast_cadence: float = 120.0

    # Facial
    facial_ear_threshold: float = 0.2
    facial_refractory_ms: float = 100.0
    facial_reduced_blink_rate: float = 8.0
    facial_increased_blink_rate: float = 20.0
    facial_asymmetry_below: float = 85.0

    # Spiral
    spiral_ideal_tremor_index: float = 5.0
    spiral_min_points: int = 10

    # Tapping
    tapping_normal_taps: float = 30.0
    tapping_mild_taps: float = 15.0

    # Aggregation (0-4 ordinal scale)
    risk_low_below: float = 1.25
    risk_moderate_below: float = 2.5
    min_completed_domains: int = 2

    # Session registry
    max_retained_sessions: int = Field(default=1000, ge=0, description="Finished sessions kept for status queries")


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()

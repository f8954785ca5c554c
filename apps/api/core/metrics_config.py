"""
Metric Engine Configuration

Backend-configurable settings for leaderboard and radar computations.
Allows adjustment of display sizing without code changes.
"""
from pydantic_settings import BaseSettings, SettingsConfigDict


class MetricsConfig(BaseSettings):
    """
    Configurable metric engine settings.

    These can be adjusted via environment variables (METRICS_ prefix).
    """
    model_config = SettingsConfigDict(env_prefix="METRICS_", case_sensitive=False)

    # Number of players shown on a leaderboard
    leaderboard_size: int = 5

    # Axis headroom for radar metrics that have no history yet.
    # A single value of 50 gets an axis maximum of 60.
    radar_headroom: float = 1.2

    # Decimal places kept on formula results and improvement figures
    value_decimals: int = 2


# Global config instance
metrics_config = MetricsConfig()

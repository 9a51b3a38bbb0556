from datetime import datetime, timezone
from typing import Dict

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .logger import get_logger


def _default_season() -> int:
    """European season year: Jul-Dec -> current year, Jan-Jun -> previous year."""
    now = datetime.now(timezone.utc)
    return now.year if now.month >= 7 else (now.year - 1)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = Field("dev", alias="APP_ENV")
    log_level: str = Field("INFO", alias="LOG_LEVEL")

    football_data_key: str = Field("", alias="FOOTBALL_DATA_KEY")
    football_data_base: str = Field("https://api.football-data.org", alias="FOOTBALL_DATA_BASE")
    http_timeout_seconds: float = Field(default=20.0, alias="HTTP_TIMEOUT_SECONDS")
    http_retries: int = Field(default=3, alias="HTTP_RETRIES")

    competition_code: str = Field("PL", alias="COMPETITION_CODE")
    season: int = Field(default_factory=_default_season, alias="SEASON")
    season_weeks: int = Field(default=38, alias="SEASON_WEEKS")

    scheduler_enabled: bool = Field(default=True, alias="SCHEDULER_ENABLED")
    matches_refresh_minutes: int = Field(default=10, alias="MATCHES_REFRESH_MINUTES")
    # Lazy refresh threshold used when the scheduler is off.
    matches_max_age_seconds: int = Field(default=15 * 60, alias="MATCHES_MAX_AGE_SECONDS")

    # Display colors, "Arsenal FC:#EF0107,Chelsea FC:#034694". Passed through to clients only.
    team_colors_raw: str = Field(default="", alias="TEAM_COLORS")

    @model_validator(mode="after")
    def validate_api_key(self):
        invalid_values = {"", "YOUR_KEY"}
        if self.football_data_key in invalid_values:
            logger = get_logger("settings")
            logger.warning("FOOTBALL_DATA_KEY is not configured; match refresh will fail until it is set")
        return self

    @property
    def has_api_key(self) -> bool:
        return (self.football_data_key or "").strip() not in {"", "YOUR_KEY"}

    @property
    def team_colors(self) -> Dict[str, str]:
        out: Dict[str, str] = {}
        for pair in (self.team_colors_raw or "").split(","):
            if ":" not in pair:
                continue
            name, color = pair.rsplit(":", 1)
            if name.strip() and color.strip():
                out[name.strip()] = color.strip()
        return out


default_settings = Settings()
settings = default_settings

from typing import Optional
from urllib.parse import quote_plus

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file="socialapi/.env",
        env_file_encoding="utf-8",
        extra="allow",
    )
    # Application
    APP_NAME: str = "Social Points API"
    API_V1_STR: str = "/api/v1"
    ENVIRONMENT: str = "development"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Database
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_USERNAME: str = "postgres"
    POSTGRES_PASSWORD: str = "postgres"
    POSTGRES_DATABASE: str = "postgres"
    POSTGRES_SCHEMA: str = "public"

    # Takes precedence over POSTGRES_* when set (e.g. sqlite:// for local runs)
    DATABASE_URL: Optional[str] = None
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20

    @property
    def database_url(self) -> str:
        """Construct database URL from individual components"""
        if self.DATABASE_URL:
            return self.DATABASE_URL

        encoded_password = quote_plus(self.POSTGRES_PASSWORD)
        return f"postgresql+psycopg2://{self.POSTGRES_USERNAME}:{encoded_password}@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DATABASE}"

    # Social graph (Tapestry)
    TAPESTRY_URL: str = "https://api.usetapestry.dev/api/v1"
    TAPESTRY_API_KEY: str = ""
    TAPESTRY_TIMEOUT_SECONDS: float = 8.0
    TAPESTRY_EXECUTION: str = "FAST_UNCONFIRMED"

    # Admin endpoints (manual OG grant, point corrections)
    ADMIN_API_KEY: str = ""

    # Leaderboard
    LEADERBOARD_DEFAULT_LIMIT: int = 50
    LEADERBOARD_MAX_LIMIT: int = 100

    # Points history
    HISTORY_DEFAULT_LIMIT: int = 20
    HISTORY_MAX_LIMIT: int = 100

    # OG eligibility, checked in this order after a manual grant
    OG_MIN_TRADING_VOLUME_USD: float = 10_000.0
    OG_MIN_ACHIEVEMENTS: int = 5
    OG_MIN_POINTS: int = 1000
    OG_MIN_ACCOUNT_AGE_DAYS: int = 90
    OG_MIN_VETERAN_POINTS: int = 250

    # Trading volume milestones (USD) that award TRADE_VOLUME_MILESTONE
    TRADE_VOLUME_MILESTONES: list[int] = [1_000, 10_000, 100_000, 1_000_000]

    # Profiles
    USERNAME_CHANGE_COOLDOWN_DAYS: int = 7
    REFERRAL_CODE_LENGTH: int = 8


settings = Settings()

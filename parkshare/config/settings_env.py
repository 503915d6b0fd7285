from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Development
    DEV_MODE: bool = Field(default=True, description="Enable debug mode")

    # Database
    DATABASE_URL: str = Field(default="sqlite:///./parkshare.db", description="Database connection URL")
    ASYNC_DATABASE_URL: str = Field(default="sqlite+aiosqlite:///./parkshare.db", description="Async database URL")

    # FastAPI
    FASTAPI_HOST: str = Field(default="localhost", description="FastAPI host")
    FASTAPI_PORT: int = Field(default=8080, description="FastAPI port")

    # Booking rules
    MIN_DURATION_HOURS: float = Field(default=1, gt=0, description="Shortest bookable interval")
    MAX_DURATION_HOURS: float = Field(default=24, gt=0, description="Longest bookable interval")
    MAX_ADVANCE_DAYS: int = Field(default=30, ge=0, description="How far ahead a booking may start")
    CANCELLATION_GRACE_HOURS: float = Field(default=1, ge=0, description="Cancellation window after start time")

    # Marketplace
    PLATFORM_FEE_RATE: float = Field(default=0.10, ge=0, lt=1, description="Share of each booking kept by the platform")


# Create settings instance
settings = Settings()

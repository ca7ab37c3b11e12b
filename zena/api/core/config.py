"""
Configuration management using Pydantic Settings.
"""
from pydantic_settings import BaseSettings
from typing import List, Literal


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # API
    PORT: int = 8000
    CORS_ORIGINS: List[str] = ["*"]

    # Database
    DATABASE_URL: str

    # Security
    SECRET_KEY: str
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_TTL_MINUTES: int = 60

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_SQL: bool = False

    # Cost approval policy
    # "inclusive": percent >= threshold flags policy risk, "exclusive": percent > threshold
    OVER_BUDGET_BOUNDARY: Literal["inclusive", "exclusive"] = "inclusive"
    GOVERNANCE_WINDOW_DAYS: int = 30

    class Config:
        env_file = ".env"
        case_sensitive = True

    @property
    def over_budget_inclusive(self) -> bool:
        return self.OVER_BUDGET_BOUNDARY == "inclusive"


# Singleton instance
settings = Settings()

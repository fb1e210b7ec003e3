# ticketdesk/core/config.py
from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


class Settings(BaseSettings):
    DATABASE_URL: str = Field(default="sqlite:///./tickets.db")
    APP_NAME: str = "Ticket Desk API"
    APP_DESC: str = "Ticket tracking backend for the grid client"
    APP_VERSION: str = "1.0.0"
    API_PREFIX: str = "/api"
    LOG_LEVEL: str = "INFO"

    # CORS origins, comma separated
    CORS_ORIGINS: str = "*"

    # Public ticket id scheme: NET-1001, NET-1002, ...
    PUBLIC_ID_PREFIX: str = "NET"
    PUBLIC_ID_SEPARATOR: str = "-"
    PUBLIC_ID_START_NUMBER: int = 1001

    # Evaluate every filter predicate with the first predicate's operator
    FILTER_FIRST_OPERATOR_GOVERNS: bool = False

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @property
    def cors_origins(self) -> list[str]:
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]


@lru_cache
def get_settings() -> Settings:
    return Settings()


__all__ = ["Settings", "get_settings"]

"""
TIPSTREAM - Configuration
Environment-driven settings for scraping, generation, storage and scheduling
"""

from functools import lru_cache
from typing import List, Optional

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Pipeline configuration settings"""

    # Application Settings
    APP_NAME: str = "Tipstream"
    APP_VERSION: str = "1.0.0"
    ENVIRONMENT: str = Field(default="development", pattern="^(development|staging|production)$")
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    @property
    def app_name(self) -> str:
        return self.APP_NAME

    @property
    def app_version(self) -> str:
        return self.APP_VERSION

    @property
    def debug(self) -> bool:
        return self.DEBUG

    @property
    def environment(self) -> str:
        return self.ENVIRONMENT

    # Server Settings
    HOST: str = "0.0.0.0"
    PORT: int = 4000
    CORS_ORIGINS: List[str] = ["http://localhost:3000"]

    # Database Settings
    DATABASE_URL: str = "sqlite+aiosqlite:///./tipstream.db"
    DATABASE_ECHO: bool = False

    # Generative model (OpenAI)
    OPENAI_API_KEY: str = ""
    OPENAI_MODEL: str = "gpt-4o-mini"
    OPENAI_TIMEOUT: float = 60.0
    OPENAI_TOP_P: float = 0.95
    SELECTION_TEMPERATURE: float = 1.0
    ANALYSIS_TEMPERATURE: float = 0.2

    # Web search enrichment
    TAVILY_API_KEY: str = ""
    TAVILY_TIMEOUT: float = 8.0
    DUCKDUCKGO_API_URL: str = "https://api.duckduckgo.com/"
    DUCKDUCKGO_TIMEOUT: float = 5.0
    SEARCH_MAX_QUERIES: int = 4
    SEARCH_QUERY_DELAY: float = 0.6
    SEARCH_SNIPPET_LIMIT: int = 1500

    # Scraper Settings
    SCRAPER_HEADLESS: bool = True
    SCRAPER_PAGE_LOAD_TIMEOUT: int = 60
    SCRAPER_WAIT_TIMEOUT: float = 10.0
    SCRAPER_POLL_ATTEMPTS: int = 5
    SCRAPER_POLL_INTERVAL: float = 1.0
    SCRAPER_SETTLE_DELAY: float = 1.0
    SCRAPER_REQUEST_DELAY: float = 2.0
    SCRAPER_USER_AGENT: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36"
    )
    SCRAPER_ACCEPT_LANGUAGE: str = "ru-RU,ru;q=0.9,en-US;q=0.8,en;q=0.7"
    SCRAPER_DEBUG_DIR: str = "debug"
    SCRAPER_DEBUG_DUMP: bool = True
    CHROMEDRIVER_PATH: Optional[str] = None

    # Seed list used until the source registry is filled by an operator
    SOURCE_URLS: List[str] = []

    # Scheduling Settings
    SCHEDULER_ENABLED: bool = True
    SCHEDULER_TIMEZONE: str = "UTC"
    MATCHES_REFRESH_INTERVAL: int = 7200
    MATCHES_STARTUP_DELAY: float = 2.0
    PREDICTION_CRON: str = "0 12,18 * * *"
    PREDICTION_STARTUP_DELAY: float = 120.0

    # Prediction pool
    PREDICTIONS_PER_CATEGORY: int = 5
    PREDICTION_CALL_DELAY: float = 2.5
    RECENT_SELECTIONS_LIMIT: int = 5

    @field_validator('DATABASE_URL')
    @classmethod
    def validate_database_url(cls, v: str) -> str:
        if not v.startswith(('sqlite+aiosqlite://', 'postgresql+asyncpg://')):
            raise ValueError('DATABASE_URL must use an async driver (sqlite+aiosqlite or postgresql+asyncpg)')
        return v

    @field_validator('OPENAI_MODEL')
    @classmethod
    def validate_openai_model(cls, v: str) -> str:
        if not v.strip():
            raise ValueError('OPENAI_MODEL must not be empty')
        return v.strip()

    @field_validator('MATCHES_REFRESH_INTERVAL', 'PREDICTIONS_PER_CATEGORY', 'RECENT_SELECTIONS_LIMIT')
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError('value must be positive')
        return v

    @model_validator(mode='after')
    def validate_production_settings(self) -> 'Settings':
        """Production needs a model key"""
        if self.ENVIRONMENT == 'production':
            if self.DEBUG:
                raise ValueError('DEBUG must be False in production')
            if not self.OPENAI_API_KEY:
                raise ValueError('OPENAI_API_KEY is required in production')
        return self

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"

    @property
    def is_development(self) -> bool:
        return self.ENVIRONMENT == "development"

    def get_sync_database_url(self) -> str:
        """Database URL with the sync driver, for Alembic"""
        return (
            self.DATABASE_URL
            .replace("sqlite+aiosqlite://", "sqlite://")
            .replace("postgresql+asyncpg://", "postgresql://")
        )

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True
        extra = "ignore"


@lru_cache()
def get_settings() -> Settings:
    """Settings loaded once per process"""
    return Settings()


# Singleton instance
settings = get_settings()

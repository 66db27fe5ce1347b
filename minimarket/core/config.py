from pydantic_settings import BaseSettings
from functools import lru_cache
from typing import Optional

class Settings(BaseSettings):
    # Application
    APP_NAME: str = "MiniMarket"
    APP_PORT: int = 9300
    DEBUG: bool = False
    SECRET_KEY: str = "minimarket-secret-key-change-in-production"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 12

    # Database
    POSTGRES_SERVER: str = "localhost"
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: str = "postgres"
    POSTGRES_DB: str = "minimarket"
    POSTGRES_PORT: int = 5432
    DATABASE_URL_OVERRIDE: Optional[str] = None  # e.g. sqlite:///./minimarket.db

    # Lock / statement timeouts (PostgreSQL only), milliseconds
    DB_LOCK_TIMEOUT_MS: int = 5000
    DB_STATEMENT_TIMEOUT_MS: int = 15000

    # Reservations
    RESERVATION_TTL_MINUTES: int = 0  # 0 = reservations never expire
    RESERVATION_SWEEP_INTERVAL_MINUTES: int = 5
    SCHEDULER_ENABLED: bool = True

    # Dashboard
    STORE_TIMEZONE: str = "America/Santiago"
    DASHBOARD_LIST_LIMIT: int = 10
    LOW_STOCK_LIST_LIMIT: int = 20

    # Logging
    LOG_LEVEL: str = "INFO"
    LOGS_PATH: Optional[str] = None

    @property
    def DATABASE_URL(self) -> str:
        if self.DATABASE_URL_OVERRIDE:
            return self.DATABASE_URL_OVERRIDE
        return f"postgresql+psycopg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}@{self.POSTGRES_SERVER}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"

    class Config:
        env_file = ".env"
        extra = "ignore"

@lru_cache()
def get_settings() -> Settings:
    return Settings()

settings = get_settings()

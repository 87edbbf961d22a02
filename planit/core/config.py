from pydantic_settings import BaseSettings
from dotenv import load_dotenv
from typing import Optional

load_dotenv()

class Settings(BaseSettings):
    DATABASE_URL: str
    JWT_SECRET_KEY: str
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 20

    # Redis settings
    REDIS_URL: str = "redis://localhost:6379/0"

    # Change feed (realtime) settings
    CHANGE_FEED_PREFIX: str = "planit:changes"
    CHANGE_FEED_POLL_INTERVAL: float = 0.5

    # Trip context is read on every board load
    TRIP_CACHE_TTL_SECONDS: int = 1800

    LOG_LEVEL: str = "INFO"
    CREATE_TABLES_ON_STARTUP: bool = False

    PROJECT_NAME: str = "PlanIt API"
    PROJECT_VERSION: str = "1.0.0"
    PROJECT_DESCRIPTION: str = "Collaborative trip planning: activities, votes and budgets"
    DEFAULT_CURRENCY: str = "USD"

    CORS_ORIGIN_REGEX: Optional[str] = (
        r"^(http:\/\/localhost(:\d{1,5})?|http:\/\/127\.0\.0\.1(:\d{1,5})?)$"
    )

    class Config:
        env_file = ".env"


settings = Settings()

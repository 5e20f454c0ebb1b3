from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List

class Settings(BaseSettings):
    # Environment
    ENVIRONMENT: str = "development"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"

    # API Settings
    PROJECT_NAME: str = "FinDriver API"
    API_V1_STR: str = "/api/v1"
    PROJECT_VERSION: str = "0.1.0"
    DESCRIPTION: str = "Driver income, expense and cost-per-km metrics API"

    # MongoDB
    MONGODB_URL: str = "mongodb://localhost:27017"
    DATABASE_NAME: str = "findriver"
    MONGODB_TIMEOUT_MS: int = 5000

    # JWT (tokens are issued by the identity service)
    SECRET_KEY: str = "change-this-in-production"
    ALGORITHM: str = "HS256"

    # Query limits
    STORE_FETCH_CAP: int = 500
    DEFAULT_PAGE_SIZE: int = 20
    MAX_PAGE_SIZE: int = 100
    SEARCH_LIMIT: int = 50

    # Metrics
    DEFAULT_WINDOW_DAYS: int = 30
    HISTORY_LIMIT: int = 30
    FUEL_CATEGORIES: List[str] = ["combustible", "gasolina", "fuel"]
    WINDOW_TIMEZONE: str = "UTC"
    BUCKET_TIMEZONE: str = "UTC"

    # Km estimation defaults when the user has no vehicle config
    DEFAULT_FUEL_PRICE: float = 24.0
    DEFAULT_FUEL_EFFICIENCY: float = 10.0
    MIN_RECORDED_KM: float = 10.0

    model_config = SettingsConfigDict(
        case_sensitive=True,
        env_file=".env"
    )

settings = Settings()

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    PROJECT_TITLE: str = "Billable"
    MONGODB_URL: str = "mongodb://localhost:27017"
    DATABASE_NAME: str = "billable"
    STORAGE_BACKEND: str = "mongo"  # or memory
    PRODUCTION_MODE: bool = False
    SECRET_KEY: str = "change-me"
    ALGORITHM: str = "HS256"
    LOG_LEVEL: str = "INFO"
    PORT: int = 11000
    CORS_ORIGINS: str = "http://localhost:3000,http://127.0.0.1:5173"

    # Analytics
    ANALYTICS_TREND_MONTHS: int = 6

    # Recurring tasks
    RECURRENCE_MAX_OCCURRENCES: int = 5000

settings = Settings()

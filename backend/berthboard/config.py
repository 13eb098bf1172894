from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    DATABASE_URL: str = "sqlite:///berthboard.db"
    REFERENCE_DATA_CONFIG: str = "config/reference_data.yaml"
    LOG_LEVEL: str = "INFO"
    # Vessel collection storage: "sql" (key/value table), "json" (file) or "memory"
    STORAGE_BACKEND: str = "sql"
    STORAGE_KEY: str = "vesselSchedulingData"
    JSON_STORE_PATH: str = "data/vessels.json"
    # Severity for LOA > berth length: "warning" or "error"
    LENGTH_VIOLATION_SEVERITY: str = "warning"
    # Dashboard windows
    UPCOMING_ARRIVALS_HOURS: int = 24
    THROUGHPUT_DAYS: int = 7
    METRICS_WINDOW_HOURS: int = 24
    # Connection pool (ignored for sqlite)
    DB_POOL_SIZE: int = 5
    DB_MAX_OVERFLOW: int = 10
    # Shared API key (if unset, all requests pass)
    BERTHBOARD_API_KEY: str | None = None
    # Session tokens issued by /auth/login
    AUTH_SECRET_KEY: str = "change-me-in-production"
    AUTH_ALGORITHM: str = "HS256"
    AUTH_TOKEN_TTL_MINUTES: int = 480
    # CORS origins (comma-separated string for env var support)
    CORS_ORIGINS: str = "http://localhost:5173,http://localhost:3000"


settings = Settings()

"""
Centralized application configuration implementing the 12-Factor App methodology.
Every tunable of the simulator (commission tiers, dataset source, pagination) lives here.
"""
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Immutable configuration schema backed by environment variables."""

    APP_NAME: str = "Emerald Yield Simulator"
    VERSION: str = "1.0.0"
    DEBUG: bool = False

    # SQLite by default; any SQLAlchemy URL (PostgreSQL, etc.) works
    DATABASE_URL: str = "sqlite:///./emerald.db"

    LOG_LEVEL: str = "INFO"

    # Simulation
    SIMULATION_YEARS: int = 3
    LOCALE: str = "en-US"
    CURRENCY: str = "EUR"

    # Agency commission tiers (fraction of gross rent)
    COMMISSION_RATE_YEAR_1: float = 0.30
    COMMISSION_RATE_YEAR_2: float = 0.25
    COMMISSION_RATE_DEFAULT: float = 0.20

    # Data-driven prediction
    AVERAGE_DAYS_PER_MONTH: float = 30.42
    PRICE_MARGIN: float = 0.15

    # Dataset source (shared Google Drive file)
    # Set DATASET_FILE_ID (or a full DATASET_URL) to enable downloads
    DATASET_FILE_ID: str = ""
    DATASET_URL: str = ""
    DATASET_LOCAL_PATH: str = "data/dataset.csv"
    DATASET_CACHE_HOURS: float = 24.0
    DATASET_MAX_ATTEMPTS: int = 3
    DATASET_RETRY_DELAY_SECONDS: float = 1.0
    DATASET_TIMEOUT_SECONDS: float = 30.0
    DATASET_WARMUP: bool = True

    # Admin listing
    PAGINATION_DEFAULT_PAGE: int = 1
    PAGINATION_DEFAULT_LIMIT: int = 20
    PAGINATION_MAX_LIMIT: int = 100

    # Form validation bounds
    MIN_PURCHASE_PRICE: float = 0.01
    MAX_AMOUNT: float = 1_000_000_000_000
    EMAIL_MIN_LENGTH: int = 5
    EMAIL_MAX_LENGTH: int = 254

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")

    @property
    def dataset_url(self) -> str:
        """Direct download URL, derived from the file id unless overridden."""
        if self.DATASET_URL:
            return self.DATASET_URL
        if not self.DATASET_FILE_ID:
            return ""
        return f"https://drive.google.com/uc?export=download&id={self.DATASET_FILE_ID}"

    @property
    def dataset_cache_seconds(self) -> float:
        return self.DATASET_CACHE_HOURS * 3600


settings = Settings()

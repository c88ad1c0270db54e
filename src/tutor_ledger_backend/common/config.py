'''
Holds all the configurations
'''
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    """
    Manages application configuration using environment variables.
    """
    # Application Metadata
    APP_NAME: str = "Tutor Ledger Backend"
    APP_VERSION: str = "0.1.0"
    APP_DESCRIPTION: str = "Teacher accounting ledger: per-student charges, payments and fee defaults."
    TEST_MODE: bool = False

    # Database URL (async drivers: postgresql+asyncpg / sqlite+aiosqlite)
    DATABASE_URL_PROD: str = "sqlite+aiosqlite:///./tutor_ledger.db"
    DATABASE_URL_TEST: str = "sqlite+aiosqlite://"
    @property
    def database_url(self) -> str:
        """
        Dynamically returns the correct database URL based on the test_mode flag.
        """
        if self.TEST_MODE:
            return self.DATABASE_URL_TEST
        return self.DATABASE_URL_PROD

    # Connection pool (ignored for SQLite)
    DB_POOL_SIZE: int = 5
    DB_MAX_OVERFLOW: int = 10
    DB_POOL_TIMEOUT: int = 30

    # Creates the schema from the ORM metadata at startup (local development)
    CREATE_TABLES_ON_STARTUP: bool = False

    # Other settings
    LOG_LEVEL: str = "INFO"
    BACKEND_CORS_ORIGINS: list[str] = []

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

# Create a single, importable instance of the settings
settings = Settings()

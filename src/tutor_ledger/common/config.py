'''
Holds all the configurations
'''
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    """
    Manages application configuration using environment variables.
    """
    # Application Metadata
    APP_NAME: str = "TutorLedger Backend"
    APP_VERSION: str = "0.1.0"
    APP_DESCRIPTION: str = "Lesson scheduling and prepayment reconciliation API for private tutors."
    TEST_MODE: bool = False
    LOG_LEVEL: str = "INFO"

    # Extra origins allowed by the CORS middleware
    BACKEND_CORS_ORIGINS: list[str] = []

    # Ledger Settings
    RECALCULATION_DELAY_SECONDS: float = 0.5
    MAX_PREPAYMENT_AMOUNT: int = 1_000_000

    # Other settings
    FIRST_DAY_OF_WEEK: int = 0  # python weekday, 0 is Monday

    model_config = SettingsConfigDict(env_file=".env", extra="ignore") # automatically loads the .env

# Create a single, importable instance of the settings
settings = Settings()

from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Central application configuration."""

    PROJECT_NAME: str = "Back-office Ledger"
    API_V1_PREFIX: str = "/api/v1"
    ENVIRONMENT: str = Field(default="local", validation_alias="ENV", description="Deployment environment")
    CORS_ORIGINS: List[str] = Field(default=["*"])

    # Database
    DATABASE_URL: str = Field(default="sqlite:///./backoffice.db")

    # Bookkeeping defaults
    DEFAULT_CURRENCY: str = Field(default="DZD", min_length=3, max_length=3)
    MAX_TRANSACTION_AMOUNT: str = Field(default="999999999.99")

    # Invoice files are stored by the caller; the core only removes them
    INVOICE_STORAGE_DIR: str = Field(default="storage/invoices")

    # Observability
    LOG_LEVEL: str = Field(default="INFO")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()

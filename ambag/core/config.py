"""
Application configuration and environment settings.
"""
from pydantic_settings import BaseSettings
from pydantic import field_validator
from typing import List, Union


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""
    
    # Application
    APP_NAME: str = "Ambag"
    DEBUG: bool = False
    
    # Database
    DATABASE_URL: str = "sqlite:///./ambag.db"
    DB_ECHO: bool = False
    
    # CORS
    CORS_ORIGINS: Union[List[str], str] = ["http://localhost:3000"]
    
    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def parse_cors_origins(cls, v):
        """Parse CORS_ORIGINS from comma-separated string or list."""
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v
    
    # Balances
    BALANCE_STRATEGY: str = "database"  # Options: "database", "remote", "local"
    REMOTE_LEDGER_URL: str = ""  # Base URL of a service exposing /groups/{id}/balances
    REMOTE_LEDGER_TIMEOUT: float = 10.0
    VERIFY_BALANCES: bool = False  # Cross-check the preferred result against the local engine
    
    @field_validator("BALANCE_STRATEGY", mode="before")
    @classmethod
    def parse_balance_strategy(cls, v):
        """Normalize and validate the balance strategy name."""
        strategy = str(v).strip().lower()
        if strategy not in ("database", "remote", "local"):
            raise ValueError(f"Unknown BALANCE_STRATEGY '{v}'")
        return strategy
    
    # Transactions feed
    RECENT_TRANSACTION_DAYS: int = 7
    
    class Config:
        env_file = ".env"
        case_sensitive = True


settings = Settings()

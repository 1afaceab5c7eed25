"""
Excel Data Importer Configuration
Environment variable loading with validation and safe defaults
"""
import os
from dotenv import load_dotenv

# Load environment variables from .env if present
load_dotenv()


class ConfigError(Exception):
    """Configuration validation error"""
    pass


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class Config:
    """Application configuration with environment variable validation"""

    # Database configuration
    DATABASE_URL: str = "sqlite:///./data/excel_importer.db"
    DB_ECHO: bool = False
    DB_CONNECT_RETRIES: int = 0
    DB_RETRY_DELAY: float = 1.0

    # Application configuration
    APP_HOST: str = "0.0.0.0"
    APP_PORT: int = 8000
    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "logs"
    CORS_ORIGINS: list = ["*"]

    # Upload / editing configuration
    MAX_UPLOAD_BYTES: int = 2 * 1024 * 1024
    PAGE_SIZE: int = 10

    # Client configuration
    IMPORT_API_URL: str = "http://localhost:8000"

    def __init__(self):
        """Initialize and validate configuration"""
        self._load_env_vars()
        self._validate_config()

    def _load_env_vars(self) -> None:
        """Load optional environment variables, keeping defaults when unset"""
        self.DATABASE_URL = os.getenv("DATABASE_URL", self.DATABASE_URL)
        self.DB_ECHO = _env_bool("DB_ECHO", self.DB_ECHO)
        self.APP_HOST = os.getenv("APP_HOST", self.APP_HOST)
        self.LOG_LEVEL = os.getenv("LOG_LEVEL", self.LOG_LEVEL).upper()
        self.LOG_DIR = os.getenv("LOG_DIR", self.LOG_DIR)
        self.IMPORT_API_URL = os.getenv("IMPORT_API_URL", self.IMPORT_API_URL).rstrip("/")

        origins = os.getenv("CORS_ORIGINS")
        if origins:
            self.CORS_ORIGINS = [o.strip() for o in origins.split(",") if o.strip()]

        try:
            self.APP_PORT = int(os.getenv("APP_PORT", self.APP_PORT))
            self.MAX_UPLOAD_BYTES = int(os.getenv("MAX_UPLOAD_BYTES", self.MAX_UPLOAD_BYTES))
            self.PAGE_SIZE = int(os.getenv("PAGE_SIZE", self.PAGE_SIZE))
            self.DB_CONNECT_RETRIES = int(os.getenv("DB_CONNECT_RETRIES", self.DB_CONNECT_RETRIES))
            self.DB_RETRY_DELAY = float(os.getenv("DB_RETRY_DELAY", self.DB_RETRY_DELAY))
        except ValueError as e:
            raise ConfigError(f"Invalid numeric configuration value: {e}") from e

    def _validate_config(self) -> None:
        """Validate configuration values"""
        if self.LOG_LEVEL not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ConfigError(f"Invalid LOG_LEVEL: {self.LOG_LEVEL}")

        if not (1 <= self.APP_PORT <= 65535):
            raise ConfigError(f"Invalid APP_PORT: {self.APP_PORT}")

        if self.MAX_UPLOAD_BYTES <= 0:
            raise ConfigError("MAX_UPLOAD_BYTES must be positive")

        if self.PAGE_SIZE <= 0:
            raise ConfigError("PAGE_SIZE must be positive")

        if self.DB_CONNECT_RETRIES < 0:
            raise ConfigError("DB_CONNECT_RETRIES cannot be negative")

        if not self.DATABASE_URL:
            raise ConfigError("DATABASE_URL is required")


# Global config instance
config = Config()

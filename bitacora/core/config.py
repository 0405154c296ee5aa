"""
Application configuration management
"""
import json
from typing import Any, List, Optional
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from dotenv import load_dotenv

# Ensure repository .env values win over stale exported shell variables.
load_dotenv(override=True)

VALID_STORAGE_BACKENDS = {"sql", "memory"}


class Settings(BaseSettings):
    """Application settings"""
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")

    # Database
    DATABASE_URL: str = "sqlite:///./bitacora.db"
    STORAGE_BACKEND: str = "sql"  # sql | memory

    # Price/name lookups (Alpha Vantage)
    PRICE_LOOKUP_ENABLED: bool = False
    ALPHA_VANTAGE_API_KEY: Optional[str] = None
    PRICE_API_BASE_URL: str = "https://www.alphavantage.co"
    PRICE_LOOKUP_TIMEOUT_SECONDS: float = 8.0
    PRICE_LOOKUP_MAX_CONCURRENCY: int = 4

    # Security
    API_AUTH_ENABLED: bool = False
    API_AUTH_TOKEN: str = ""
    CORS_ORIGINS: str = "http://localhost:8000,http://127.0.0.1:8000"

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = "logs/bitacora.log"

    @field_validator('STORAGE_BACKEND')
    @classmethod
    def validate_storage_backend(cls, v):
        backend = str(v or "").strip().lower()
        if backend not in VALID_STORAGE_BACKENDS:
            raise ValueError('STORAGE_BACKEND must be "sql" or "memory"')
        return backend

    @field_validator('PRICE_LOOKUP_TIMEOUT_SECONDS')
    @classmethod
    def validate_lookup_timeout(cls, v):
        if float(v) <= 0:
            raise ValueError('PRICE_LOOKUP_TIMEOUT_SECONDS must be positive')
        return float(v)

    @field_validator('PRICE_LOOKUP_MAX_CONCURRENCY')
    @classmethod
    def validate_lookup_concurrency(cls, v):
        if int(v) <= 0:
            raise ValueError('PRICE_LOOKUP_MAX_CONCURRENCY must be positive')
        return int(v)

    @field_validator('LOG_LEVEL')
    @classmethod
    def validate_log_level(cls, v):
        level = str(v or "INFO").strip().upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError('LOG_LEVEL must be a standard logging level name')
        return level

    @staticmethod
    def _parse_str_list(value: Any) -> List[str]:
        if isinstance(value, list):
            return [str(item).strip() for item in value if str(item).strip()]
        if value is None:
            return []
        if isinstance(value, str):
            stripped = value.strip()
            if not stripped:
                return []
            if stripped.startswith('[') and stripped.endswith(']'):
                try:
                    parsed = json.loads(stripped)
                    if isinstance(parsed, list):
                        return [str(item).strip() for item in parsed if str(item).strip()]
                except json.JSONDecodeError:
                    pass
            return [item.strip() for item in stripped.split(',') if item.strip()]
        return [str(value).strip()] if str(value).strip() else []

    def get_cors_origins(self) -> List[str]:
        origins = self._parse_str_list(self.CORS_ORIGINS)
        return origins or ["http://localhost:8000", "http://127.0.0.1:8000"]

    def price_lookup_active(self) -> bool:
        return bool(self.PRICE_LOOKUP_ENABLED and self.ALPHA_VANTAGE_API_KEY)

# Global settings instance
settings = Settings()

# config.py
from pydantic_settings import BaseSettings
from pydantic import Field, validator
from dotenv import load_dotenv
from typing import List
from urllib.parse import urlparse
import logging
import sys

load_dotenv()
logger = logging.getLogger(__name__)


def _csv(value: str) -> List[str]:
    return [part.strip() for part in value.split(",") if part.strip()]


class Settings(BaseSettings):
    """Read from the environment and an optional .env file."""

    # Backing services
    MONGO_URI: str = Field(..., description="MongoDB URI, including the database name")
    REDIS_URL: str = Field(..., description="Redis URL for sessions and the L2 cache")

    # Tokens
    JWT_SECRET: str = Field(..., min_length=32, description="HS256 signing key")
    ACCESS_TOKEN_EXPIRE_MINUTES: int = Field(default=15, ge=1, le=1440)
    REFRESH_TOKEN_EXPIRE_DAYS: int = Field(default=7, ge=1, le=30)

    # Listings
    DEFAULT_PAGE_SIZE: int = Field(default=10, ge=1, le=100)
    MAX_PAGE_SIZE: int = Field(default=100, ge=1, le=500)

    # Certificates
    CERTIFICATE_DEFAULT_WORKLOAD: int = Field(default=40, ge=1, description="Hours, when the course sets none")

    # Access
    ADMIN_EMAILS: str = Field(default="", description="Comma separated emails allowed to take the admin role")
    CORS_ORIGINS: str = Field(default="*", description="Comma separated origins")

    ENVIRONMENT: str = Field(default="development")
    DEBUG: bool = Field(default=False)

    @validator('MONGO_URI')
    def mongo_uri_names_a_database(cls, v):
        parsed = urlparse(v)
        if parsed.scheme not in ('mongodb', 'mongodb+srv'):
            raise ValueError('MONGO_URI must start with mongodb:// or mongodb+srv://')
        if not parsed.path.strip('/'):
            raise ValueError('MONGO_URI must name a database, e.g. mongodb://localhost:27017/lms')
        return v

    @validator('REDIS_URL')
    def redis_url_scheme(cls, v):
        if urlparse(v).scheme not in ('redis', 'rediss'):
            raise ValueError('REDIS_URL must start with redis:// or rediss://')
        return v

    @validator('MAX_PAGE_SIZE')
    def max_page_covers_default(cls, v, values):
        if v < values.get('DEFAULT_PAGE_SIZE', 1):
            raise ValueError('MAX_PAGE_SIZE must not be smaller than DEFAULT_PAGE_SIZE')
        return v

    @property
    def admin_emails(self) -> List[str]:
        return [e.lower() for e in _csv(self.ADMIN_EMAILS)]

    @property
    def cors_origins(self) -> List[str]:
        return _csv(self.CORS_ORIGINS)

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True


try:
    settings = Settings()
    logger.info("Configuration loaded successfully")
except Exception as e:
    logger.critical(f"Invalid configuration: {str(e)}")
    sys.exit(1)

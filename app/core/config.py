"""Application configuration settings."""

import re
from functools import lru_cache
from typing import List

from pydantic import field_validator
from pydantic_settings import BaseSettings

PORT_PATTERN = re.compile(r"^\d+$")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    app_name: str = "Koans API"
    app_env: str = "production"
    debug: bool = False

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    hostname: str = "localhost"

    # Database
    database_url: str = "sqlite+aiosqlite:///./koans.db"

    # JWT Authentication
    jwt_secret_key: str = "your-super-secret-key-change-in-production"
    jwt_algorithm: str = "HS256"
    jwt_issuer: str = "koans.example.com"
    jwt_audience: str = "koans.example.com"
    access_token_expire_hours: int = 8

    # Password hashing cost
    bcrypt_rounds: int = 10

    # CORS
    cors_origins: str = "*"

    # Security
    allowed_hosts: str = "*"

    # Demo data
    seed_demo_data: bool = False
    demo_activity_count: int = 1000

    @field_validator("port", mode="before")
    @classmethod
    def parse_port(cls, value):
        """Accept only an integer between 1 and 65535 (inclusive)."""
        if isinstance(value, str):
            if not PORT_PATTERN.match(value.strip()):
                raise ValueError(f"value {value} is not an integer-string")
            value = int(value.strip())
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValueError(f"value {value} is not an integer")
        if value < 1 or value > 65535:
            raise ValueError(f"value {value} is out of range, must be between 1 and 65535 (inclusive)")
        return value

    @property
    def development_mode(self) -> bool:
        """Only an explicit 'development' environment enables development mode."""
        return self.app_env.strip().lower() == "development"

    @property
    def allowed_hosts_list(self) -> List[str]:
        """Get allowed hosts as a list."""
        return [host.strip() for host in self.allowed_hosts.split(",")]

    @property
    def cors_origins_list(self) -> List[str]:
        """Get CORS origins as a list."""
        return [origin.strip() for origin in self.cors_origins.split(",")]

    @property
    def access_token_expire_seconds(self) -> int:
        return self.access_token_expire_hours * 60 * 60

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()

"""Application configuration using pydantic-settings.

This module handles configuration from environment variables, .env files, and config.yaml.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import field_validator, model_validator
from typing import List, Optional
import logging
import yaml
from pathlib import Path


logger = logging.getLogger(__name__)


# Weak/default secrets that should never be used in production
INSECURE_DEFAULT_SECRETS = {
    "your-secret-key-change-this-in-production",
    "change-me",
    "changeme",
    "secret",
    "password",
    "default",
    "change-this-in-production-use-long-random-string",
}


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    app_name: str = "seatbooking"
    app_version: str = "0.1.0"
    debug: bool = False
    environment: str = "development"  # development, staging, production
    log_level: str = "INFO"

    # API
    api_host: str = "0.0.0.0"
    api_port: int = 8000

    # Database - can be set directly or built from components
    database_url: Optional[str] = None
    database_echo: bool = False  # Log SQL queries

    # Database components (used if database_url not provided)
    postgres_db: str = "seatbooking"
    postgres_user: str = "seatbooking"
    postgres_password: str = "seatbooking"
    postgres_host: str = "localhost"
    postgres_port: int = 5432

    @property
    def db_url(self) -> str:
        """Get database URL, constructing from components if not explicitly set."""
        if self.database_url:
            return self.database_url
        return f"postgresql://{self.postgres_user}:{self.postgres_password}@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"

    # JWT Authentication (admin accounts only)
    jwt_secret_key: str = "dev-only-secret-key-replace-before-deploying-0000"
    jwt_algorithm: str = "HS256"
    jwt_access_token_expire_minutes: int = 60

    # Password Hashing
    password_bcrypt_rounds: int = 12

    @field_validator("jwt_secret_key")
    @classmethod
    def validate_jwt_secret_key(cls, v: str) -> str:
        """Reject known weak defaults and warn about short secrets."""
        if v.lower().strip() in INSECURE_DEFAULT_SECRETS:
            raise ValueError(
                "Weak or default JWT secret detected. Generate one with "
                "`python -c 'import secrets; print(secrets.token_urlsafe(32))'` "
                "and set JWT_SECRET_KEY (or security.secret_key in config.yaml)."
            )

        if len(v) < 32:
            logger.warning(
                "JWT secret key is only %d characters; at least 32 are recommended", len(v)
            )

        return v

    # CORS
    cors_origins: list = ["http://localhost:5173", "http://localhost:8080"]
    cors_allow_credentials: bool = True
    cors_allow_methods: list = ["*"]
    cors_allow_headers: list = ["*"]

    # Event layout
    session_levels: List[str] = ["Level 1", "Level 2", "Level 3"]
    default_allowed_levels: List[str] = ["Level 1"]
    seat_rows: str = "ABCDEFGHIJKLMNOPQR"
    seats_per_row: int = 10

    # Redemption
    redemption_statement_timeout_ms: int = 5000
    max_seats_per_redemption: Optional[int] = None  # defaults to len(session_levels)

    # Level analytics
    occupancy_warning_percent: float = 50.0
    occupancy_critical_percent: float = 80.0

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"  # Ignore extra environment variables (like POSTGRES_* used by docker-compose)
    )

    @model_validator(mode="after")
    def validate_levels(self) -> "Settings":
        """Default allowed levels must be a non-empty subset of the session levels."""
        if not self.session_levels:
            raise ValueError("session_levels must not be empty")
        unknown = [lvl for lvl in self.default_allowed_levels if lvl not in self.session_levels]
        if unknown or not self.default_allowed_levels:
            raise ValueError(f"default_allowed_levels must be a non-empty subset of session_levels (unknown: {unknown})")
        return self

    @property
    def redemption_seat_limit(self) -> int:
        """Most (seat, level) pairs accepted in a single redemption request."""
        return self.max_seats_per_redemption or len(self.session_levels)


def load_config_yaml(config_path: str = "config.yaml") -> dict:
    """Load configuration from YAML file if it exists."""
    config_file = Path(config_path)
    if config_file.exists():
        with open(config_file, "r") as f:
            return yaml.safe_load(f) or {}
    return {}


def create_settings() -> Settings:
    """Create settings instance with config.yaml overrides."""
    yaml_config = load_config_yaml()

    kwargs = {}

    if "database" in yaml_config:
        db = yaml_config["database"]
        if "url" in db:
            kwargs["database_url"] = db["url"]
        else:
            kwargs["database_url"] = f"postgresql://{db.get('user', 'seatbooking')}:{db.get('password', 'seatbooking')}@{db.get('host', 'localhost')}:{db.get('port', 5432)}/{db.get('name', 'seatbooking')}"

    if "app" in yaml_config:
        app = yaml_config["app"]
        for key in ("environment", "debug", "log_level"):
            if key in app:
                kwargs[key] = app[key]

    if "security" in yaml_config:
        security = yaml_config["security"]
        if "secret_key" in security:
            kwargs["jwt_secret_key"] = security["secret_key"]
        if "algorithm" in security:
            kwargs["jwt_algorithm"] = security["algorithm"]
        if "access_token_expire_minutes" in security:
            kwargs["jwt_access_token_expire_minutes"] = security["access_token_expire_minutes"]

    if "api" in yaml_config:
        api = yaml_config["api"]
        if "host" in api:
            kwargs["api_host"] = api["host"]
        if "port" in api:
            kwargs["api_port"] = api["port"]

    if "cors" in yaml_config:
        cors = yaml_config["cors"]
        if "origins" in cors:
            kwargs["cors_origins"] = cors["origins"]
        if "allow_credentials" in cors:
            kwargs["cors_allow_credentials"] = cors["allow_credentials"]
        if "allow_methods" in cors:
            kwargs["cors_allow_methods"] = cors["allow_methods"]
        if "allow_headers" in cors:
            kwargs["cors_allow_headers"] = cors["allow_headers"]

    if "event" in yaml_config:
        event = yaml_config["event"]
        if "levels" in event:
            kwargs["session_levels"] = event["levels"]
        if "default_allowed_levels" in event:
            kwargs["default_allowed_levels"] = event["default_allowed_levels"]
        if "seat_rows" in event:
            kwargs["seat_rows"] = event["seat_rows"]
        if "seats_per_row" in event:
            kwargs["seats_per_row"] = event["seats_per_row"]

    if "redemption" in yaml_config:
        redemption = yaml_config["redemption"]
        if "statement_timeout_ms" in redemption:
            kwargs["redemption_statement_timeout_ms"] = redemption["statement_timeout_ms"]
        if "max_seats" in redemption:
            kwargs["max_seats_per_redemption"] = redemption["max_seats"]

    # init kwargs take priority over environment variables
    return Settings(**kwargs)


# Global settings instance
settings = create_settings()

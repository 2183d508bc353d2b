"""
Configuration management for BillSignal.

Settings are grouped per collaborator (database, LegiScan, Gemini, pipeline
tuning, application) and loaded from environment variables and an optional
.env file. A Settings object is built once per process and handed to each
component's constructor.

Responsibility: Centralized configuration and environment management
"""

from datetime import date
from enum import Enum
from functools import lru_cache
from typing import Annotated, Optional, List
import json
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from .exceptions import ConfigurationError


US_STATES: List[str] = [
    "AL", "AK", "AZ", "AR", "CA", "CO", "CT", "DE", "FL", "GA",
    "HI", "ID", "IL", "IN", "IA", "KS", "KY", "LA", "ME", "MD",
    "MA", "MI", "MN", "MS", "MO", "MT", "NE", "NV", "NH", "NJ",
    "NM", "NY", "NC", "ND", "OH", "OK", "OR", "PA", "RI", "SC",
    "SD", "TN", "TX", "UT", "VT", "VA", "WA", "WV", "WI", "WY",
]


def _parse_list(v):
    """Parse a list setting from a JSON string or comma-separated string"""
    if isinstance(v, list):
        return v
    if isinstance(v, str):
        v = v.strip()
        if (v.startswith('"') and v.endswith('"')) or (v.startswith("'") and v.endswith("'")):
            v = v[1:-1]
        if v.startswith("["):
            try:
                return json.loads(v)
            except json.JSONDecodeError:
                pass
        return [item.strip() for item in v.split(",") if item.strip()]
    return v


class Environment(str, Enum):
    """Deployment environment"""
    LOCAL = "local"
    DEVELOPMENT = "development"
    PRODUCTION = "production"


class DatabaseConfig(BaseSettings):
    """Database configuration"""

    # Connection settings - prioritize DATABASE_URL env var
    database_url: Optional[str] = Field(default=None, alias="DATABASE_URL")
    driver: str = Field(default="postgresql+asyncpg")
    host: Optional[str] = Field(default="localhost")
    port: Optional[int] = Field(default=5432)
    database: str = Field(default="billsignal")
    username: Optional[str] = Field(default=None)
    password: Optional[str] = Field(default=None)

    # Connection pool settings
    pool_size: int = Field(default=5)
    max_overflow: int = Field(default=10)
    pool_timeout: int = Field(default=30)
    pool_recycle: int = Field(default=3600)

    echo: bool = Field(default=False)

    model_config = SettingsConfigDict(
        env_prefix="DB_",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True
    )

    @property
    def connection_string(self) -> str:
        """
        Build database connection string.

        Returns:
            SQLAlchemy async connection string
        """
        if self.database_url:
            url = self.database_url
            # Ensure async driver for async connections
            if url.startswith("postgres://"):
                url = url.replace("postgres://", "postgresql://", 1)
            if "postgresql" in url and "+asyncpg" not in url and "+psycopg" not in url:
                url = url.replace("postgresql://", "postgresql+asyncpg://", 1)
            if url.startswith("sqlite://"):
                url = url.replace("sqlite://", "sqlite+aiosqlite://", 1)
            return url

        if self.driver.startswith("sqlite"):
            # SQLite: database field is the file path
            return f"{self.driver}:///{self.database}"

        auth = ""
        if self.username:
            auth = self.username
            if self.password:
                auth = f"{auth}:{self.password}"
            auth = f"{auth}@"

        host_port = self.host or "localhost"
        if self.port:
            host_port = f"{host_port}:{self.port}"

        return f"{self.driver}://{auth}{host_port}/{self.database}"

    @property
    def is_sqlite(self) -> bool:
        """Whether the configured database is SQLite"""
        return "sqlite" in self.connection_string


class LegiScanConfig(BaseSettings):
    """LegiScan legislative data API configuration"""

    api_key: Optional[str] = Field(default=None)
    base_url: str = Field(default="https://api.legiscan.com/")
    timeout_seconds: int = Field(default=30)

    # Minimum spacing between successive source calls
    throttle_ms: int = Field(default=200, ge=100, le=1000)

    model_config = SettingsConfigDict(
        env_prefix="LEGISCAN_",
        case_sensitive=False,
        extra="ignore"
    )


class GeminiConfig(BaseSettings):
    """Gemini completion API configuration"""

    api_key: Optional[str] = Field(default=None)
    base_url: str = Field(default="https://generativelanguage.googleapis.com/v1")
    timeout_seconds: int = Field(default=120)

    # Priority order; later models are only tried after earlier ones are exhausted
    models: Annotated[List[str], NoDecode] = Field(
        default=["gemini-2.0-flash", "gemini-1.5-flash"]
    )
    temperature: float = Field(default=0.0)
    max_output_tokens: int = Field(default=10000)

    # Retry settings per model
    max_attempts: int = Field(default=3, ge=1)
    base_delay_seconds: float = Field(default=2.0, ge=0.0)

    model_config = SettingsConfigDict(
        env_prefix="GEMINI_",
        case_sensitive=False,
        extra="ignore"
    )

    @field_validator("models", mode="before")
    @classmethod
    def parse_models(cls, v):
        """Parse model list from JSON string or comma-separated list"""
        return _parse_list(v)


class PipelineConfig(BaseSettings):
    """Ingestion and analysis tuning"""

    # Ingestion
    jurisdictions: Annotated[List[str], NoDecode] = Field(default_factory=lambda: list(US_STATES))
    target_year: Optional[int] = Field(default=None)
    target_count: int = Field(default=100, ge=1)
    per_jurisdiction: bool = Field(default=False)

    # Analysis
    batch_size: int = Field(default=10, ge=1, le=50)
    max_predictions_per_bill: int = Field(default=5, ge=0, le=5)
    description_max_chars: int = Field(default=500, ge=0)
    inter_batch_delay_seconds: float = Field(default=1.0, ge=0.0)
    analysis_limit: Optional[int] = Field(default=None)
    max_analysis_attempts: Optional[int] = Field(default=None)

    model_config = SettingsConfigDict(
        env_prefix="PIPELINE_",
        case_sensitive=False,
        extra="ignore"
    )

    @field_validator("jurisdictions", mode="before")
    @classmethod
    def parse_jurisdictions(cls, v):
        """Parse jurisdictions from JSON string or comma-separated list"""
        parsed = _parse_list(v)
        if isinstance(parsed, list):
            return [str(code).upper() for code in parsed]
        return parsed

    def resolved_target_year(self) -> int:
        """Target year for ingestion, defaulting to the current year"""
        return self.target_year or date.today().year


class AppConfig(BaseSettings):
    """Application configuration"""

    environment: Environment = Field(default=Environment.LOCAL)
    debug: bool = Field(default=False)

    app_name: str = Field(default="BillSignal")
    app_version: str = Field(default="1.0.0")

    # Logging
    log_level: str = Field(default="INFO")

    # API settings
    api_host: str = Field(default="0.0.0.0")
    api_port: int = Field(default=8000)

    cors_origins: Annotated[List[str], NoDecode] = Field(
        default=["http://localhost:5173", "http://localhost:3000"],
        description="Allowed CORS origins (JSON list or comma-separated in env)"
    )

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        case_sensitive=False,
        extra="ignore"
    )

    @field_validator("cors_origins", mode="before")
    @classmethod
    def parse_cors_origins(cls, v):
        """Parse CORS origins from JSON string or comma-separated list"""
        return _parse_list(v)


class Settings(BaseSettings):
    """
    Global settings container.

    Loads configuration from:
    1. Environment variables
    2. .env file
    3. Default values

    Example:
        settings = Settings()
        settings.require_ingestion_credentials()

        # Tests and scripts can build one explicitly
        settings = Settings(
            db=DatabaseConfig(database_url="sqlite+aiosqlite:///./local.db"),
            legiscan=LegiScanConfig(api_key="test-key"),
        )
    """

    app: AppConfig = Field(default_factory=AppConfig)
    db: DatabaseConfig = Field(default_factory=DatabaseConfig)
    legiscan: LegiScanConfig = Field(default_factory=LegiScanConfig)
    gemini: GeminiConfig = Field(default_factory=GeminiConfig)
    pipeline: PipelineConfig = Field(default_factory=PipelineConfig)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    def require_ingestion_credentials(self) -> None:
        """Fail fast when the ingestion run cannot make any progress"""
        if not self.legiscan.api_key:
            raise ConfigurationError("Missing required environment variable: LEGISCAN_API_KEY")
        if not self.pipeline.jurisdictions:
            raise ConfigurationError("PIPELINE_JURISDICTIONS must name at least one jurisdiction")

    def require_analysis_credentials(self) -> None:
        """Fail fast when the analysis run cannot make any progress"""
        if not self.gemini.api_key:
            raise ConfigurationError("Missing required environment variable: GEMINI_API_KEY")
        if not self.gemini.models:
            raise ConfigurationError("GEMINI_MODELS must name at least one model")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Build the process-wide Settings once"""
    return Settings()

"""
Central configuration management for bookquery.

This module provides type-safe configuration management using Pydantic,
loading the connection target, logging options and catalog parameters
from the environment or a ``.env`` file.
"""

from typing import Annotated, Any, Dict, List, Optional
from urllib.parse import urlsplit

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode

from ..tools.database.base import ConnectionConfig


class DatabaseSettings(BaseSettings):
    """Database configuration settings."""

    mongodb_url: str = Field(default="mongodb://localhost:27017")
    mongodb_db: str = Field(default="plp_bookstore")
    mongodb_collection: str = Field(default="books")
    mongodb_connect_timeout: float = Field(default=5.0, gt=0)

    @field_validator("mongodb_url")
    @classmethod
    def validate_mongodb_url(cls, v):
        """Validate the URL uses a MongoDB scheme."""
        if urlsplit(v).scheme not in ("mongodb", "mongodb+srv"):
            raise ValueError("MongoDB URL must start with mongodb:// or mongodb+srv://")
        return v

    model_config = {
        "env_prefix": "",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore",
    }


class MonitoringSettings(BaseSettings):
    """Logging configuration."""

    log_level: str = Field(default="INFO")
    log_format: str = Field(default="text")  # json or text
    log_file: Optional[str] = Field(default=None)
    event_log_dir: Optional[str] = Field(default=None)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v):
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of: {valid_levels}")
        return v.upper()

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v):
        """Validate log format."""
        if v not in ["json", "text"]:
            raise ValueError("Log format must be 'json' or 'text'")
        return v

    model_config = {
        "env_prefix": "",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore",
    }


class CatalogSettings(BaseSettings):
    """Parameters of the query catalog."""

    genre: str = "Fiction"
    published_after: int = 2000
    author: str = "George Orwell"
    update_title: str = "The Hobbit"
    update_price: float = 16.99
    delete_title: str = "Moby Dick"
    in_stock_published_after: int = 2010
    projection_fields: Annotated[List[str], NoDecode] = Field(
        default_factory=lambda: ["title", "author", "price"]
    )
    sort_field: str = "price"
    page_size: int = Field(default=5, gt=0)
    pages: List[int] = Field(default_factory=lambda: [1, 2])
    top_authors_limit: int = Field(default=1, gt=0)
    explain_title: str = "The Hobbit"

    @field_validator("projection_fields", mode="before")
    @classmethod
    def parse_projection_fields(cls, v) -> List[str]:
        """Parse projection fields from a comma separated string or list."""
        if isinstance(v, str):
            return [field.strip() for field in v.split(",") if field.strip()]
        return v

    @field_validator("pages")
    @classmethod
    def validate_pages(cls, v):
        """Validate page numbers are positive."""
        if any(page < 1 for page in v):
            raise ValueError("Page numbers start at 1")
        return v

    model_config = {
        "env_prefix": "CATALOG_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore",
    }


class AppSettings(BaseSettings):
    """Main application settings."""

    app_name: str = Field(default="bookquery")
    app_version: str = Field(default="0.1.0")
    environment: str = Field(default="development")

    # Nested settings
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    monitoring: MonitoringSettings = Field(default_factory=MonitoringSettings)
    catalog: CatalogSettings = Field(default_factory=CatalogSettings)

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v):
        """Validate environment name."""
        valid_envs = ["development", "testing", "production", "ci"]
        if v not in valid_envs:
            raise ValueError(f"Environment must be one of: {valid_envs}")
        return v

    def connection_config(self) -> ConnectionConfig:
        """Build the immutable connection target for a run."""
        return ConnectionConfig(
            uri=self.database.mongodb_url,
            database=self.database.mongodb_db,
            collection=self.database.mongodb_collection,
            connect_timeout=self.database.mongodb_connect_timeout,
            app_name=self.app_name,
        )

    def get_safe_dict(self) -> Dict[str, Any]:
        """Get configuration dict with sensitive values masked."""
        config = self.model_dump()

        def mask_sensitive(obj):
            """Recursively mask sensitive fields."""
            if isinstance(obj, dict):
                for key, value in obj.items():
                    if any(
                        sensitive in key.lower()
                        for sensitive in ["password", "secret", "token"]
                    ):
                        if value and str(value).strip():
                            obj[key] = "***MASKED***"
                    elif isinstance(value, (dict, list)):
                        mask_sensitive(value)
            elif isinstance(obj, list):
                for item in obj:
                    if isinstance(item, (dict, list)):
                        mask_sensitive(item)

        mask_sensitive(config)
        config["database"]["mongodb_url"] = self.connection_config().masked_uri
        return config

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore",
    }


# Singleton pattern for settings
_settings: Optional[AppSettings] = None


def get_settings() -> AppSettings:
    """Get application settings singleton."""
    global _settings
    if _settings is None:
        _settings = AppSettings()
    return _settings


def reload_settings() -> AppSettings:
    """Force reload of settings (useful for testing)."""
    global _settings
    _settings = None
    return get_settings()

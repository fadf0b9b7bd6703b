"""
Configuration Management for SQL Relations
Uses Pydantic for validation and type safety
"""
from __future__ import annotations

import os
from enum import Enum
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, SecretStr

from .utils.errors import ConfigurationError


class DatabaseType(str, Enum):
    """Supported database types"""
    POSTGRESQL = "postgresql"
    SQLITE = "sqlite"


class LogLevel(str, Enum):
    """Log levels"""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class DatabaseConfig(BaseModel):
    """Database connection configuration"""
    db_type: DatabaseType
    host: str = "localhost"
    port: int = 5432
    database: str
    db_schema: str = "public"
    username: Optional[str] = None
    password: Optional[SecretStr] = None
    connection_timeout: int = Field(default=30, ge=1, le=300)
    ssl_enabled: bool = False
    ssl_ca_path: Optional[str] = None

    # SQLite specific
    sqlite_path: Optional[str] = None

    def get_default_port(self) -> int:
        """Get default port for database type"""
        ports = {
            DatabaseType.POSTGRESQL: 5432,
            DatabaseType.SQLITE: 0,
        }
        return ports.get(DatabaseType(self.db_type), 5432)

    model_config = {"use_enum_values": True}


class ClassifierConfig(BaseModel):
    """Relation classifier configuration"""
    max_workers: int = Field(default=1, ge=1, le=64)
    fail_fast: bool = True
    include_discretionary_triangles: bool = True
    raise_on_ambiguity: bool = False
    cache_ancestor_chains: bool = True


class SystemConfig(BaseModel):
    """Main system configuration"""
    database: Optional[DatabaseConfig] = None
    classifier: ClassifierConfig = Field(default_factory=ClassifierConfig)
    log_level: LogLevel = LogLevel.INFO
    json_logs: bool = False

    @classmethod
    def from_env(cls, dotenv_path: Optional[str] = None) -> "SystemConfig":
        """
        Create configuration from environment variables (and a .env file if present)

        Raises:
            ConfigurationError: If a variable holds an invalid value
        """
        load_dotenv(dotenv_path)
        try:
            return cls._from_environ()
        except ValueError as e:
            raise ConfigurationError(
                f"Invalid environment configuration: {e}",
                original_error=e,
            ) from e

    @classmethod
    def _from_environ(cls) -> "SystemConfig":
        db_config = None
        if os.getenv("DB_TYPE"):
            db_config = DatabaseConfig(
                db_type=DatabaseType(os.getenv("DB_TYPE")),
                host=os.getenv("DB_HOST", "localhost"),
                port=int(os.getenv("DB_PORT", "5432")),
                database=os.getenv("DB_NAME", ""),
                db_schema=os.getenv("DB_SCHEMA", "public"),
                username=os.getenv("DB_USER"),
                password=SecretStr(os.getenv("DB_PASSWORD", "")) if os.getenv("DB_PASSWORD") else None,
                sqlite_path=os.getenv("SQLITE_PATH"),
            )

        classifier_config = ClassifierConfig(
            max_workers=int(os.getenv("CLASSIFIER_MAX_WORKERS", "1")),
            fail_fast=os.getenv("CLASSIFIER_FAIL_FAST", "true").lower() == "true",
            include_discretionary_triangles=(
                os.getenv("CLASSIFIER_DISCRETIONARY_TRIANGLES", "true").lower() == "true"
            ),
            raise_on_ambiguity=os.getenv("CLASSIFIER_RAISE_ON_AMBIGUITY", "false").lower() == "true",
            cache_ancestor_chains=os.getenv("CLASSIFIER_CACHE_ANCESTORS", "true").lower() == "true",
        )

        return cls(
            database=db_config,
            classifier=classifier_config,
            log_level=LogLevel(os.getenv("LOG_LEVEL", "INFO")),
            json_logs=os.getenv("JSON_LOGS", "false").lower() == "true",
        )

    model_config = {"use_enum_values": True}


# Global configuration instance
_config: Optional[SystemConfig] = None


def get_config() -> SystemConfig:
    """Get the global configuration instance"""
    global _config
    if _config is None:
        _config = SystemConfig.from_env()
    return _config


def set_config(config: SystemConfig) -> None:
    """Set the global configuration instance"""
    global _config
    _config = config


def reset_config() -> None:
    """Reset the global configuration instance"""
    global _config
    _config = None

"""
Unified configuration management for dirvec.

This module provides:
- Environment-aware configuration (development, staging, production, test)
- YAML config loading with environment-specific overlays
- Environment variable overrides (MONGO_URI, MONGO_DB_NAME, ...)
- Pydantic models for type-safe access

Usage:
    from dirvec.utils.config import get_config

    config = get_config()
    uri = config.settings.mongo.uri
    index_name = config.settings.mongo.vector_index_name
"""

import os
from enum import Enum
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings


# =============================================================================
# Environment Definition
# =============================================================================

class Environment(Enum):
    """Environment types."""
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"
    TEST = "test"


# =============================================================================
# Pydantic Config Models (for type-safe access)
# =============================================================================

class MongoConfig(BaseModel):
    """Configuration for the MongoDB Atlas document store."""
    uri: Optional[str] = Field(default=None)
    database: str = Field(default="vector_db")
    collection: str = Field(default="documents")
    vector_index_name: str = Field(default="vector_index")
    server_selection_timeout_ms: int = Field(default=10000)


class EmbeddingConfig(BaseModel):
    """Configuration for the OpenAI embedding provider."""
    model: str = Field(default="text-embedding-ada-002")
    dimensions: int = Field(default=1536)
    similarity: str = Field(default="cosine")
    max_retries: int = Field(default=2)
    retry_delay: float = Field(default=1.0)
    timeout: float = Field(default=60.0)


class PipelineConfig(BaseModel):
    """Configuration for the batch upsert pipeline and search."""
    batch_size: int = Field(default=1000)
    unique_key_field: str = Field(default="email")
    projector_fields: list[str] = Field(default=["name", "email"])
    projector_separator: str = Field(default=". ")
    search_top_k: int = Field(default=3)
    search_num_candidates: int = Field(default=100)
    search_display_field: str = Field(default="name")


class DirectoryConfig(BaseModel):
    """Configuration for the Google Workspace directory source."""
    customer: str = Field(default="my_customer")
    max_results: int = Field(default=500)
    order_by: str = Field(default="email")
    projection: str = Field(default="full")
    token_uri: str = Field(default="https://oauth2.googleapis.com/token")
    custom_schema: str = Field(default="Horacius")
    custom_schema_field: str = Field(default="idunico_horacius")


class LoggingConfig(BaseModel):
    """Configuration for logging."""
    level: str = Field(default="INFO")
    log_path: str = Field(default="logs")
    max_log_files: int = Field(default=30)
    log_format: str = Field(default="json")


class Settings(BaseModel):
    """Main settings container."""
    mongo: MongoConfig = Field(default_factory=MongoConfig)
    embedding: EmbeddingConfig = Field(default_factory=EmbeddingConfig)
    pipeline: PipelineConfig = Field(default_factory=PipelineConfig)
    directory: DirectoryConfig = Field(default_factory=DirectoryConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


class EnvSettings(BaseSettings):
    """Environment variable settings."""
    mongo_uri: Optional[str] = Field(default=None)
    mongo_db_name: Optional[str] = Field(default=None)
    mongo_collection: Optional[str] = Field(default=None)
    mongo_vector_name: Optional[str] = Field(default=None)
    openai_api_key: Optional[str] = Field(default=None)
    client_id: Optional[str] = Field(default=None)
    client_secret: Optional[str] = Field(default=None)
    refresh_token: Optional[str] = Field(default=None)
    dirvec_env: str = Field(default="development")
    log_level: Optional[str] = Field(default=None)

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


# =============================================================================
# Unified AppConfig Class
# =============================================================================

class AppConfig:
    """
    Unified configuration manager for dirvec.

    Combines:
    - Environment-aware configuration (dev/staging/prod/test)
    - YAML config loading with environment overlays
    - Environment variable overrides
    - Type-safe Pydantic settings

    Usage:
        config = get_config()
        print(config.settings.mongo.collection)
        print(config.validate())
    """

    def __init__(self, env: Optional[str] = None, config_dir: Optional[Path] = None):
        """
        Initialize unified configuration.

        Args:
            env: Environment name. Defaults to DIRVEC_ENV or 'development'.
            config_dir: Directory holding settings YAML files.
                Defaults to <project root>/config.
        """
        self._env_settings = EnvSettings()

        self._env_name = env or os.getenv("DIRVEC_ENV") or self._env_settings.dirvec_env
        try:
            self._environment = Environment(self._env_name)
        except ValueError:
            self._environment = Environment.DEVELOPMENT

        self._config_dir = Path(config_dir) if config_dir else get_project_root() / "config"

        # Raw config dict (for dot-notation access)
        self._config: dict[str, Any] = {}
        self._override_errors: list[str] = []

        self._load_config()

        self._settings = self._create_settings()

    def _load_config(self) -> None:
        """Load configuration files with environment overlay."""
        base_path = self._config_dir / "settings.yaml"
        if base_path.exists():
            with open(base_path) as f:
                self._config = yaml.safe_load(f) or {}

        env_path = self._config_dir / f"settings.{self._environment.value}.yaml"
        if env_path.exists():
            with open(env_path) as f:
                env_config = yaml.safe_load(f) or {}
            self._deep_merge(self._config, env_config)

        self._apply_env_overrides()

    def _deep_merge(self, base: dict, overlay: dict) -> None:
        """Deep merge overlay dict into base dict."""
        for key, value in overlay.items():
            if key in base and isinstance(base[key], dict) and isinstance(value, dict):
                self._deep_merge(base[key], value)
            else:
                base[key] = value

    def _apply_env_overrides(self) -> None:
        """Apply environment variable overrides."""
        env = self._env_settings

        if env.mongo_uri:
            self._set_nested("mongo.uri", env.mongo_uri)

        if env.mongo_db_name:
            self._set_nested("mongo.database", env.mongo_db_name)

        if env.mongo_collection:
            self._set_nested("mongo.collection", env.mongo_collection)

        if env.mongo_vector_name:
            self._set_nested("mongo.vector_index_name", env.mongo_vector_name)

        if log_level := os.getenv("DIRVEC_LOG_LEVEL") or env.log_level:
            self._set_nested("logging.level", log_level)

        if batch_size := os.getenv("DIRVEC_BATCH_SIZE"):
            try:
                self._set_nested("pipeline.batch_size", int(batch_size))
            except ValueError:
                self._override_errors.append(
                    f"Invalid batch size: {batch_size!r} (DIRVEC_BATCH_SIZE must be an integer)"
                )

    def _set_nested(self, path: str, value: Any) -> None:
        """Set nested dictionary value using dot notation."""
        keys = path.split(".")
        d = self._config
        for key in keys[:-1]:
            d = d.setdefault(key, {})
        d[keys[-1]] = value

    def _create_settings(self) -> Settings:
        """Create typed Settings object from config dict."""
        return Settings(**self._config)

    # -------------------------------------------------------------------------
    # Public Properties
    # -------------------------------------------------------------------------

    @property
    def environment(self) -> Environment:
        """Current environment."""
        return self._environment

    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self._environment == Environment.PRODUCTION

    @property
    def is_test(self) -> bool:
        """Check if running in test."""
        return self._environment == Environment.TEST

    @property
    def settings(self) -> Settings:
        """Get typed settings object."""
        return self._settings

    @property
    def env(self) -> EnvSettings:
        """Get raw environment settings (secrets live here only)."""
        return self._env_settings

    # -------------------------------------------------------------------------
    # Access Methods
    # -------------------------------------------------------------------------

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get configuration value using dot notation.

        Args:
            key: Config key (e.g., 'mongo.collection').
            default: Default value if not found.

        Returns:
            Configuration value.
        """
        keys = key.split(".")
        value = self._config

        for k in keys:
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                return default

        return value

    def get_mongo_config(self) -> dict[str, Any]:
        """Get MongoDB configuration dict."""
        mongo = self._settings.mongo
        return {
            "uri": mongo.uri,
            "database": mongo.database,
            "collection": mongo.collection,
            "vector_index_name": mongo.vector_index_name,
            "server_selection_timeout_ms": mongo.server_selection_timeout_ms,
        }

    def get_directory_credentials(self) -> dict[str, Optional[str]]:
        """Get OAuth2 credentials for the directory API."""
        return {
            "client_id": self._env_settings.client_id,
            "client_secret": self._env_settings.client_secret,
            "refresh_token": self._env_settings.refresh_token,
        }

    def validate(self) -> list[str]:
        """
        Validate configuration.

        Returns:
            List of validation errors (empty if valid).
        """
        errors = list(self._override_errors)

        if not self._settings.mongo.uri:
            errors.append("Missing MongoDB connection string (MONGO_URI)")

        if not self._env_settings.openai_api_key:
            errors.append("Missing OpenAI API key (OPENAI_API_KEY)")

        if not self._settings.mongo.vector_index_name:
            errors.append("Missing vector index name (MONGO_VECTOR_NAME)")

        batch_size = self._settings.pipeline.batch_size
        if batch_size < 1:
            errors.append(f"Invalid batch size: {batch_size} (must be >= 1)")

        if self._settings.embedding.dimensions < 1:
            errors.append(
                f"Invalid embedding dimensions: {self._settings.embedding.dimensions}"
            )

        if self._settings.embedding.similarity not in ("cosine", "euclidean", "dotProduct"):
            errors.append(
                f"Invalid similarity metric: {self._settings.embedding.similarity}"
            )

        pipeline = self._settings.pipeline
        if pipeline.search_num_candidates < pipeline.search_top_k:
            errors.append(
                "search_num_candidates must be >= search_top_k "
                f"({pipeline.search_num_candidates} < {pipeline.search_top_k})"
            )

        return errors


# =============================================================================
# Global Instances and Accessor Functions
# =============================================================================

_config: Optional[AppConfig] = None


def get_project_root() -> Path:
    """Get the project root directory."""
    current = Path(__file__).resolve()
    for parent in [current] + list(current.parents):
        if (parent / "config").exists() and (parent / "dirvec").exists():
            return parent
    return Path.cwd()


def get_absolute_path(relative_path: str) -> Path:
    """
    Convert a relative path to absolute path from project root.

    Args:
        relative_path: Path relative to project root.

    Returns:
        Absolute Path object.
    """
    path = Path(relative_path)
    if path.is_absolute():
        return path
    return get_project_root() / path


def get_config(env: Optional[str] = None) -> AppConfig:
    """
    Get the unified configuration instance.

    This is the primary way to access configuration.

    Args:
        env: Optional environment override.

    Returns:
        AppConfig instance.
    """
    global _config
    if _config is None or env is not None:
        _config = AppConfig(env=env)
    return _config


def get_settings() -> Settings:
    """Get the current typed settings."""
    return get_config().settings


def reset_config() -> None:
    """Drop the cached configuration so the next access reloads it."""
    global _config
    _config = None

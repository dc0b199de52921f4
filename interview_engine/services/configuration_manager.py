"""Configuration Manager for handling application configuration and settings."""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError as SchemaValidationError, field_validator

from ..utils.exceptions import ConfigurationError
from ..utils.logging import get_logger


@dataclass
class LoggingConfig:
    """Logging configuration settings."""

    level: str = "INFO"
    structured: bool = False
    file_path: Optional[str] = None
    max_file_size: int = 10 * 1024 * 1024  # 10MB
    backup_count: int = 5


@dataclass
class StorageConfig:
    """Storage configuration settings."""

    type: str = "file"
    base_path: str = "data"


class GeminiConfig(BaseModel):
    """Generative-text provider configuration."""

    name: str = Field(default="gemini", description="Provider name")
    api_key: str = Field(default="", description="API key for the provider")
    base_url: str = Field(default="https://generativelanguage.googleapis.com/v1beta", description="Base URL for API calls")
    model: str = Field(default="gemini-2.0-flash", description="Model name to use")
    request_timeout: int = Field(default=30, description="Per-request timeout in seconds")
    temperature: float = Field(default=0.7, description="Temperature for generation")

    @field_validator("temperature")
    @classmethod
    def validate_temperature(cls, v):
        if not 0.0 <= v <= 2.0:
            raise ValueError("Temperature must be between 0.0 and 2.0")
        return v

    @field_validator("request_timeout")
    @classmethod
    def validate_timeout(cls, v):
        if v < 1:
            raise ValueError("Timeout must be at least 1 second")
        return v


class GatewayConfig(BaseModel):
    """Retry, timeout and fast-path settings for the AI gateway."""

    retry_attempts: int = Field(default=3, ge=1, description="Total attempts on provider overload")
    retry_delay: float = Field(default=2.0, ge=0.0, description="Fixed delay between attempts in seconds")
    operation_timeout: float = Field(default=45.0, gt=0.0, description="Overall bound for one gateway operation")
    min_answer_length: int = Field(default=10, ge=0, description="Shorter trimmed answers skip the provider")


class AppConfig(BaseModel):
    """Main application configuration model."""

    app_name: str = Field(default="Interview Session Engine", description="Application name")
    version: str = Field(default="1.0.0", description="Application version")
    environment: str = Field(default="development", description="Environment")

    logging: LoggingConfig = Field(default_factory=LoggingConfig, description="Logging settings")
    gemini: GeminiConfig = Field(default_factory=GeminiConfig, description="Provider settings")
    gateway: GatewayConfig = Field(default_factory=GatewayConfig, description="AI gateway settings")
    storage: StorageConfig = Field(default_factory=StorageConfig, description="Storage settings")

    directory_file: str = Field(default="users.yaml", description="YAML file with users, profiles and resumes; relative paths are resolved against the config directory")


# Environment variable -> dotted configuration key
ENV_OVERRIDES = {
    "GEMINI_API_KEY": "gemini.api_key",
    "GEMINI_MODEL": "gemini.model",
    "LOG_LEVEL": "logging.level",
    "STORAGE_TYPE": "storage.type",
    "STORAGE_PATH": "storage.base_path",
    "DIRECTORY_FILE": "directory_file",
}


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class ConfigurationManager:
    """Loads configuration from defaults, YAML files and the environment."""

    def __init__(self, config_path: str = "config", env_file: str = ".env"):
        """Initialize the configuration manager.

        Args:
            config_path: Path to configuration directory.
            env_file: Path to environment file.
        """
        self.config_path = Path(config_path)
        self.env_file = Path(env_file)
        self.config: Optional[AppConfig] = None
        self.logger = get_logger("configuration_manager")

    def initialize(self) -> None:
        """Load and validate configuration.

        Raises:
            ConfigurationError: If a file cannot be read or a value is invalid.
        """
        if self.env_file.exists():
            load_dotenv(self.env_file)
            self.logger.info(f"Loaded environment variables from {self.env_file}")

        config_data = AppConfig().model_dump()

        main_config_file = self.config_path / "config.yaml"
        if main_config_file.exists():
            config_data = _deep_merge(config_data, self._load_yaml_file(main_config_file))
            self.logger.info(f"Loaded main configuration from {main_config_file}")

        environment = os.getenv("ENVIRONMENT", config_data.get("environment", "development"))
        env_config_file = self.config_path / f"config.{environment}.yaml"
        if env_config_file.exists():
            config_data = _deep_merge(config_data, self._load_yaml_file(env_config_file))
            self.logger.info(f"Loaded environment configuration from {env_config_file}")

        for env_var, dotted_key in ENV_OVERRIDES.items():
            value = os.getenv(env_var)
            if value:
                self._set_dotted(config_data, dotted_key, value)

        try:
            self.config = AppConfig.model_validate(config_data)
        except SchemaValidationError as e:
            raise ConfigurationError(f"Invalid configuration: {e}") from e

        directory_file = Path(self.config.directory_file)
        if not directory_file.is_absolute():
            self.config.directory_file = str(self.config_path / directory_file)

        self._validate_configuration()
        self.logger.info("ConfigurationManager initialized successfully")

    def _load_yaml_file(self, file_path: Path) -> Dict[str, Any]:
        try:
            with open(file_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigurationError(f"Failed to load YAML file {file_path}: {e}", config_key=str(file_path)) from e

        if not isinstance(data, dict):
            raise ConfigurationError(f"Configuration file {file_path} must contain a mapping", config_key=str(file_path))
        return data

    @staticmethod
    def _set_dotted(data: Dict[str, Any], dotted_key: str, value: Any) -> None:
        keys = dotted_key.split(".")
        target = data
        for key in keys[:-1]:
            target = target.setdefault(key, {})
        target[keys[-1]] = value

    def _validate_configuration(self) -> None:
        if self.config.storage.type not in ("memory", "file"):
            raise ConfigurationError(f"Unsupported storage type: {self.config.storage.type}", config_key="storage.type")

        if not self.config.gemini.api_key:
            self.logger.warning("No Gemini API key configured")

    def get_config(self) -> AppConfig:
        """Get the current configuration.

        Raises:
            ConfigurationError: If configuration is not loaded.
        """
        if not self.config:
            raise ConfigurationError("Configuration not loaded")
        return self.config

    def get_provider_config(self) -> Dict[str, Any]:
        """Provider settings as the plain dict providers are constructed from."""
        return self.get_config().gemini.model_dump()

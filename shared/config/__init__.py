"""Shared configuration base classes.

Every service reads its settings from init kwargs, then environment
variables, then an optional TOML file. The TOML path comes from the
environment variable named by ``config_file_env`` and falls back to
``config_file``; a missing file is silently ignored.
"""

import os
from typing import ClassVar

from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    TomlConfigSettingsSource,
)


class BaseLoggingConfig(BaseSettings):
    """Common logging configuration for all services."""

    app_log_level: str = "INFO"
    app_log_redaction_patterns: list[str] = [
        "password",
        "token",
        "secret",
        "key",
        "authorization",
        "cookie",
    ]
    app_environment: str = "production"


class BaseKafkaConfig(BaseSettings):
    """Common Kafka configuration for all services."""

    kafka_bootstrap_servers: str = "kafka1:19092"


class BaseServiceConfig(BaseLoggingConfig, BaseKafkaConfig):
    """Base configuration combining logging and Kafka settings.

    Services should inherit from this, override ``otel_service_name`` and
    point ``config_file`` at their own TOML file.
    """

    model_config = SettingsConfigDict(extra="ignore")

    config_file: ClassVar[str] = "config.toml"
    config_file_env: ClassVar[str] = "APP_CONFIG_FILE"

    otel_service_name: str = "unknown"  # Should be overridden by service

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        toml_file = os.getenv(cls.config_file_env, cls.config_file)
        return (
            init_settings,
            env_settings,
            TomlConfigSettingsSource(settings_cls, toml_file=toml_file),
        )


__all__ = ["BaseLoggingConfig", "BaseKafkaConfig", "BaseServiceConfig"]

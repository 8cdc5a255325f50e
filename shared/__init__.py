"""Shared utilities and components for all services."""

from .config import BaseKafkaConfig, BaseLoggingConfig, BaseServiceConfig
from .constants import Topics

__all__ = [
    "Topics",
    "BaseServiceConfig",
    "BaseLoggingConfig",
    "BaseKafkaConfig",
]

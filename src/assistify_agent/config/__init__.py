"""
Assistify Configuration Module

Provides centralized configuration management for the agent service.
"""

from .schema import (
    AbilitiesConfig,
    ApiKeyConfig,
    AppConfig,
    AuditConfig,
    AuthConfig,
    ServerConfig,
    StorageConfig,
)
from .loader import interpolate_env_vars, load_config, load_config_from_file

__all__ = [
    "AbilitiesConfig",
    "ApiKeyConfig",
    "AppConfig",
    "AuditConfig",
    "AuthConfig",
    "ServerConfig",
    "StorageConfig",
    "interpolate_env_vars",
    "load_config",
    "load_config_from_file",
]

"""
Configuration management for Courier.

Handles loading and validation of configuration files.
"""

from courier.config.settings import (
    ClassifierConfig,
    CourierConfig,
    DatabaseConfig,
    DispatcherConfig,
    LoggingConfig,
    ProgressConfig,
    ReachabilityConfig,
    ServerConfig,
    TransportConfig,
    get_default_config,
    get_default_config_path,
    load_config,
)

__all__ = [
    "ClassifierConfig",
    "CourierConfig",
    "DatabaseConfig",
    "DispatcherConfig",
    "LoggingConfig",
    "ProgressConfig",
    "ReachabilityConfig",
    "ServerConfig",
    "TransportConfig",
    "get_default_config",
    "get_default_config_path",
    "load_config",
]

"""
Core module for aguava-api.

This module provides the foundational components used throughout the application:
    - exceptions: Custom exception classes for error handling
    - config: Configuration loading and validation
    - logger: Logging system with console and file outputs

Usage:
    from aguava_api.core import (
        Config, load_config,
        setup_logging, get_logger,
        AguavaError, ConfigError, SpotifyError
    )
"""

from aguava_api.core.config import (
    CatalogConfig,
    Config,
    LoggingConfig,
    ServerConfig,
    SpotifyConfig,
    load_config,
)
from aguava_api.core.exceptions import (
    AguavaError,
    CatalogError,
    ConfigError,
    RateLimitExceededError,
    SpotifyAuthError,
    SpotifyError,
    SpotifyTransportError,
)
from aguava_api.core.logger import (
    get_logger,
    log_batch_failure,
    setup_logging,
    shutdown_logging,
)

__all__ = [
    # Config
    "Config",
    "SpotifyConfig",
    "ServerConfig",
    "CatalogConfig",
    "LoggingConfig",
    "load_config",
    # Exceptions
    "AguavaError",
    "ConfigError",
    "CatalogError",
    "SpotifyError",
    "SpotifyAuthError",
    "SpotifyTransportError",
    "RateLimitExceededError",
    # Logger
    "setup_logging",
    "get_logger",
    "log_batch_failure",
    "shutdown_logging",
]

"""Configuration module for slacksassin."""

from slacksassin.config.loader import (
    ConfigError,
    ConfigFileNotFoundError,
    ConfigParseError,
    EnvVarNotFoundError,
    load_config,
)
from slacksassin.config.models import (
    AppConfig,
    DatabaseConfig,
    FeatureWeights,
    GenerationConfig,
    LoggingConfig,
    QueueConfig,
    RelayConfig,
    ServerConfig,
    SimilarityConfig,
    TracingConfig,
)

__all__ = [
    # Exceptions
    "ConfigError",
    "ConfigFileNotFoundError",
    "ConfigParseError",
    "EnvVarNotFoundError",
    # Functions
    "load_config",
    # Models
    "AppConfig",
    "DatabaseConfig",
    "FeatureWeights",
    "GenerationConfig",
    "LoggingConfig",
    "QueueConfig",
    "RelayConfig",
    "ServerConfig",
    "SimilarityConfig",
    "TracingConfig",
]

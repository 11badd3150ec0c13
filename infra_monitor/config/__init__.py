"""
Configuration management for the monitoring engine.

Configuration is loaded from YAML files in the config/ directory and
validated with Pydantic models:
    - monitoring.yaml: Engine settings, notification channels, logging
    - alerts.yaml: Alert rule definitions

Environment variables can override connection and credential settings:
    - REDIS_URL, LOG_LEVEL, SLACK_WEBHOOK_URL, SMTP_USERNAME, SMTP_PASSWORD

Example:
    >>> from infra_monitor.config import load_config
    >>> config = load_config()
    >>> print(config.engine.collection_interval_ms)
"""

from infra_monitor.config.loader import ConfigLoadError, ConfigLoader, load_config
from infra_monitor.config.models import (
    AppConfig,
    ChannelsConfig,
    ConsoleChannelConfig,
    EmailChannelConfig,
    EngineSettings,
    LogFormat,
    LoggingConfig,
    LogLevel,
    RedisConnectionConfig,
    SlackChannelConfig,
    StorageBackend,
    WebhookChannelConfig,
)

__all__: list[str] = [
    # Loader
    "load_config",
    "ConfigLoader",
    "ConfigLoadError",
    # Enums
    "StorageBackend",
    "LogFormat",
    "LogLevel",
    # Sections
    "EngineSettings",
    "ConsoleChannelConfig",
    "EmailChannelConfig",
    "SlackChannelConfig",
    "WebhookChannelConfig",
    "ChannelsConfig",
    "LoggingConfig",
    "RedisConnectionConfig",
    # Root
    "AppConfig",
]

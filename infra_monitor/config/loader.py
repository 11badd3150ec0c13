"""
Configuration loader for YAML-based application configuration.

This module provides utilities to load and validate configuration from YAML
files. All configuration is validated using Pydantic models to ensure type
safety and catch configuration errors early.

Configuration files expected:
    - config/monitoring.yaml: Engine settings, channels, logging
    - config/alerts.yaml: Alert rule definitions

Environment variables override:
    - REDIS_URL: Redis connection URL
    - LOG_LEVEL: Application log level
    - SLACK_WEBHOOK_URL: Slack webhook URL (enables the Slack channel)
    - SMTP_USERNAME / SMTP_PASSWORD: SMTP credentials

Example:
    >>> from infra_monitor.config.loader import load_config
    >>> config = load_config("config")
    >>> print([rule.id for rule in config.rules])
    ['high-cpu-usage', 'high-memory-usage', 'high-error-rate', 'low-availability']
"""

import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import ValidationError

from infra_monitor.config.models import (
    AppConfig,
    ChannelsConfig,
    ConsoleChannelConfig,
    EmailChannelConfig,
    EngineSettings,
    LoggingConfig,
    LogLevel,
    RedisConnectionConfig,
    SlackChannelConfig,
    WebhookChannelConfig,
)
from infra_monitor.models.alerts import AlertRule


class ConfigLoadError(Exception):
    """
    Raised when configuration loading fails.

    Attributes:
        message: Error message describing what went wrong.
        file_path: Path to the file that caused the error, if applicable.
        cause: Original exception that caused the error, if any.
    """

    def __init__(
        self,
        message: str,
        file_path: Optional[Path] = None,
        cause: Optional[Exception] = None,
    ):
        self.message = message
        self.file_path = file_path
        self.cause = cause
        super().__init__(message)


class ConfigLoader:
    """
    Loads and validates application configuration from YAML files.

    Expects the following directory structure:
        config/
        ├── monitoring.yaml   - Engine, channels and logging settings
        └── alerts.yaml       - Alert rule definitions

    Example:
        >>> loader = ConfigLoader("config")
        >>> config = loader.load()
        >>> print(config.engine.providers)
        ['aws', 'azure', 'gcp']
    """

    def __init__(self, config_dir: Path | str = "config"):
        """
        Initialize config loader.

        Args:
            config_dir: Path to configuration directory (default: 'config').

        Raises:
            ConfigLoadError: If config directory does not exist.
        """
        self.config_dir = Path(config_dir)
        if not self.config_dir.exists():
            raise ConfigLoadError(
                f"Configuration directory not found: {self.config_dir}",
                file_path=self.config_dir,
            )
        if not self.config_dir.is_dir():
            raise ConfigLoadError(
                f"Configuration path is not a directory: {self.config_dir}",
                file_path=self.config_dir,
            )

    def _load_yaml(self, filename: str) -> Dict[str, Any]:
        """
        Load a YAML file from the config directory.

        Args:
            filename: Name of YAML file (e.g., 'alerts.yaml').

        Returns:
            Dict containing parsed YAML content.

        Raises:
            ConfigLoadError: If file not found, empty, or invalid YAML.
        """
        file_path = self.config_dir / filename
        if not file_path.exists():
            raise ConfigLoadError(
                f"Configuration file not found: {file_path}",
                file_path=file_path,
            )

        try:
            with open(file_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
                if data is None:
                    raise ConfigLoadError(
                        f"Configuration file is empty: {file_path}",
                        file_path=file_path,
                    )
                if not isinstance(data, dict):
                    raise ConfigLoadError(
                        f"Configuration file must contain a mapping: {file_path}",
                        file_path=file_path,
                    )
                return data
        except yaml.YAMLError as e:
            raise ConfigLoadError(
                f"Invalid YAML syntax in {file_path}: {e}",
                file_path=file_path,
                cause=e,
            ) from e
        except OSError as e:
            raise ConfigLoadError(
                f"Error reading {file_path}: {e}",
                file_path=file_path,
                cause=e,
            ) from e

    def _load_monitoring(self) -> tuple[EngineSettings, ChannelsConfig, LoggingConfig]:
        """
        Load engine, channel and logging settings from monitoring.yaml.

        Returns:
            Tuple of (engine settings, channels config, logging config).

        Raises:
            ConfigLoadError: If validation fails.
        """
        data = self._load_yaml("monitoring.yaml")

        try:
            engine = EngineSettings(**data.get("engine", {}))

            channels_data = data.get("channels", {})
            email_data = dict(channels_data.get("email", {}))
            slack_data = dict(channels_data.get("slack", {}))

            # Credentials: environment takes priority over the file
            if os.getenv("SMTP_USERNAME"):
                email_data["username"] = os.getenv("SMTP_USERNAME")
            if os.getenv("SMTP_PASSWORD"):
                email_data["password"] = os.getenv("SMTP_PASSWORD")

            slack_webhook = os.getenv("SLACK_WEBHOOK_URL")
            if slack_webhook:
                slack_data["webhook_url"] = slack_webhook
                slack_data["enabled"] = True

            channels = ChannelsConfig(
                console=ConsoleChannelConfig(**channels_data.get("console", {})),
                email=EmailChannelConfig(**email_data),
                slack=SlackChannelConfig(**slack_data),
                webhook=WebhookChannelConfig(**channels_data.get("webhook", {})),
            )

            logging_data = dict(data.get("logging", {}))
            env_level = self._get_log_level()
            if env_level is not None:
                logging_data["level"] = env_level
            logging_config = LoggingConfig(**logging_data)

            return engine, channels, logging_config

        except ValidationError as e:
            raise ConfigLoadError(
                f"Invalid monitoring configuration: {e}",
                file_path=self.config_dir / "monitoring.yaml",
                cause=e,
            ) from e

    def _load_rules(self) -> List[AlertRule]:
        """
        Load alert rules from alerts.yaml.

        Returns:
            List of AlertRule objects.

        Raises:
            ConfigLoadError: If validation fails.
        """
        data = self._load_yaml("alerts.yaml")

        try:
            return [AlertRule(**rule_data) for rule_data in data.get("rules", [])]

        except ValidationError as e:
            raise ConfigLoadError(
                f"Invalid alerts configuration: {e}",
                file_path=self.config_dir / "alerts.yaml",
                cause=e,
            ) from e
        except TypeError as e:
            raise ConfigLoadError(
                f"Malformed rule entry in alerts configuration: {e}",
                file_path=self.config_dir / "alerts.yaml",
                cause=e,
            ) from e

    def _load_redis_connection(self) -> RedisConnectionConfig:
        """
        Load Redis connection configuration from environment.

        Environment variables:
            - REDIS_URL: Redis connection URL (default: redis://localhost:6379)

        Returns:
            RedisConnectionConfig object.
        """
        redis_url = os.getenv("REDIS_URL", "redis://localhost:6379")
        return RedisConnectionConfig(url=redis_url)

    def _get_log_level(self) -> Optional[LogLevel]:
        """
        Get log level from environment.

        Environment variables:
            - LOG_LEVEL: Log level

        Returns:
            LogLevel enum value, or None when unset or invalid.
        """
        level_str = os.getenv("LOG_LEVEL")
        if not level_str:
            return None
        try:
            return LogLevel(level_str.upper())
        except ValueError:
            return None

    def load(self) -> AppConfig:
        """
        Load and validate all configuration files.

        Returns:
            AppConfig: Validated application configuration.

        Raises:
            ConfigLoadError: If any configuration is invalid or missing.
        """
        try:
            engine, channels, logging_config = self._load_monitoring()
            rules = self._load_rules()
            redis = self._load_redis_connection()

            return AppConfig(
                engine=engine,
                rules=rules,
                channels=channels,
                logging=logging_config,
                redis=redis,
            )

        except ConfigLoadError:
            raise
        except ValidationError as e:
            raise ConfigLoadError(
                f"Configuration validation failed: {e}",
                cause=e,
            ) from e
        except Exception as e:
            raise ConfigLoadError(
                f"Unexpected error loading configuration: {e}",
                cause=e,
            ) from e


def load_config(config_dir: Path | str = "config") -> AppConfig:
    """
    Convenience function to load application configuration.

    Args:
        config_dir: Path to configuration directory (default: 'config').

    Returns:
        AppConfig: Validated application configuration.

    Raises:
        ConfigLoadError: If configuration loading fails.
    """
    loader = ConfigLoader(config_dir)
    return loader.load()

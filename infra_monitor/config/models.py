"""
Pydantic models for application configuration.

This module defines all configuration models that are validated when loading
YAML configuration files. The models ensure type safety and provide sensible
defaults for optional settings.

Configuration files:
    - config/monitoring.yaml: Engine settings, notification channels, logging
    - config/alerts.yaml: Alert rule definitions

Example:
    >>> from infra_monitor.config.models import AppConfig
    >>> config = AppConfig(...)
    >>> print(config.engine.collection_interval_seconds)
"""

from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from infra_monitor.models.alerts import AlertRule


# =============================================================================
# ENUMS
# =============================================================================


class StorageBackend(str, Enum):
    """Where metrics, alerts and rules are kept."""

    MEMORY = "memory"
    REDIS = "redis"


class LogFormat(str, Enum):
    """Logging format options."""

    JSON = "json"
    TEXT = "text"


class LogLevel(str, Enum):
    """Logging level options."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


# =============================================================================
# ENGINE CONFIGURATION
# =============================================================================


class EngineSettings(BaseModel):
    """Scheduler, collection and retention settings."""

    model_config = {"frozen": True, "extra": "forbid"}

    enabled: bool = Field(
        default=True,
        description="Whether cycles are processed",
    )
    collection_interval_ms: int = Field(
        default=60_000,
        description="Interval between collection cycles (milliseconds)",
        ge=100,
    )
    retention_days: int = Field(
        default=30,
        description="Days metric samples are kept",
        ge=1,
    )
    providers: List[str] = Field(
        default_factory=lambda: ["aws", "azure", "gcp"],
        description="Providers collected every cycle",
    )
    storage_backend: StorageBackend = Field(
        default=StorageBackend.MEMORY,
        description="Backend for metrics, alerts and rules",
    )
    max_alert_history: int = Field(
        default=10_000,
        description="Alerts kept in memory for history queries",
        ge=1,
    )

    @field_validator("providers")
    @classmethod
    def dedupe_providers(cls, v: List[str]) -> List[str]:
        """Drop duplicate providers, keeping order."""
        return list(dict.fromkeys(v))

    @property
    def collection_interval_seconds(self) -> float:
        """Collection interval in seconds."""
        return self.collection_interval_ms / 1000


# =============================================================================
# CHANNEL CONFIGURATION
# =============================================================================


class ConsoleChannelConfig(BaseModel):
    """Console (log) channel settings."""

    model_config = {"frozen": True, "extra": "forbid"}

    enabled: bool = Field(default=True, description="Whether this channel is enabled")


class EmailChannelConfig(BaseModel):
    """SMTP email channel settings."""

    model_config = {"frozen": True, "extra": "forbid"}

    enabled: bool = Field(default=False, description="Whether this channel is enabled")
    smtp_host: str = Field(default="localhost", description="SMTP server host")
    smtp_port: int = Field(default=587, description="SMTP server port", ge=1, le=65535)
    use_tls: bool = Field(default=True, description="Upgrade the connection with STARTTLS")
    username: Optional[str] = Field(default=None, description="SMTP username")
    password: Optional[str] = Field(default=None, description="SMTP password")
    from_address: str = Field(default="alerts@localhost", description="Sender address")
    recipients: List[str] = Field(default_factory=list, description="Recipient addresses")
    timeout_seconds: float = Field(default=10.0, description="SMTP timeout", gt=0)

    @model_validator(mode="after")
    def require_recipients(self) -> "EmailChannelConfig":
        """An enabled email channel needs recipients."""
        if self.enabled and not self.recipients:
            raise ValueError("Email channel is enabled but has no recipients")
        return self


class SlackChannelConfig(BaseModel):
    """Slack incoming-webhook channel settings."""

    model_config = {"frozen": True, "extra": "forbid"}

    enabled: bool = Field(default=False, description="Whether this channel is enabled")
    webhook_url: Optional[str] = Field(default=None, description="Slack webhook URL")
    channel: str = Field(default="#alerts", description="Target Slack channel")
    username: str = Field(default="infra-monitor", description="Bot username")
    timeout_seconds: float = Field(default=10.0, description="HTTP timeout", gt=0)

    @model_validator(mode="after")
    def require_webhook(self) -> "SlackChannelConfig":
        """An enabled Slack channel needs a webhook URL."""
        if self.enabled and not self.webhook_url:
            raise ValueError("Slack channel is enabled but has no webhook_url")
        return self


class WebhookChannelConfig(BaseModel):
    """Generic HTTP webhook channel settings."""

    model_config = {"frozen": True, "extra": "forbid"}

    enabled: bool = Field(default=False, description="Whether this channel is enabled")
    url: Optional[str] = Field(default=None, description="Webhook URL")
    headers: Dict[str, str] = Field(default_factory=dict, description="Extra HTTP headers")
    timeout_seconds: float = Field(default=10.0, description="HTTP timeout", gt=0)

    @model_validator(mode="after")
    def require_url(self) -> "WebhookChannelConfig":
        """An enabled webhook channel needs a URL."""
        if self.enabled and not self.url:
            raise ValueError("Webhook channel is enabled but has no url")
        return self


class ChannelsConfig(BaseModel):
    """All notification channel settings."""

    model_config = {"frozen": True, "extra": "forbid"}

    console: ConsoleChannelConfig = Field(default_factory=ConsoleChannelConfig)
    email: EmailChannelConfig = Field(default_factory=EmailChannelConfig)
    slack: SlackChannelConfig = Field(default_factory=SlackChannelConfig)
    webhook: WebhookChannelConfig = Field(default_factory=WebhookChannelConfig)

    def enabled_channels(self) -> List[str]:
        """Names of enabled channels."""
        return [
            name
            for name, cfg in (
                ("console", self.console),
                ("email", self.email),
                ("slack", self.slack),
                ("webhook", self.webhook),
            )
            if cfg.enabled
        ]


# =============================================================================
# LOGGING / CONNECTION CONFIGURATION
# =============================================================================


class LoggingConfig(BaseModel):
    """Logging configuration."""

    model_config = {"frozen": True, "extra": "forbid"}

    format: LogFormat = Field(
        default=LogFormat.JSON,
        description="Log output format",
    )
    level: LogLevel = Field(
        default=LogLevel.INFO,
        description="Log level",
    )


class RedisConnectionConfig(BaseModel):
    """Redis connection configuration."""

    model_config = {"frozen": True, "extra": "forbid"}

    url: str = Field(
        default="redis://localhost:6379",
        description="Redis connection URL",
    )
    db: int = Field(
        default=0,
        description="Redis database number",
        ge=0,
    )
    max_connections: int = Field(
        default=10,
        description="Maximum connection pool size",
        ge=1,
    )
    socket_timeout: int = Field(
        default=5,
        description="Socket timeout in seconds",
        ge=1,
    )


# =============================================================================
# ROOT CONFIGURATION
# =============================================================================


class AppConfig(BaseModel):
    """
    Root application configuration.

    Aggregates all configuration sections into a single validated object.

    Example:
        >>> config = AppConfig(engine=EngineSettings(), rules=[])
        >>> config.get_rule("high-cpu-usage")
    """

    model_config = {"frozen": True, "extra": "forbid"}

    engine: EngineSettings = Field(
        default_factory=EngineSettings,
        description="Engine settings",
    )
    rules: List[AlertRule] = Field(
        default_factory=list,
        description="Alert rules loaded at start",
    )
    channels: ChannelsConfig = Field(
        default_factory=ChannelsConfig,
        description="Notification channel settings",
    )
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig,
        description="Logging settings",
    )
    redis: RedisConnectionConfig = Field(
        default_factory=RedisConnectionConfig,
        description="Redis connection config",
    )

    @model_validator(mode="after")
    def validate_config(self) -> "AppConfig":
        """Validate rule id uniqueness."""
        seen = set()
        for rule in self.rules:
            if rule.id in seen:
                raise ValueError(f"Duplicate alert rule id: {rule.id}")
            seen.add(rule.id)
        return self

    def get_rule(self, rule_id: str) -> Optional[AlertRule]:
        """
        Get a configured rule by id.

        Args:
            rule_id: Rule identifier (e.g., "high-cpu-usage")

        Returns:
            Optional[AlertRule]: Rule or None if not found.
        """
        for rule in self.rules:
            if rule.id == rule_id:
                return rule
        return None

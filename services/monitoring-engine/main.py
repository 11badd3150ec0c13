"""
Monitoring Engine Service entry point.

This service is responsible for:
- Loading monitoring and alert rule configuration
- Connecting Redis when the redis storage backend is configured
- Collecting provider metrics every collection interval
- Evaluating alert rules and managing the alert lifecycle
- Dispatching notifications to the configured channels

Usage:
    python services/monitoring-engine/main.py

Environment Variables:
    CONFIG_PATH: Path to config directory (default: config)
    REDIS_URL: Redis connection URL (default: redis://localhost:6379)
    LOG_LEVEL: Logging level (default: from monitoring.yaml)
    SLACK_WEBHOOK_URL: Slack webhook URL; enables the Slack channel
    SMTP_USERNAME / SMTP_PASSWORD: SMTP credentials for the email channel
"""

import asyncio
import os
import signal
import sys
from pathlib import Path
from typing import Optional

import structlog

# Add project root to path for imports
project_root = Path(__file__).parent.parent.parent
sys.path.insert(0, str(project_root))

from infra_monitor import __version__
from infra_monitor.collection.simulated import SimulatedMetricSource
from infra_monitor.config import AppConfig, ConfigLoadError, StorageBackend, load_config
from infra_monitor.engine import MonitoringEngine, create_engine
from infra_monitor.log_setup import setup_logging
from infra_monitor.storage.redis_client import RedisClient, RedisConnectionException

logger = structlog.get_logger(__name__)


class MonitoringEngineService:
    """
    Runs the monitoring engine until SIGINT or SIGTERM.

    Attributes:
        config: Loaded configuration.
        redis_client: Redis client, when the redis backend is configured.
        engine: The monitoring engine.
        shutdown_event: Set when a shutdown signal arrives.
    """

    def __init__(self, config: AppConfig) -> None:
        self.config = config
        self.redis_client: Optional[RedisClient] = None
        self.engine: Optional[MonitoringEngine] = None
        self.shutdown_event = asyncio.Event()

    async def _initialize(self) -> None:
        """Connect storage and build the engine."""
        if self.config.engine.storage_backend == StorageBackend.REDIS:
            self.redis_client = RedisClient(self.config.redis)
            await self.redis_client.connect()

        self.engine = create_engine(
            self.config,
            redis_client=self.redis_client,
            source=SimulatedMetricSource(),
        )

    def _install_signal_handlers(self) -> None:
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, self.shutdown_event.set)

    async def run(self) -> None:
        """Run the service until a shutdown signal arrives."""
        await self._initialize()
        if self.engine is None:
            raise RuntimeError("Service not properly initialized")

        self._install_signal_handlers()

        try:
            await self.engine.start()
            logger.info(
                "monitoring_engine_service_running",
                status=self.engine.get_status().model_dump(mode="json"),
            )
            await self.shutdown_event.wait()
            logger.info("shutdown_signal_received")
        finally:
            await self._cleanup()

    async def _cleanup(self) -> None:
        """Stop the engine and close connections."""
        if self.engine is not None:
            await self.engine.stop()
            logger.info(
                "cleanup_state",
                active_alerts=len(self.engine.get_active_alerts()),
            )

        if self.redis_client is not None:
            await self.redis_client.disconnect()


async def main() -> None:
    """Main entry point."""
    config_path = os.getenv("CONFIG_PATH", "config")

    try:
        config = load_config(config_path)
    except ConfigLoadError as e:
        setup_logging()
        logger.error("config_load_failed", config_path=config_path, error=str(e))
        sys.exit(1)

    setup_logging(config.logging.level, config.logging.format)

    logger.info(
        "monitoring_engine_service_starting",
        version=__version__,
        config_path=config_path,
    )

    service = MonitoringEngineService(config)

    try:
        await service.run()
    except RedisConnectionException as e:
        logger.error("service_failed", error=str(e))
        sys.exit(1)


if __name__ == "__main__":
    asyncio.run(main())

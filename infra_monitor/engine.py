"""
Monitoring engine facade.

This module provides the MonitoringEngine class which wires the collector,
rule registry, evaluator, lifecycle manager, alert storage, dispatcher and
scheduler together and exposes the public operations of the engine.

One cycle:
    1. Collect all providers concurrently, then apply retention
    2. Evaluate every enabled rule concurrently
    3. Apply each result to the rule's alert lifecycle
    4. Dispatch resulting transitions to the alert's channels

Example:
    >>> config = load_config("config")
    >>> engine = create_engine(config)
    >>> await engine.start()
    >>> engine.get_status().running
    True
    >>> await engine.stop()
"""

import asyncio
from datetime import datetime
from typing import List, Optional, Sequence

import structlog

from infra_monitor.clock import Clock, utc_now
from infra_monitor.collection.collector import MetricCollector
from infra_monitor.collection.simulated import SimulatedMetricSource
from infra_monitor.config.models import AppConfig, StorageBackend
from infra_monitor.detection.dispatcher import ChannelDispatcher, create_dispatcher
from infra_monitor.detection.evaluator import AlertEvaluator
from infra_monitor.detection.manager import AlertLifecycleManager
from infra_monitor.detection.registry import RedisRuleRepository, RuleRegistry
from infra_monitor.detection.scheduler import MonitoringScheduler
from infra_monitor.detection.storage import AlertStorage
from infra_monitor.exceptions import StoreWriteError
from infra_monitor.interfaces.metric_source import MetricSource
from infra_monitor.models.alerts import (
    Alert,
    AlertHistoryFilter,
    AlertRule,
    LifecycleTransition,
)
from infra_monitor.models.metrics import MetricSample
from infra_monitor.models.status import CollectionReport, EngineStatus
from infra_monitor.storage.metric_store import (
    InMemoryMetricStore,
    MetricStore,
    RedisMetricStore,
)
from infra_monitor.storage.redis_client import RedisClient

logger = structlog.get_logger(__name__)


class MonitoringEngine:
    """
    Explicit engine object owning every monitoring component.

    Attributes:
        store: Metric store.
        collector: Metric collector.
        registry: Rule registry.
        evaluator: Alert evaluator.
        alert_storage: Alert storage.
        manager: Alert lifecycle manager.
        dispatcher: Notification dispatcher.
        scheduler: Periodic driver.
        providers: Providers collected every cycle.
        enabled: Whether cycles are processed.
        last_cycle_at: When the last cycle completed.
        last_collection_report: Collection outcome of the last cycle.
    """

    def __init__(
        self,
        store: MetricStore,
        collector: MetricCollector,
        registry: RuleRegistry,
        evaluator: AlertEvaluator,
        alert_storage: AlertStorage,
        manager: AlertLifecycleManager,
        dispatcher: ChannelDispatcher,
        providers: Sequence[str],
        interval_seconds: float,
        enabled: bool = True,
        clock: Optional[Clock] = None,
    ) -> None:
        self.store = store
        self.collector = collector
        self.registry = registry
        self.evaluator = evaluator
        self.alert_storage = alert_storage
        self.manager = manager
        self.dispatcher = dispatcher
        self.providers = list(providers)
        self.enabled = enabled
        self.clock = clock or utc_now
        self.scheduler = MonitoringScheduler(self.run_cycle, interval_seconds)

        self.last_cycle_at: Optional[datetime] = None
        self.last_collection_report: Optional[CollectionReport] = None
        self._loaded = False

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    async def start(self) -> None:
        """
        Load persisted state on first start and start the scheduler.

        Persistence read failures are logged; the engine starts with the
        configured rules and no alert history. Starting a running engine
        logs a warning and does nothing.
        """
        if self.scheduler.is_running:
            logger.warning("monitoring_engine_already_running")
            return

        if not self._loaded:
            await self._load_persisted_state()
            self._loaded = True

        await self.scheduler.start()

        logger.info(
            "monitoring_engine_started",
            providers=self.providers,
            rules=len(self.registry),
            enabled=self.enabled,
        )

    async def stop(self) -> None:
        """Stop the scheduler after the in-flight cycle and release clients."""
        await self.scheduler.stop()
        await self.dispatcher.close()
        await self.collector.source.close()

        logger.info("monitoring_engine_stopped")

    async def _load_persisted_state(self) -> None:
        try:
            await self.registry.load()
        except StoreWriteError as e:
            logger.error("rule_load_failed", error=e.message)

        try:
            await self.alert_storage.load()
        except StoreWriteError as e:
            logger.error("alert_load_failed", error=e.message)

    def set_enabled(self, enabled: bool) -> None:
        """
        Enable or disable cycle processing.

        A disabled engine keeps its scheduler running but skips every cycle.
        """
        self.enabled = enabled
        logger.info("monitoring_engine_enabled_changed", enabled=enabled)

    # =========================================================================
    # CYCLE
    # =========================================================================

    async def run_cycle(self, now: Optional[datetime] = None) -> List[LifecycleTransition]:
        """
        Run one monitoring cycle.

        Args:
            now: Evaluation time; defaults to the engine clock after
                collection finishes.

        Returns:
            List[LifecycleTransition]: Transitions produced and dispatched.
        """
        if not self.enabled:
            logger.debug("monitoring_cycle_skipped_disabled")
            return []

        self.last_collection_report = await self.collector.collect_all(self.providers)

        now = now or self.clock()
        rules = self.registry.list_enabled()

        results = await asyncio.gather(
            *(self._process_rule(rule, now) for rule in rules)
        )
        transitions = [t for t in results if t is not None]

        self.last_cycle_at = now

        logger.info(
            "monitoring_cycle_complete",
            rules_evaluated=len(rules),
            transitions=len(transitions),
            active_alerts=len(self.alert_storage.get_active_alerts()),
        )

        return transitions

    async def _process_rule(
        self,
        rule: AlertRule,
        now: datetime,
    ) -> Optional[LifecycleTransition]:
        try:
            result = await self.evaluator.evaluate(rule, now)
            transition = await self.manager.process(rule, result, now)
        except Exception as e:
            logger.error(
                "rule_evaluation_failed",
                rule_id=rule.id,
                error=str(e),
                error_type=type(e).__name__,
            )
            return None

        if transition is not None:
            await self.dispatcher.dispatch(transition.alert, transition.event)

        return transition

    # =========================================================================
    # RULES
    # =========================================================================

    async def upsert_rule(self, rule: AlertRule) -> AlertRule:
        """
        Create or replace a rule.

        Disabling a rule does not close its open alert; the alert stays
        open until the rule is re-enabled and its condition clears, or the
        rule is removed.

        Args:
            rule: The rule definition.

        Returns:
            AlertRule: The rule as stored.
        """
        try:
            return await self.registry.upsert(rule)
        except StoreWriteError as e:
            logger.warning("rule_change_not_persisted", rule_id=rule.id, error=e.message)
            return self.registry.get(rule.id)

    async def remove_rule(self, rule_id: str) -> bool:
        """
        Remove a rule and resolve its open alert.

        Args:
            rule_id: The rule identifier.

        Returns:
            bool: True if the rule existed.
        """
        try:
            removed = await self.registry.remove(rule_id)
        except StoreWriteError as e:
            logger.warning("rule_change_not_persisted", rule_id=rule_id, error=e.message)
            removed = True

        if not removed:
            return False

        transition = await self.manager.close_for_removed_rule(rule_id, self.clock())
        if transition is not None:
            await self.dispatcher.dispatch(transition.alert, transition.event)

        return True

    def list_rules(self) -> List[AlertRule]:
        """All registered rules."""
        return self.registry.list()

    def get_rule(self, rule_id: str) -> AlertRule:
        """
        Get a rule by id.

        Raises:
            RuleNotFoundError: If no rule has this id.
        """
        return self.registry.get(rule_id)

    # =========================================================================
    # ALERTS
    # =========================================================================

    def get_active_alerts(self) -> List[Alert]:
        """Open alerts, newest first."""
        return self.alert_storage.get_active_alerts()

    def get_alert_history(
        self,
        history_filter: Optional[AlertHistoryFilter] = None,
    ) -> List[Alert]:
        """Alerts matching the filter, newest first."""
        return self.alert_storage.get_history(history_filter)

    async def acknowledge(self, alert_id: str, user_id: str) -> Alert:
        """
        Acknowledge an active alert.

        Raises:
            AcknowledgeNotFoundError: If the alert is unknown or not active.
        """
        return await self.manager.acknowledge(alert_id, user_id, self.clock())

    # =========================================================================
    # METRICS / STATUS
    # =========================================================================

    async def get_metrics(
        self,
        metric_name: str,
        start: datetime,
        end: datetime,
        limit: int = 100,
        provider: Optional[str] = None,
    ) -> List[MetricSample]:
        """
        Query stored samples, newest first.

        Args:
            metric_name: Metric to query.
            start: Window start (inclusive).
            end: Window end (inclusive).
            limit: Maximum samples returned.
            provider: Only samples from this provider.
        """
        return await self.store.query(
            metric_name,
            start,
            end,
            limit=limit,
            descending=True,
            provider=provider,
        )

    def get_status(self) -> EngineStatus:
        """Current engine status."""
        rules = self.registry.list()
        return EngineStatus(
            enabled=self.enabled,
            running=self.scheduler.is_running,
            active_alert_count=len(self.alert_storage.get_active_alerts()),
            total_rules=len(rules),
            enabled_rules=sum(1 for rule in rules if rule.enabled),
            last_cycle_at=self.last_cycle_at,
        )


def create_engine(
    config: AppConfig,
    redis_client: Optional[RedisClient] = None,
    source: Optional[MetricSource] = None,
    clock: Optional[Clock] = None,
    dispatcher: Optional[ChannelDispatcher] = None,
) -> MonitoringEngine:
    """
    Factory function to create a MonitoringEngine from configuration.

    Args:
        config: Application configuration.
        redis_client: Connected Redis client; required for the redis backend.
        source: Provider metric source; defaults to SimulatedMetricSource.
        clock: Time source; defaults to UTC wall clock.
        dispatcher: Dispatcher override; defaults to one built from
            config.channels.

    Returns:
        MonitoringEngine: Configured engine, not yet started.

    Raises:
        ValueError: If the redis backend is configured without a client.

    Example:
        >>> engine = create_engine(config, redis_client=redis_client)
        >>> await engine.start()
    """
    settings = config.engine
    clock = clock or utc_now

    if settings.storage_backend == StorageBackend.REDIS:
        if redis_client is None:
            raise ValueError("storage_backend is redis but no redis_client was given")
        store: MetricStore = RedisMetricStore(redis_client)
        repository: Optional[RedisRuleRepository] = RedisRuleRepository(redis_client)
        alert_storage = AlertStorage(
            redis_client=redis_client, max_history=settings.max_alert_history
        )
    else:
        store = InMemoryMetricStore()
        repository = None
        alert_storage = AlertStorage(max_history=settings.max_alert_history)

    registry = RuleRegistry(config.rules, repository=repository)
    collector = MetricCollector(
        store,
        source or SimulatedMetricSource(),
        retention_days=settings.retention_days,
        clock=clock,
    )

    engine = MonitoringEngine(
        store=store,
        collector=collector,
        registry=registry,
        evaluator=AlertEvaluator(store),
        alert_storage=alert_storage,
        manager=AlertLifecycleManager(registry, alert_storage),
        dispatcher=dispatcher or create_dispatcher(config.channels),
        providers=settings.providers,
        interval_seconds=settings.collection_interval_seconds,
        enabled=settings.enabled,
        clock=clock,
    )

    logger.info(
        "monitoring_engine_created",
        storage_backend=settings.storage_backend.value,
        providers=settings.providers,
        rules=len(config.rules),
        interval_seconds=settings.collection_interval_seconds,
    )

    return engine

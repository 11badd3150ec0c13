"""
Alert storage with optional Redis write-through.

This module provides the AlertStorage class which keeps every alert in an
in-memory index and, when a Redis client is supplied, mirrors each write to
Redis so alerts survive restarts.

Key Features:
    - Open-alert index keyed by rule id
    - History queries with AlertHistoryFilter, newest first
    - Redis write-through; failures raise StoreWriteError after the
      in-memory write has been applied
    - Rehydration from Redis on start
    - In-memory history bounded by max_history; open alerts are never evicted

Example:
    >>> storage = AlertStorage(redis_client=redis_client)
    >>> await storage.load()
    >>> await storage.save(alert)
    >>> active = storage.get_active_alerts()
"""

from typing import Dict, List, Optional

import structlog

from infra_monitor.exceptions import StoreWriteError
from infra_monitor.models.alerts import Alert, AlertHistoryFilter
from infra_monitor.storage.redis_client import RedisClient, RedisClientError

logger = structlog.get_logger(__name__)


# Closed alerts beyond this many are evicted from memory, oldest first
DEFAULT_MAX_HISTORY = 10_000


class AlertStorage:
    """
    In-memory alert index with optional Redis persistence.

    Attributes:
        redis_client: Optional Redis client for write-through.
        max_history: Maximum alerts kept in memory.

    Example:
        >>> storage = AlertStorage()
        >>> await storage.save(alert)
        >>> storage.get_open_alert(alert.rule_id) is not None
        True
    """

    def __init__(
        self,
        redis_client: Optional[RedisClient] = None,
        max_history: int = DEFAULT_MAX_HISTORY,
    ) -> None:
        """
        Initialize the alert storage.

        Args:
            redis_client: Connected Redis client, or None for memory only.
            max_history: Maximum alerts kept in memory. Open alerts are
                always kept, so the bound may be exceeded by at most one
                alert per rule.
        """
        self.redis_client = redis_client
        self.max_history = max_history
        self._alerts: Dict[str, Alert] = {}
        self._open_by_rule: Dict[str, str] = {}

        logger.debug("alert_storage_initialized", persistent=redis_client is not None)

    async def save(self, alert: Alert) -> None:
        """
        Save an alert and maintain the open-alert index.

        Args:
            alert: The Alert to save.

        Raises:
            StoreWriteError: If the Redis write fails. The in-memory index
                is already updated.
        """
        self._index(alert)

        if self.redis_client is None:
            return

        try:
            await self.redis_client.set_alert(alert)
        except RedisClientError as e:
            logger.error(
                "alert_save_failed",
                alert_id=alert.id,
                rule_id=alert.rule_id,
                error=str(e),
            )
            raise StoreWriteError("save_alert", str(e), cause=e) from e

        logger.debug(
            "alert_saved",
            alert_id=alert.id,
            rule_id=alert.rule_id,
            status=alert.status.value,
        )

    async def load(self) -> int:
        """
        Rehydrate the index from Redis.

        Returns:
            int: Number of alerts loaded.

        Raises:
            StoreWriteError: If the Redis read fails.
        """
        if self.redis_client is None:
            return 0

        try:
            alerts = await self.redis_client.get_alerts(limit=self.max_history)
        except RedisClientError as e:
            logger.error("alerts_load_failed", error=str(e))
            raise StoreWriteError("load_alerts", str(e), cause=e) from e

        # Oldest first so a newer open alert wins the rule index
        for alert in sorted(alerts, key=lambda a: a.created_at):
            self._index(alert)

        logger.info(
            "alerts_loaded",
            total=len(alerts),
            open=len(self._open_by_rule),
        )
        return len(alerts)

    def get_alert(self, alert_id: str) -> Optional[Alert]:
        """Get an alert by id."""
        return self._alerts.get(alert_id)

    def get_open_alert(self, rule_id: str) -> Optional[Alert]:
        """
        Get the open (active or acknowledged) alert of a rule.

        Args:
            rule_id: The rule identifier.

        Returns:
            Optional[Alert]: The open alert, or None.
        """
        alert_id = self._open_by_rule.get(rule_id)
        if alert_id is None:
            return None
        return self._alerts.get(alert_id)

    def get_active_alerts(self) -> List[Alert]:
        """
        Get all open alerts, newest first.

        Returns:
            List[Alert]: Active and acknowledged alerts.
        """
        alerts = [self._alerts[aid] for aid in self._open_by_rule.values()]
        return sorted(alerts, key=lambda a: a.created_at, reverse=True)

    def get_history(self, history_filter: Optional[AlertHistoryFilter] = None) -> List[Alert]:
        """
        Query alert history, newest first.

        Args:
            history_filter: Filter criteria; defaults to the 50 newest alerts.

        Returns:
            List[Alert]: Matching alerts.

        Example:
            >>> critical = storage.get_history(
            ...     AlertHistoryFilter(severity=AlertSeverity.CRITICAL, limit=10)
            ... )
        """
        history_filter = history_filter or AlertHistoryFilter()
        matches = [a for a in self._alerts.values() if history_filter.matches(a)]
        matches.sort(key=lambda a: a.created_at, reverse=True)
        return matches[: history_filter.limit]

    def __len__(self) -> int:
        return len(self._alerts)

    def _index(self, alert: Alert) -> None:
        self._alerts[alert.id] = alert
        if alert.is_open:
            self._open_by_rule[alert.rule_id] = alert.id
        elif self._open_by_rule.get(alert.rule_id) == alert.id:
            del self._open_by_rule[alert.rule_id]

        if len(self._alerts) > self.max_history:
            self._evict()

    def _evict(self) -> None:
        open_ids = set(self._open_by_rule.values())
        excess = len(self._alerts) - self.max_history
        # Insertion order is creation order; open alerts stay
        for alert_id in list(self._alerts):
            if excess <= 0:
                break
            if alert_id in open_ids:
                continue
            del self._alerts[alert_id]
            excess -= 1

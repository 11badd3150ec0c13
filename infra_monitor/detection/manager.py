"""
Alert lifecycle manager.

This module provides the AlertLifecycleManager class which turns evaluation
results into alert lifecycle transitions: trigger, acknowledge and resolve.

Key Features:
    - At most one open alert per rule
    - Cooldown gates re-triggering after a resolution
    - An open alert blocks re-triggering regardless of cooldown
    - Auto-resolution when the condition clears (hysteresis)
    - Per-rule asyncio locks serialize evaluation and acknowledgment
    - Persistence failures are logged; the in-memory transition stands

Example:
    >>> manager = AlertLifecycleManager(registry, storage)
    >>> transition = await manager.process(rule, result, now)
    >>> if transition is not None:
    ...     await dispatcher.dispatch(transition.alert, transition.event)
"""

import asyncio
import weakref
from datetime import datetime
from typing import Optional

import structlog

from infra_monitor.detection.evaluator import SKIP_RULE_DISABLED
from infra_monitor.detection.registry import RuleRegistry
from infra_monitor.detection.storage import AlertStorage
from infra_monitor.exceptions import AcknowledgeNotFoundError, StoreWriteError
from infra_monitor.models.alerts import (
    Alert,
    AlertRule,
    AlertStatus,
    EvaluationResult,
    LifecycleEvent,
    LifecycleTransition,
    RuleState,
)

logger = structlog.get_logger(__name__)


RESOLUTION_AUTO = "auto"
RESOLUTION_RULE_REMOVED = "rule_removed"


class AlertLifecycleManager:
    """
    Owns the per-rule alert state machine.

    State per rule is derived from its open alert in storage:
    NONE (no open alert), ACTIVE or ACKNOWLEDGED. Resolving returns the
    rule to NONE.

    Attributes:
        registry: Rule registry; trigger timestamps are written through it.
        storage: Alert storage.

    Example:
        >>> manager = AlertLifecycleManager(registry, storage)
        >>> await manager.process(rule, EvaluationResult(...), now)
        >>> manager.get_state(rule.id)
        <RuleState.ACTIVE: 'active'>
    """

    def __init__(self, registry: RuleRegistry, storage: AlertStorage) -> None:
        self.registry = registry
        self.storage = storage
        # Entries vanish once no coroutine holds or awaits the lock
        self._locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = (
            weakref.WeakValueDictionary()
        )

    def _lock_for(self, rule_id: str) -> asyncio.Lock:
        lock = self._locks.get(rule_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[rule_id] = lock
        return lock

    def get_state(self, rule_id: str) -> RuleState:
        """
        Get the lifecycle state of a rule.

        Args:
            rule_id: The rule identifier.

        Returns:
            RuleState: NONE, ACTIVE or ACKNOWLEDGED.
        """
        alert = self.storage.get_open_alert(rule_id)
        if alert is None:
            return RuleState.NONE
        if alert.status == AlertStatus.ACKNOWLEDGED:
            return RuleState.ACKNOWLEDGED
        return RuleState.ACTIVE

    async def process(
        self,
        rule: AlertRule,
        result: EvaluationResult,
        now: datetime,
    ) -> Optional[LifecycleTransition]:
        """
        Apply an evaluation result to a rule's lifecycle.

        Transitions:
            NONE + condition met + outside cooldown -> ACTIVE (triggered)
            NONE + condition met + within cooldown  -> suppressed
            open + condition met                    -> no-op
            open + condition not met                -> RESOLVED (resolved)
            NONE + condition not met                -> no-op

        Args:
            rule: The evaluated rule.
            result: Evaluation outcome.
            now: Evaluation time.

        Returns:
            Optional[LifecycleTransition]: The transition to dispatch, or
                None when nothing changed.
        """
        if result.skip_reason == SKIP_RULE_DISABLED:
            return None

        async with self._lock_for(rule.id):
            open_alert = self.storage.get_open_alert(rule.id)

            # The rule may have been removed or disabled while evaluating
            current = self.registry.find(rule.id)
            if current is None or not current.enabled:
                logger.debug("rule_changed_during_evaluation", rule_id=rule.id)
                return None

            if result.condition_met:
                if open_alert is not None:
                    logger.debug(
                        "alert_already_open",
                        rule_id=rule.id,
                        alert_id=open_alert.id,
                        status=open_alert.status.value,
                    )
                    return None

                if self._in_cooldown(current, now):
                    logger.info(
                        "alert_suppressed_cooldown",
                        rule_id=rule.id,
                        last_triggered_at=current.last_triggered_at.isoformat()
                        if current.last_triggered_at
                        else None,
                        cooldown_minutes=current.cooldown_minutes,
                    )
                    return None

                return await self._trigger(current, result, now)

            if open_alert is not None:
                return await self._resolve(open_alert, RESOLUTION_AUTO, now)

            return None

    async def acknowledge(self, alert_id: str, user_id: str, now: datetime) -> Alert:
        """
        Acknowledge an active alert.

        Args:
            alert_id: The alert identifier.
            user_id: Who acknowledges.
            now: Acknowledgment time.

        Returns:
            Alert: The acknowledged alert.

        Raises:
            AcknowledgeNotFoundError: If the alert is unknown or not ACTIVE.
        """
        alert = self.storage.get_alert(alert_id)
        if alert is None:
            raise AcknowledgeNotFoundError(alert_id)

        async with self._lock_for(alert.rule_id):
            # Re-read under the lock; a concurrent cycle may have resolved it
            alert = self.storage.get_alert(alert_id)
            if alert is None or alert.status != AlertStatus.ACTIVE:
                raise AcknowledgeNotFoundError(alert_id)

            acknowledged = alert.acknowledge(user_id, now)
            await self._save(acknowledged)

        logger.info(
            "alert_acknowledged",
            alert_id=alert_id,
            rule_id=acknowledged.rule_id,
            acknowledged_by=user_id,
        )

        return acknowledged

    async def close_for_removed_rule(
        self,
        rule_id: str,
        now: datetime,
    ) -> Optional[LifecycleTransition]:
        """
        Resolve the open alert of a rule that was removed.

        Args:
            rule_id: The removed rule's identifier.
            now: Resolution time.

        Returns:
            Optional[LifecycleTransition]: A resolved transition, or None if
                the rule had no open alert.
        """
        async with self._lock_for(rule_id):
            open_alert = self.storage.get_open_alert(rule_id)
            if open_alert is None:
                return None
            return await self._resolve(open_alert, RESOLUTION_RULE_REMOVED, now)

    def _in_cooldown(self, rule: AlertRule, now: datetime) -> bool:
        if rule.last_triggered_at is None:
            return False
        return now - rule.last_triggered_at <= rule.cooldown

    async def _trigger(
        self,
        rule: AlertRule,
        result: EvaluationResult,
        now: datetime,
    ) -> Optional[LifecycleTransition]:
        if result.sample is None:
            logger.warning("alert_trigger_without_sample", rule_id=rule.id)
            return None

        alert = Alert.open_for(rule, result.sample, now)
        await self._save(alert)

        try:
            await self.registry.mark_triggered(rule.id, now)
        except StoreWriteError as e:
            logger.error(
                "rule_trigger_persist_failed",
                rule_id=rule.id,
                error=e.message,
            )

        logger.warning(
            "alert_triggered",
            alert_id=alert.id,
            rule_id=rule.id,
            severity=rule.severity.value,
            metric_name=rule.metric_name,
            mean_value=result.mean_value,
            threshold=rule.threshold,
            condition=rule.condition.value,
        )

        return LifecycleTransition(event=LifecycleEvent.TRIGGERED, alert=alert)

    async def _resolve(
        self,
        alert: Alert,
        resolution_type: str,
        now: datetime,
    ) -> LifecycleTransition:
        resolved = alert.resolve(resolution_type, now)
        await self._save(resolved)

        logger.info(
            "alert_resolved",
            alert_id=alert.id,
            rule_id=alert.rule_id,
            resolution_type=resolution_type,
            duration_seconds=resolved.duration_seconds,
        )

        return LifecycleTransition(event=LifecycleEvent.RESOLVED, alert=resolved)

    async def _save(self, alert: Alert) -> None:
        try:
            await self.storage.save(alert)
        except StoreWriteError as e:
            logger.error(
                "alert_persist_failed",
                alert_id=alert.id,
                rule_id=alert.rule_id,
                error=e.message,
            )


def create_lifecycle_manager(
    registry: RuleRegistry,
    storage: AlertStorage,
) -> AlertLifecycleManager:
    """
    Factory function to create an AlertLifecycleManager.

    Args:
        registry: Rule registry.
        storage: Alert storage.

    Returns:
        AlertLifecycleManager: A new manager instance.
    """
    return AlertLifecycleManager(registry, storage)

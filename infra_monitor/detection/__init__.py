"""
Alert detection and notification.

This module contains the rule evaluation pipeline: the rule registry, the
sliding-window evaluator, the alert lifecycle state machine, alert storage,
notification dispatch and the periodic scheduler.

Components:
    registry: RuleRegistry and RedisRuleRepository
    evaluator: AlertEvaluator with sliding-window mean
    manager: AlertLifecycleManager (trigger, acknowledge, resolve)
    storage: AlertStorage with optional Redis write-through
    dispatcher: ChannelDispatcher fanning out to channels
    scheduler: MonitoringScheduler periodic driver
    channels: Console, email, Slack and webhook channels

Example:
    >>> from infra_monitor.detection import (
    ...     AlertEvaluator,
    ...     AlertLifecycleManager,
    ...     AlertStorage,
    ...     RuleRegistry,
    ... )
    >>> registry = RuleRegistry(rules)
    >>> manager = AlertLifecycleManager(registry, AlertStorage())
"""

from infra_monitor.detection.dispatcher import (
    AlertChannel,
    ChannelDispatcher,
    create_dispatcher,
)
from infra_monitor.detection.evaluator import (
    MAX_WINDOW_SAMPLES,
    SKIP_NO_DATA,
    SKIP_RULE_DISABLED,
    AlertEvaluator,
    create_evaluator,
)
from infra_monitor.detection.manager import (
    RESOLUTION_AUTO,
    RESOLUTION_RULE_REMOVED,
    AlertLifecycleManager,
    create_lifecycle_manager,
)
from infra_monitor.detection.registry import RedisRuleRepository, RuleRegistry
from infra_monitor.detection.scheduler import MonitoringScheduler
from infra_monitor.detection.storage import AlertStorage

__all__ = [
    # Registry
    "RuleRegistry",
    "RedisRuleRepository",
    # Evaluator
    "AlertEvaluator",
    "create_evaluator",
    "MAX_WINDOW_SAMPLES",
    "SKIP_NO_DATA",
    "SKIP_RULE_DISABLED",
    # Manager
    "AlertLifecycleManager",
    "create_lifecycle_manager",
    "RESOLUTION_AUTO",
    "RESOLUTION_RULE_REMOVED",
    # Storage
    "AlertStorage",
    # Dispatcher
    "AlertChannel",
    "ChannelDispatcher",
    "create_dispatcher",
    # Scheduler
    "MonitoringScheduler",
]

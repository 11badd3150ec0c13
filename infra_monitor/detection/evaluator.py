"""
Alert evaluator with sliding-window aggregation.

This module provides the AlertEvaluator class which decides whether a
rule's condition currently holds, based on the mean of the most recent
samples of the rule's metric.

Key Features:
    - Window of [now - window_minutes, now], newest first
    - At most MAX_WINDOW_SAMPLES points aggregated
    - Empty window returns skip_reason="no_data" (never an error)
    - Disabled rules return skip_reason="rule_disabled" without a query

Example:
    >>> evaluator = AlertEvaluator(store)
    >>> result = await evaluator.evaluate(rule, now)
    >>> if result.condition_met:
    ...     print(f"{rule.id}: mean {result.mean_value}")
"""

from datetime import datetime
from typing import Sequence

import structlog

from infra_monitor.models.alerts import AlertRule, EvaluationResult
from infra_monitor.models.metrics import MetricSample
from infra_monitor.storage.metric_store import MetricStore

logger = structlog.get_logger(__name__)


# Number of most recent samples aggregated per evaluation
MAX_WINDOW_SAMPLES = 10

SKIP_NO_DATA = "no_data"
SKIP_RULE_DISABLED = "rule_disabled"


class AlertEvaluator:
    """
    Evaluates alert rules against the metric store.

    The evaluator is stateless apart from its store reference; lifecycle
    decisions (cooldown, open alerts) belong to the lifecycle manager.

    Attributes:
        store: Metric store queried for window samples.
        max_samples: Cap on aggregated samples.

    Example:
        >>> evaluator = AlertEvaluator(store)
        >>> result = await evaluator.evaluate(
        ...     AlertRule(
        ...         id="high-cpu-usage",
        ...         name="High CPU Usage",
        ...         metric_name="cpu_usage",
        ...         condition=AlertCondition.GT,
        ...         threshold=80,
        ...         channels=["console"],
        ...     ),
        ...     now,
        ... )
    """

    def __init__(self, store: MetricStore, max_samples: int = MAX_WINDOW_SAMPLES) -> None:
        self.store = store
        self.max_samples = max_samples

    async def evaluate(self, rule: AlertRule, now: datetime) -> EvaluationResult:
        """
        Evaluate a rule at `now`.

        Args:
            rule: The rule to evaluate.
            now: Evaluation time; the window ends here.

        Returns:
            EvaluationResult: Whether the condition is met, with the
                representative sample and aggregated mean.

        Example:
            >>> result = await evaluator.evaluate(rule, now)
            >>> if result.skip_reason == "no_data":
            ...     print("Nothing collected in the window yet")
        """
        if not rule.enabled:
            return EvaluationResult(
                rule_id=rule.id,
                condition_met=False,
                skip_reason=SKIP_RULE_DISABLED,
            )

        samples = await self.store.query(
            rule.metric_name,
            now - rule.window,
            now,
            limit=self.max_samples,
            descending=True,
        )

        return self.evaluate_samples(rule, samples)

    def evaluate_samples(
        self,
        rule: AlertRule,
        samples: Sequence[MetricSample],
    ) -> EvaluationResult:
        """
        Aggregate window samples and compare the mean to the threshold.

        Args:
            rule: The rule being evaluated.
            samples: Window samples, in any order.

        Returns:
            EvaluationResult: Comparison outcome.
        """
        if not samples:
            logger.debug(
                "rule_evaluation_no_data",
                rule_id=rule.id,
                metric_name=rule.metric_name,
            )
            return EvaluationResult(
                rule_id=rule.id,
                condition_met=False,
                skip_reason=SKIP_NO_DATA,
            )

        window = sorted(samples, key=lambda s: s.timestamp, reverse=True)[: self.max_samples]
        mean_value = sum(s.value for s in window) / len(window)
        condition_met = rule.condition.evaluate(mean_value, rule.threshold)

        logger.debug(
            "rule_evaluated",
            rule_id=rule.id,
            mean_value=mean_value,
            condition=f"{rule.condition.symbol} {rule.threshold}",
            sample_count=len(window),
            condition_met=condition_met,
        )

        return EvaluationResult(
            rule_id=rule.id,
            condition_met=condition_met,
            sample=window[0],
            mean_value=mean_value,
            sample_count=len(window),
        )


def create_evaluator(store: MetricStore) -> AlertEvaluator:
    """
    Factory function to create an AlertEvaluator.

    Args:
        store: Metric store to query.

    Returns:
        AlertEvaluator: A new evaluator instance.
    """
    return AlertEvaluator(store)

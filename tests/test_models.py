"""
Tests for metric and alert models.
"""

from datetime import datetime, timedelta

import pytest
from pydantic import ValidationError

from conftest import START, make_rule, make_sample
from infra_monitor.models import (
    Alert,
    AlertCondition,
    AlertHistoryFilter,
    AlertSeverity,
    AlertStatus,
    MetricSample,
    RawSample,
)


class TestAlertCondition:
    """Test suite for comparison operators"""

    @pytest.mark.parametrize(
        "condition,value,expected",
        [
            (AlertCondition.GT, 81.0, True),
            (AlertCondition.GT, 80.0, False),
            (AlertCondition.GTE, 80.0, True),
            (AlertCondition.LT, 79.9, True),
            (AlertCondition.LTE, 80.0, True),
            (AlertCondition.LTE, 80.1, False),
            (AlertCondition.EQ, 80.0, True),
            (AlertCondition.EQ, 80.0000001, False),
        ],
    )
    def test_evaluate(self, condition, value, expected):
        """Test each operator against a threshold of 80"""
        assert condition.evaluate(value, 80.0) is expected

    def test_symbols(self):
        """Test operator symbols used in log context"""
        assert AlertCondition.GT.symbol == ">"
        assert AlertCondition.LTE.symbol == "<="


class TestAlertRule:
    """Test suite for AlertRule validation"""

    def test_channels_are_deduplicated_in_order(self):
        """Test duplicate channel names collapse, keeping first-seen order"""
        rule = make_rule(channels=["slack", "email", "slack", "console", "email"])

        assert rule.channels == ["slack", "email", "console"]

    def test_enabled_rule_requires_channels(self):
        """Test an enabled rule without channels is rejected"""
        with pytest.raises(ValidationError):
            make_rule(channels=[])

    def test_disabled_rule_may_have_no_channels(self):
        """Test a disabled rule may omit channels"""
        rule = make_rule(enabled=False, channels=[])

        assert rule.channels == []

    def test_window_must_be_positive(self):
        """Test window_minutes below 1 is rejected"""
        with pytest.raises(ValidationError):
            make_rule(window_minutes=0)

    def test_rule_is_frozen(self):
        """Test rules are immutable"""
        rule = make_rule()

        with pytest.raises(ValidationError):
            rule.threshold = 90

    def test_mark_triggered_returns_copy(self):
        """Test mark_triggered leaves the original untouched"""
        rule = make_rule()
        updated = rule.mark_triggered(START)

        assert rule.last_triggered_at is None
        assert updated.last_triggered_at == START
        assert updated.cooldown == timedelta(minutes=10)

    def test_naive_last_triggered_at_rejected(self):
        """Test a naive trigger time is rejected at validation"""
        with pytest.raises(ValidationError):
            make_rule(last_triggered_at=datetime(2024, 1, 1))

    def test_aware_last_triggered_at_accepted(self):
        """Test an aware trigger time is kept"""
        assert make_rule(last_triggered_at=START).last_triggered_at == START


class TestMetricSample:
    """Test suite for MetricSample"""

    def test_naive_timestamp_rejected(self):
        """Test naive datetimes are rejected"""
        with pytest.raises(ValidationError):
            make_sample(85.0, timestamp=datetime(2024, 1, 15, 12, 0, 0))

    def test_from_raw_stamps_collection_time(self):
        """Test from_raw uses the given timestamp, not the raw one"""
        raw = RawSample(
            resource_id="gcp-instance-2",
            metric_name="memory_usage",
            value=42.5,
            unit="percent",
            timestamp=START - timedelta(hours=1),
            tags={"region": "gcp-us-east-1"},
        )

        sample = MetricSample.from_raw("gcp", raw, START)

        assert sample.provider == "gcp"
        assert sample.timestamp == START
        assert sample.value == 42.5
        assert sample.tags == {"region": "gcp-us-east-1"}


class TestAlert:
    """Test suite for Alert transitions"""

    def test_open_for_builds_message(self):
        """Test the alert message includes rule and current value"""
        rule = make_rule()
        alert = Alert.open_for(rule, make_sample(85.0), START)

        assert alert.message == "High CPU Usage: CPU usage exceeds 80% (Current: 85.0percent)"
        assert alert.status == AlertStatus.ACTIVE
        assert alert.severity == AlertSeverity.HIGH
        assert alert.channels == ["console"]
        assert alert.is_open

    def test_acknowledge_then_resolve(self):
        """Test acknowledge and resolve set their timestamps"""
        alert = Alert.open_for(make_rule(), make_sample(85.0), START)

        acked = alert.acknowledge("ops-1", START + timedelta(minutes=1))
        resolved = acked.resolve("auto", START + timedelta(minutes=3))

        assert acked.status == AlertStatus.ACKNOWLEDGED
        assert acked.acknowledged_by == "ops-1"
        assert acked.is_open
        assert resolved.status == AlertStatus.RESOLVED
        assert resolved.resolution_type == "auto"
        assert resolved.duration_seconds == 180
        assert not resolved.is_open
        assert alert.status == AlertStatus.ACTIVE

    def test_alert_ids_are_unique(self):
        """Test each alert gets its own id"""
        rule = make_rule()
        first = Alert.open_for(rule, make_sample(85.0), START)
        second = Alert.open_for(rule, make_sample(85.0), START)

        assert first.id != second.id

    def test_alert_is_frozen(self):
        """Test alerts change only through transition copies"""
        alert = Alert.open_for(make_rule(), make_sample(85.0), START)

        with pytest.raises(ValidationError):
            alert.status = AlertStatus.RESOLVED

    def test_naive_created_at_rejected(self):
        """Test naive lifecycle timestamps are rejected"""
        with pytest.raises(ValidationError):
            Alert.open_for(make_rule(), make_sample(85.0), datetime(2024, 1, 15, 12, 0, 0))


class TestAlertHistoryFilter:
    """Test suite for history filtering"""

    def test_matches_all_criteria(self):
        """Test filter criteria are combined"""
        alert = Alert.open_for(make_rule(), make_sample(85.0), START)

        assert AlertHistoryFilter().matches(alert)
        assert AlertHistoryFilter(severity=AlertSeverity.HIGH, rule_id="high-cpu-usage").matches(alert)
        assert not AlertHistoryFilter(severity=AlertSeverity.LOW).matches(alert)
        assert not AlertHistoryFilter(start=START + timedelta(seconds=1)).matches(alert)
        assert not AlertHistoryFilter(status=AlertStatus.RESOLVED).matches(alert)

    @pytest.mark.parametrize("bound", ["start", "end"])
    def test_naive_bounds_rejected(self, bound):
        """Test naive start and end bounds are rejected"""
        with pytest.raises(ValidationError):
            AlertHistoryFilter(**{bound: datetime(2024, 1, 1)})

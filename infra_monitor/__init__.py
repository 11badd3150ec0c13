"""
Infrastructure Monitoring and Alerting Engine.

Polls infrastructure metrics from multiple cloud providers, evaluates
threshold rules over sliding windows with hysteresis and cooldown, manages
the alert lifecycle and fans notifications out across channels.

This package provides:
- Data models for metric samples, alert rules and alerts
- A metric collector with pluggable provider sources
- Rule registry, evaluator, lifecycle manager and dispatcher
- Configuration management
- In-memory and Redis storage backends
"""

__version__ = "0.1.0"

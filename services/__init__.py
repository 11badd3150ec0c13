"""
Service entry points for the monitoring engine.

Each subdirectory contains a standalone service.

Services:
    monitoring-engine: Metric collection, alert evaluation and notification
"""

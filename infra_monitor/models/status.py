"""
Engine status and per-cycle report models.

Models:
    CollectionReport: Outcome of collecting all providers in one cycle
    EngineStatus: Snapshot returned by MonitoringEngine.get_status()
"""

from datetime import datetime
from typing import Dict, Optional

from pydantic import BaseModel, Field


class CollectionReport(BaseModel):
    """
    Outcome of one collection pass.

    Attributes:
        samples_by_provider: Number of samples stored per provider.
        errors_by_provider: Error message per failed provider.
        retention_deleted: Samples removed by retention cleanup.
        retention_error: Retention cleanup error, if it failed.
    """

    samples_by_provider: Dict[str, int] = Field(default_factory=dict)
    errors_by_provider: Dict[str, str] = Field(default_factory=dict)
    retention_deleted: int = 0
    retention_error: Optional[str] = None

    @property
    def total_samples(self) -> int:
        """Total samples stored across providers."""
        return sum(self.samples_by_provider.values())

    @property
    def failed_providers(self) -> list[str]:
        """Providers whose collection failed."""
        return list(self.errors_by_provider.keys())


class EngineStatus(BaseModel):
    """
    Monitoring engine status snapshot.

    Attributes:
        enabled: Whether cycles are processed.
        running: Whether the scheduler loop is running.
        active_alert_count: Number of open alerts.
        total_rules: Number of registered rules.
        enabled_rules: Number of enabled rules.
        last_cycle_at: When the last cycle completed.
    """

    model_config = {"frozen": True, "extra": "forbid"}

    enabled: bool
    running: bool
    active_alert_count: int = Field(ge=0)
    total_rules: int = Field(ge=0)
    enabled_rules: int = Field(ge=0)
    last_cycle_at: Optional[datetime] = None

"""
Status models for pipeline monitoring.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional


class StatusLevel(str, Enum):
    """Pipeline status levels."""
    RUNNING = "running"
    DEGRADED = "degraded"
    OFFLINE = "offline"


@dataclass
class PipelineStatus:
    """
    Snapshot of pipeline health for the web API.

    Attributes:
        level: running (ticks flowing, detector healthy), degraded (detector
            failing) or offline (pipeline stopped).
        running: Whether the tick loop is active.
        detector: Detector name.
        detector_available: Last known detector availability.
        ticks: Ticks processed since start.
        dropped_ticks: Ticks skipped because one was still in flight.
        alerts_emitted: Alerts produced since start.
        detector_failures: Ticks where the detector failed.
        last_tick_ts: Unix time of the last processed tick.
        last_alert_message: Message of the most recent alert.
    """
    level: StatusLevel
    running: bool
    detector: str
    detector_available: bool
    ticks: int = 0
    dropped_ticks: int = 0
    alerts_emitted: int = 0
    detector_failures: int = 0
    last_tick_ts: Optional[float] = None
    last_alert_message: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "level": self.level.value,
            "running": self.running,
            "detector": self.detector,
            "detector_available": self.detector_available,
            "ticks": self.ticks,
            "dropped_ticks": self.dropped_ticks,
            "alerts_emitted": self.alerts_emitted,
            "detector_failures": self.detector_failures,
            "last_tick_ts": self.last_tick_ts,
            "last_alert_message": self.last_alert_message,
        }

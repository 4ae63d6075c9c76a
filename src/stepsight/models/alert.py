"""
Alert model for the single synthesized output of a tick.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from .detection import Detection


class AlertClass(str, Enum):
    """Alert severity classes."""
    URGENT = "urgent"
    WARNING = "warning"
    INFO = "info"


@dataclass(frozen=True)
class Alert:
    """
    An actionable obstacle alert.

    Attributes:
        detection: The representative detection, held by value.
        priority: Score used to pick this detection within its tick.
        alert_class: Urgent, Warning or Info.
        should_announce: Whether speech consumers should voice the message.
        should_actuate_haptic: Whether haptic consumers should vibrate.
        message: Natural-language alert text.
        suppress_until: Advisory timestamp; cooldown is enforced by the
            temporal filter, not by this field.
    """
    detection: Detection
    priority: float
    alert_class: AlertClass
    should_announce: bool
    should_actuate_haptic: bool
    message: str
    suppress_until: Optional[float] = None

    @property
    def is_urgent(self) -> bool:
        return self.alert_class == AlertClass.URGENT

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "detection": self.detection.to_dict(),
            "priority": self.priority,
            "alert_class": self.alert_class.value,
            "should_announce": self.should_announce,
            "should_actuate_haptic": self.should_actuate_haptic,
            "message": self.message,
            "suppress_until": self.suppress_until,
        }

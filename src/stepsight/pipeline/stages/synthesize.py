"""
Alert synthesis for the top-ranked detection of a tick.
"""

from __future__ import annotations

from typing import Optional

from stepsight.models.alert import Alert, AlertClass
from stepsight.models.config import CategoryConfig
from stepsight.models.detection import Detection


ANNOUNCE_MAX_STEPS = 8
HAPTIC_MAX_STEPS = 2
FAST_VELOCITY = 1.5
LEFT_EDGE = 0.3
RIGHT_EDGE = 0.7


def classify(detection: Detection, categories: CategoryConfig) -> AlertClass:
    steps = detection.steps
    if steps <= 1 or (detection.moving and steps <= 2):
        return AlertClass.URGENT
    if steps <= 3 or categories.is_critical(detection.label):
        return AlertClass.WARNING
    return AlertClass.INFO


def build_message(detection: Detection) -> str:
    """
    Compose the spoken message.

    Order: urgency prefix, "<label> ahead in N step(s)", movement suffix,
    direction suffix. E.g. "Caution! person ahead in 2 steps, moving to your left".
    """
    steps = detection.steps

    message = ""
    if steps == 1:
        message = "Stop! "
    elif steps == 2 and detection.moving:
        message = "Caution! "

    message += f"{detection.label} ahead in {steps} {'step' if steps == 1 else 'steps'}"

    if detection.moving:
        if detection.velocity_mps is not None and detection.velocity_mps > FAST_VELOCITY:
            message += ", moving fast"
        else:
            message += ", moving"

    if detection.center_x < LEFT_EDGE:
        message += " to your left"
    elif detection.center_x > RIGHT_EDGE:
        message += " to your right"

    return message


class AlertSynthesizer:
    """Builds the Alert for a tick's top detection."""

    def __init__(
        self,
        categories: CategoryConfig,
        cooldown_s: float = 4.0,
        haptics_supported: bool = True,
    ):
        self.categories = categories
        self.cooldown_s = cooldown_s
        self.haptics_supported = haptics_supported

    def synthesize(self, detection: Detection, priority: float, now: float) -> Alert:
        suppress_until: Optional[float] = None
        if detection.steps > HAPTIC_MAX_STEPS:
            suppress_until = now + self.cooldown_s

        return Alert(
            detection=detection,
            priority=priority,
            alert_class=classify(detection, self.categories),
            should_announce=detection.steps <= ANNOUNCE_MAX_STEPS,
            should_actuate_haptic=detection.steps <= HAPTIC_MAX_STEPS and self.haptics_supported,
            message=build_message(detection),
            suppress_until=suppress_until,
        )

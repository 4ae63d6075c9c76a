"""
Filter stages of the alert pipeline.

Applied strictly in this order each tick:
- ConfidenceGate: drops low-confidence detections on ingest
- CenterFilter: keeps objects in the forward path (before tracking)
- ProximityFilter: whitelist of alert-worthy detections (after tracking)
- TemporalFilter: per-label cooldown with safety override (after clustering)
"""

from __future__ import annotations

from typing import List

from stepsight.models.config import CategoryConfig
from stepsight.models.detection import Detection
from stepsight.pipeline.cooldown import CooldownTable
from stepsight.tracking.tracker import ObjectTracker


# Proximity whitelist rules (steps)
ALWAYS_ALERT_STEPS = 2
MOVING_MAX_STEPS = 6
CRITICAL_MAX_STEPS = 4
HIGH_CONFIDENCE = 0.8
HIGH_CONFIDENCE_MAX_STEPS = 5

# Detections this close are never suppressed by the cooldown
SAFETY_OVERRIDE_STEPS = 1


class ConfidenceGate:
    """Keep detections with confidence >= min_confidence."""

    def __init__(self, min_confidence: float = 0.6):
        self.min_confidence = min_confidence

    def process(self, detections: List[Detection]) -> List[Detection]:
        return [d for d in detections if d.confidence >= self.min_confidence]


class CenterFilter:
    """Keep detections with |center_x - 0.5| <= threshold."""

    def __init__(self, fov_threshold: float = 0.25, enabled: bool = True):
        self.fov_threshold = fov_threshold
        self.enabled = enabled

    def keeps(self, detection: Detection) -> bool:
        return abs(detection.center_x - 0.5) <= self.fov_threshold

    def process(self, detections: List[Detection]) -> List[Detection]:
        if not self.enabled:
            return list(detections)
        return [d for d in detections if self.keeps(d)]


class ProximityFilter:
    """
    Keep a detection iff any rule holds:
    - steps <= 2
    - moving and steps <= 6
    - critical label and steps <= 4
    - confidence > 0.8 and steps <= 5

    Objects must earn relevance; anything else is dropped.
    """

    def __init__(self, categories: CategoryConfig):
        self.categories = categories

    def keeps(self, detection: Detection) -> bool:
        steps = detection.steps
        if steps <= ALWAYS_ALERT_STEPS:
            return True
        if detection.moving and steps <= MOVING_MAX_STEPS:
            return True
        if self.categories.is_critical(detection.label) and steps <= CRITICAL_MAX_STEPS:
            return True
        if detection.confidence > HIGH_CONFIDENCE and steps <= HIGH_CONFIDENCE_MAX_STEPS:
            return True
        return False

    def process(self, detections: List[Detection]) -> List[Detection]:
        return [d for d in detections if self.keeps(d)]


class TemporalFilter:
    """
    Keep a detection iff any rule holds:
    - steps <= 1 (never suppressed)
    - the cooldown for its label has elapsed (or it was never alerted)
    - its track moved more than position_change_threshold in x since the
      earliest observation still in history
    """

    def __init__(self, cooldown_s: float = 4.0, position_change_threshold: float = 0.15):
        self.cooldown_s = cooldown_s
        self.position_change_threshold = position_change_threshold

    def keeps(
        self,
        detection: Detection,
        now: float,
        cooldowns: CooldownTable,
        tracker: ObjectTracker,
    ) -> bool:
        if detection.steps <= SAFETY_OVERRIDE_STEPS:
            return True
        last_alert = cooldowns.last_alert(detection.label)
        if last_alert is None or now - last_alert >= self.cooldown_s:
            return True
        return tracker.displacement_x(detection) > self.position_change_threshold

    def process(
        self,
        detections: List[Detection],
        now: float,
        cooldowns: CooldownTable,
        tracker: ObjectTracker,
    ) -> List[Detection]:
        return [d for d in detections if self.keeps(d, now, cooldowns, tracker)]

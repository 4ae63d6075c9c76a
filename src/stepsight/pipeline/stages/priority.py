"""
Priority scoring for surviving detections.

Scores are additive and unnormalized; they only rank detections within a
single tick.
"""

from __future__ import annotations

from typing import List, Tuple

from stepsight.models.config import CategoryConfig
from stepsight.models.detection import Detection


def _proximity_score(steps: int) -> float:
    if steps <= 1:
        return 50.0
    if steps <= 2:
        return 30.0
    if steps <= 4:
        return 15.0
    return float(max(0, 10 - steps))


def _category_score(label: str, categories: CategoryConfig) -> float:
    if categories.is_critical(label):
        return 20.0
    if categories.is_warning(label):
        return 10.0
    if categories.is_info(label):
        return 5.0
    return 0.0


def score(detection: Detection, categories: CategoryConfig) -> float:
    """
    Priority of a detection.

    proximity (50/30/15/max(0, 10 - steps)) + center bonus (1 - |x - 0.5|) * 10
    + category bonus (20/10/5/0) + movement bonus (15, +10 above 1 unit/s)
    + confidence * 8.
    """
    priority = _proximity_score(detection.steps)
    priority += (1 - abs(detection.center_x - 0.5)) * 10
    priority += _category_score(detection.label, categories)
    if detection.moving:
        priority += 15
        if detection.velocity_mps is not None and detection.velocity_mps > 1:
            priority += 10
    priority += detection.confidence * 8
    return priority


def rank(detections: List[Detection], categories: CategoryConfig) -> List[Tuple[Detection, float]]:
    """Return (detection, priority) pairs, highest first; ties keep input order."""
    scored = [(d, score(d, categories)) for d in detections]
    return sorted(scored, key=lambda pair: pair[1], reverse=True)

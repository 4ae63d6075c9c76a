"""
Distance to step conversion and monocular distance estimation.
"""

from __future__ import annotations

import math
from typing import Mapping, Optional

from stepsight.errors import ConfigurationError


# Typical real-world object heights used for the pinhole distance estimate
DEFAULT_OBJECT_HEIGHTS_M = {
    "person": 1.7,
    "car": 4.5,
    "bicycle": 1.8,
    "motorcycle": 2.0,
    "truck": 8.0,
    "bus": 12.0,
    "chair": 0.8,
    "table": 1.2,
    "door": 2.0,
    "pole": 0.2,
    "bench": 1.5,
    "bottle": 0.25,
    "cup": 0.1,
    "default": 1.0,
}

DEFAULT_FOCAL_LENGTH_PX = 600.0
MIN_DISTANCE_M = 0.5
MAX_DISTANCE_M = 20.0


def steps_for(distance_m: float, step_length_cm: float) -> int:
    """
    Convert a distance in meters to a whole number of steps.

    steps = ceil(distance_m / (step_length_cm / 100)). The step length is
    validated once at configuration time (see StepConverter), not per call.
    """
    # Rounding before ceil keeps 1.3 m / 65 cm at exactly 2 steps.
    ratio = round(distance_m * 100.0 / step_length_cm, 9)
    return max(0, int(math.ceil(ratio)))


class StepConverter:
    """Step length bound to a validated value."""

    def __init__(self, step_length_cm: float):
        if step_length_cm is None or step_length_cm <= 0:
            raise ConfigurationError(
                f"step_length_cm must be positive, got {step_length_cm!r}"
            )
        self.step_length_cm = float(step_length_cm)

    @property
    def step_length_m(self) -> float:
        return self.step_length_cm / 100.0

    def steps(self, distance_m: float) -> int:
        return steps_for(distance_m, self.step_length_cm)


def estimate_distance(
    label: str,
    normalized_height: float,
    image_height_px: float,
    object_heights_m: Optional[Mapping[str, float]] = None,
    focal_length_px: float = DEFAULT_FOCAL_LENGTH_PX,
    min_distance_m: float = MIN_DISTANCE_M,
    max_distance_m: float = MAX_DISTANCE_M,
) -> float:
    """
    Estimate distance from apparent object height.

    Uses distance = real_height * focal_length / pixel_height, which is a
    rough approximation without camera calibration. The result is clamped to
    [min_distance_m, max_distance_m].

    Args:
        label: Detection label, looked up in object_heights_m.
        normalized_height: Box height as a fraction of the image height.
        image_height_px: Image height in pixels.
        object_heights_m: Label -> typical height table. A "default" entry
            is used for unknown labels.
        focal_length_px: Assumed focal length in pixels.
    """
    heights = object_heights_m or DEFAULT_OBJECT_HEIGHTS_M
    real_height = heights.get(label, heights.get("default", 1.0))
    pixel_height = normalized_height * image_height_px
    if pixel_height <= 0:
        return max_distance_m
    estimate = real_height * focal_length_px / pixel_height
    return max(min_distance_m, min(max_distance_m, estimate))

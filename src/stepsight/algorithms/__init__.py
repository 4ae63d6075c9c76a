"""
Pure geometry helpers shared by detectors and pipeline stages.
"""

from .distance import (
    DEFAULT_OBJECT_HEIGHTS_M,
    StepConverter,
    estimate_distance,
    steps_for,
)

__all__ = [
    "DEFAULT_OBJECT_HEIGHTS_M",
    "StepConverter",
    "estimate_distance",
    "steps_for",
]

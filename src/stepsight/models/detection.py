"""
Detection models for per-tick object observations.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Dict, Optional

from stepsight.algorithms.distance import steps_for


@dataclass(frozen=True)
class Detection:
    """
    One observed object in one tick.

    Positions and extents are normalized to [0, 1] in image space.

    Attributes:
        id: Opaque identifier from the detector (or the clusterer for merged results).
        label: Semantic category, e.g. "person" or "chair".
        confidence: Detection confidence score (0-1).
        center_x: Normalized horizontal center.
        center_y: Normalized vertical center.
        width: Normalized bounding box width.
        height: Normalized bounding box height.
        distance_m: Estimated physical distance in meters.
        steps: Distance expressed in user steps. Always derived from distance_m.
        timestamp: Tick time (unix seconds).
        is_moving: Set by the tracker; None until tracked.
        velocity_mps: Set by the tracker when is_moving.
    """
    id: str
    label: str
    confidence: float
    center_x: float
    center_y: float
    width: float
    height: float
    distance_m: float
    steps: int
    timestamp: float
    is_moving: Optional[bool] = None
    velocity_mps: Optional[float] = None

    @property
    def moving(self) -> bool:
        """is_moving with the untracked state treated as stationary."""
        return bool(self.is_moving)

    @classmethod
    def from_xyxy(
        cls,
        id: str,
        label: str,
        confidence: float,
        x1: float,
        y1: float,
        x2: float,
        y2: float,
        image_width: float,
        image_height: float,
        distance_m: float,
        step_length_cm: float,
        timestamp: float,
    ) -> "Detection":
        """Create a normalized Detection from a pixel-space box."""
        return cls(
            id=id,
            label=label,
            confidence=confidence,
            center_x=(x1 + x2) / 2 / image_width,
            center_y=(y1 + y2) / 2 / image_height,
            width=(x2 - x1) / image_width,
            height=(y2 - y1) / image_height,
            distance_m=distance_m,
            steps=steps_for(distance_m, step_length_cm),
            timestamp=timestamp,
        )

    @classmethod
    def from_dict(cls, d: Dict[str, Any], step_length_cm: float = 65.0) -> "Detection":
        """
        Adapter: Create from a plain dict (scripted detector files, API payloads).

        `steps` is derived from `distance_m`; a `steps` key in the dict is ignored.
        """
        distance_m = float(d.get("distance_m", 0.0))
        return cls(
            id=str(d.get("id", "")),
            label=str(d["label"]),
            confidence=float(d.get("confidence", 1.0)),
            center_x=float(d.get("center_x", 0.5)),
            center_y=float(d.get("center_y", 0.5)),
            width=float(d.get("width", 0.1)),
            height=float(d.get("height", 0.1)),
            distance_m=distance_m,
            steps=steps_for(distance_m, step_length_cm),
            timestamp=float(d.get("timestamp", 0.0)),
            is_moving=d.get("is_moving"),
            velocity_mps=d.get("velocity_mps"),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "label": self.label,
            "confidence": self.confidence,
            "center_x": self.center_x,
            "center_y": self.center_y,
            "width": self.width,
            "height": self.height,
            "distance_m": self.distance_m,
            "steps": self.steps,
            "timestamp": self.timestamp,
            "is_moving": self.is_moving,
            "velocity_mps": self.velocity_mps,
        }


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


@dataclass(frozen=True)
class TrackKey:
    """
    Stable identity of one physical object across ticks.

    Attributes:
        label: Detection label.
        x_bucket: center_x quantized to tenths (0..10).
    """
    label: str
    x_bucket: int

    @classmethod
    def for_detection(cls, detection: Detection) -> "TrackKey":
        return cls(label=detection.label, x_bucket=_round_half_up(detection.center_x * 10))

    def __str__(self) -> str:
        return f"{self.label}_{self.x_bucket}"

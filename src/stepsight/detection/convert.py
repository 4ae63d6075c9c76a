"""
Pixel box -> normalized Detection conversion shared by frame-based detectors.
"""

from __future__ import annotations

from typing import Iterable, List

from stepsight.algorithms.distance import estimate_distance
from stepsight.inference.backend import RawDetection
from stepsight.models.config import DistanceConfig
from stepsight.models.detection import Detection
from .base import TickContext


def box_to_detection(
    box: RawDetection,
    detection_id: str,
    image_width: float,
    image_height: float,
    context: TickContext,
    distance_cfg: DistanceConfig,
) -> Detection:
    """
    Normalize a pixel box and attach an estimated distance.

    Boxes are clipped to the image before normalizing.
    """
    x1 = min(max(box.x1, 0.0), image_width)
    x2 = min(max(box.x2, 0.0), image_width)
    y1 = min(max(box.y1, 0.0), image_height)
    y2 = min(max(box.y2, 0.0), image_height)

    distance_m = estimate_distance(
        box.label,
        normalized_height=(y2 - y1) / image_height,
        image_height_px=image_height,
        object_heights_m=distance_cfg.object_heights_m,
        focal_length_px=distance_cfg.focal_length_px,
        min_distance_m=distance_cfg.min_distance_m,
        max_distance_m=distance_cfg.max_distance_m,
    )
    return Detection.from_xyxy(
        id=detection_id,
        label=box.label,
        confidence=box.confidence,
        x1=x1,
        y1=y1,
        x2=x2,
        y2=y2,
        image_width=image_width,
        image_height=image_height,
        distance_m=distance_m,
        step_length_cm=context.step_length_cm,
        timestamp=context.timestamp,
    )


def boxes_to_detections(
    boxes: Iterable[RawDetection],
    id_prefix: str,
    image_width: float,
    image_height: float,
    context: TickContext,
    distance_cfg: DistanceConfig,
) -> List[Detection]:
    """Convert a frame's boxes; ids are "<prefix>_<label>_<index>"."""
    return [
        box_to_detection(
            box,
            f"{id_prefix}_{box.label}_{i}",
            image_width,
            image_height,
            context,
            distance_cfg,
        )
        for i, box in enumerate(boxes)
    ]

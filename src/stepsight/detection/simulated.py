"""
Simulated detector for demos and development without a camera.

Draws a small number of plausible obstacles per tick:
- 0 objects 70%, 1 object 24%, 2 objects 6%
- distance 0.5-1.5 m (10%), 1.5-3 m (20%), 3-7 m (70%)
- center-biased horizontal position in [0.3, 0.7]
- confidence 0.6-0.9, lowered beyond 5 m, raised for critical labels
- 20% flagged as moving at 0.5-2 m/s
"""

from __future__ import annotations

import logging
from typing import List, Optional

import numpy as np

from stepsight.models.config import CategoryConfig
from stepsight.models.detection import Detection
from .base import Detector, TickContext


class SimulatedDetector(Detector):
    """
    Seeded random detection source.

    Args:
        categories: Label classes to draw from.
        seed: Seed for numpy's Generator; None draws fresh entropy.
    """

    name = "simulated"

    def __init__(self, categories: Optional[CategoryConfig] = None, seed: Optional[int] = None):
        super().__init__()
        self.categories = categories or CategoryConfig()
        self._labels = list(
            dict.fromkeys(self.categories.critical + self.categories.warning + self.categories.info)
        )
        self._rng = np.random.default_rng(seed)
        logging.info(f"SimulatedDetector initialized: {len(self._labels)} labels, seed={seed}")

    def produce_detections(self, context: TickContext) -> List[Detection]:
        return [self._draw(context, i) for i in range(self._object_count())]

    def _object_count(self) -> int:
        if self._rng.random() < 0.7:
            return 0
        return 1 if self._rng.random() < 0.8 else 2

    def _distance(self) -> float:
        band = self._rng.random()
        if band < 0.1:
            return 0.5 + self._rng.random() * 1.0
        if band < 0.3:
            return 1.5 + self._rng.random() * 1.5
        return 3.0 + self._rng.random() * 4.0

    def _draw(self, context: TickContext, index: int) -> Detection:
        rng = self._rng
        label = self._labels[int(rng.integers(len(self._labels)))]
        distance_m = self._distance()

        confidence = 0.6 + rng.random() * 0.3
        if distance_m > 5:
            confidence *= 0.8
        if self.categories.is_critical(label):
            confidence += 0.1

        is_moving = bool(rng.random() < 0.2)
        velocity = 0.5 + rng.random() * 1.5 if is_moving else None

        return Detection.from_dict(
            {
                "id": f"sim_{label}_{context.tick_index}_{index}",
                "label": label,
                "confidence": min(confidence, 1.0),
                "center_x": 0.3 + rng.random() * 0.4,
                "center_y": 0.2 + rng.random() * 0.6,
                "width": 0.1 + rng.random() * 0.2,
                "height": 0.15 + rng.random() * 0.25,
                "distance_m": distance_m,
                "timestamp": context.timestamp,
                "is_moving": is_moving,
                "velocity_mps": velocity,
            },
            step_length_cm=context.step_length_cm,
        )

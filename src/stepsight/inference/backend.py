"""
Inference backend interface.

Backends return pixel-space boxes in the original frame coordinate system;
conversion to normalized Detections (with distance) happens in the detector.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Protocol

import numpy as np


@dataclass(frozen=True)
class RawDetection:
    x1: float
    y1: float
    x2: float
    y2: float
    confidence: float = 1.0
    class_id: Optional[int] = None
    class_name: Optional[str] = None

    @property
    def label(self) -> str:
        if self.class_name:
            return self.class_name
        return str(self.class_id) if self.class_id is not None else "object"


class InferenceBackend(Protocol):
    def detect(self, frame: np.ndarray) -> List[RawDetection]:
        ...

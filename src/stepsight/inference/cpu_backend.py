"""
CPU inference backend for the on-device detector.

Uses Ultralytics if installed; the package is an optional extra so the
simulated, scripted and remote detectors work without it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

import numpy as np

from stepsight.models.config import ModelDetectorConfig
from .backend import InferenceBackend, RawDetection


@dataclass(frozen=True)
class CpuYoloConfig:
    model: str
    conf_threshold: float = 0.25
    iou_threshold: float = 0.45
    classes: Optional[Sequence[int]] = None
    class_name_overrides: Optional[Dict[int, str]] = None

    @classmethod
    def from_model_config(cls, cfg: ModelDetectorConfig) -> "CpuYoloConfig":
        return cls(
            model=cfg.model,
            conf_threshold=cfg.conf_threshold,
            iou_threshold=cfg.iou_threshold,
            classes=cfg.classes,
        )


def _to_numpy(values) -> np.ndarray:
    return values.cpu().numpy() if hasattr(values, "cpu") else np.asarray(values)


class UltralyticsCpuBackend(InferenceBackend):
    def __init__(self, cfg: CpuYoloConfig):
        self.cfg = cfg
        try:
            from ultralytics import YOLO  # type: ignore
        except Exception as e:  # pragma: no cover
            raise ImportError(
                "Ultralytics is not installed. Install with `pip install stepsight[model]` "
                "or switch detector.backend to 'simulated' or 'remote'."
            ) from e

        self._model = YOLO(cfg.model)
        logging.info(f"UltralyticsCpuBackend initialized: model={cfg.model}")

    def detect(self, frame: np.ndarray) -> List[RawDetection]:
        results = self._model.predict(
            source=frame,
            conf=self.cfg.conf_threshold,
            iou=self.cfg.iou_threshold,
            classes=list(self.cfg.classes) if self.cfg.classes is not None else None,
            verbose=False,
        )
        if not results:
            return []

        r0 = results[0]
        names = getattr(r0, "names", None) or {}
        boxes = getattr(r0, "boxes", None)
        if boxes is None:
            return []

        out: List[RawDetection] = []
        for (x1, y1, x2, y2), c, k in zip(_to_numpy(boxes.xyxy), _to_numpy(boxes.conf), _to_numpy(boxes.cls)):
            class_id = int(k)
            class_name = (
                (self.cfg.class_name_overrides or {}).get(class_id)
                or names.get(class_id)
                or str(class_id)
            )
            out.append(
                RawDetection(
                    x1=float(x1),
                    y1=float(y1),
                    x2=float(x2),
                    y2=float(y2),
                    confidence=float(c),
                    class_id=class_id,
                    class_name=class_name,
                )
            )

        return out

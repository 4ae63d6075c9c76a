"""
On-device model detector: camera frame -> inference backend -> Detections.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from stepsight.errors import DetectorUnavailable
from stepsight.inference.backend import InferenceBackend
from stepsight.models.config import DistanceConfig
from stepsight.models.detection import Detection
from stepsight.observation.base import ObservationSource
from .base import Detector, TickContext
from .convert import boxes_to_detections


class ModelDetector(Detector):
    """
    Runs an inference backend on the latest frame of an observation source.

    Example:
        source = OpenCVSource(OpenCVSourceConfig.from_camera_config(cfg.camera))
        backend = UltralyticsCpuBackend(CpuYoloConfig.from_model_config(cfg.detector.model))
        detector = ModelDetector(source, backend)
    """

    name = "model"

    def __init__(
        self,
        source: ObservationSource,
        backend: InferenceBackend,
        distance_cfg: Optional[DistanceConfig] = None,
    ):
        """
        Args:
            source: Frame provider; opened and closed with the detector.
            backend: Returns pixel-space boxes for a frame.
            distance_cfg: Distance estimation parameters.
        """
        super().__init__()
        self.source = source
        self.backend = backend
        self.distance_cfg = distance_cfg or DistanceConfig()
        logging.info(f"ModelDetector initialized: source={source.source_id}")

    @property
    def is_available(self) -> bool:
        return self._is_open and self.source.is_open

    def open(self) -> None:
        try:
            self.source.open()
        except RuntimeError as e:
            raise DetectorUnavailable(f"Camera unavailable: {e}") from e
        super().open()

    def close(self) -> None:
        self.source.close()
        super().close()

    def produce_detections(self, context: TickContext) -> List[Detection]:
        if not self.source.is_open:
            raise DetectorUnavailable(f"Observation source {self.source.source_id} is not open")

        frame_data = self.source.read()
        if frame_data is None:
            raise DetectorUnavailable(f"No frame from {self.source.source_id}")

        boxes = self.backend.detect(frame_data.frame)
        return boxes_to_detections(
            boxes,
            id_prefix=f"model_{context.tick_index}",
            image_width=frame_data.width,
            image_height=frame_data.height,
            context=context,
            distance_cfg=self.distance_cfg,
        )

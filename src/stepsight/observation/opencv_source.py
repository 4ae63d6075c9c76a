"""
OpenCV-based observation source.

Supports:
- USB/CSI cameras (device_id as int, e.g., 0)
- Video files (device_id as file path)
"""

from __future__ import annotations

import logging
import os
import time
from dataclasses import dataclass
from typing import Optional, Union

import cv2

from stepsight.models.config import CameraConfig
from stepsight.models.frame import FrameData
from .base import ObservationConfig, ObservationSource


@dataclass
class OpenCVSourceConfig(ObservationConfig):
    """
    Configuration for OpenCV-based observation sources.

    Attributes:
        device_id: Camera index (int) or video file path (str).
        buffer_size: OpenCV capture buffer size (keeps live frames fresh).
        max_retries: Maximum attempts to open the device.
    """
    device_id: Union[int, str] = 0
    buffer_size: int = 1
    max_retries: int = 3

    @classmethod
    def from_camera_config(cls, camera_cfg: CameraConfig, source_id: str = "camera") -> "OpenCVSourceConfig":
        """Adapter: Create OpenCVSourceConfig from the typed camera config."""
        resolution = tuple(camera_cfg.resolution) if camera_cfg.resolution else None
        return cls(
            source_id=source_id,
            resolution=resolution,
            fps=camera_cfg.fps,
            device_id=camera_cfg.device_id,
        )


class OpenCVSource(ObservationSource):
    """
    Wraps cv2.VideoCapture to provide frames as FrameData objects.

    Example:
        config = OpenCVSourceConfig(device_id=0, resolution=(640, 480))
        with OpenCVSource(config) as source:
            frame_data = source.read()
    """

    def __init__(self, config: OpenCVSourceConfig):
        super().__init__(config)
        self._opencv_config = config
        self._cap: Optional[cv2.VideoCapture] = None

    @property
    def device_id(self) -> Union[int, str]:
        return self._opencv_config.device_id

    @property
    def is_file(self) -> bool:
        return isinstance(self.device_id, str) and os.path.exists(self.device_id)

    def open(self) -> None:
        """Open the camera or video file."""
        if self._is_open:
            return

        for attempt in range(1, self._opencv_config.max_retries + 1):
            self._cap = cv2.VideoCapture(self.device_id)
            if self._cap.isOpened():
                break
            self._cap.release()
            self._cap = None
            if attempt < self._opencv_config.max_retries:
                wait_time = min(2 ** attempt, 10)
                logging.warning(f"Failed to open device {self.device_id}, retrying in {wait_time}s")
                time.sleep(wait_time)

        if self._cap is None:
            raise RuntimeError(
                f"Failed to open device {self.device_id} after "
                f"{self._opencv_config.max_retries} attempts"
            )

        if isinstance(self.device_id, int) and self._opencv_config.resolution:
            w, h = self._opencv_config.resolution
            self._cap.set(cv2.CAP_PROP_FRAME_WIDTH, w)
            self._cap.set(cv2.CAP_PROP_FRAME_HEIGHT, h)
            if self._opencv_config.fps:
                self._cap.set(cv2.CAP_PROP_FPS, self._opencv_config.fps)
            self._cap.set(cv2.CAP_PROP_BUFFERSIZE, self._opencv_config.buffer_size)

        self._is_open = True
        self._frame_index = 0
        logging.info(
            f"OpenCVSource opened: source_id={self.source_id}, device={self.device_id}, "
            f"resolution={self._opencv_config.resolution}"
        )

    def read(self) -> Optional[FrameData]:
        """Read the next frame, or None when the device yields nothing."""
        if not self._is_open or self._cap is None:
            return None

        ret, frame = self._cap.read()
        if not ret or frame is None:
            logging.debug(f"OpenCVSource {self.source_id}: frame read failed")
            return None

        self._frame_index += 1
        return FrameData.from_numpy(
            frame,
            timestamp=time.time(),
            frame_index=self._frame_index,
            source=self.source_id,
        )

    def close(self) -> None:
        if self._cap is not None:
            self._cap.release()
            self._cap = None
        if self._is_open:
            logging.info(f"OpenCVSource closed: source_id={self.source_id}")
        self._is_open = False

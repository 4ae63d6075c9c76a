"""
Remote detector: posts camera frames to an HTTP detection backend.

Protocol:
    POST {api_url}/detect
        {"image": <base64 JPEG>, "confidence_threshold": float, "center_focus_only": bool}
    -> {"detections": [{"label", "confidence", "bbox": [x1, y1, x2, y2]}],
        "image_width", "image_height", "processing_time"}

    GET {api_url}/health -> 200 when the backend is ready
"""

from __future__ import annotations

import base64
import json
import logging
import time
from typing import Any, Callable, Dict, List, Optional
from urllib import error, request

import cv2
import numpy as np

from stepsight.errors import DetectorUnavailable
from stepsight.inference.backend import RawDetection
from stepsight.models.config import DistanceConfig, RemoteDetectorConfig
from stepsight.models.detection import Detection
from stepsight.observation.base import ObservationSource
from .base import Detector, TickContext
from .convert import boxes_to_detections


class RemoteDetector(Detector):
    """
    Detection over HTTP with periodic health probing.

    The backend is probed on open() and then at most once per
    health_check_interval_s. While the last probe failed, produce_detections
    raises DetectorUnavailable without contacting /detect.
    """

    name = "remote"

    def __init__(
        self,
        config: RemoteDetectorConfig,
        source: ObservationSource,
        distance_cfg: Optional[DistanceConfig] = None,
        confidence_threshold: float = 0.6,
        center_focus_only: bool = True,
        urlopen: Callable[..., Any] = request.urlopen,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Args:
            config: Backend URL, timeouts and upload size.
            source: Frame provider; opened and closed with the detector.
            distance_cfg: Distance estimation parameters.
            confidence_threshold: Forwarded to the backend.
            center_focus_only: Forwarded to the backend.
            urlopen: HTTP opener (injectable for tests).
            clock: Monotonic clock for health-check throttling.
        """
        super().__init__()
        self.config = config
        self.source = source
        self.distance_cfg = distance_cfg or DistanceConfig()
        self.confidence_threshold = confidence_threshold
        self.center_focus_only = center_focus_only
        self._urlopen = urlopen
        self._clock = clock
        self._available = False
        self._last_health_check: Optional[float] = None
        self.last_processing_time: Optional[float] = None
        logging.info(f"RemoteDetector initialized: api_url={self.base_url}")

    @property
    def base_url(self) -> str:
        return self.config.api_url.rstrip("/")

    @property
    def is_available(self) -> bool:
        return self._available

    def open(self) -> None:
        try:
            self.source.open()
        except RuntimeError as e:
            raise DetectorUnavailable(f"Camera unavailable: {e}") from e
        super().open()
        self.check_health(force=True)

    def close(self) -> None:
        self.source.close()
        self._available = False
        self._last_health_check = None
        super().close()

    def check_health(self, force: bool = False) -> bool:
        """Probe /health unless a probe ran within the check interval."""
        now = self._clock()
        last = self._last_health_check
        if not force and last is not None and now - last < self.config.health_check_interval_s:
            return self._available

        self._last_health_check = now
        was_available = self._available
        try:
            with self._urlopen(f"{self.base_url}/health", timeout=self.config.health_timeout_s) as response:
                self._available = getattr(response, "status", 200) == 200
        except (error.URLError, OSError, ValueError) as e:
            logging.debug(f"Health check failed for {self.base_url}: {e}")
            self._available = False

        if self._available != was_available:
            if self._available:
                logging.info(f"Detection backend available at {self.base_url}")
            else:
                logging.warning(f"Detection backend unavailable at {self.base_url}")
        return self._available

    def encode_frame(self, frame: np.ndarray) -> str:
        """Resize to the upload size and JPEG-encode to base64."""
        resized = cv2.resize(frame, (self.config.image_width, self.config.image_height))
        ok, buf = cv2.imencode(".jpg", resized, [cv2.IMWRITE_JPEG_QUALITY, self.config.jpeg_quality])
        if not ok:
            raise DetectorUnavailable("Failed to JPEG-encode frame")
        return base64.b64encode(buf.tobytes()).decode("ascii")

    def produce_detections(self, context: TickContext) -> List[Detection]:
        if not self.check_health():
            raise DetectorUnavailable(f"Detection backend at {self.base_url} is unavailable")

        frame_data = self.source.read()
        if frame_data is None:
            raise DetectorUnavailable(f"No frame from {self.source.source_id}")

        payload = self._post_detect(self.encode_frame(frame_data.frame))
        return self._parse_response(payload, context)

    def _post_detect(self, image_b64: str) -> Dict[str, Any]:
        data = json.dumps(
            {
                "image": image_b64,
                "confidence_threshold": self.confidence_threshold,
                "center_focus_only": self.center_focus_only,
            }
        ).encode("utf-8")
        req = request.Request(
            f"{self.base_url}/detect",
            data=data,
            headers={"Content-Type": "application/json"},
            method="POST",
        )
        try:
            with self._urlopen(req, timeout=self.config.timeout_s) as response:
                body = response.read().decode("utf-8")
            return json.loads(body)
        except error.HTTPError as e:
            raise DetectorUnavailable(f"Detection request failed: HTTP {e.code}") from e
        except (error.URLError, OSError, ValueError) as e:
            raise DetectorUnavailable(f"Detection request failed: {e}") from e

    def _parse_response(self, payload: Dict[str, Any], context: TickContext) -> List[Detection]:
        image_width = float(payload.get("image_width") or self.config.image_width)
        image_height = float(payload.get("image_height") or self.config.image_height)
        self.last_processing_time = payload.get("processing_time")

        boxes: List[RawDetection] = []
        for item in payload.get("detections") or []:
            try:
                x1, y1, x2, y2 = (float(v) for v in item["bbox"])
                boxes.append(
                    RawDetection(
                        x1=x1,
                        y1=y1,
                        x2=x2,
                        y2=y2,
                        confidence=float(item.get("confidence", 0.0)),
                        class_name=str(item["label"]),
                    )
                )
            except (KeyError, TypeError, ValueError) as e:
                logging.warning(f"Skipping malformed detection from backend: {e}")

        return boxes_to_detections(
            boxes,
            id_prefix=f"api_{int(context.timestamp * 1000)}",
            image_width=image_width,
            image_height=image_height,
            context=context,
            distance_cfg=self.distance_cfg,
        )

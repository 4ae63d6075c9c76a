"""
Tests for the detector implementations and the detector factory.
"""

import io
import json
from unittest.mock import MagicMock
from urllib import error

import numpy as np
import pytest

from conftest import make_detection
from stepsight.detection import ScriptedDetector, SimulatedDetector, TickContext, create_detector_from_config
from stepsight.detection.convert import box_to_detection
from stepsight.detection.model_detector import ModelDetector
from stepsight.detection.remote import RemoteDetector
from stepsight.errors import ConfigurationError, DetectorUnavailable
from stepsight.inference.backend import RawDetection
from stepsight.models.config import CategoryConfig, Config, DetectorConfig, DistanceConfig, RemoteDetectorConfig
from stepsight.models.frame import FrameData
from stepsight.observation.base import ObservationConfig, ObservationSource


def ctx(tick_index=1, timestamp=1000.0, step_length_cm=65.0):
    return TickContext(tick_index=tick_index, timestamp=timestamp, step_length_cm=step_length_cm)


class MockSource(ObservationSource):
    """Observation source yielding a fixed frame."""

    def __init__(self, frame=None):
        super().__init__(ObservationConfig(source_id="mock"))
        self.frame = frame if frame is not None else np.zeros((480, 640, 3), dtype=np.uint8)

    def open(self):
        self._is_open = True

    def read(self):
        if self.frame is None:
            return None
        return FrameData.from_numpy(self.frame, timestamp=0.0, source="mock")

    def close(self):
        self._is_open = False


class MockResponse(io.BytesIO):
    """Minimal urlopen response usable as a context manager."""

    def __init__(self, payload=b"", status=200):
        super().__init__(payload)
        self.status = status


class TestScriptedDetector:

    def test_plays_batches_then_empty(self):
        detector = ScriptedDetector([[make_detection(label="chair")], []])

        assert [d.label for d in detector.produce_detections(ctx(1))] == ["chair"]
        assert detector.produce_detections(ctx(2)) == []
        assert detector.produce_detections(ctx(3)) == []
        assert detector.remaining == 0

    def test_dict_entries(self):
        detector = ScriptedDetector([[{"label": "person", "distance_m": 1.3, "center_x": 0.4}]])

        [det] = detector.produce_detections(ctx(tick_index=7, timestamp=55.0, step_length_cm=65.0))

        assert det.id == "script_7_0"
        assert det.timestamp == 55.0
        assert det.steps == 2
        assert det.center_x == 0.4

    def test_loop(self):
        detector = ScriptedDetector([[{"label": "cup"}]], loop=True)
        for i in range(3):
            assert len(detector.produce_detections(ctx(i))) == 1

    def test_from_file(self, tmp_path):
        script = tmp_path / "script.yaml"
        script.write_text("ticks:\n  - []\n  - - {label: door, distance_m: 2.0, confidence: 0.8}\n")

        detector = ScriptedDetector.from_file(script)

        assert detector.produce_detections(ctx(1)) == []
        [door] = detector.produce_detections(ctx(2))
        assert door.label == "door"
        assert door.confidence == 0.8

    def test_from_file_missing(self, tmp_path):
        with pytest.raises(ConfigurationError):
            ScriptedDetector.from_file(tmp_path / "missing.yaml")

    def test_from_file_malformed(self, tmp_path):
        script = tmp_path / "bad.yaml"
        script.write_text("detections: []\n")

        with pytest.raises(ConfigurationError):
            ScriptedDetector.from_file(script)


class TestSimulatedDetector:

    def test_seeded_is_reproducible(self):
        a = SimulatedDetector(seed=42)
        b = SimulatedDetector(seed=42)

        for i in range(50):
            assert a.produce_detections(ctx(i)) == b.produce_detections(ctx(i))

    def test_distributions(self):
        detector = SimulatedDetector(CategoryConfig(), seed=1)
        counts = []
        detections = []
        for i in range(500):
            batch = detector.produce_detections(ctx(i))
            counts.append(len(batch))
            detections.extend(batch)

        assert max(counts) <= 2
        assert 0.6 < counts.count(0) / len(counts) < 0.8
        assert all(0.3 <= d.center_x <= 0.7 for d in detections)
        assert all(0.5 <= d.distance_m <= 7.0 for d in detections)
        assert all(0.0 < d.confidence <= 1.0 for d in detections)
        assert all(d.timestamp == 1000.0 for d in detections)

    def test_moving_share(self):
        """About one in five simulated objects moves at 0.5-2 m/s."""
        detector = SimulatedDetector(CategoryConfig(), seed=3)
        detections = []
        for i in range(2000):
            detections.extend(detector.produce_detections(ctx(i)))

        moving = [d for d in detections if d.is_moving]
        assert 0.12 < len(moving) / len(detections) < 0.28
        assert all(0.5 <= d.velocity_mps <= 2.0 for d in moving)
        assert all(d.velocity_mps is None for d in detections if not d.is_moving)


class TestConvert:

    def test_box_normalized_with_distance(self):
        box = RawDetection(x1=270, y1=120, x2=370, y2=360, confidence=0.9, class_name="person")

        det = box_to_detection(box, "m_0", 640, 480, ctx(), DistanceConfig())

        assert det.center_x == pytest.approx(0.5)
        assert det.center_y == pytest.approx(0.5)
        assert det.height == pytest.approx(0.5)
        assert det.distance_m == pytest.approx(1.7 * 600 / 240)
        assert det.steps == 7
        assert det.timestamp == 1000.0

    def test_box_clipped(self):
        box = RawDetection(x1=-50, y1=0, x2=100, y2=480, class_name="pole")

        det = box_to_detection(box, "m_0", 640, 480, ctx(), DistanceConfig())

        assert det.center_x == pytest.approx(50 / 640)
        assert det.width == pytest.approx(100 / 640)


class TestModelDetector:

    def test_runs_backend_on_frame(self):
        backend = MagicMock()
        backend.detect.return_value = [RawDetection(x1=0, y1=0, x2=64, y2=96, confidence=0.8, class_name="chair")]
        detector = ModelDetector(MockSource(), backend)

        with detector:
            [det] = detector.produce_detections(ctx(tick_index=3))

        assert det.label == "chair"
        assert det.id == "model_3_chair_0"
        backend.detect.assert_called_once()

    def test_closed_source_unavailable(self):
        detector = ModelDetector(MockSource(), MagicMock())

        with pytest.raises(DetectorUnavailable):
            detector.produce_detections(ctx())

    def test_missing_frame_unavailable(self):
        source = MockSource()
        source.frame = None
        detector = ModelDetector(source, MagicMock())
        detector.open()

        with pytest.raises(DetectorUnavailable):
            detector.produce_detections(ctx())


class TestRemoteDetector:

    def _detector(self, urlopen, clock=lambda: 0.0):
        return RemoteDetector(
            RemoteDetectorConfig(api_url="http://backend:8000/"),
            MockSource(),
            urlopen=urlopen,
            clock=clock,
        )

    def test_posts_frame_and_parses(self):
        payload = {
            "detections": [{"label": "person", "confidence": 0.91, "bbox": [270, 120, 370, 360]}],
            "image_width": 640,
            "image_height": 480,
            "processing_time": 0.05,
        }
        urlopen = MagicMock(side_effect=[MockResponse(), MockResponse(json.dumps(payload).encode())])
        detector = self._detector(urlopen)

        detector.open()
        [det] = detector.produce_detections(ctx(timestamp=12.5))

        health_call, detect_call = urlopen.call_args_list
        assert health_call.args[0] == "http://backend:8000/health"
        assert health_call.kwargs["timeout"] == 3.0
        request = detect_call.args[0]
        assert request.full_url == "http://backend:8000/detect"
        assert request.get_method() == "POST"
        assert detect_call.kwargs["timeout"] == 5.0
        body = json.loads(request.data.decode("utf-8"))
        assert body["confidence_threshold"] == 0.6
        assert body["center_focus_only"] is True
        assert isinstance(body["image"], str) and body["image"]

        assert det.id == "api_12500_person_0"
        assert det.label == "person"
        assert det.confidence == 0.91
        assert det.center_x == pytest.approx(0.5)
        assert detector.last_processing_time == 0.05

    def test_unhealthy_backend_unavailable(self):
        urlopen = MagicMock(side_effect=error.URLError("connection refused"))
        detector = self._detector(urlopen)
        detector.open()

        assert detector.is_available is False
        with pytest.raises(DetectorUnavailable):
            detector.produce_detections(ctx())
        # Health probe throttled; /detect never attempted
        assert urlopen.call_count == 1

    def test_health_recheck_after_interval(self):
        now = [0.0]
        urlopen = MagicMock(side_effect=[error.URLError("down"), MockResponse(), MockResponse(b'{"detections": []}')])
        detector = self._detector(urlopen, clock=lambda: now[0])
        detector.open()

        now[0] = 31.0
        assert detector.produce_detections(ctx()) == []
        assert detector.is_available is True

    def test_request_failure_unavailable(self):
        urlopen = MagicMock(side_effect=[MockResponse(), TimeoutError("timed out")])
        detector = self._detector(urlopen)
        detector.open()

        with pytest.raises(DetectorUnavailable):
            detector.produce_detections(ctx())

    def test_malformed_entries_skipped(self):
        payload = {"detections": [{"label": "cup"}, {"label": "chair", "confidence": 0.7, "bbox": [0, 0, 64, 48]}]}
        urlopen = MagicMock(side_effect=[MockResponse(), MockResponse(json.dumps(payload).encode())])
        detector = self._detector(urlopen)
        detector.open()

        [det] = detector.produce_detections(ctx())

        assert det.label == "chair"


class TestDetectorFactory:

    def test_simulated(self):
        detector = create_detector_from_config(Config())
        assert isinstance(detector, SimulatedDetector)

    def test_scripted_requires_path(self):
        config = Config(detector=DetectorConfig(backend="scripted"))
        with pytest.raises(ConfigurationError):
            create_detector_from_config(config)

    def test_scripted_from_file(self, tmp_path):
        script = tmp_path / "s.yaml"
        script.write_text("ticks: []\n")
        config = Config(detector=DetectorConfig(backend="scripted", script_path=str(script)))

        assert isinstance(create_detector_from_config(config), ScriptedDetector)

    def test_backend_override(self):
        detector = create_detector_from_config(Config(detector=DetectorConfig(backend="scripted")), backend="simulated")
        assert isinstance(detector, SimulatedDetector)

    def test_unknown_backend(self):
        with pytest.raises(ConfigurationError):
            create_detector_from_config(Config(), backend="lidar")

"""
Pytest configuration and shared fixtures.
"""

import os
import sys

import pytest

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from stepsight.algorithms.distance import steps_for
from stepsight.models.config import Config
from stepsight.models.detection import Detection


def make_detection(
    label="chair",
    center_x=0.5,
    center_y=0.5,
    distance_m=None,
    steps=None,
    confidence=0.9,
    timestamp=1000.0,
    id=None,
    step_length_cm=65.0,
    is_moving=None,
    velocity_mps=None,
    width=0.1,
    height=0.2,
):
    """
    Build a Detection for tests.

    Give either distance_m or steps; with steps only, the distance is chosen
    so that it converts back to exactly that many steps.
    """
    if distance_m is None:
        distance_m = (steps if steps is not None else 3) * step_length_cm / 100.0
    return Detection(
        id=id or f"{label}_{center_x}_{timestamp}",
        label=label,
        confidence=confidence,
        center_x=center_x,
        center_y=center_y,
        width=width,
        height=height,
        distance_m=distance_m,
        steps=steps_for(distance_m, step_length_cm),
        timestamp=timestamp,
        is_moving=is_moving,
        velocity_mps=velocity_mps,
    )


class RecordingSink:
    """Alert sink that keeps every alert it receives."""

    def __init__(self):
        self.alerts = []

    def handle(self, alert):
        self.alerts.append(alert)


@pytest.fixture
def config():
    """Default configuration."""
    return Config()


@pytest.fixture
def recording_sink():
    return RecordingSink()


@pytest.fixture
def temp_config_dir(tmp_path):
    """Create a temporary config directory with default.yaml."""
    config_dir = tmp_path / "config"
    config_dir.mkdir()

    default_yaml = config_dir / "default.yaml"
    default_yaml.write_text("""
pipeline:
  step_length_cm: 65
  min_confidence: 0.6

detector:
  backend: simulated
  seed: 7

scheduler:
  tick_interval_s: 1.2

log_path: "logs/test.log"
log_level: "INFO"
""")

    return config_dir

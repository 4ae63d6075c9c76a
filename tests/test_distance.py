"""
Tests for distance -> steps conversion and distance estimation.
"""

import pytest

from stepsight.algorithms.distance import (
    DEFAULT_OBJECT_HEIGHTS_M,
    MAX_DISTANCE_M,
    MIN_DISTANCE_M,
    StepConverter,
    estimate_distance,
    steps_for,
)
from stepsight.errors import ConfigurationError


class TestStepsFor:
    """Tests for steps_for()."""

    def test_exact_multiple(self):
        """A distance that is an exact multiple of the step length is not rounded up."""
        assert steps_for(1.3, 65) == 2
        assert steps_for(0.65, 65) == 1

    def test_rounds_up(self):
        """Any remainder costs a whole step."""
        assert steps_for(0.66, 65) == 2
        assert steps_for(1.8, 65) == 3
        assert steps_for(3.0, 65) == 5

    def test_zero_distance(self):
        assert steps_for(0.0, 65) == 0

    def test_monotonic_in_distance(self):
        """Non-decreasing in distance for a fixed step length."""
        distances = [i * 0.05 for i in range(0, 200)]
        steps = [steps_for(d, 65) for d in distances]
        assert steps == sorted(steps)

    def test_monotonic_in_step_length(self):
        """Non-increasing in step length for a fixed distance."""
        lengths = list(range(40, 101, 5))
        steps = [steps_for(2.7, cm) for cm in lengths]
        assert steps == sorted(steps, reverse=True)


class TestStepConverter:
    """Tests for StepConverter validation."""

    def test_rejects_zero(self):
        with pytest.raises(ConfigurationError):
            StepConverter(0)

    def test_rejects_negative(self):
        with pytest.raises(ConfigurationError):
            StepConverter(-65)

    def test_converts(self):
        converter = StepConverter(70)
        assert converter.step_length_m == pytest.approx(0.7)
        assert converter.steps(1.4) == 2
        assert converter.steps(1.41) == 3


class TestEstimateDistance:
    """Tests for the pinhole distance estimate."""

    def test_known_label(self):
        """person 1.7 m tall filling half of a 480 px frame -> 1.7 * 600 / 240."""
        distance = estimate_distance("person", normalized_height=0.5, image_height_px=480)
        assert distance == pytest.approx(1.7 * 600 / 240)

    def test_unknown_label_uses_default_height(self):
        distance = estimate_distance("kiosk", normalized_height=0.25, image_height_px=480)
        assert distance == pytest.approx(DEFAULT_OBJECT_HEIGHTS_M["default"] * 600 / 120)

    def test_clamped_to_range(self):
        assert estimate_distance("cup", normalized_height=0.9, image_height_px=480) == MIN_DISTANCE_M
        assert estimate_distance("bus", normalized_height=0.01, image_height_px=480) == MAX_DISTANCE_M

    def test_zero_height_is_far(self):
        assert estimate_distance("person", normalized_height=0.0, image_height_px=480) == MAX_DISTANCE_M

    def test_custom_heights(self):
        distance = estimate_distance(
            "robot",
            normalized_height=0.5,
            image_height_px=480,
            object_heights_m={"robot": 1.2},
            focal_length_px=500,
        )
        assert distance == pytest.approx(1.2 * 500 / 240)

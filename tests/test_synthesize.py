"""
Tests for alert classification, message composition and synthesis.
"""

import pytest

from conftest import make_detection
from stepsight.models.alert import AlertClass
from stepsight.models.config import CategoryConfig
from stepsight.pipeline.stages.synthesize import AlertSynthesizer, build_message, classify


@pytest.fixture
def categories():
    return CategoryConfig()


class TestClassify:

    def test_one_step_urgent(self, categories):
        assert classify(make_detection(label="cup", steps=1), categories) == AlertClass.URGENT

    def test_moving_two_steps_urgent(self, categories):
        assert classify(make_detection(label="cup", steps=2, is_moving=True), categories) == AlertClass.URGENT

    def test_stationary_two_steps_warning(self, categories):
        assert classify(make_detection(label="cup", steps=2, is_moving=False), categories) == AlertClass.WARNING

    def test_three_steps_warning(self, categories):
        assert classify(make_detection(label="cup", steps=3), categories) == AlertClass.WARNING

    def test_critical_far_warning(self, categories):
        assert classify(make_detection(label="car", steps=7), categories) == AlertClass.WARNING

    def test_far_info(self, categories):
        assert classify(make_detection(label="door", steps=4), categories) == AlertClass.INFO


class TestBuildMessage:

    def test_stop_prefix(self):
        det = make_detection(label="person", steps=1, center_x=0.5)
        assert build_message(det) == "Stop! person ahead in 1 step"

    def test_caution_prefix(self):
        det = make_detection(label="bicycle", steps=2, center_x=0.5, is_moving=True, velocity_mps=0.8)
        assert build_message(det) == "Caution! bicycle ahead in 2 steps, moving"

    def test_moving_fast_left(self):
        det = make_detection(label="door", steps=3, center_x=0.2, is_moving=True, velocity_mps=2.0)
        assert build_message(det) == "door ahead in 3 steps, moving fast to your left"

    def test_right(self):
        det = make_detection(label="bench", steps=4, center_x=0.8)
        assert build_message(det) == "bench ahead in 4 steps to your right"

    def test_edges_are_centered(self):
        assert build_message(make_detection(label="pole", steps=4, center_x=0.3)) == "pole ahead in 4 steps"
        assert build_message(make_detection(label="pole", steps=4, center_x=0.7)) == "pole ahead in 4 steps"

    def test_zero_steps_no_prefix(self):
        det = make_detection(label="wall", distance_m=0.0, center_x=0.5)
        assert build_message(det) == "wall ahead in 0 steps"


class TestAlertSynthesizer:

    def test_flags_close(self, categories):
        synth = AlertSynthesizer(categories, cooldown_s=4.0, haptics_supported=True)

        alert = synth.synthesize(make_detection(label="person", steps=2), priority=55.0, now=100.0)

        assert alert.should_announce is True
        assert alert.should_actuate_haptic is True
        assert alert.suppress_until is None
        assert alert.priority == 55.0

    def test_flags_far(self, categories):
        synth = AlertSynthesizer(categories, cooldown_s=4.0)

        alert = synth.synthesize(make_detection(label="chair", steps=9), priority=10.0, now=100.0)

        assert alert.should_announce is False
        assert alert.should_actuate_haptic is False
        assert alert.suppress_until == pytest.approx(104.0)

    def test_announce_boundary(self, categories):
        synth = AlertSynthesizer(categories)
        assert synth.synthesize(make_detection(steps=8), 1.0, 0.0).should_announce is True

    def test_no_haptics_when_unsupported(self, categories):
        synth = AlertSynthesizer(categories, haptics_supported=False)

        alert = synth.synthesize(make_detection(label="person", steps=1), priority=80.0, now=0.0)

        assert alert.should_actuate_haptic is False
        assert alert.alert_class == AlertClass.URGENT

"""
Tests for priority scoring and ranking.
"""

import pytest

from conftest import make_detection
from stepsight.models.config import CategoryConfig
from stepsight.pipeline.stages.priority import rank, score


@pytest.fixture
def categories():
    return CategoryConfig()


class TestScore:

    def test_components(self, categories):
        """person, 1 step, centered, moving at 1.2, confidence 0.5."""
        det = make_detection(label="person", steps=1, center_x=0.5, confidence=0.5,
                             is_moving=True, velocity_mps=1.2)
        # 50 proximity + 10 center + 20 critical + 15 + 10 moving + 4 confidence
        assert score(det, categories) == pytest.approx(109.0)

    def test_proximity_tiers(self, categories):
        def base(steps):
            det = make_detection(label="unknown", steps=steps, center_x=0.5, confidence=0.0, is_moving=False)
            return score(det, categories) - 10

        assert base(1) == pytest.approx(50)
        assert base(2) == pytest.approx(30)
        assert base(4) == pytest.approx(15)
        assert base(7) == pytest.approx(3)
        assert base(12) == pytest.approx(0)

    def test_category_bonus(self, categories):
        def bonus(label):
            det = make_detection(label=label, steps=3, center_x=0.5, confidence=0.0, is_moving=False)
            return score(det, categories) - 25

        assert bonus("car") == pytest.approx(20)
        assert bonus("door") == pytest.approx(10)
        assert bonus("sign") == pytest.approx(5)
        assert bonus("kiosk") == pytest.approx(0)

    def test_center_bonus(self, categories):
        centered = make_detection(label="chair", center_x=0.5)
        edge = make_detection(label="chair", center_x=0.1)

        assert score(centered, categories) - score(edge, categories) == pytest.approx(4.0)

    def test_slow_mover_no_fast_bonus(self, categories):
        slow = make_detection(label="chair", is_moving=True, velocity_mps=1.0)
        still = make_detection(label="chair", is_moving=False)

        assert score(slow, categories) - score(still, categories) == pytest.approx(15)


class TestRank:

    def test_highest_first(self, categories):
        person = make_detection(label="person", steps=1)
        chair = make_detection(label="chair", steps=5)

        ranked = rank([chair, person], categories)

        assert ranked[0][0] is person
        assert ranked[0][1] > ranked[1][1]

    def test_ties_keep_input_order(self, categories):
        a = make_detection(label="chair", id="a")
        b = make_detection(label="chair", id="b")

        assert [d.id for d, _ in rank([a, b], categories)] == ["a", "b"]
        assert [d.id for d, _ in rank([b, a], categories)] == ["b", "a"]

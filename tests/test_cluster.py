"""
Tests for the greedy proximity clusterer.
"""

import pytest

from conftest import make_detection
from stepsight.models.config import CategoryConfig
from stepsight.pipeline.stages.cluster import Clusterer, cluster_label


@pytest.fixture
def clusterer():
    return Clusterer(CategoryConfig())


class TestClusterLabel:

    def test_two_members(self):
        members = [make_detection(label="person"), make_detection(label="chair")]
        assert cluster_label(members, CategoryConfig()) == "person and chair"

    def test_critical_and_others(self):
        members = [
            make_detection(label="person"),
            make_detection(label="car"),
            make_detection(label="chair"),
        ]
        assert cluster_label(members, CategoryConfig()) == "2 critical objects and 1 other"

    def test_single_critical_several_others(self):
        members = [
            make_detection(label="person"),
            make_detection(label="chair"),
            make_detection(label="cup"),
        ]
        assert cluster_label(members, CategoryConfig()) == "1 critical object and 2 others"

    def test_all_critical(self):
        members = [make_detection(label=l) for l in ("person", "car", "bus")]
        assert cluster_label(members, CategoryConfig()) == "3 critical objects and 0 others"

    def test_no_critical(self):
        members = [make_detection(label=l) for l in ("chair", "cup", "tree")]
        assert cluster_label(members, CategoryConfig()) == "3 objects"


class TestClusterer:

    def test_empty_and_singleton(self, clusterer):
        det = make_detection()
        assert clusterer.cluster([]) == []
        assert clusterer.cluster([det]) == [det]

    def test_merges_close_pair(self, clusterer):
        person = make_detection(label="person", id="p", center_x=0.5, distance_m=1.2, confidence=0.7,
                                is_moving=True, velocity_mps=1.2)
        chair = make_detection(label="chair", id="c", center_x=0.6, distance_m=1.3, confidence=0.9,
                               is_moving=False)

        [merged] = clusterer.cluster([person, chair])

        assert merged.label == "person and chair"
        # Geometry from the closest member
        assert merged.steps == 2
        assert merged.center_x == 0.5
        assert merged.distance_m == person.distance_m
        assert merged.confidence == 0.9
        assert merged.is_moving is True
        assert merged.velocity_mps == 1.2
        assert merged.id not in ("p", "c")

    def test_no_moving_members_velocity_zero(self, clusterer):
        a = make_detection(label="chair", is_moving=False)
        b = make_detection(label="table", center_x=0.55, is_moving=False)

        [merged] = clusterer.cluster([a, b])

        assert merged.is_moving is False
        assert merged.velocity_mps == 0.0

    def test_far_steps_not_merged(self, clusterer):
        a = make_detection(label="person", steps=1)
        b = make_detection(label="chair", steps=5)

        assert clusterer.cluster([a, b]) == [a, b]

    def test_far_x_not_merged(self, clusterer):
        a = make_detection(label="person", center_x=0.3)
        b = make_detection(label="chair", center_x=0.6)

        assert clusterer.cluster([a, b]) == [a, b]

    def test_greedy_against_seed(self, clusterer):
        """Members join when they match the seed, not a neighbour."""
        a = make_detection(label="person", center_x=0.30)
        b = make_detection(label="chair", center_x=0.45)
        c = make_detection(label="cup", center_x=0.60)

        result = clusterer.cluster([a, b, c])

        assert [d.label for d in result] == ["person and chair", "cup"]

    def test_idempotent_on_clustered_set(self, clusterer):
        """A set with no mergeable pair comes back unchanged."""
        dets = [
            make_detection(label="person", center_x=0.3, steps=1),
            make_detection(label="chair", center_x=0.7, steps=1),
            make_detection(label="door", center_x=0.5, steps=6),
        ]

        once = clusterer.cluster(dets)
        twice = clusterer.cluster(once)

        assert once == dets
        assert twice == once

    def test_deterministic_ids(self):
        """Fresh clusterers produce identical ids for identical input."""
        dets = [make_detection(label="person"), make_detection(label="chair")]

        first = Clusterer(CategoryConfig()).cluster(dets)
        second = Clusterer(CategoryConfig()).cluster(dets)

        assert first == second

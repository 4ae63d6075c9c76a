"""
Clustering stage: merges co-located detections into one representative.

Two detections belong together when their step counts differ by at most
cluster_distance_threshold and their centers differ by at most
cluster_x_threshold horizontally. Grouping is greedy in input order: each
unprocessed detection seeds a cluster and absorbs every later unprocessed
detection that matches the seed.
"""

from __future__ import annotations

import itertools
from dataclasses import replace
from typing import List, Sequence

from stepsight.models.config import CategoryConfig
from stepsight.models.detection import Detection


def cluster_label(members: Sequence[Detection], categories: CategoryConfig) -> str:
    """
    Human-readable label for a multi-member cluster.

    - 2 members: "person and chair"
    - more, with critical members: "2 critical objects and 1 other",
      "3 critical objects and 0 others"
    - more, none critical: "3 objects"
    """
    if len(members) == 2:
        return f"{members[0].label} and {members[1].label}"

    critical = sum(1 for m in members if categories.is_critical(m.label))
    if critical == 0:
        return f"{len(members)} objects"

    others = len(members) - critical
    return (
        f"{critical} critical object{'s' if critical > 1 else ''}"
        f" and {others} other{'s' if others != 1 else ''}"
    )


class Clusterer:
    """
    Greedy proximity clusterer.

    Merged detections get a fresh id of the form "cluster_<size>_<seq>",
    where seq increments per clusterer instance, so ids are deterministic
    for a given input sequence.
    """

    def __init__(
        self,
        categories: CategoryConfig,
        distance_threshold: float = 0.8,
        x_threshold: float = 0.2,
    ):
        self.categories = categories
        self.distance_threshold = distance_threshold
        self.x_threshold = x_threshold
        self._seq = itertools.count(1)

    def should_merge(self, a: Detection, b: Detection) -> bool:
        return (
            abs(a.steps - b.steps) <= self.distance_threshold
            and abs(a.center_x - b.center_x) <= self.x_threshold
        )

    def cluster(self, detections: List[Detection]) -> List[Detection]:
        """Group detections and return one detection per cluster, in seed order."""
        if len(detections) <= 1:
            return list(detections)

        processed = set()
        results: List[Detection] = []
        for i, seed in enumerate(detections):
            if i in processed:
                continue
            processed.add(i)
            members = [seed]
            for j in range(i + 1, len(detections)):
                if j in processed:
                    continue
                if self.should_merge(seed, detections[j]):
                    members.append(detections[j])
                    processed.add(j)
            results.append(self._merge(members))
        return results

    def _merge(self, members: List[Detection]) -> Detection:
        if len(members) == 1:
            return members[0]

        closest = min(members, key=lambda d: d.steps)
        moving = [m for m in members if m.moving]
        velocity = max((m.velocity_mps or 0.0) for m in moving) if moving else 0.0
        return replace(
            closest,
            id=self._next_id(members),
            label=cluster_label(members, self.categories),
            confidence=max(m.confidence for m in members),
            is_moving=bool(moving),
            velocity_mps=velocity,
        )

    def _next_id(self, members: List[Detection]) -> str:
        member_ids = {m.id for m in members}
        while True:
            cluster_id = f"cluster_{len(members)}_{next(self._seq)}"
            if cluster_id not in member_ids:
                return cluster_id

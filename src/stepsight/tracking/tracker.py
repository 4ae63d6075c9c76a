"""
Object tracking module for correlating detections across ticks.

Detections carry no stable identity between ticks, so the tracker keys them
by (label, center_x quantized to tenths) and keeps a short bounded history
per key. Each detection is compared with the newest observation from an
earlier tick to derive a movement flag and a velocity, returned as
annotated copies. Stored history is never handed out; callers only receive
derived values.
"""

import logging
import math
from collections import deque
from dataclasses import replace
from typing import Deque, Dict, List

from stepsight.errors import StaleStateInconsistency
from stepsight.models.detection import Detection, TrackKey


class ObjectTracker:
    """
    Tracks objects across ticks using label + coarse horizontal position.

    This tracker is responsible for:
    - Appending each detection to its key's bounded history
    - Marking detections as moving when consecutive observations are far apart
    - Evicting stale history (prune) and clearing all state (clear)
    """

    def __init__(self, history_size: int = 5, movement_threshold: float = 0.05):
        """
        Initialize the object tracker.

        Args:
            history_size: Maximum observations kept per track key
            movement_threshold: Normalized displacement between the two newest
                                observations above which an object is moving
        """
        self.history_size = history_size
        self.movement_threshold = movement_threshold

        self._histories: Dict[TrackKey, Deque[Detection]] = {}

        logging.info("Object tracker initialized")

    def __len__(self) -> int:
        return len(self._histories)

    def update(self, detections: List[Detection]) -> List[Detection]:
        """
        Record detections and return movement-annotated copies.

        Args:
            detections: Detections of the current tick

        Returns:
            One copy per input, in input order, with is_moving set and
            velocity_mps set when moving
        """
        annotated = []
        for detection in detections:
            key = TrackKey.for_detection(detection)
            try:
                history = self._history_for(key, detection)
            except StaleStateInconsistency as e:
                logging.error(f"Tracker state inconsistency for {e.key}: {e}; evicting history")
                self._histories.pop(e.key, None)
                history = self._history_for(key, detection)

            history.append(detection)
            annotated.append(self._annotate(detection, history))
        return annotated

    def displacement_x(self, detection: Detection) -> float:
        """
        Horizontal displacement between the earliest and newest observation
        stored for the detection's track key (0.0 with fewer than 2).
        """
        history = self._histories.get(TrackKey.for_detection(detection))
        if not history or len(history) < 2:
            return 0.0
        return abs(history[-1].center_x - history[0].center_x)

    def history_length(self, key: TrackKey) -> int:
        """Number of observations stored for a key."""
        history = self._histories.get(key)
        return len(history) if history else 0

    def prune(self, now: float, max_age_s: float) -> int:
        """
        Drop observations older than max_age_s and keys left empty.

        Returns:
            Number of keys removed
        """
        removed = 0
        for key in list(self._histories.keys()):
            history = self._histories[key]
            while history and now - history[0].timestamp >= max_age_s:
                history.popleft()
            if not history:
                del self._histories[key]
                removed += 1
        return removed

    def clear(self) -> None:
        """Forget all tracked objects."""
        self._histories.clear()

    def _history_for(self, key: TrackKey, detection: Detection) -> Deque[Detection]:
        """Get or create the history for a key, checking its invariants."""
        history = self._histories.get(key)
        if history is None:
            history = deque(maxlen=self.history_size)
            self._histories[key] = history
            return history

        if history and detection.timestamp < history[-1].timestamp:
            raise StaleStateInconsistency(
                f"observation at {detection.timestamp} precedes stored {history[-1].timestamp}",
                key=key,
            )
        if len(history) > self.history_size:
            raise StaleStateInconsistency(
                f"history holds {len(history)} observations, capacity is {self.history_size}",
                key=key,
            )
        if history.maxlen != self.history_size:
            # Capacity grew through a live settings update.
            history = deque(history, maxlen=self.history_size)
            self._histories[key] = history
        return history

    def _annotate(self, detection: Detection, history: Deque[Detection]) -> Detection:
        """
        Derive movement against the newest observation from an earlier tick.

        Entries sharing the current timestamp come from the same tick and
        are never compared with each other.
        """
        prev = None
        for entry in reversed(history):
            if entry.timestamp < detection.timestamp:
                prev = entry
                break
        if prev is None:
            return replace(detection, is_moving=False, velocity_mps=None)

        movement = math.hypot(detection.center_x - prev.center_x, detection.center_y - prev.center_y)
        if movement <= self.movement_threshold:
            return replace(detection, is_moving=False, velocity_mps=None)

        velocity = movement / (detection.timestamp - prev.timestamp)
        return replace(detection, is_moving=True, velocity_mps=velocity)

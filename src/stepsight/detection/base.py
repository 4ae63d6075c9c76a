"""
Detector interface.

The pipeline consumes detections through this one interface so it can run
against several interchangeable sources:
- a local simulation (seeded, for demos)
- a scripted replay (deterministic, for tests)
- an on-device model (YOLO on CPU)
- a remote detection backend over HTTP
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List

from stepsight.models.detection import Detection


@dataclass(frozen=True)
class TickContext:
    """
    Per-tick information handed to the detector.

    Attributes:
        tick_index: Sequential tick number since the pipeline started.
        timestamp: Tick time (unix seconds); detections should carry it.
        step_length_cm: Current user step length for steps conversion.
    """
    tick_index: int
    timestamp: float
    step_length_cm: float


class Detector(ABC):
    """
    Abstract base class for detection sources.

    Lifecycle:
        1. Create instance with config
        2. Call open() to acquire resources (camera, model, connection check)
        3. Call produce_detections() once per tick
        4. Call close() to release resources

    produce_detections may return an empty list. Failures should be raised
    as DetectorUnavailable; the pipeline treats them as an empty tick.
    """

    name = "detector"

    def __init__(self):
        self._is_open = False

    @property
    def is_open(self) -> bool:
        return self._is_open

    @property
    def is_available(self) -> bool:
        """Best-effort availability of the backing source."""
        return self._is_open

    def open(self) -> None:
        self._is_open = True

    def close(self) -> None:
        self._is_open = False

    @abstractmethod
    def produce_detections(self, context: TickContext) -> List[Detection]:
        """Return the detections observed for this tick."""
        pass

    def __enter__(self) -> "Detector":
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

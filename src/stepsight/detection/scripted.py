"""
Scripted detector: replays a fixed list of per-tick detection batches.

Used for deterministic tests and for replaying recorded sessions. Batch
entries may be Detection objects or plain dicts; dicts are stamped with the
tick time and converted with the current step length.

Script file format (YAML):

    ticks:
      - []
      - - label: person
          distance_m: 0.6
          center_x: 0.5
          confidence: 0.9
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List, Sequence, Union

import yaml

from stepsight.errors import ConfigurationError
from stepsight.models.detection import Detection
from .base import Detector, TickContext

BatchEntry = Union[Detection, Dict[str, Any]]


class ScriptedDetector(Detector):
    """
    Plays one batch per tick, then returns [] once the script is exhausted.

    Args:
        batches: One sequence of entries per tick.
        loop: Restart from the first batch when exhausted.
    """

    name = "scripted"

    def __init__(self, batches: Sequence[Sequence[BatchEntry]], loop: bool = False):
        super().__init__()
        self._batches: List[List[BatchEntry]] = [list(b or []) for b in batches]
        self._loop = loop
        self._position = 0
        logging.info(f"ScriptedDetector initialized: {len(self._batches)} batches, loop={loop}")

    @classmethod
    def from_file(cls, path: Union[str, Path], loop: bool = False) -> "ScriptedDetector":
        """
        Load a script from YAML.

        Raises:
            ConfigurationError: If the file is missing or malformed.
        """
        path = Path(path)
        if not path.exists():
            raise ConfigurationError(f"Detector script not found: {path}")
        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}
        ticks = data.get("ticks") if isinstance(data, dict) else None
        if not isinstance(ticks, list):
            raise ConfigurationError(f"Detector script {path} must contain a 'ticks' list")
        for i, batch in enumerate(ticks):
            if batch is not None and not isinstance(batch, list):
                raise ConfigurationError(f"Detector script {path}: tick {i} must be a list")
        return cls(ticks, loop=loop)

    @property
    def remaining(self) -> int:
        return max(0, len(self._batches) - self._position)

    def reset(self) -> None:
        self._position = 0

    def produce_detections(self, context: TickContext) -> List[Detection]:
        if self._position >= len(self._batches):
            if not self._loop or not self._batches:
                return []
            self._position = 0

        batch = self._batches[self._position]
        self._position += 1
        return [self._materialize(entry, i, context) for i, entry in enumerate(batch)]

    def _materialize(self, entry: BatchEntry, index: int, context: TickContext) -> Detection:
        if isinstance(entry, Detection):
            return entry
        d = dict(entry)
        d.setdefault("id", f"script_{context.tick_index}_{index}")
        d.setdefault("timestamp", context.timestamp)
        return Detection.from_dict(d, step_length_cm=context.step_length_cm)

"""
Detection sources for the obstacle alert pipeline.
"""

from .base import Detector, TickContext
from .factory import create_detector_from_config
from .scripted import ScriptedDetector
from .simulated import SimulatedDetector

__all__ = [
    "Detector",
    "TickContext",
    "ScriptedDetector",
    "SimulatedDetector",
    "create_detector_from_config",
]

"""
Observation layer for pluggable camera sources.
"""

from .base import ObservationConfig, ObservationSource
from .opencv_source import OpenCVSource, OpenCVSourceConfig

__all__ = [
    "ObservationSource",
    "ObservationConfig",
    "OpenCVSource",
    "OpenCVSourceConfig",
]

"""
Typed models for the obstacle alert pipeline.
"""

from .detection import Detection, TrackKey
from .alert import Alert, AlertClass
from .status import PipelineStatus, StatusLevel
from .config import (
    Config,
    PipelineConfig,
    CategoryConfig,
    SchedulerConfig,
    CameraConfig,
    DetectorConfig,
    ModelDetectorConfig,
    RemoteDetectorConfig,
    DistanceConfig,
    ActuationConfig,
    WebConfig,
)

__all__ = [
    # Detection
    "Detection",
    "TrackKey",
    # Alerts
    "Alert",
    "AlertClass",
    # Status
    "PipelineStatus",
    "StatusLevel",
    # Config
    "Config",
    "PipelineConfig",
    "CategoryConfig",
    "SchedulerConfig",
    "CameraConfig",
    "DetectorConfig",
    "ModelDetectorConfig",
    "RemoteDetectorConfig",
    "DistanceConfig",
    "ActuationConfig",
    "WebConfig",
]

"""
Detector factory: builds the configured detection source.
"""

from __future__ import annotations

import logging
from typing import Optional

from stepsight.errors import ConfigurationError
from stepsight.models.config import Config
from .base import Detector
from .scripted import ScriptedDetector
from .simulated import SimulatedDetector


def create_detector_from_config(config: Config, backend: Optional[str] = None) -> Detector:
    """
    Factory function to create a Detector from the typed config.

    Args:
        config: Full application config.
        backend: Overrides config.detector.backend (e.g. from the CLI).

    Raises:
        ConfigurationError: Unknown backend or missing scripted input.
        ImportError: The model backend is selected but Ultralytics is missing.
    """
    detector_cfg = config.detector
    backend = backend or detector_cfg.backend

    if backend == "simulated":
        detector: Detector = SimulatedDetector(config.categories, seed=detector_cfg.seed)
    elif backend == "scripted":
        if not detector_cfg.script_path:
            raise ConfigurationError("detector.script_path is required for the scripted backend")
        detector = ScriptedDetector.from_file(detector_cfg.script_path)
    elif backend in ("model", "remote"):
        # Camera-backed detectors pull in OpenCV only when selected
        from stepsight.observation.opencv_source import OpenCVSource, OpenCVSourceConfig

        source = OpenCVSource(OpenCVSourceConfig.from_camera_config(config.camera, source_id="main-camera"))
        if backend == "model":
            from stepsight.inference.cpu_backend import CpuYoloConfig, UltralyticsCpuBackend
            from .model_detector import ModelDetector

            inference = UltralyticsCpuBackend(CpuYoloConfig.from_model_config(detector_cfg.model))
            detector = ModelDetector(source, inference, distance_cfg=detector_cfg.distance)
        else:
            from .remote import RemoteDetector

            detector = RemoteDetector(
                detector_cfg.remote,
                source,
                distance_cfg=detector_cfg.distance,
                confidence_threshold=config.pipeline.min_confidence,
                center_focus_only=config.pipeline.center_focus_only,
            )
    else:
        raise ConfigurationError(f"Unknown detector backend: {backend}")

    logging.info(f"Detector created: backend={backend}")
    return detector

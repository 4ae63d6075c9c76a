"""
Typed configuration models matching the YAML config structure.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from stepsight.algorithms.distance import DEFAULT_OBJECT_HEIGHTS_M
from stepsight.errors import ConfigurationError


VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
DETECTOR_BACKENDS = ("simulated", "scripted", "model", "remote")

# Recommended user step length range (cm); values outside are accepted with a warning
STEP_LENGTH_RECOMMENDED_MIN_CM = 40
STEP_LENGTH_RECOMMENDED_MAX_CM = 100


def _check_unit_interval(name: str, value: float, upper: float = 1.0) -> None:
    if not isinstance(value, (int, float)) or not (0 <= value <= upper):
        raise ConfigurationError(f"{name} must be between 0 and {upper}, got {value!r}")


def _check_positive(name: str, value: Union[int, float]) -> None:
    if not isinstance(value, (int, float)) or value <= 0:
        raise ConfigurationError(f"{name} must be positive, got {value!r}")


@dataclass
class PipelineConfig:
    """
    Alert pipeline tuning.

    Attributes:
        step_length_cm: User step length used for every distance -> steps conversion.
        min_confidence: Detections below this confidence are dropped on ingest.
        center_focus_only: Apply the center-of-view filter.
        center_fov_threshold: Max |center_x - 0.5| kept by the center filter.
        alert_cooldown_ms: Minimum time between alerts for the same label.
        movement_threshold: Per-tick displacement above which an object is moving.
        position_change_threshold: x displacement that bypasses the cooldown.
        cluster_distance_threshold: Max step difference for clustering.
        cluster_x_threshold: Max center_x difference for clustering.
        track_history_size: Observations kept per track key.
        track_max_age_s: Track history entries older than this are evicted by GC.
        cooldown_max_age_s: Cooldown entries older than this are evicted by GC.
    """
    step_length_cm: float = 65.0
    min_confidence: float = 0.6
    center_focus_only: bool = True
    center_fov_threshold: float = 0.25
    alert_cooldown_ms: float = 4000.0
    movement_threshold: float = 0.05
    position_change_threshold: float = 0.15
    cluster_distance_threshold: float = 0.8
    cluster_x_threshold: float = 0.2
    track_history_size: int = 5
    track_max_age_s: float = 10.0
    cooldown_max_age_s: float = 30.0

    @property
    def alert_cooldown_s(self) -> float:
        return self.alert_cooldown_ms / 1000.0

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "PipelineConfig":
        return cls(
            step_length_cm=d.get("step_length_cm", 65.0),
            min_confidence=d.get("min_confidence", 0.6),
            center_focus_only=d.get("center_focus_only", True),
            center_fov_threshold=d.get("center_fov_threshold", 0.25),
            alert_cooldown_ms=d.get("alert_cooldown_ms", 4000.0),
            movement_threshold=d.get("movement_threshold", 0.05),
            position_change_threshold=d.get("position_change_threshold", 0.15),
            cluster_distance_threshold=d.get("cluster_distance_threshold", 0.8),
            cluster_x_threshold=d.get("cluster_x_threshold", 0.2),
            track_history_size=d.get("track_history_size", 5),
            track_max_age_s=d.get("track_max_age_s", 10.0),
            cooldown_max_age_s=d.get("cooldown_max_age_s", 30.0),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "step_length_cm": self.step_length_cm,
            "min_confidence": self.min_confidence,
            "center_focus_only": self.center_focus_only,
            "center_fov_threshold": self.center_fov_threshold,
            "alert_cooldown_ms": self.alert_cooldown_ms,
            "movement_threshold": self.movement_threshold,
            "position_change_threshold": self.position_change_threshold,
            "cluster_distance_threshold": self.cluster_distance_threshold,
            "cluster_x_threshold": self.cluster_x_threshold,
            "track_history_size": self.track_history_size,
            "track_max_age_s": self.track_max_age_s,
            "cooldown_max_age_s": self.cooldown_max_age_s,
        }

    def validate(self) -> None:
        """Raise ConfigurationError on invalid values."""
        _check_positive("pipeline.step_length_cm", self.step_length_cm)
        if not (STEP_LENGTH_RECOMMENDED_MIN_CM <= self.step_length_cm <= STEP_LENGTH_RECOMMENDED_MAX_CM):
            logging.warning(
                f"pipeline.step_length_cm={self.step_length_cm} is outside the recommended "
                f"range {STEP_LENGTH_RECOMMENDED_MIN_CM}-{STEP_LENGTH_RECOMMENDED_MAX_CM} cm"
            )
        _check_unit_interval("pipeline.min_confidence", self.min_confidence)
        _check_unit_interval("pipeline.center_fov_threshold", self.center_fov_threshold, upper=0.5)
        _check_unit_interval("pipeline.movement_threshold", self.movement_threshold)
        _check_unit_interval("pipeline.position_change_threshold", self.position_change_threshold)
        _check_unit_interval("pipeline.cluster_x_threshold", self.cluster_x_threshold)
        if not isinstance(self.alert_cooldown_ms, (int, float)) or self.alert_cooldown_ms < 0:
            raise ConfigurationError(
                f"pipeline.alert_cooldown_ms must be non-negative, got {self.alert_cooldown_ms!r}"
            )
        if not isinstance(self.cluster_distance_threshold, (int, float)) or self.cluster_distance_threshold < 0:
            raise ConfigurationError(
                "pipeline.cluster_distance_threshold must be non-negative, "
                f"got {self.cluster_distance_threshold!r}"
            )
        if not isinstance(self.track_history_size, int) or self.track_history_size < 2:
            raise ConfigurationError(
                f"pipeline.track_history_size must be an integer >= 2, got {self.track_history_size!r}"
            )
        _check_positive("pipeline.track_max_age_s", self.track_max_age_s)
        _check_positive("pipeline.cooldown_max_age_s", self.cooldown_max_age_s)


@dataclass
class CategoryConfig:
    """Object label classes driving filter leniency and alert severity."""
    critical: List[str] = field(default_factory=lambda: [
        "person", "car", "bicycle", "motorcycle", "truck", "bus",
    ])
    warning: List[str] = field(default_factory=lambda: [
        "chair", "table", "door", "pole", "stairs", "step", "bench",
    ])
    info: List[str] = field(default_factory=lambda: [
        "wall", "tree", "trash can", "sign", "bottle", "cup",
    ])

    def is_critical(self, label: str) -> bool:
        return label in self.critical

    def is_warning(self, label: str) -> bool:
        return label in self.warning

    def is_info(self, label: str) -> bool:
        return label in self.info

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "CategoryConfig":
        defaults = cls()
        return cls(
            critical=list(d.get("critical", defaults.critical)),
            warning=list(d.get("warning", defaults.warning)),
            info=list(d.get("info", defaults.info)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "critical": list(self.critical),
            "warning": list(self.warning),
            "info": list(self.info),
        }

    def validate(self) -> None:
        if not self.critical:
            raise ConfigurationError("categories.critical must not be empty")


@dataclass
class SchedulerConfig:
    """Tick loop timing."""
    tick_interval_s: float = 1.2
    gc_interval_ticks: int = 15

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "SchedulerConfig":
        return cls(
            tick_interval_s=d.get("tick_interval_s", 1.2),
            gc_interval_ticks=d.get("gc_interval_ticks", 15),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tick_interval_s": self.tick_interval_s,
            "gc_interval_ticks": self.gc_interval_ticks,
        }

    def validate(self) -> None:
        _check_positive("scheduler.tick_interval_s", self.tick_interval_s)
        if not isinstance(self.gc_interval_ticks, int) or self.gc_interval_ticks <= 0:
            raise ConfigurationError(
                f"scheduler.gc_interval_ticks must be a positive integer, got {self.gc_interval_ticks!r}"
            )


@dataclass
class CameraConfig:
    """Camera configuration for frame-based detectors."""
    device_id: Union[int, str] = 0
    resolution: List[int] = field(default_factory=lambda: [640, 480])
    fps: int = 30

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "CameraConfig":
        return cls(
            device_id=d.get("device_id", 0),
            resolution=d.get("resolution", [640, 480]),
            fps=d.get("fps", 30),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "device_id": self.device_id,
            "resolution": self.resolution,
            "fps": self.fps,
        }


@dataclass
class ModelDetectorConfig:
    """On-device YOLO model configuration."""
    model: str = "yolov8n.pt"
    conf_threshold: float = 0.25
    iou_threshold: float = 0.45
    classes: Optional[List[int]] = None

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "ModelDetectorConfig":
        return cls(
            model=d.get("model", "yolov8n.pt"),
            conf_threshold=d.get("conf_threshold", 0.25),
            iou_threshold=d.get("iou_threshold", 0.45),
            classes=d.get("classes"),
        )

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "model": self.model,
            "conf_threshold": self.conf_threshold,
            "iou_threshold": self.iou_threshold,
        }
        if self.classes is not None:
            d["classes"] = self.classes
        return d


@dataclass
class RemoteDetectorConfig:
    """Remote detection backend configuration."""
    api_url: str = "http://localhost:8000"
    timeout_s: float = 5.0
    health_timeout_s: float = 3.0
    health_check_interval_s: float = 30.0
    image_width: int = 640
    image_height: int = 480
    jpeg_quality: int = 80

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "RemoteDetectorConfig":
        return cls(
            api_url=d.get("api_url", "http://localhost:8000"),
            timeout_s=d.get("timeout_s", 5.0),
            health_timeout_s=d.get("health_timeout_s", 3.0),
            health_check_interval_s=d.get("health_check_interval_s", 30.0),
            image_width=d.get("image_width", 640),
            image_height=d.get("image_height", 480),
            jpeg_quality=d.get("jpeg_quality", 80),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "api_url": self.api_url,
            "timeout_s": self.timeout_s,
            "health_timeout_s": self.health_timeout_s,
            "health_check_interval_s": self.health_check_interval_s,
            "image_width": self.image_width,
            "image_height": self.image_height,
            "jpeg_quality": self.jpeg_quality,
        }


@dataclass
class DistanceConfig:
    """Monocular distance estimation parameters."""
    focal_length_px: float = 600.0
    min_distance_m: float = 0.5
    max_distance_m: float = 20.0
    object_heights_m: Dict[str, float] = field(
        default_factory=lambda: dict(DEFAULT_OBJECT_HEIGHTS_M)
    )

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "DistanceConfig":
        heights = dict(DEFAULT_OBJECT_HEIGHTS_M)
        heights.update(d.get("object_heights_m") or {})
        return cls(
            focal_length_px=d.get("focal_length_px", 600.0),
            min_distance_m=d.get("min_distance_m", 0.5),
            max_distance_m=d.get("max_distance_m", 20.0),
            object_heights_m=heights,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "focal_length_px": self.focal_length_px,
            "min_distance_m": self.min_distance_m,
            "max_distance_m": self.max_distance_m,
            "object_heights_m": dict(self.object_heights_m),
        }


@dataclass
class DetectorConfig:
    """Detector backend selection."""
    backend: str = "simulated"
    seed: Optional[int] = None
    script_path: Optional[str] = None
    model: ModelDetectorConfig = field(default_factory=ModelDetectorConfig)
    remote: RemoteDetectorConfig = field(default_factory=RemoteDetectorConfig)
    distance: DistanceConfig = field(default_factory=DistanceConfig)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "DetectorConfig":
        return cls(
            backend=d.get("backend", "simulated"),
            seed=d.get("seed"),
            script_path=d.get("script_path"),
            model=ModelDetectorConfig.from_dict(d.get("model") or {}),
            remote=RemoteDetectorConfig.from_dict(d.get("remote") or {}),
            distance=DistanceConfig.from_dict(d.get("distance") or {}),
        )

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "backend": self.backend,
            "model": self.model.to_dict(),
            "remote": self.remote.to_dict(),
            "distance": self.distance.to_dict(),
        }
        if self.seed is not None:
            d["seed"] = self.seed
        if self.script_path is not None:
            d["script_path"] = self.script_path
        return d

    def validate(self) -> None:
        if self.backend not in DETECTOR_BACKENDS:
            raise ConfigurationError(
                f"detector.backend must be one of: {', '.join(DETECTOR_BACKENDS)}"
            )
        if self.backend == "scripted" and not self.script_path:
            raise ConfigurationError("detector.script_path is required when detector.backend is 'scripted'")
        if self.backend == "remote":
            if not self.remote.api_url:
                raise ConfigurationError("detector.remote.api_url is required when detector.backend is 'remote'")
            _check_positive("detector.remote.timeout_s", self.remote.timeout_s)
        if self.backend == "model" and not self.model.model:
            raise ConfigurationError("detector.model.model is required when detector.backend is 'model'")
        _check_positive("detector.distance.focal_length_px", self.distance.focal_length_px)


@dataclass
class ActuationConfig:
    """User-facing actuation preferences (speech and haptics)."""
    audio_enabled: bool = True
    haptic_enabled: bool = True
    haptics_supported: bool = True
    announcement_delay_s: float = 3.0

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "ActuationConfig":
        return cls(
            audio_enabled=d.get("audio_enabled", True),
            haptic_enabled=d.get("haptic_enabled", True),
            haptics_supported=d.get("haptics_supported", True),
            announcement_delay_s=d.get("announcement_delay_s", 3.0),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "audio_enabled": self.audio_enabled,
            "haptic_enabled": self.haptic_enabled,
            "haptics_supported": self.haptics_supported,
            "announcement_delay_s": self.announcement_delay_s,
        }

    def validate(self) -> None:
        if not isinstance(self.announcement_delay_s, (int, float)) or self.announcement_delay_s < 0:
            raise ConfigurationError(
                f"actuation.announcement_delay_s must be non-negative, got {self.announcement_delay_s!r}"
            )


@dataclass
class WebConfig:
    """Web API configuration."""
    enabled: bool = False
    host: str = "0.0.0.0"
    port: int = 8080

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "WebConfig":
        return cls(
            enabled=d.get("enabled", False),
            host=d.get("host", "0.0.0.0"),
            port=d.get("port", 8080),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"enabled": self.enabled, "host": self.host, "port": self.port}


@dataclass
class Config:
    """
    Complete application configuration.

    This is a typed representation of the YAML config structure.
    """
    pipeline: PipelineConfig = field(default_factory=PipelineConfig)
    categories: CategoryConfig = field(default_factory=CategoryConfig)
    scheduler: SchedulerConfig = field(default_factory=SchedulerConfig)
    detector: DetectorConfig = field(default_factory=DetectorConfig)
    camera: CameraConfig = field(default_factory=CameraConfig)
    actuation: ActuationConfig = field(default_factory=ActuationConfig)
    web: WebConfig = field(default_factory=WebConfig)
    log_path: str = "logs/stepsight.log"
    log_level: str = "INFO"

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Config":
        """Adapter: Create Config from raw dictionary (e.g., from load_config)."""
        return cls(
            pipeline=PipelineConfig.from_dict(d.get("pipeline") or {}),
            categories=CategoryConfig.from_dict(d.get("categories") or {}),
            scheduler=SchedulerConfig.from_dict(d.get("scheduler") or {}),
            detector=DetectorConfig.from_dict(d.get("detector") or {}),
            camera=CameraConfig.from_dict(d.get("camera") or {}),
            actuation=ActuationConfig.from_dict(d.get("actuation") or {}),
            web=WebConfig.from_dict(d.get("web") or {}),
            log_path=d.get("log_path", "logs/stepsight.log"),
            log_level=d.get("log_level", "INFO"),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert back to dictionary (for saving or the web API)."""
        return {
            "pipeline": self.pipeline.to_dict(),
            "categories": self.categories.to_dict(),
            "scheduler": self.scheduler.to_dict(),
            "detector": self.detector.to_dict(),
            "camera": self.camera.to_dict(),
            "actuation": self.actuation.to_dict(),
            "web": self.web.to_dict(),
            "log_path": self.log_path,
            "log_level": self.log_level,
        }

    def validate(self) -> "Config":
        """Validate every section; returns self for chaining."""
        self.pipeline.validate()
        self.categories.validate()
        self.scheduler.validate()
        self.detector.validate()
        self.actuation.validate()
        if self.log_level not in VALID_LOG_LEVELS:
            raise ConfigurationError(f"log_level must be one of: {', '.join(VALID_LOG_LEVELS)}")
        return self

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field


class StatusResponse(BaseModel):
    level: str = Field(..., description="running|degraded|offline")
    running: bool
    detector: str
    detector_available: bool
    ticks: int
    dropped_ticks: int
    alerts_emitted: int
    detector_failures: int
    last_tick_ts: Optional[float] = None
    last_alert_message: Optional[str] = None
    tracked_keys: int = 0
    timestamp: float


class DetectionModel(BaseModel):
    id: str
    label: str
    confidence: float
    center_x: float
    center_y: float
    width: float
    height: float
    distance_m: float
    steps: int
    timestamp: float
    is_moving: Optional[bool] = None
    velocity_mps: Optional[float] = None


class AlertModel(BaseModel):
    detection: DetectionModel
    priority: float
    alert_class: str = Field(..., description="urgent|warning|info")
    should_announce: bool
    should_actuate_haptic: bool
    message: str
    suppress_until: Optional[float] = None


class LatestAlertResponse(BaseModel):
    """
    Latest alert for overlay polling. `alert` is null until the first alert
    since the pipeline started.
    """
    alert: Optional[AlertModel] = None
    received_at: Optional[float] = None
    age_s: Optional[float] = None


class SettingsResponse(BaseModel):
    step_length_cm: float
    audio_enabled: bool
    haptic_enabled: bool
    announcement_delay_s: float


class SettingsUpdate(BaseModel):
    """Partial settings update; omitted fields keep their current value."""
    step_length_cm: Optional[float] = Field(None, ge=40, le=100, description="User step length (cm)")
    audio_enabled: Optional[bool] = None
    haptic_enabled: Optional[bool] = None
    announcement_delay_s: Optional[float] = Field(
        None, ge=1, le=10, description="Minimum gap between non-urgent announcements (s)"
    )

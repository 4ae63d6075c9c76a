from __future__ import annotations

import logging
import time
from dataclasses import replace

from fastapi import APIRouter, HTTPException

from stepsight.actuation.sinks import apply_actuation_settings
from stepsight.errors import ConfigurationError
from stepsight.models.config import Config
from ..api_models import LatestAlertResponse, SettingsResponse, SettingsUpdate, StatusResponse
from ..services.config_service import ConfigService
from ..services.health_service import HealthService
from ..state import state

router = APIRouter()


def _require_pipeline():
    if state.pipeline is None:
        raise HTTPException(status_code=503, detail="Pipeline not attached")
    return state.pipeline


def _settings_from_config(config: Config) -> SettingsResponse:
    return SettingsResponse(
        step_length_cm=config.pipeline.step_length_cm,
        audio_enabled=config.actuation.audio_enabled,
        haptic_enabled=config.actuation.haptic_enabled,
        announcement_delay_s=config.actuation.announcement_delay_s,
    )


@router.get("/health")
def health():
    log_path = state.pipeline.config.log_path if state.pipeline is not None else None
    return HealthService(log_path=log_path, start_time=state.start_time).get_health_summary()


@router.get("/status", response_model=StatusResponse)
def status():
    """
    Pipeline status for the UI.
    - level: running|degraded|offline (offline when stopped, degraded while
      the detector is failing)
    - tick counters and the most recent alert message
    """
    pipeline = _require_pipeline()
    snapshot = pipeline.status().to_dict()
    return StatusResponse(
        **snapshot,
        tracked_keys=pipeline.tracked_keys,
        timestamp=time.time(),
    )


@router.get("/alerts/latest", response_model=LatestAlertResponse)
def latest_alert():
    _require_pipeline()
    alert, received_at = state.latest_alert()
    if alert is None:
        return LatestAlertResponse()
    return LatestAlertResponse(
        alert=alert.to_dict(),
        received_at=received_at,
        age_s=time.time() - received_at if received_at is not None else None,
    )


@router.get("/settings", response_model=SettingsResponse)
def get_settings():
    return _settings_from_config(_require_pipeline().config)


@router.put("/settings", response_model=SettingsResponse)
def update_settings(req: SettingsUpdate):
    """
    Apply user settings live and persist them to the local overrides file.
    Step length changes take effect from the next tick.
    """
    pipeline = _require_pipeline()
    changes = req.model_dump(exclude_none=True)

    with state.settings_lock:
        current = pipeline.config
        pipeline_cfg = current.pipeline
        if "step_length_cm" in changes:
            pipeline_cfg = replace(pipeline_cfg, step_length_cm=changes["step_length_cm"])
        actuation_cfg = replace(
            current.actuation,
            **{k: v for k, v in changes.items() if k != "step_length_cm"},
        )
        updated = replace(current, pipeline=pipeline_cfg, actuation=actuation_cfg)

        try:
            pipeline.update_config(updated)
        except ConfigurationError as e:
            raise HTTPException(status_code=400, detail=str(e))
        apply_actuation_settings(state.sinks, updated.actuation)

        overrides = {}
        if "step_length_cm" in changes:
            overrides["pipeline"] = {"step_length_cm": changes["step_length_cm"]}
        actuation_changes = {k: v for k, v in changes.items() if k != "step_length_cm"}
        if actuation_changes:
            overrides["actuation"] = actuation_changes
        if overrides:
            try:
                (state.config_service or ConfigService()).merge_overrides(overrides)
            except OSError as e:
                logging.error(f"Failed to persist settings: {e}")
                raise HTTPException(status_code=500, detail=f"Settings applied but not saved: {e}")

    logging.info(f"Settings updated: {changes}")
    return _settings_from_config(updated)

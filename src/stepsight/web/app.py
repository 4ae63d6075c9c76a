"""
FastAPI application factory for StepSight.

Routes:
- /api/health -> process health
- /api/status -> pipeline status
- /api/alerts/latest -> latest alert (overlay polling)
- /api/settings -> user settings (GET/PUT)
"""

from __future__ import annotations

from typing import Iterable, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from stepsight.actuation.sinks import AlertSink, WebStateSink
from stepsight.pipeline.engine import AlertPipeline
from .routes import api
from .services.config_service import ConfigService
from .state import state


def create_app(
    pipeline: Optional[AlertPipeline] = None,
    latest_sink: Optional[WebStateSink] = None,
    sinks: Optional[Iterable[AlertSink]] = None,
    config_service: Optional[ConfigService] = None,
) -> FastAPI:
    """
    Create the FastAPI app and wire routes.

    Args:
        pipeline: Pipeline to expose; when None, the one already attached to
            the shared state is used.
        latest_sink: Source for /api/alerts/latest.
        sinks: Sinks reconfigured by PUT /api/settings.
        config_service: Where PUT /api/settings persists overrides;
            defaults to the ./config directory.
    """
    if pipeline is not None:
        state.attach(
            pipeline,
            latest_sink=latest_sink,
            sinks=sinks,
            config_service=config_service or ConfigService(),
        )

    app = FastAPI(
        title="StepSight",
        version="0.1.0",
        description="Obstacle alert pipeline for visually impaired pedestrians",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(api.router, prefix="/api")
    return app

"""
StepSight command-line runner.

Loads the layered configuration, builds the configured detector, the alert
sinks and the pipeline, then ticks until interrupted (or for a fixed number
of ticks). Speech and haptics are logged, since a headless host has neither.

Usage:
    stepsight --config config/config.yaml
    stepsight --detector scripted --script scripts/corridor_demo.yaml --ticks 7
    stepsight --web

Arguments:
    --config: Path to configuration file (applied over config/default.yaml)
    --detector: Override detector.backend
    --script: Replay script for the scripted detector
    --ticks: Run this many ticks, then exit
    --web: Serve the web API
"""

from __future__ import annotations

import argparse
import logging
import sys
import threading
import time
from typing import Any, Dict, List, Optional, Tuple

import uvicorn
import yaml

from stepsight.actuation.sinks import (
    AlertSink,
    AnnouncementSink,
    HapticSink,
    LoggingAlertSink,
    VoiceOptions,
    WebStateSink,
)
from stepsight.detection import Detector, create_detector_from_config
from stepsight.errors import ConfigurationError, DetectorUnavailable
from stepsight.models.config import DETECTOR_BACKENDS, Config
from stepsight.ops.logging import setup_logging
from stepsight.pipeline.engine import AlertPipeline
from stepsight.web.app import create_app
from stepsight.web.services.config_service import ConfigService


def load_config(config_path: str) -> Dict[str, Any]:
    """
    Load configuration with layering:
    - `default.yaml` next to config_path (checked in)
    - `config.yaml` next to config_path (local overrides)
    - plus the explicitly provided `--config` path (treated as overrides)
    """
    try:
        return ConfigService.for_config_file(config_path).load_effective_config(explicit_path=config_path)
    except (OSError, ValueError, yaml.YAMLError) as e:
        logging.error(f"Failed to load configuration: {e}")
        sys.exit(1)


def validate_config(config: Dict[str, Any]) -> Tuple[bool, Optional[str]]:
    """
    Validate configuration structure and values.

    Args:
        config: Configuration dictionary

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not isinstance(config, dict):
        return False, "Configuration must be a mapping"

    for section in ("pipeline", "categories", "scheduler", "detector", "camera", "actuation", "web"):
        if section in config and config[section] is not None and not isinstance(config[section], dict):
            return False, f"Configuration section '{section}' must be a mapping"

    try:
        Config.from_dict(config).validate()
    except ConfigurationError as e:
        return False, str(e)
    except (TypeError, ValueError) as e:
        return False, f"Invalid configuration value: {e}"
    return True, None


def log_speech(message: str, voice: VoiceOptions) -> None:
    logging.info(f"[SPEAK pitch={voice.pitch} rate={voice.rate}] {message}")


def log_vibration(intensity: str) -> None:
    logging.info(f"[HAPTIC] {intensity}")


def build_sinks(config: Config) -> Tuple[List[AlertSink], WebStateSink]:
    """Create the actuation sinks plus the sink backing the web overlay feed."""
    web_sink = WebStateSink()
    sinks: List[AlertSink] = [
        LoggingAlertSink(),
        AnnouncementSink(
            log_speech,
            audio_enabled=config.actuation.audio_enabled,
            announcement_delay_s=config.actuation.announcement_delay_s,
        ),
        HapticSink(log_vibration, haptic_enabled=config.actuation.haptic_enabled),
        web_sink,
    ]
    return sinks, web_sink


def start_web_server(
    pipeline: AlertPipeline,
    web_sink: WebStateSink,
    sinks: List[AlertSink],
    config: Config,
    config_service: ConfigService,
) -> threading.Thread:
    app = create_app(pipeline, latest_sink=web_sink, sinks=sinks, config_service=config_service)

    def run_web_app():
        uvicorn.run(
            app,
            host=config.web.host,
            port=config.web.port,
            log_level="info",
        )

    web_thread = threading.Thread(target=run_web_app, name="stepsight-web", daemon=True)
    web_thread.start()
    logging.info(f"Web interface started on {config.web.host}:{config.web.port}")
    return web_thread


def run_ticks(pipeline: AlertPipeline, detector: Detector, ticks: int) -> None:
    """Drive a fixed number of ticks at the configured interval, then return."""
    interval = pipeline.config.scheduler.tick_interval_s
    try:
        detector.open()
    except DetectorUnavailable as e:
        logging.warning(f"Detector {detector.name} unavailable at start: {e}")
    try:
        for i in range(ticks):
            pipeline.tick()
            if i < ticks - 1:
                time.sleep(interval)
    finally:
        detector.close()

    stats = pipeline.stats
    logging.info(
        f"Run complete: ticks={stats.ticks}, alerts={stats.alerts_emitted}, "
        f"detector_failures={stats.detector_failures}"
    )


def main(argv: Optional[List[str]] = None) -> int:
    """Main application function."""
    parser = argparse.ArgumentParser(description="StepSight obstacle alert pipeline")
    parser.add_argument("--config", type=str, default="config/config.yaml",
                        help="Path to configuration file")
    parser.add_argument("--detector", type=str, choices=DETECTOR_BACKENDS,
                        help="Override detector.backend")
    parser.add_argument("--script", type=str,
                        help="Replay script for the scripted detector")
    parser.add_argument("--ticks", type=int,
                        help="Run this many ticks, then exit")
    parser.add_argument("--web", action="store_true",
                        help="Serve the web API (overrides web.enabled)")
    args = parser.parse_args(argv)

    raw_config = load_config(args.config)
    detector_section = raw_config.get("detector") or {}
    raw_config["detector"] = detector_section
    if args.script:
        detector_section["script_path"] = args.script
        detector_section["backend"] = "scripted"
    if args.detector:
        detector_section["backend"] = args.detector

    is_valid, error_msg = validate_config(raw_config)
    if not is_valid:
        logging.error(f"Configuration validation failed: {error_msg}")
        return 1

    config = Config.from_dict(raw_config)
    setup_logging(config.log_path, config.log_level)
    logging.info("Starting StepSight")

    try:
        detector = create_detector_from_config(config)
    except (ConfigurationError, ImportError) as e:
        logging.error(f"Failed to create detector: {e}")
        return 1

    sinks, web_sink = build_sinks(config)
    pipeline = AlertPipeline(config, detector, sinks=sinks)

    if args.web or config.web.enabled:
        start_web_server(pipeline, web_sink, sinks, config, ConfigService.for_config_file(args.config))

    if args.ticks is not None:
        run_ticks(pipeline, detector, args.ticks)
        return 0

    pipeline.start()
    try:
        while True:
            time.sleep(1.0)
    except KeyboardInterrupt:
        logging.info("Interrupted, shutting down")
    finally:
        pipeline.stop()
    return 0


if __name__ == "__main__":
    sys.exit(main())

"""
Pipeline engine for the obstacle alert system.

This module owns all pipeline state (track histories and the cooldown
table) and runs the fixed stage order once per tick:

    detector -> confidence gate -> center filter -> tracker update
    -> proximity filter -> clusterer -> temporal filter -> scorer
    -> synthesizer -> at most one Alert -> sinks

Ticks are single-flight: a tick requested while another is still being
processed is dropped, never queued.
"""

from __future__ import annotations

import logging
import math
import threading
import time
from dataclasses import dataclass, field, replace
from typing import Callable, List, Optional, Sequence

from stepsight.actuation.sinks import AlertSink
from stepsight.algorithms.distance import StepConverter
from stepsight.detection.base import Detector, TickContext
from stepsight.errors import ConfigurationError, DetectorUnavailable
from stepsight.models.alert import Alert
from stepsight.models.config import Config
from stepsight.models.detection import Detection
from stepsight.models.status import PipelineStatus, StatusLevel
from stepsight.pipeline.cooldown import CooldownTable
from stepsight.pipeline.stages.cluster import Clusterer
from stepsight.pipeline.stages.filters import (
    CenterFilter,
    ConfidenceGate,
    ProximityFilter,
    TemporalFilter,
)
from stepsight.pipeline.stages.priority import rank
from stepsight.pipeline.stages.synthesize import AlertSynthesizer
from stepsight.tracking.tracker import ObjectTracker


# Seconds between repeated detector failure warnings during an outage
DETECTOR_WARNING_INTERVAL_S = 30.0


@dataclass
class PipelineStats:
    """Runtime statistics for the pipeline."""
    ticks: int = 0
    dropped_ticks: int = 0
    alerts_emitted: int = 0
    detector_failures: int = 0
    gc_runs: int = 0
    start_time: float = field(default_factory=time.time)
    last_tick_ts: Optional[float] = None


class AlertPipeline:
    """
    Stateful obstacle alert pipeline.

    The pipeline can be driven two ways:
    - start()/stop(): a background thread ticks every scheduler.tick_interval_s
    - tick()/process_tick(): manual ticks (replay, tests)

    Example:
        pipeline = AlertPipeline(config, detector, sinks=[LoggingAlertSink()])
        pipeline.start()
        ...
        pipeline.stop()
    """

    def __init__(
        self,
        config: Config,
        detector: Optional[Detector] = None,
        sinks: Optional[Sequence[AlertSink]] = None,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize the pipeline.

        Args:
            config: Full application config; validated here.
            detector: Source of detections for tick(). May be None when the
                pipeline is only driven through process_tick().
            sinks: Consumers notified of every emitted alert.
            clock: Time source (unix seconds) used when a tick has no explicit time.

        Raises:
            ConfigurationError: If the config is invalid.
        """
        config.validate()
        self._config = config
        self.detector = detector
        self._sinks: List[AlertSink] = list(sinks or [])
        self._clock = clock

        self._tracker = ObjectTracker(
            history_size=config.pipeline.track_history_size,
            movement_threshold=config.pipeline.movement_threshold,
        )
        self._cooldowns = CooldownTable()
        self._build_stages()

        # Held for the whole of a tick; guards tracker and cooldown table
        self._tick_lock = threading.Lock()
        self._running = False
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

        self._tick_index = 0
        self._latest_alert: Optional[Alert] = None
        self._detector_available = True
        self._last_detector_warning: Optional[float] = None
        self.stats = PipelineStats()

    @property
    def config(self) -> Config:
        return self._config

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def latest_alert(self) -> Optional[Alert]:
        return self._latest_alert

    @property
    def tracked_keys(self) -> int:
        """Number of track keys currently held."""
        return len(self._tracker)

    @property
    def cooldown_labels(self) -> List[str]:
        """Labels currently in the cooldown table."""
        return sorted(self._cooldowns.snapshot().keys())

    def add_sink(self, sink: AlertSink) -> None:
        """Register a consumer for emitted alerts."""
        self._sinks.append(sink)

    def _build_stages(self) -> None:
        pipeline_cfg = self._config.pipeline
        categories = self._config.categories
        self._steps = StepConverter(pipeline_cfg.step_length_cm)
        self._confidence_gate = ConfidenceGate(pipeline_cfg.min_confidence)
        self._center_filter = CenterFilter(
            fov_threshold=pipeline_cfg.center_fov_threshold,
            enabled=pipeline_cfg.center_focus_only,
        )
        self._proximity_filter = ProximityFilter(categories)
        self._clusterer = Clusterer(
            categories,
            distance_threshold=pipeline_cfg.cluster_distance_threshold,
            x_threshold=pipeline_cfg.cluster_x_threshold,
        )
        self._temporal_filter = TemporalFilter(
            cooldown_s=pipeline_cfg.alert_cooldown_s,
            position_change_threshold=pipeline_cfg.position_change_threshold,
        )
        self._synthesizer = AlertSynthesizer(
            categories,
            cooldown_s=pipeline_cfg.alert_cooldown_s,
            haptics_supported=self._config.actuation.haptics_supported,
        )
        self._tracker.history_size = pipeline_cfg.track_history_size
        self._tracker.movement_threshold = pipeline_cfg.movement_threshold

    def update_config(self, config: Config) -> None:
        """
        Apply a new configuration at the next tick boundary.

        Raises:
            ConfigurationError: If the config is invalid; the current
                configuration stays in effect.
        """
        config.validate()
        with self._tick_lock:
            self._config = config
            self._build_stages()
        logging.info(
            f"Pipeline configuration updated: step_length_cm={config.pipeline.step_length_cm}"
        )

    def update_settings(self, **changes) -> None:
        """
        Update pipeline tuning fields (e.g. step_length_cm=70) live.

        Raises:
            ConfigurationError: If a field is unknown or a value is invalid.
        """
        try:
            pipeline_cfg = replace(self._config.pipeline, **changes)
        except TypeError as e:
            raise ConfigurationError(f"Unknown pipeline setting: {e}") from e
        self.update_config(replace(self._config, pipeline=pipeline_cfg))

    def start(self) -> None:
        """Open the detector and start the periodic tick loop."""
        if self._running:
            return

        if self.detector is not None:
            try:
                self.detector.open()
            except DetectorUnavailable as e:
                logging.warning(f"Detector {self.detector.name} unavailable at start: {e}")

        self.stats = PipelineStats()
        self._running = True
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run_loop, name="stepsight-ticks", daemon=True)
        self._thread.start()
        logging.info(
            f"Pipeline started: detector={self._detector_name()}, "
            f"tick_interval={self._config.scheduler.tick_interval_s}s"
        )

    def stop(self, timeout: Optional[float] = 5.0) -> None:
        """
        Stop ticking and clear all tracked state.

        Safe to call from any thread, including mid-tick: an in-flight tick
        completes (and may still emit its alert), then state is cleared.
        """
        was_running = self._running
        self._running = False
        self._stop_event.set()

        # Waits for an in-flight tick before clearing
        with self._tick_lock:
            self._reset_state()

        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=timeout)
        self._thread = None

        if self.detector is not None and was_running:
            try:
                self.detector.close()
            except Exception as e:
                logging.warning(f"Error closing detector: {e}")

        if was_running:
            logging.info(
                f"Pipeline stopped: ticks={self.stats.ticks}, dropped={self.stats.dropped_ticks}, "
                f"alerts={self.stats.alerts_emitted}"
            )

    def tick(self, now: Optional[float] = None) -> Optional[Alert]:
        """
        Pull detections from the detector and process one tick.

        Returns:
            The emitted Alert, or None (nothing to report, or tick dropped).
        """
        return self._tick(now, scheduled=False)

    def _tick(self, now: Optional[float], scheduled: bool) -> Optional[Alert]:
        if not self._tick_lock.acquire(blocking=False):
            self._drop_tick()
            return None
        try:
            if scheduled and not self._running:
                # stop() won the race for the lock
                return None
            now = self._clock() if now is None else now
            self._tick_index += 1
            context = TickContext(
                tick_index=self._tick_index,
                timestamp=now,
                step_length_cm=self._config.pipeline.step_length_cm,
            )
            detections = self._poll_detector(context)
            alert = self._process(detections, now)
        finally:
            self._tick_lock.release()

        if alert is not None:
            self._dispatch(alert)
        return alert

    def process_tick(self, detections: Sequence[Detection], now: Optional[float] = None) -> Optional[Alert]:
        """
        Process one tick from detections supplied by the caller.

        Returns:
            The emitted Alert, or None.
        """
        if not self._tick_lock.acquire(blocking=False):
            self._drop_tick()
            return None
        try:
            now = self._clock() if now is None else now
            self._tick_index += 1
            alert = self._process(list(detections), now)
        finally:
            self._tick_lock.release()

        if alert is not None:
            self._dispatch(alert)
        return alert

    def collect_garbage(self, now: Optional[float] = None) -> None:
        """Evict stale track history and cooldown entries."""
        with self._tick_lock:
            self._collect_garbage(self._clock() if now is None else now)

    def status(self) -> PipelineStatus:
        """Snapshot of pipeline health."""
        if not self._running:
            level = StatusLevel.OFFLINE
        elif not self._detector_available:
            level = StatusLevel.DEGRADED
        else:
            level = StatusLevel.RUNNING
        latest = self._latest_alert
        return PipelineStatus(
            level=level,
            running=self._running,
            detector=self._detector_name(),
            detector_available=self._detector_available,
            ticks=self.stats.ticks,
            dropped_ticks=self.stats.dropped_ticks,
            alerts_emitted=self.stats.alerts_emitted,
            detector_failures=self.stats.detector_failures,
            last_tick_ts=self.stats.last_tick_ts,
            last_alert_message=latest.message if latest else None,
        )

    def _process(self, detections: List[Detection], now: float) -> Optional[Alert]:
        """Run every stage in order. Caller holds the tick lock."""
        self.stats.ticks += 1
        self.stats.last_tick_ts = now

        candidates = [self._normalize(d) for d in detections]
        candidates = self._confidence_gate.process(candidates)
        candidates = self._center_filter.process(candidates)
        candidates = self._tracker.update(candidates)
        candidates = self._proximity_filter.process(candidates)
        candidates = self._clusterer.cluster(candidates)
        candidates = self._temporal_filter.process(candidates, now, self._cooldowns, self._tracker)

        alert = None
        if candidates:
            top, priority = rank(candidates, self._config.categories)[0]
            alert = self._synthesizer.synthesize(top, priority, now)
            self._cooldowns.record(top.label, now)
            self._latest_alert = alert
            self.stats.alerts_emitted += 1
            logging.debug(f"Alert [{alert.alert_class.value}] {alert.message} (priority={priority:.1f})")

        logging.debug(
            f"[TICK] n={self.stats.ticks} in={len(detections)} surviving={len(candidates)} "
            f"tracks={len(self._tracker)} cooldowns={len(self._cooldowns)}"
        )

        if self.stats.ticks % self._config.scheduler.gc_interval_ticks == 0:
            self._collect_garbage(now)

        return alert

    def _normalize(self, detection: Detection) -> Detection:
        """Recompute steps from distance with the current step length."""
        distance = detection.distance_m
        if not math.isfinite(distance) or distance < 0:
            logging.error(
                f"Stale state: detection {detection.id} ({detection.label}) has invalid "
                f"distance {distance}; clamping to 0"
            )
            detection = replace(detection, distance_m=0.0)
        return replace(detection, steps=self._steps.steps(detection.distance_m))

    def _collect_garbage(self, now: float) -> None:
        pipeline_cfg = self._config.pipeline
        removed_tracks = self._tracker.prune(now, pipeline_cfg.track_max_age_s)
        removed_cooldowns = self._cooldowns.prune(now, pipeline_cfg.cooldown_max_age_s)
        self.stats.gc_runs += 1
        if removed_tracks or removed_cooldowns:
            logging.debug(
                f"[GC] removed tracks={removed_tracks} cooldowns={removed_cooldowns}"
            )

    def _poll_detector(self, context: TickContext) -> List[Detection]:
        """Get this tick's detections; any detector failure counts as an empty tick."""
        if self.detector is None:
            return []
        try:
            detections = self.detector.produce_detections(context) or []
        except Exception as e:
            # DetectorUnavailable or an unexpected backend error
            self._note_detector_failure(context.timestamp, e)
            return []

        if not self._detector_available:
            logging.info(f"Detector {self._detector_name()} recovered")
        self._detector_available = True
        self._last_detector_warning = None
        return list(detections)

    def _note_detector_failure(self, now: float, error: Exception) -> None:
        self.stats.detector_failures += 1
        self._detector_available = False
        last = self._last_detector_warning
        if last is None or now - last >= DETECTOR_WARNING_INTERVAL_S:
            logging.warning(f"Detector {self._detector_name()} failed, treating tick as empty: {error}")
            self._last_detector_warning = now
        else:
            logging.debug(f"Detector failure: {error}")

    def _dispatch(self, alert: Alert) -> None:
        for sink in list(self._sinks):
            try:
                sink.handle(alert)
            except Exception as e:
                logging.warning(f"Alert sink error: {e}")

    def _drop_tick(self) -> None:
        self.stats.dropped_ticks += 1
        logging.debug("Tick dropped: previous tick still in flight")

    def _reset_state(self) -> None:
        """Clear tracked state. Caller holds the tick lock."""
        self._tracker.clear()
        self._cooldowns.clear()
        self._latest_alert = None
        self._tick_index = 0
        self._build_stages()

    def _detector_name(self) -> str:
        return self.detector.name if self.detector is not None else "none"

    def _run_loop(self) -> None:
        """Fire ticks on a fixed schedule; slots missed while a tick runs are dropped."""
        next_fire = time.monotonic()
        while self._running and not self._stop_event.is_set():
            interval = self._config.scheduler.tick_interval_s
            remaining = next_fire - time.monotonic()
            if remaining > 0:
                self._stop_event.wait(remaining)
                continue

            try:
                self._tick(None, scheduled=True)
            except Exception:
                logging.exception("Tick processing failed")

            next_fire += interval
            behind = time.monotonic() - next_fire
            if behind > 0:
                missed = int(behind // interval) + 1
                self.stats.dropped_ticks += missed
                next_fire += missed * interval
                logging.debug(f"Tick overran its period; dropped {missed} tick(s)")

"""
Alert sinks: consumers of emitted alerts.

The pipeline never calls speech or haptic APIs itself. Each sink decides
independently whether to act on an alert, based on the alert's flags and
its own enabled state. Platform calls are injected as callables.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional, Protocol, Tuple

from stepsight.models.alert import Alert, AlertClass
from stepsight.models.config import ActuationConfig


class AlertSink(Protocol):
    def handle(self, alert: Alert) -> None:
        ...


@dataclass(frozen=True)
class VoiceOptions:
    """Speech parameters for an alert class."""
    pitch: float
    rate: float
    language: str = "en"


VOICE_BY_CLASS: Dict[AlertClass, VoiceOptions] = {
    AlertClass.URGENT: VoiceOptions(pitch=1.3, rate=0.95),
    AlertClass.WARNING: VoiceOptions(pitch=1.1, rate=0.85),
    AlertClass.INFO: VoiceOptions(pitch=1.0, rate=0.85),
}

# (intensity, delay_ms) pulses per alert class
HAPTIC_PATTERNS: Dict[AlertClass, List[Tuple[str, int]]] = {
    AlertClass.URGENT: [("heavy", 0), ("heavy", 150), ("heavy", 300)],
    AlertClass.WARNING: [("medium", 0), ("medium", 200)],
    AlertClass.INFO: [("light", 0)],
}


class LoggingAlertSink:
    """Logs every alert."""

    def handle(self, alert: Alert) -> None:
        logging.info(
            f"[ALERT] {alert.alert_class.value}: {alert.message} "
            f"(announce={alert.should_announce}, haptic={alert.should_actuate_haptic})"
        )


class AnnouncementSink:
    """
    Speaks alert messages.

    An alert is spoken when it should be announced, audio is enabled, and
    either announcement_delay_s has passed since the last spoken alert or
    the alert is urgent.

    Args:
        speak: Callable taking (message, VoiceOptions).
        audio_enabled: User audio toggle.
        announcement_delay_s: Minimum gap between non-urgent announcements.
        clock: Time source (seconds).
    """

    def __init__(
        self,
        speak: Callable[[str, VoiceOptions], None],
        audio_enabled: bool = True,
        announcement_delay_s: float = 3.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._speak = speak
        self.audio_enabled = audio_enabled
        self.announcement_delay_s = announcement_delay_s
        self._clock = clock
        self._last_spoken: Optional[float] = None

    def handle(self, alert: Alert) -> None:
        if not (alert.should_announce and self.audio_enabled):
            return
        now = self._clock()
        delay_passed = (
            self._last_spoken is None
            or now - self._last_spoken > self.announcement_delay_s
        )
        if not (delay_passed or alert.is_urgent):
            logging.debug(f"Announcement throttled: {alert.message}")
            return
        self._speak(alert.message, VOICE_BY_CLASS[alert.alert_class])
        self._last_spoken = now


class HapticSink:
    """
    Plays a vibration pattern for alerts flagged for haptic actuation.

    Args:
        vibrate: Callable taking an intensity ("heavy", "medium", "light").
        haptic_enabled: User haptic toggle.
        sleep: Delay function between pulses (seconds).
    """

    def __init__(
        self,
        vibrate: Callable[[str], None],
        haptic_enabled: bool = True,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self._vibrate = vibrate
        self.haptic_enabled = haptic_enabled
        self._sleep = sleep

    def handle(self, alert: Alert) -> None:
        if not (alert.should_actuate_haptic and self.haptic_enabled):
            return
        elapsed_ms = 0
        for intensity, at_ms in HAPTIC_PATTERNS[alert.alert_class]:
            if at_ms > elapsed_ms:
                self._sleep((at_ms - elapsed_ms) / 1000.0)
                elapsed_ms = at_ms
            self._vibrate(intensity)


class WebStateSink:
    """Publishes the most recent alert to the web shared state for overlay polling."""

    def __init__(self):
        self._lock = threading.Lock()
        self._alert: Optional[Alert] = None
        self._received_at: Optional[float] = None

    def handle(self, alert: Alert) -> None:
        with self._lock:
            self._alert = alert
            self._received_at = time.time()

    def latest(self) -> Tuple[Optional[Alert], Optional[float]]:
        with self._lock:
            return self._alert, self._received_at

    def clear(self) -> None:
        with self._lock:
            self._alert = None
            self._received_at = None


def apply_actuation_settings(sinks: Iterable[AlertSink], actuation: ActuationConfig) -> None:
    """Push user actuation preferences to the sinks that honor them."""
    for sink in sinks:
        if isinstance(sink, AnnouncementSink):
            sink.audio_enabled = actuation.audio_enabled
            sink.announcement_delay_s = actuation.announcement_delay_s
        elif isinstance(sink, HapticSink):
            sink.haptic_enabled = actuation.haptic_enabled

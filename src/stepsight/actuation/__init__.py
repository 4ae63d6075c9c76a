"""
Actuation layer: alert sinks for speech, haptics, logging and polling.
"""

from .sinks import (
    AlertSink,
    AnnouncementSink,
    HapticSink,
    WebStateSink,
    LoggingAlertSink,
    VoiceOptions,
    apply_actuation_settings,
)

__all__ = [
    "AlertSink",
    "AnnouncementSink",
    "HapticSink",
    "WebStateSink",
    "LoggingAlertSink",
    "VoiceOptions",
    "apply_actuation_settings",
]

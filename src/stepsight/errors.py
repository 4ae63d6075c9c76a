"""
Error taxonomy for the obstacle alert pipeline.

- ConfigurationError: fatal, raised while building or reconfiguring a pipeline.
- DetectorUnavailable: recoverable, a detector could not produce detections
  this tick. The pipeline treats it exactly like an empty tick.
- StaleStateInconsistency: internal invariant violation in pipeline state.
  Logged and self-healed, never propagated out of a tick.
"""

from __future__ import annotations


class StepSightError(Exception):
    """Base class for all pipeline errors."""


class ConfigurationError(StepSightError, ValueError):
    """Invalid configuration value (non-positive step length, bad thresholds, ...)."""


class DetectorUnavailable(StepSightError, RuntimeError):
    """The detector backend is unreachable, not loaded, or failed this tick."""


class StaleStateInconsistency(StepSightError, RuntimeError):
    """
    Tracked state violates an invariant.

    Attributes:
        key: The state key (e.g. a TrackKey) holding the offending entry.
    """

    def __init__(self, message: str, key=None):
        super().__init__(message)
        self.key = key

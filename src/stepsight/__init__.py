"""
StepSight: obstacle alert pipeline for visually impaired pedestrians.

Turns per-tick object detections into at most one prioritized, human-readable
alert per tick, expressed in the user's own steps.
"""

__version__ = "0.1.0"

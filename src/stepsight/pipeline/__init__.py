"""
Pipeline module for the obstacle alert system.

The pipeline orchestrates the full per-tick flow:
- Detection polling (via a Detector)
- Filtering, tracking and clustering
- Prioritization and alert synthesis
- Alert delivery to sinks
"""

from .engine import AlertPipeline, PipelineStats
from .cooldown import CooldownTable

__all__ = [
    "AlertPipeline",
    "PipelineStats",
    "CooldownTable",
]

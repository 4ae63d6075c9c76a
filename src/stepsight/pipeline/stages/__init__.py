"""
Pipeline stages for the obstacle alert pipeline.

Each stage handles a specific part of the per-tick processing:
- filters: confidence gate, center-of-view, proximity/movement, cooldown
- cluster: merging of co-located detections
- priority: ranking of surviving detections
- synthesize: alert class, actuation flags and message
"""

from .filters import CenterFilter, ConfidenceGate, ProximityFilter, TemporalFilter
from .cluster import Clusterer, cluster_label
from .priority import rank, score
from .synthesize import AlertSynthesizer, build_message, classify

__all__ = [
    "ConfidenceGate",
    "CenterFilter",
    "ProximityFilter",
    "TemporalFilter",
    "Clusterer",
    "cluster_label",
    "rank",
    "score",
    "AlertSynthesizer",
    "build_message",
    "classify",
]

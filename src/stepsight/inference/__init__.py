"""
Inference backends for the on-device detector.
"""

from .backend import InferenceBackend, RawDetection
from .cpu_backend import CpuYoloConfig, UltralyticsCpuBackend

__all__ = [
    "InferenceBackend",
    "RawDetection",
    "CpuYoloConfig",
    "UltralyticsCpuBackend",
]

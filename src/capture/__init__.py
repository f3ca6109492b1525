"""
Capture runtime around board_features: one-shot capture trigger, runtime
experimental-region bounds, input loaders and the per-cycle extractor.
"""

from .bounds import BoundsStore
from .extractor import CycleResult, CycleStatus, FeatureExtractor
from .loader import estimate_rings, load_image, load_scan
from .trigger import CaptureTrigger, SampleOperation

__all__ = [
    'BoundsStore',
    'CaptureTrigger',
    'CycleResult',
    'CycleStatus',
    'FeatureExtractor',
    'SampleOperation',
    'estimate_rings',
    'load_image',
    'load_scan',
]

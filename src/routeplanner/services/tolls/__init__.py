"""Toll detection services."""

from .detector import TollDetectionResult, detect_tolls, merge_tolls
from .overpass_client import OverpassClient, OverpassError, TollNode

__all__ = [
    "detect_tolls",
    "merge_tolls",
    "TollDetectionResult",
    "OverpassClient",
    "OverpassError",
    "TollNode",
]

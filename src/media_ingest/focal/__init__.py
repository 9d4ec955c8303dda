"""Pluggable focal-point (crop anchor) detection."""

from .base import (
    FOCAL_PRESETS,
    FOCAL_SHORTHAND,
    CenterFocalDetector,
    DetectorRegistry,
    FallbackFocalDetector,
    FocalDetector,
    build_default_registry,
    preset_focal_point,
    resolve_focal_preset,
)
from .geometry import Box, decode_detections, iou, non_max_suppression, weighted_centroid

__all__ = [
    "FOCAL_PRESETS",
    "FOCAL_SHORTHAND",
    "Box",
    "CenterFocalDetector",
    "DetectorRegistry",
    "FallbackFocalDetector",
    "FocalDetector",
    "build_default_registry",
    "decode_detections",
    "iou",
    "non_max_suppression",
    "preset_focal_point",
    "resolve_focal_preset",
    "weighted_centroid",
]

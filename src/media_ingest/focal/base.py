"""Focal detector interface, presets and the strategy registry."""

from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from ..core.exceptions import ConfigurationError
from ..core.logging_config import get_logger
from ..core.models import FocalPoint

FOCAL_PRESETS: Dict[str, FocalPoint] = {
    "center": FocalPoint(x=50, y=50),
    "top": FocalPoint(x=50, y=0),
    "bottom": FocalPoint(x=50, y=100),
    "top left": FocalPoint(x=0, y=0),
    "top right": FocalPoint(x=100, y=0),
    "bottom left": FocalPoint(x=0, y=100),
    "bottom right": FocalPoint(x=100, y=100),
}

FOCAL_SHORTHAND: Dict[str, str] = {
    "c": "center",
    "t": "top",
    "b": "bottom",
    "tl": "top left",
    "tr": "top right",
    "bl": "bottom left",
    "br": "bottom right",
}


def resolve_focal_preset(value: str) -> Optional[str]:
    """Expand a shorthand or validate a full preset name; None if unknown."""
    lowered = " ".join(value.lower().split())
    expanded = FOCAL_SHORTHAND.get(lowered, lowered)
    return expanded if expanded in FOCAL_PRESETS else None


def preset_focal_point(value: str) -> FocalPoint:
    preset = resolve_focal_preset(value)
    if preset is None:
        choices = ", ".join(list(FOCAL_PRESETS) + list(FOCAL_SHORTHAND))
        raise ConfigurationError(f"Unknown focal preset {value!r}. Use one of: {choices}")
    return FOCAL_PRESETS[preset]


class FocalDetector(ABC):
    """Strategy that proposes a crop anchor for an image."""

    name: str = "base"

    @abstractmethod
    def detect(self, data: bytes) -> Optional[FocalPoint]:
        """
        Return a percentage anchor, or None when nothing meaningful was found.

        Raises:
            DecodeError: If the bytes cannot be decoded
        """


class CenterFocalDetector(FocalDetector):
    """Always defers to the center anchor."""

    name = "none"

    def detect(self, data: bytes) -> Optional[FocalPoint]:
        return None


class FallbackFocalDetector(FocalDetector):
    """Tries each detector in order until one finds an anchor."""

    name = "auto"

    def __init__(self, detectors: List[FocalDetector]):
        self.detectors = detectors
        self.logger = get_logger("media-ingest.focal")

    def detect(self, data: bytes) -> Optional[FocalPoint]:
        errors: List[Exception] = []
        for detector in self.detectors:
            try:
                focal = detector.detect(data)
            except Exception as exc:  # noqa: BLE001
                self.logger.warning(f"Focal strategy '{detector.name}' failed: {exc}")
                errors.append(exc)
                continue
            if focal is not None:
                return focal
        if errors and len(errors) == len(self.detectors):
            raise errors[-1]
        return None


class DetectorRegistry:
    """Name to detector mapping; callers look strategies up by name."""

    def __init__(self):
        self._detectors: Dict[str, FocalDetector] = {}

    def register(self, detector: FocalDetector, name: Optional[str] = None) -> None:
        self._detectors[name or detector.name] = detector

    def get(self, name: str) -> FocalDetector:
        try:
            return self._detectors[name]
        except KeyError:
            raise ConfigurationError(
                f"Unknown focal strategy {name!r}. Use one of: {', '.join(self.names())}"
            ) from None

    def names(self) -> List[str]:
        return list(self._detectors)

    def detect(self, data: bytes, strategy: str) -> Optional[FocalPoint]:
        return self.get(strategy).detect(data)

    def compare_strategies(self, data: bytes) -> Dict[str, Optional[FocalPoint]]:
        """Run every registered strategy; a failing strategy reports None."""
        results: Dict[str, Optional[FocalPoint]] = {}
        for name, detector in self._detectors.items():
            try:
                results[name] = detector.detect(data)
            except Exception:  # noqa: BLE001
                results[name] = None
        return results


def build_default_registry(model_path: str) -> DetectorRegistry:
    """Registry with the neural, saliency, auto and none strategies."""
    from .neural import InferenceSessionHolder, NeuralFocalDetector
    from .saliency import SaliencyFocalDetector

    neural = NeuralFocalDetector(InferenceSessionHolder(model_path))
    saliency = SaliencyFocalDetector()

    registry = DetectorRegistry()
    registry.register(neural)
    registry.register(saliency)
    registry.register(FallbackFocalDetector([neural, saliency]))
    registry.register(CenterFocalDetector())
    return registry

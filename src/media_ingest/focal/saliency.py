"""Model-free focal strategy based on an attention (saliency) crop."""

from typing import Optional, Tuple

import cv2
import numpy as np
from PIL import Image

from ..core.image_utils import auto_orient, clamp, open_image, round_half_up, to_rgb
from ..core.logging_config import get_logger
from ..core.models import FocalPoint
from .base import FocalDetector

ANALYSIS_WIDTH = 1200
ANALYSIS_HEIGHT = 630
WORKING_SIZE = 256
DEADBAND = (45, 55)

# Below this luminance spread the image has nothing to attend to
MIN_CONTRAST = 1.0

logger = get_logger("media-ingest.saliency")


def saliency_map(rgb: np.ndarray) -> np.ndarray:
    """
    Per-pixel interest score from OpenCV's spectral residual saliency.

    Falls back to Canny edges when the saliency module is unavailable or
    fails. A featureless image yields an all-zero map.
    """
    gray = cv2.cvtColor(np.ascontiguousarray(rgb, dtype=np.uint8), cv2.COLOR_RGB2GRAY)
    if float(gray.std()) < MIN_CONTRAST:
        return np.zeros(gray.shape, dtype=np.float32)

    try:
        detector = cv2.saliency.StaticSaliencySpectralResidual_create()
        success, scores = detector.computeSaliency(gray)
        if not success:
            raise RuntimeError("Saliency computation failed")
        scores = np.nan_to_num(
            np.asarray(scores, dtype=np.float32), nan=0.0, posinf=0.0, neginf=0.0
        )
        if not scores.any():
            raise RuntimeError("Saliency map is empty")
    except (AttributeError, RuntimeError, cv2.error) as exc:
        logger.debug(f"Spectral residual saliency unusable ({exc}); using edges")
        scores = cv2.Canny(gray, 50, 150).astype(np.float32)

    peak = float(scores.max())
    return scores / peak if peak > 0 else scores


def best_window(scores: np.ndarray, window_w: int, window_h: int) -> Tuple[int, int]:
    """
    Offset (left, top) of the window with the highest summed score.

    Ties, including a flat map, resolve to the window nearest the middle.
    """
    height, width = scores.shape
    window_w = min(window_w, width)
    window_h = min(window_h, height)

    integral = np.zeros((height + 1, width + 1), dtype=np.float64)
    integral[1:, 1:] = scores.cumsum(axis=0).cumsum(axis=1)
    sums = (
        integral[window_h:, window_w:]
        - integral[:-window_h, window_w:]
        - integral[window_h:, :-window_w]
        + integral[:-window_h, :-window_w]
    )

    best = sums.max()
    tolerance = max(abs(best) * 1e-6, 1e-9)
    tops, lefts = np.nonzero(sums >= best - tolerance)
    mid_top = (height - window_h) / 2
    mid_left = (width - window_w) / 2
    distance = (lefts - mid_left) ** 2 + (tops - mid_top) ** 2
    pick = int(np.argmin(distance))
    return int(lefts[pick]), int(tops[pick])


def attention_crop_offset(
    image: Image.Image,
    target_width: int = ANALYSIS_WIDTH,
    target_height: int = ANALYSIS_HEIGHT,
) -> Tuple[int, int, int, int]:
    """
    Cover-fit the image to the target and choose the most salient crop.

    Returns:
        (scaled_width, scaled_height, left, top) in scaled-source pixels
    """
    src_w, src_h = image.size
    scale = max(target_width / src_w, target_height / src_h)
    scaled_w = round_half_up(src_w * scale)
    scaled_h = round_half_up(src_h * scale)

    # Analyse a reduced copy; offsets are mapped back afterwards
    factor = min(1.0, WORKING_SIZE / max(scaled_w, scaled_h))
    work_w = max(1, round_half_up(scaled_w * factor))
    work_h = max(1, round_half_up(scaled_h * factor))
    window_w = max(1, min(work_w, round_half_up(target_width * factor)))
    window_h = max(1, min(work_h, round_half_up(target_height * factor)))

    reduced = to_rgb(image).resize((work_w, work_h), Image.Resampling.BILINEAR)
    left, top = best_window(saliency_map(np.asarray(reduced)), window_w, window_h)

    max_left = max(0, scaled_w - target_width)
    max_top = max(0, scaled_h - target_height)
    return (
        scaled_w,
        scaled_h,
        clamp(round_half_up(left / factor), 0, max_left),
        clamp(round_half_up(top / factor), 0, max_top),
    )


class SaliencyFocalDetector(FocalDetector):
    """Anchors on the most salient analysis-sized crop; None near the center."""

    name = "saliency"

    def detect(self, data: bytes) -> Optional[FocalPoint]:
        image = auto_orient(open_image(data))
        scaled_w, scaled_h, left, top = attention_crop_offset(image)

        x = round_half_up((left + ANALYSIS_WIDTH / 2) / scaled_w * 100)
        y = round_half_up((top + ANALYSIS_HEIGHT / 2) / scaled_h * 100)
        low, high = DEADBAND
        if low <= x <= high and low <= y <= high:
            return None
        return FocalPoint(x=clamp(x, 0, 100), y=clamp(y, 0, 100))

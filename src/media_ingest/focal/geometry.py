"""Box arithmetic for face detections: decoding, NMS and centroids."""

from dataclasses import dataclass
from typing import List, Optional

import numpy as np

from ..core.image_utils import clamp, round_half_up
from ..core.models import FocalPoint

CONFIDENCE_THRESHOLD = 0.7
IOU_THRESHOLD = 0.5
IOU_EPSILON = 1e-5


@dataclass(frozen=True)
class Box:
    """Detection box in normalized [0, 1] coordinates."""

    x1: float
    y1: float
    x2: float
    y2: float
    score: float = 1.0

    @property
    def area(self) -> float:
        return max(0.0, self.x2 - self.x1) * max(0.0, self.y2 - self.y1)

    @property
    def center(self):
        return (self.x1 + self.x2) / 2, (self.y1 + self.y2) / 2


def iou(a: Box, b: Box) -> float:
    """Intersection-over-union of two boxes."""
    inter_w = max(0.0, min(a.x2, b.x2) - max(a.x1, b.x1))
    inter_h = max(0.0, min(a.y2, b.y2) - max(a.y1, b.y1))
    inter = inter_w * inter_h
    return inter / (a.area + b.area - inter + IOU_EPSILON)


def non_max_suppression(boxes: List[Box], threshold: float = IOU_THRESHOLD) -> List[Box]:
    """Greedy NMS: keep a box only if it overlaps every kept box by at most ``threshold``."""
    kept: List[Box] = []
    for box in sorted(boxes, key=lambda b: b.score, reverse=True):
        if all(iou(k, box) <= threshold for k in kept):
            kept.append(box)
    return kept


def decode_detections(
    scores: np.ndarray,
    boxes: np.ndarray,
    threshold: float = CONFIDENCE_THRESHOLD,
) -> List[Box]:
    """
    Turn raw detector outputs into suppressed boxes.

    Args:
        scores: (1, N, 2) or (N, 2) background/face probabilities per anchor
        boxes: (1, N, 4) or (N, 4) corner coordinates per anchor
        threshold: Minimum face score

    Returns:
        Boxes surviving the score threshold and NMS
    """
    scores = np.asarray(scores, dtype=np.float32).reshape(-1, 2)
    boxes = np.asarray(boxes, dtype=np.float32).reshape(-1, 4)
    face_scores = scores[:, 1]
    mask = face_scores >= threshold
    detected = [
        Box(float(x1), float(y1), float(x2), float(y2), float(score))
        for (x1, y1, x2, y2), score in zip(boxes[mask], face_scores[mask])
    ]
    return non_max_suppression(detected)


def weighted_centroid(boxes: List[Box]) -> Optional[FocalPoint]:
    """Area-weighted mean of box centers as a percentage anchor."""
    if not boxes:
        return None
    total = sum(b.area for b in boxes)
    if total <= 0:
        # Degenerate boxes: plain mean of centers
        weights = [1.0] * len(boxes)
        total = float(len(boxes))
    else:
        weights = [b.area for b in boxes]

    cx = sum(w * b.center[0] for w, b in zip(weights, boxes)) / total
    cy = sum(w * b.center[1] for w, b in zip(weights, boxes)) / total
    return FocalPoint(
        x=clamp(round_half_up(cx * 100), 0, 100),
        y=clamp(round_half_up(cy * 100), 0, 100),
    )

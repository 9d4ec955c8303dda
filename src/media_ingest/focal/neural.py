"""Face-detection focal strategy backed by an UltraFace ONNX model."""

import os
import threading
from typing import Callable, Optional

import numpy as np
import onnxruntime as ort
from PIL import Image

from ..core.exceptions import ConfigurationError
from ..core.image_utils import auto_orient, open_image, to_rgb
from ..core.logging_config import get_logger
from ..core.models import FocalPoint
from ..core.protocols import InferenceSessionProtocol
from .base import FocalDetector
from .geometry import decode_detections, weighted_centroid

INPUT_WIDTH = 320
INPUT_HEIGHT = 240
PIXEL_MEAN = 127.0
PIXEL_SCALE = 128.0


def _create_session(model_path: str) -> InferenceSessionProtocol:
    options = ort.SessionOptions()
    # 3 = errors only; hides initializer warnings from the exported model
    options.log_severity_level = 3
    return ort.InferenceSession(
        model_path, sess_options=options, providers=["CPUExecutionProvider"]
    )


class InferenceSessionHolder:
    """
    Builds the inference session on first use and caches it.

    ``reset()`` drops the cached session so tests (or a model swap) start
    from scratch.
    """

    def __init__(
        self,
        model_path: str,
        factory: Optional[Callable[[str], InferenceSessionProtocol]] = None,
    ):
        self.model_path = model_path
        self._factory = factory or _create_session
        self._session: Optional[InferenceSessionProtocol] = None
        self._lock = threading.Lock()
        self.logger = get_logger("media-ingest.focal.neural")

    def get(self) -> InferenceSessionProtocol:
        with self._lock:
            if self._session is None:
                if self._factory is _create_session and not os.path.exists(self.model_path):
                    raise ConfigurationError(
                        f"Face-detection model not found at {self.model_path}. "
                        "Set MEDIA_INGEST_MODEL_PATH or use --focal-strategy saliency."
                    )
                self.logger.info(f"Loading face-detection model from {self.model_path}")
                self._session = self._factory(self.model_path)
            return self._session

    def reset(self) -> None:
        with self._lock:
            self._session = None

    @property
    def loaded(self) -> bool:
        return self._session is not None


def preprocess(image: Image.Image) -> np.ndarray:
    """Resize to the network input and return a normalized (1, 3, H, W) tensor."""
    resized = to_rgb(image).resize((INPUT_WIDTH, INPUT_HEIGHT), Image.Resampling.BILINEAR)
    pixels = np.asarray(resized, dtype=np.float32)
    pixels = (pixels - PIXEL_MEAN) / PIXEL_SCALE
    return np.transpose(pixels, (2, 0, 1))[np.newaxis, ...].astype(np.float32)


class NeuralFocalDetector(FocalDetector):
    """Places the anchor on the area-weighted centroid of detected faces."""

    name = "neural"

    def __init__(self, holder: InferenceSessionHolder):
        self.holder = holder

    def detect(self, data: bytes) -> Optional[FocalPoint]:
        image = auto_orient(open_image(data))
        tensor = preprocess(image)

        session = self.holder.get()
        input_name = session.get_inputs()[0].name
        scores, boxes = session.run(None, {input_name: tensor})[:2]

        faces = decode_detections(scores, boxes)
        return weighted_centroid(faces)

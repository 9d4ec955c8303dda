"""Fake implementations for testing purposes."""

import asyncio
import io
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

import numpy as np
from PIL import ExifTags, Image

from ..core.exceptions import StoreError
from ..core.models import Checkpoint, HeadResult, IngestManifest, IngestTarget, ObjectInfo


@dataclass
class StoredObject:
    """Fake stored object for testing."""

    key: str
    body: bytes
    content_type: str = "application/octet-stream"
    last_modified: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def size(self) -> int:
        return len(self.body)


class FakeObjectStore:
    """In-memory async object store with call counters and failure injection."""

    def __init__(self):
        self.objects: Dict[str, StoredObject] = {}
        self.upload_calls: List[str] = []
        self.list_calls: List[str] = []
        self.head_calls: List[str] = []
        self.delete_calls: List[List[str]] = []
        self.should_fail = False
        self.failure_message = "Simulated store failure"
        self.fail_after_uploads: Optional[int] = None
        self.fail_on_keys: List[str] = []
        self.delay_seconds = 0.0
        self.in_flight = 0
        self.max_in_flight = 0

    def add_object(
        self, key: str, body: bytes = b"", content_type: str = "application/octet-stream"
    ) -> None:
        """Seed an object without counting it as an upload."""
        self.objects[key] = StoredObject(key=key, body=body, content_type=content_type)

    def set_failure_mode(self, should_fail: bool, message: str = "Simulated store failure") -> None:
        """Configure failure mode for testing error handling."""
        self.should_fail = should_fail
        self.failure_message = message

    def set_delay(self, seconds: float) -> None:
        """Set an artificial per-upload delay to exercise concurrency."""
        self.delay_seconds = seconds

    def keys(self) -> List[str]:
        return sorted(self.objects)

    def _check_failure(self) -> None:
        if self.should_fail:
            raise StoreError(self.failure_message)

    async def upload(self, key: str, data: bytes, content_type: str) -> None:
        self._check_failure()
        if self.fail_after_uploads is not None and len(self.upload_calls) >= self.fail_after_uploads:
            raise StoreError(f"Simulated failure after {self.fail_after_uploads} uploads")
        if key in self.fail_on_keys:
            raise StoreError(f"Simulated failure for {key}")

        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay_seconds > 0:
                await asyncio.sleep(self.delay_seconds)
            self.upload_calls.append(key)
            self.objects[key] = StoredObject(key=key, body=bytes(data), content_type=content_type)
        finally:
            self.in_flight -= 1

    async def batch_delete(self, keys: List[str]) -> int:
        self._check_failure()
        self.delete_calls.append(list(keys))
        deleted = 0
        for key in keys:
            if self.objects.pop(key, None) is not None:
                deleted += 1
        return deleted

    async def list(self, prefix: str) -> List[ObjectInfo]:
        self._check_failure()
        self.list_calls.append(prefix)
        return [
            ObjectInfo(key=obj.key, size=obj.size, last_modified=obj.last_modified)
            for key, obj in sorted(self.objects.items())
            if key.startswith(prefix)
        ]

    async def head(self, key: str) -> HeadResult:
        self._check_failure()
        self.head_calls.append(key)
        obj = self.objects.get(key)
        if obj is None:
            return HeadResult(exists=False)
        return HeadResult(exists=True, size=obj.size, content_type=obj.content_type)

    async def list_prefixes(self, prefix: str) -> List[str]:
        self._check_failure()
        found = set()
        for key in self.objects:
            if key.startswith(prefix):
                rest = key[len(prefix):]
                if "/" in rest:
                    found.add(prefix + rest.split("/", 1)[0] + "/")
        return sorted(found)


class FakeManifestWriter:
    """Collects manifests instead of writing them."""

    def __init__(self):
        self.manifests: List[IngestManifest] = []
        self.should_fail = False

    def read(self, target: IngestTarget) -> Optional[IngestManifest]:
        for manifest in reversed(self.manifests):
            if manifest.target == target:
                return manifest
        return None

    def write(self, manifest: IngestManifest) -> str:
        if self.should_fail:
            raise OSError("Simulated manifest write failure")
        self.manifests.append(manifest)
        return f"memory://{manifest.target.scope}/{manifest.target.slug}.json"


class InMemoryCheckpointStore:
    """Checkpoint store kept in memory; every save is kept for inspection."""

    def __init__(self, location: str = "memory://checkpoint"):
        self._location = location
        self.current: Optional[Checkpoint] = None
        self.saves: List[Checkpoint] = []
        self.fail_delete = False

    @property
    def location(self) -> str:
        return self._location

    def load(self) -> Optional[Checkpoint]:
        return self.current.model_copy(deep=True) if self.current else None

    def save(self, checkpoint: Checkpoint) -> None:
        self.current = checkpoint.model_copy(deep=True)
        self.saves.append(self.current)

    def delete(self) -> None:
        if self.fail_delete:
            raise OSError("Simulated delete failure")
        self.current = None


@dataclass
class FakeInput:
    name: str = "input"


class FakeInferenceSession:
    """Stands in for ``onnxruntime.InferenceSession`` with canned outputs."""

    def __init__(self, detections: Optional[List[Tuple[float, Tuple[float, float, float, float]]]] = None, anchors: int = 16):
        detections = detections or []
        anchors = max(anchors, len(detections))
        self.scores = np.zeros((1, anchors, 2), dtype=np.float32)
        self.scores[0, :, 0] = 1.0
        self.boxes = np.zeros((1, anchors, 4), dtype=np.float32)
        for i, (score, box) in enumerate(detections):
            self.scores[0, i] = (1.0 - score, score)
            self.boxes[0, i] = box
        self.calls: List[Dict[str, Any]] = []

    def get_inputs(self) -> List[FakeInput]:
        return [FakeInput()]

    def run(self, output_names: Optional[List[str]], input_feed: Dict[str, Any]) -> List[Any]:
        self.calls.append(input_feed)
        return [self.scores, self.boxes]


class FakeLogger:
    """Fake logger for testing with support for LogContext."""

    def __init__(self, name: str = "test_logger"):
        self.name = name
        self.logs: List[Dict[str, Any]] = []

    def _log(self, level: str, message: str, context: Any = None, **kwargs: Any) -> None:
        log_entry = {
            "level": level,
            "message": message,
            "timestamp": time.time(),
            **kwargs,
        }
        if context is not None:
            log_entry["correlation_id"] = getattr(context, "correlation_id", None)
            log_entry["operation"] = getattr(context, "operation", None)
            log_entry.update(getattr(context, "metadata", {}))
        self.logs.append(log_entry)

    def debug(self, message: str, context: Any = None, **kwargs: Any) -> None:
        self._log("DEBUG", message, context, **kwargs)

    def info(self, message: str, context: Any = None, **kwargs: Any) -> None:
        self._log("INFO", message, context, **kwargs)

    def warning(self, message: str, context: Any = None, **kwargs: Any) -> None:
        self._log("WARNING", message, context, **kwargs)

    def error(self, message: str, context: Any = None, **kwargs: Any) -> None:
        self._log("ERROR", message, context, **kwargs)

    def messages(self, level: Optional[str] = None) -> List[str]:
        return [log["message"] for log in self.logs if level is None or log["level"] == level]


def create_test_image(
    width: int = 100,
    height: int = 100,
    color: str = "red",
    format: str = "JPEG",
    mode: str = "RGB",
) -> bytes:
    """Create a test image as bytes."""
    img = Image.new(mode, (width, height), color=color)
    buffer = io.BytesIO()
    img.save(buffer, format=format)
    return buffer.getvalue()


def create_jpeg_with_exif(
    width: int = 120,
    height: int = 80,
    date_original: Optional[str] = None,
    date_digitized: Optional[str] = None,
    date_modified: Optional[str] = None,
    orientation: Optional[int] = None,
    color: str = "blue",
) -> bytes:
    """JPEG carrying EXIF dates (``YYYY:MM:DD HH:MM:SS``) and an orientation."""
    img = Image.new("RGB", (width, height), color=color)
    exif = Image.Exif()
    if date_modified:
        exif[ExifTags.Base.DateTime] = date_modified
    if orientation:
        exif[ExifTags.Base.Orientation] = orientation
    exif_ifd = {}
    if date_original:
        exif_ifd[ExifTags.Base.DateTimeOriginal] = date_original
    if date_digitized:
        exif_ifd[ExifTags.Base.DateTimeDigitized] = date_digitized
    if exif_ifd:
        exif[ExifTags.IFD.Exif] = exif_ifd
    buffer = io.BytesIO()
    img.save(buffer, format="JPEG", exif=exif)
    return buffer.getvalue()


def create_animated_gif(width: int = 64, height: int = 48, frames: int = 3) -> bytes:
    """Small animated GIF with distinct frame colours."""
    colors = ["red", "green", "blue", "yellow"]
    images = [Image.new("RGB", (width, height), colors[i % len(colors)]) for i in range(frames)]
    buffer = io.BytesIO()
    images[0].save(buffer, format="GIF", save_all=True, append_images=images[1:], duration=100, loop=0)
    return buffer.getvalue()

"""Testing utilities and fakes for the media ingestion pipeline."""

from .fakes import (
    FakeInferenceSession,
    FakeLogger,
    FakeManifestWriter,
    FakeObjectStore,
    InMemoryCheckpointStore,
    StoredObject,
    create_animated_gif,
    create_jpeg_with_exif,
    create_test_image,
)

__all__ = [
    "FakeInferenceSession",
    "FakeLogger",
    "FakeManifestWriter",
    "FakeObjectStore",
    "InMemoryCheckpointStore",
    "StoredObject",
    "create_animated_gif",
    "create_jpeg_with_exif",
    "create_test_image",
]

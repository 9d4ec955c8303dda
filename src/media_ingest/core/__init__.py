"""Core utilities and shared components for the media ingestion pipeline."""

from .classifier import (
    FileKind,
    Lane,
    format_bytes,
    get_file_kind,
    get_mime_type,
    lane_for,
    sanitize_filename,
    sanitize_stem,
)
from .config import IngestSettings, StoreSettings
from .exceptions import (
    CheckpointCorruptError,
    CheckpointError,
    CheckpointIncompleteError,
    CheckpointMismatchError,
    ConfigurationError,
    DecodeError,
    KeyCollisionError,
    MediaIngestError,
    SourceDirectoryError,
    StoreError,
    batch_error_handler,
)
from .logging_config import get_logger, set_level, setup_logger
from .models import (
    Checkpoint,
    FocalPoint,
    IngestedFile,
    IngestManifest,
    IngestResult,
    IngestTarget,
    MediaVariant,
    OverlaySpec,
    ProcessedImage,
    RunParameters,
    UploadPlanEntry,
)

__all__ = [
    "FileKind",
    "Lane",
    "format_bytes",
    "get_file_kind",
    "get_mime_type",
    "lane_for",
    "sanitize_filename",
    "sanitize_stem",
    "IngestSettings",
    "StoreSettings",
    "CheckpointCorruptError",
    "CheckpointError",
    "CheckpointIncompleteError",
    "CheckpointMismatchError",
    "ConfigurationError",
    "DecodeError",
    "KeyCollisionError",
    "MediaIngestError",
    "SourceDirectoryError",
    "StoreError",
    "batch_error_handler",
    "get_logger",
    "set_level",
    "setup_logger",
    "Checkpoint",
    "FocalPoint",
    "IngestedFile",
    "IngestManifest",
    "IngestResult",
    "IngestTarget",
    "MediaVariant",
    "OverlaySpec",
    "ProcessedImage",
    "RunParameters",
    "UploadPlanEntry",
]

"""File classification: kind, MIME type, lane and destination-safe names.

Everything here is a pure function of the filename. No file is opened.
"""

import os
import re
from enum import Enum
from typing import Dict


class FileKind(str, Enum):
    """All the kinds a file can be."""

    IMAGE = "image"
    GIF = "gif"
    VIDEO = "video"
    AUDIO = "audio"
    FILE = "file"


class Lane(str, Enum):
    """Concurrency partition for a planned upload."""

    IMAGE = "image"
    RAW = "raw"


# Image extensions the variant generator can decode (HEIC/HIF via pillow-heif)
PROCESSABLE_EXTENSIONS = frozenset(
    {".jpg", ".jpeg", ".png", ".webp", ".heic", ".hif", ".tif", ".tiff"}
)
ANIMATED_EXTENSIONS = frozenset({".gif"})
VIDEO_EXTENSIONS = frozenset(
    {".mp4", ".mov", ".webm", ".avi", ".mkv", ".m4v", ".wmv", ".flv"}
)
AUDIO_EXTENSIONS = frozenset({".mp3", ".wav", ".ogg", ".flac", ".aac", ".m4a", ".wma"})
HEIF_EXTENSIONS = frozenset({".heic", ".hif"})
JPEG_EXTENSIONS = frozenset({".jpg", ".jpeg"})

MIME_TYPES: Dict[str, str] = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".webp": "image/webp",
    ".heic": "image/heic",
    ".hif": "image/heif",
    ".tif": "image/tiff",
    ".tiff": "image/tiff",
    ".gif": "image/gif",
    ".svg": "image/svg+xml",
    ".mp4": "video/mp4",
    ".mov": "video/quicktime",
    ".webm": "video/webm",
    ".avi": "video/x-msvideo",
    ".mkv": "video/x-matroska",
    ".m4v": "video/mp4",
    ".wmv": "video/x-ms-wmv",
    ".flv": "video/x-flv",
    ".mp3": "audio/mpeg",
    ".wav": "audio/wav",
    ".ogg": "audio/ogg",
    ".flac": "audio/flac",
    ".aac": "audio/aac",
    ".m4a": "audio/mp4",
    ".wma": "audio/x-ms-wma",
    ".pdf": "application/pdf",
    ".zip": "application/zip",
    ".rar": "application/x-rar-compressed",
    ".7z": "application/x-7z-compressed",
    ".tar": "application/x-tar",
    ".gz": "application/gzip",
    ".doc": "application/msword",
    ".docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    ".xls": "application/vnd.ms-excel",
    ".xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    ".ppt": "application/vnd.ms-powerpoint",
    ".pptx": "application/vnd.openxmlformats-officedocument.presentationml.presentation",
    ".txt": "text/plain",
    ".csv": "text/csv",
    ".json": "application/json",
    ".xml": "application/xml",
}

DEFAULT_MIME_TYPE = "application/octet-stream"

_UNSAFE_CHARS = re.compile(r"[^a-z0-9-]")
_REPEATED_DASHES = re.compile(r"-+")


def extension_of(filename: str) -> str:
    """Lowercased extension including the dot, or an empty string."""
    return os.path.splitext(filename)[1].lower()


def get_mime_type(filename: str) -> str:
    """Get MIME type from a filename, falling back to octet-stream."""
    return MIME_TYPES.get(extension_of(filename), DEFAULT_MIME_TYPE)


def get_file_kind(filename: str) -> FileKind:
    """Classify a filename into a FileKind."""
    ext = extension_of(filename)
    if ext in ANIMATED_EXTENSIONS:
        return FileKind.GIF
    if is_processable_image(filename):
        return FileKind.IMAGE
    if ext in VIDEO_EXTENSIONS:
        return FileKind.VIDEO
    if ext in AUDIO_EXTENSIONS:
        return FileKind.AUDIO
    return FileKind.FILE


def is_processable_image(filename: str) -> bool:
    """Still images the variant generator re-encodes."""
    return extension_of(filename) in PROCESSABLE_EXTENSIONS


def is_visual(kind: FileKind) -> bool:
    return kind in (FileKind.IMAGE, FileKind.GIF)


def lane_for(filename: str) -> Lane:
    """Images and animated images are re-encoded; everything else is uploaded raw."""
    return Lane.IMAGE if is_visual(get_file_kind(filename)) else Lane.RAW


def sanitize_stem(filename: str) -> str:
    """Lowercase the stem and replace anything outside ``[a-z0-9-]`` with hyphens."""
    stem = os.path.splitext(os.path.basename(filename))[0]
    cleaned = _UNSAFE_CHARS.sub("-", stem.lower())
    cleaned = _REPEATED_DASHES.sub("-", cleaned).strip("-")
    return cleaned or "file"


def sanitize_filename(filename: str) -> str:
    """Sanitized stem plus the lowercased extension."""
    return f"{sanitize_stem(filename)}{extension_of(filename)}"


def format_bytes(num_bytes: int) -> str:
    """Human-readable byte formatting."""
    if num_bytes < 1024:
        return f"{num_bytes} B"
    if num_bytes < 1024 * 1024:
        return f"{num_bytes / 1024:.1f} KB"
    return f"{num_bytes / 1024 / 1024:.2f} MB"

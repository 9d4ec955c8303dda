"""Destination key layout for ingested files."""

from collections import defaultdict
from typing import Dict, Iterable, List

from ..core.classifier import (
    FileKind,
    JPEG_EXTENSIONS,
    extension_of,
    get_file_kind,
    is_visual,
    sanitize_filename,
    sanitize_stem,
)

THUMB = "thumb"
FULL = "full"
ORIGINAL = "original"
PREVIEW = "og"


def destination_keys(prefix: str, filename: str) -> Dict[str, str]:
    """
    Every key a source file will be uploaded to, by variant name.

    Still images get thumb/full/original/og, animated images a static thumb
    plus the untouched original, anything else only the original.
    """
    kind = get_file_kind(filename)
    stem = sanitize_stem(filename)

    if kind == FileKind.IMAGE:
        ext = extension_of(filename)
        original_ext = ext if ext in JPEG_EXTENSIONS else ".jpg"
        return {
            THUMB: f"{prefix}{THUMB}/{stem}.webp",
            FULL: f"{prefix}{FULL}/{stem}.webp",
            ORIGINAL: f"{prefix}{ORIGINAL}/{stem}{original_ext}",
            PREVIEW: f"{prefix}{PREVIEW}/{stem}.jpg",
        }
    if kind == FileKind.GIF:
        return {
            THUMB: f"{prefix}{THUMB}/{stem}.webp",
            ORIGINAL: f"{prefix}{ORIGINAL}/{sanitize_filename(filename)}",
        }
    return {ORIGINAL: f"{prefix}{ORIGINAL}/{sanitize_filename(filename)}"}


def entry_id(filename: str) -> str:
    """
    Manifest id of a source file, unique whenever its destination keys are.

    Visual items use the sanitized stem, which also names their thumbnail;
    anything else uses the sanitized filename so `a.jpg` and `a.pdf` differ.
    """
    if is_visual(get_file_kind(filename)):
        return sanitize_stem(filename)
    return sanitize_filename(filename)


def derived_key(prefix: str, filename: str) -> str:
    """The key that identifies an entry: its archival original."""
    return destination_keys(prefix, filename)[ORIGINAL]


def detect_collisions(prefix: str, filenames: Iterable[str]) -> List[str]:
    """
    Describe every destination key claimed by more than one source file.

    Returns:
        Human-readable collision descriptions, empty when all keys are unique
    """
    owners: Dict[str, List[str]] = defaultdict(list)
    for filename in filenames:
        for key in destination_keys(prefix, filename).values():
            owners[key].append(filename)

    return [
        f"{' + '.join(sources)} -> {key}"
        for key, sources in sorted(owners.items())
        if len(sources) > 1
    ]

"""Manifest assembly and the JSON manifest writer."""

import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional

from pydantic import ValidationError

from ..core.classifier import is_visual
from ..core.exceptions import ManifestError
from ..core.logging_config import get_logger
from ..core.models import IngestedFile, IngestManifest, IngestTarget

_UNDATED = datetime.max.replace(tzinfo=timezone.utc)


def sort_files(files: List[IngestedFile]) -> List[IngestedFile]:
    """
    Manifest order: visual items first, then everything else.

    Visual items are ordered by capture time with undated ones after all dated
    ones; filename breaks ties and orders the undated group. Non-visual items
    are ordered by filename only.
    """
    visual = [f for f in files if is_visual(f.kind)]
    other = [f for f in files if not is_visual(f.kind)]

    def visual_key(item: IngestedFile):
        captured = item.captured_at
        if captured is not None and captured.tzinfo is None:
            captured = captured.replace(tzinfo=timezone.utc)
        return (captured is None, captured or _UNDATED, item.filename)

    return sorted(visual, key=visual_key) + sorted(other, key=lambda f: f.filename)


def merge_files(
    existing: List[IngestedFile], new: List[IngestedFile]
) -> List[IngestedFile]:
    """Entries of a previous manifest plus new ones; a new entry wins on the same key."""
    merged: Dict[str, IngestedFile] = {f.key: f for f in existing}
    for item in new:
        merged[item.key] = item
    return list(merged.values())


def build_manifest(
    target: IngestTarget,
    title: str,
    files: List[IngestedFile],
    skipped: Optional[List[str]] = None,
    previous: Optional[IngestManifest] = None,
) -> IngestManifest:
    if previous is not None:
        files = merge_files(previous.files, files)
    ordered = sort_files(files)
    cover = next((f.id for f in ordered if is_visual(f.kind)), None)
    return IngestManifest(
        target=target,
        title=title,
        cover=cover,
        files=ordered,
        skipped=list(skipped or []),
    )


class JsonManifestWriter:
    """Writes ``<root>/<scope>/<slug>.json`` atomically."""

    def __init__(self, root: str):
        self.root = Path(root)
        self.logger = get_logger("media-ingest.manifest")

    def path_for(self, target: IngestTarget) -> Path:
        return self.root / target.scope / f"{target.slug}.json"

    def read(self, target: IngestTarget) -> Optional[IngestManifest]:
        path = self.path_for(target)
        if not path.exists():
            return None
        try:
            return IngestManifest.model_validate_json(path.read_bytes().decode("utf-8"))
        except (UnicodeDecodeError, ValidationError) as exc:
            self.logger.error(f"Unreadable manifest at {path}: {exc}")
            raise ManifestError(
                f"Manifest {path} is corrupt, so new files cannot be merged into it. "
                "Repair or delete it, then rerun the same command; the checkpoint "
                "is kept, so nothing is uploaded again.",
                path=str(path),
            ) from exc

    def write(self, manifest: IngestManifest) -> str:
        path = self.path_for(manifest.target)
        path.parent.mkdir(parents=True, exist_ok=True)
        temp_path = path.with_name(f"{path.name}.{os.getpid()}.tmp")
        temp_path.write_text(
            manifest.model_dump_json(by_alias=True, indent=2) + "\n", encoding="utf-8"
        )
        os.replace(temp_path, path)
        self.logger.info(f"Wrote manifest with {len(manifest.files)} file(s) to {path}")
        return str(path)

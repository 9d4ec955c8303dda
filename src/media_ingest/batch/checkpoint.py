"""Durable checkpoint storage for resumable batch jobs."""

import asyncio
import os
import threading
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from ..core.exceptions import CheckpointCorruptError
from ..core.logging_config import get_logger
from ..core.models import Checkpoint, IngestedFile, IngestTarget
from ..core.protocols import CheckpointStoreProtocol

CHECKPOINT_PREFIX = ".media-ingest"
CHECKPOINT_SUFFIX = ".checkpoint.json"

logger = get_logger("media-ingest.checkpoint")


def checkpoint_path(directory: str, target: IngestTarget) -> Path:
    """Hidden per-target checkpoint file inside the source directory."""
    name = f"{CHECKPOINT_PREFIX}.{target.scope}.{target.slug}{CHECKPOINT_SUFFIX}"
    return Path(directory) / name


class FileCheckpointStore:
    """
    Checkpoint persisted as a JSON file.

    Writes go to a sibling temp file that is then renamed over the real one,
    so a reader only ever sees a complete document.
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        self._lock = threading.Lock()

    @property
    def location(self) -> str:
        return str(self.path)

    def exists(self) -> bool:
        return self.path.exists()

    def load(self) -> Optional[Checkpoint]:
        with self._lock:
            if not self.path.exists():
                return None
            raw = self.path.read_bytes()
        try:
            return Checkpoint.model_validate_json(raw.decode("utf-8"))
        except (UnicodeDecodeError, ValidationError) as exc:
            logger.error(f"Unreadable checkpoint at {self.path}: {exc}")
            raise CheckpointCorruptError(
                f"Checkpoint file {self.path} is corrupt and cannot be resumed. "
                f"Delete it (media-ingest checkpoint delete, or rm {self.path}) "
                "and rerun to start the batch over.",
                path=str(self.path),
            ) from exc

    def save(self, checkpoint: Checkpoint) -> None:
        encoded = checkpoint.model_dump_json(by_alias=True, indent=2)
        temp_path = self.path.with_name(f"{self.path.name}.{os.getpid()}.tmp")
        with self._lock:
            temp_path.write_text(encoded, encoding="utf-8")
            os.replace(temp_path, self.path)

    def delete(self) -> None:
        with self._lock:
            if self.path.exists():
                self.path.unlink()


class CheckpointJournal:
    """
    Serializes checkpoint rewrites for one running job.

    Completions are recorded in memory and the full snapshot is written
    through a single lock, so each write contains everything the previous
    write did plus the new entry.
    """

    def __init__(self, store: CheckpointStoreProtocol, checkpoint: Checkpoint):
        self.store = store
        self.checkpoint = checkpoint
        self._lock = asyncio.Lock()
        self.writes = 0

    async def record(self, source_filename: str, result: IngestedFile) -> None:
        async with self._lock:
            if source_filename in self.checkpoint.completed:
                return
            self.checkpoint.completed[source_filename] = result
            snapshot = self.checkpoint.model_copy(deep=True)
            await asyncio.to_thread(self.store.save, snapshot)
            self.writes += 1

"""Protocol definitions for dependency injection and testability."""

from typing import Any, List, Optional, Protocol

from .models import Checkpoint, HeadResult, IngestManifest, IngestTarget, ObjectInfo


class ObjectStoreProtocol(Protocol):
    """Protocol for the remote key-value blob store."""

    async def upload(self, key: str, data: bytes, content_type: str) -> None:
        """Store bytes under a key."""
        ...

    async def batch_delete(self, keys: List[str]) -> int:
        """Delete keys, returning how many were removed."""
        ...

    async def list(self, prefix: str) -> List[ObjectInfo]:
        """List every object under a prefix."""
        ...

    async def head(self, key: str) -> HeadResult:
        """Check a single key."""
        ...

    async def list_prefixes(self, prefix: str) -> List[str]:
        """List the immediate sub-prefixes of a prefix."""
        ...


class ManifestWriterProtocol(Protocol):
    """Protocol for the external manifest record."""

    def read(self, target: IngestTarget) -> Optional[IngestManifest]:
        """Return the manifest currently on record, or None."""
        ...

    def write(self, manifest: IngestManifest) -> str:
        """Persist the manifest and return where it went."""
        ...


class CheckpointStoreProtocol(Protocol):
    """Protocol for durable checkpoint storage."""

    @property
    def location(self) -> str:
        """Human-readable location used in remediation messages."""
        ...

    def load(self) -> Optional[Checkpoint]:
        """Return the stored checkpoint, or None when there is none."""
        ...

    def save(self, checkpoint: Checkpoint) -> None:
        """Atomically replace the stored checkpoint."""
        ...

    def delete(self) -> None:
        """Remove the stored checkpoint."""
        ...


class InferenceSessionProtocol(Protocol):
    """The subset of ``onnxruntime.InferenceSession`` the neural detector uses."""

    def get_inputs(self) -> List[Any]:
        ...

    def run(self, output_names: Optional[List[str]], input_feed: Any) -> List[Any]:
        ...


class LoggerProtocol(Protocol):
    """Protocol for logging operations."""

    def debug(self, message: str, context: Any = None, **kwargs: Any) -> None:
        """Log debug message."""
        ...

    def info(self, message: str, context: Any = None, **kwargs: Any) -> None:
        """Log info message."""
        ...

    def warning(self, message: str, context: Any = None, **kwargs: Any) -> None:
        """Log warning message."""
        ...

    def error(self, message: str, context: Any = None, **kwargs: Any) -> None:
        """Log error message."""
        ...

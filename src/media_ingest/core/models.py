"""Shared data models for the media ingestion pipeline."""

import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .classifier import FileKind, Lane

SAFE_TARGET_ID = re.compile(r"^[a-z0-9]+(?:-[a-z0-9]+)*$")

SCOPE_ROOTS: Dict[str, str] = {
    "album": "albums",
    "transfer": "transfers",
    "media": "media",
}


class MediaVariant(BaseModel):
    """One encoded output of an image."""

    model_config = ConfigDict(frozen=True)

    data: bytes = Field(repr=False)
    content_type: str
    extension: str

    @property
    def size(self) -> int:
        return len(self.data)


class FocalPoint(BaseModel):
    """Crop anchor as percentages of the image dimensions."""

    model_config = ConfigDict(frozen=True)

    x: int = Field(ge=0, le=100)
    y: int = Field(ge=0, le=100)

    @classmethod
    def center(cls) -> "FocalPoint":
        return cls(x=50, y=50)


class OverlaySpec(BaseModel):
    """Text burned into the social preview."""

    model_config = ConfigDict(frozen=True)

    title: str
    id: Optional[str] = None


class ProcessedImage(BaseModel):
    """All derived variants of one still image."""

    model_config = ConfigDict(frozen=True)

    thumb: MediaVariant
    full: MediaVariant
    original: MediaVariant
    preview: MediaVariant
    width: int
    height: int
    captured_at: Optional[datetime] = None


class ProcessedAnimation(BaseModel):
    """Static thumbnail of an animated image."""

    model_config = ConfigDict(frozen=True)

    thumb: MediaVariant
    width: int
    height: int


class IngestTarget(BaseModel):
    """Where a batch goes: a scope and a slug."""

    model_config = ConfigDict(frozen=True)

    scope: Literal["album", "transfer", "media"]
    slug: str

    @field_validator("slug")
    @classmethod
    def _validate_slug(cls, value: str) -> str:
        value = value.strip().lower()
        if not SAFE_TARGET_ID.match(value):
            raise ValueError(
                f"Invalid slug {value!r}: use lowercase letters, digits and single hyphens"
            )
        return value

    @property
    def prefix(self) -> str:
        return f"{SCOPE_ROOTS[self.scope]}/{self.slug}/"

    @property
    def identity(self) -> str:
        return f"{self.scope}.{self.slug}"

    def __str__(self) -> str:
        return f"{self.scope} {self.slug}"


class RunParameters(BaseModel):
    """Arguments a checkpoint is bound to."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    target: IngestTarget
    force: bool = False
    title: str
    focal_strategy: Optional[str] = Field(default=None, alias="focalStrategy")
    focal_preset: Optional[str] = Field(default=None, alias="focalPreset")


class UploadPlanEntry(BaseModel):
    """One planned upload, fixed for the life of a checkpoint."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    source_filename: str = Field(alias="sourceFilename")
    derived_key: str = Field(alias="derivedKey")
    overwrites: bool = False
    lane: Lane


class IngestedFile(BaseModel):
    """Per-item result stored in the checkpoint and the manifest."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    source_filename: str = Field(alias="sourceFilename")
    filename: str
    key: str
    kind: FileKind
    mime_type: str = Field(alias="mimeType")
    size: int
    uploaded_bytes: int = Field(default=0, alias="uploadedBytes")
    width: Optional[int] = None
    height: Optional[int] = None
    captured_at: Optional[datetime] = Field(default=None, alias="capturedAt")
    focal: Optional[FocalPoint] = None
    overwrote: bool = False
    variant_keys: Dict[str, str] = Field(default_factory=dict, alias="variantKeys")


class Checkpoint(BaseModel):
    """On-disk progress record of one batch job (format version 1)."""

    model_config = ConfigDict(populate_by_name=True)

    version: Literal[1] = 1
    directory: str
    file_list_snapshot: List[str] = Field(alias="fileListSnapshot")
    run_parameters: RunParameters = Field(alias="runParameters")
    plan: List[UploadPlanEntry] = Field(default_factory=list)
    skipped: List[str] = Field(default_factory=list)
    completed: Dict[str, IngestedFile] = Field(default_factory=dict)

    def pending(self) -> List[UploadPlanEntry]:
        return [e for e in self.plan if e.source_filename not in self.completed]

    @property
    def is_complete(self) -> bool:
        return all(e.source_filename in self.completed for e in self.plan)


class ObjectInfo(BaseModel):
    """Listing entry from the object store."""

    key: str
    size: int = 0
    last_modified: Optional[datetime] = None


class HeadResult(BaseModel):
    """Existence check result from the object store."""

    exists: bool
    size: Optional[int] = None
    content_type: Optional[str] = None


class IngestManifest(BaseModel):
    """Final record written once per successful batch."""

    model_config = ConfigDict(populate_by_name=True)

    target: IngestTarget
    title: str
    cover: Optional[str] = None
    files: List[IngestedFile] = Field(default_factory=list)
    skipped: List[str] = Field(default_factory=list)
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc), alias="createdAt"
    )


class IngestResult(BaseModel):
    """Summary returned by the orchestrator."""

    target: IngestTarget
    uploaded: List[IngestedFile] = Field(default_factory=list)
    skipped: List[str] = Field(default_factory=list)
    resumed_count: int = 0
    manifest_location: Optional[str] = None
    metrics: Dict[str, Dict[str, Any]] = Field(default_factory=dict)

    @property
    def uploaded_bytes(self) -> int:
        return sum(f.uploaded_bytes for f in self.uploaded)

"""Ingest a directory: plan, upload variants under checkpoint, write the manifest."""

import asyncio
import os
import time
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple

from ..batch.checkpoint import FileCheckpointStore, checkpoint_path
from ..batch.resumable import ResumableBatchJob
from ..core.classifier import (
    FileKind,
    Lane,
    extension_of,
    format_bytes,
    get_file_kind,
    get_mime_type,
    lane_for,
    sanitize_filename,
)
from ..core.exceptions import KeyCollisionError, SourceDirectoryError, batch_error_handler
from ..core.models import (
    Checkpoint,
    FocalPoint,
    IngestedFile,
    IngestResult,
    IngestTarget,
    MediaVariant,
    OverlaySpec,
    RunParameters,
    UploadPlanEntry,
)
from ..core.observability import LogContext, MetricsCollector, StructuredLogger
from ..core.protocols import (
    CheckpointStoreProtocol,
    LoggerProtocol,
    ManifestWriterProtocol,
    ObjectStoreProtocol,
)
from ..focal.base import DetectorRegistry, preset_focal_point, resolve_focal_preset
from ..processing.variants import VariantGenerator
from .keys import (
    FULL,
    ORIGINAL,
    PREVIEW,
    THUMB,
    derived_key,
    destination_keys,
    detect_collisions,
    entry_id,
)
from .manifest import build_manifest

CheckpointStoreFactory = Callable[[str, IngestTarget], CheckpointStoreProtocol]


def default_checkpoint_store(directory: str, target: IngestTarget) -> CheckpointStoreProtocol:
    return FileCheckpointStore(checkpoint_path(directory, target))


def list_source_files(directory: str) -> List[str]:
    """Sorted names of the non-hidden regular files in a directory."""
    path = Path(directory)
    if not path.is_dir():
        raise SourceDirectoryError(
            f"Source directory {directory} does not exist or is not a directory. "
            "Check the --dir argument."
        )
    files = sorted(
        entry.name
        for entry in path.iterdir()
        if not entry.name.startswith(".") and entry.is_file()
    )
    if not files:
        raise SourceDirectoryError(
            f"Source directory {directory} has no files to ingest. "
            "Hidden files and sub-directories are ignored."
        )
    return files


class IngestOrchestrator:
    """
    Turns a directory of media into uploaded variants plus a manifest.

    Images get focal detection and four variants, animated images a static
    thumbnail next to the untouched original, everything else a raw upload.
    Progress is checkpointed after every item so an interrupted run resumes
    where it stopped.
    """

    def __init__(
        self,
        store: ObjectStoreProtocol,
        manifest_writer: ManifestWriterProtocol,
        generator: VariantGenerator,
        detectors: DetectorRegistry,
        image_concurrency: int = 3,
        raw_concurrency: int = 6,
        default_strategy: str = "auto",
        checkpoint_store_factory: Optional[CheckpointStoreFactory] = None,
        metrics: Optional[MetricsCollector] = None,
        logger: Optional[LoggerProtocol] = None,
    ):
        self.store = store
        self.manifest_writer = manifest_writer
        self.generator = generator
        self.detectors = detectors
        self.lane_limits = {Lane.IMAGE: image_concurrency, Lane.RAW: raw_concurrency}
        self.default_strategy = default_strategy
        self.checkpoint_store_factory = checkpoint_store_factory or default_checkpoint_store
        self.metrics = metrics or MetricsCollector()
        self.logger = logger or StructuredLogger("media-ingest.orchestrator")

    async def ingest(
        self,
        directory: str,
        target: IngestTarget,
        title: str,
        force: bool = False,
        focal_strategy: Optional[str] = None,
        focal_preset: Optional[str] = None,
    ) -> IngestResult:
        """
        Ingest every file of ``directory`` into ``target``.

        Args:
            directory: Local source directory
            target: Destination scope and slug
            title: Batch title, used in the manifest and preview overlay
            force: Re-upload entries whose original already exists
            focal_strategy: Detector name; defaults to the configured strategy
            focal_preset: Fixed anchor for every image, overriding detection

        Returns:
            IngestResult for this run

        Raises:
            SourceDirectoryError: Missing or empty directory
            KeyCollisionError: Two files map to the same destination key
            CheckpointError: Checkpoint mismatch, corruption or incomplete pass
        """
        files = list_source_files(directory)
        fixed_focal = preset_focal_point(focal_preset) if focal_preset else None
        preset_name = resolve_focal_preset(focal_preset) if focal_preset else None
        detector = self.detectors.get(focal_strategy or self.default_strategy)

        context = LogContext(component="orchestrator", operation="ingest").with_metadata(
            target=target.identity
        )
        self.logger.info(f"Ingesting {len(files)} file(s) from {directory}", context)

        job = ResumableBatchJob(
            store=self.checkpoint_store_factory(directory, target),
            directory=directory,
            file_list=files,
            run_parameters=RunParameters(
                target=target,
                force=force,
                title=title,
                focal_strategy=detector.name,
                focal_preset=preset_name,
            ),
            lane_limits=self.lane_limits,
        )

        async def planner() -> Tuple[List[UploadPlanEntry], List[str]]:
            return await self.plan(files, target, force, context)

        async def process(entry: UploadPlanEntry) -> IngestedFile:
            return await self.process_entry(
                directory, entry, target, title, detector.detect, fixed_focal, context
            )

        async def finalize(checkpoint: Checkpoint) -> Optional[str]:
            previous = await asyncio.to_thread(self.manifest_writer.read, target)
            manifest = build_manifest(
                target,
                title,
                list(checkpoint.completed.values()),
                checkpoint.skipped,
                previous=previous,
            )
            return await asyncio.to_thread(self.manifest_writer.write, manifest)

        outcome = await job.run(planner, process, finalize)

        if outcome.resumed_count:
            self.logger.info(
                f"Resumed {outcome.resumed_count} item(s) from the checkpoint", context
            )
        result = IngestResult(
            target=target,
            uploaded=outcome.processed,
            skipped=outcome.checkpoint.skipped,
            resumed_count=outcome.resumed_count,
            manifest_location=outcome.manifest_location,
            metrics={
                lane.value: self.metrics.get_summary(f"{lane.value}-item") for lane in Lane
            },
        )
        self.logger.info(
            f"Done: {len(result.uploaded)} uploaded ({format_bytes(result.uploaded_bytes)}), "
            f"{len(result.skipped)} skipped, {result.resumed_count} resumed",
            context,
        )
        return result

    async def plan(
        self,
        files: List[str],
        target: IngestTarget,
        force: bool,
        context: Optional[LogContext] = None,
    ) -> Tuple[List[UploadPlanEntry], List[str]]:
        """
        Decide what to upload. Collisions are rejected before any store call.

        Returns:
            (plan entries, skipped source filenames)
        """
        collisions = detect_collisions(target.prefix, files)
        if collisions:
            raise KeyCollisionError(collisions)

        existing = {info.key for info in await self.store.list(target.prefix)}
        plan: List[UploadPlanEntry] = []
        skipped: List[str] = []
        for filename in files:
            key = derived_key(target.prefix, filename)
            exists = key in existing
            if exists and not force:
                self.logger.info(f"Skipping {filename}: {key} already exists (use --force)", context)
                skipped.append(filename)
                continue
            plan.append(
                UploadPlanEntry(
                    source_filename=filename,
                    derived_key=key,
                    overwrites=exists,
                    lane=lane_for(filename),
                )
            )
        return plan, skipped

    async def detect_focal(
        self,
        detect: Callable[[bytes], Optional[FocalPoint]],
        data: bytes,
        filename: str,
        context: Optional[LogContext] = None,
    ) -> Optional[FocalPoint]:
        """Run a detector off the event loop; any failure degrades to None."""
        try:
            return await asyncio.to_thread(detect, data)
        except Exception as exc:  # noqa: BLE001
            self.logger.warning(f"Focal detection failed for {filename}: {exc}", context)
            return None

    async def process_entry(
        self,
        directory: str,
        entry: UploadPlanEntry,
        target: IngestTarget,
        title: str,
        detect: Callable[[bytes], Optional[FocalPoint]],
        fixed_focal: Optional[FocalPoint] = None,
        context: Optional[LogContext] = None,
    ) -> IngestedFile:
        filename = entry.source_filename
        start_time = time.time()
        operation = f"{entry.lane.value}-item"
        try:
            with batch_error_handler(filename):
                data = await asyncio.to_thread(Path(os.path.join(directory, filename)).read_bytes)
                keys = destination_keys(target.prefix, filename)
                kind = get_file_kind(filename)
                if kind == FileKind.IMAGE:
                    result = await self._ingest_image(
                        data, filename, keys, title, detect, fixed_focal, context
                    )
                elif kind == FileKind.GIF:
                    result = await self._ingest_animation(data, filename, keys)
                else:
                    result = await self._ingest_raw(data, filename, keys)
        except Exception as exc:
            self.metrics.record(operation, start_time, False, str(exc), filename=filename)
            self.logger.error(f"Failed to ingest {filename}: {exc}", context)
            raise

        result.overwrote = entry.overwrites
        self.metrics.record(operation, start_time, True, filename=filename)
        self.logger.info(
            f"Uploaded {filename} -> {result.key} ({format_bytes(result.uploaded_bytes)})",
            context,
        )
        return result

    async def _upload_all(self, uploads: List[Tuple[str, MediaVariant]]) -> int:
        total = 0
        for key, variant in uploads:
            await self.store.upload(key, variant.data, variant.content_type)
            total += variant.size
        return total

    async def _ingest_image(
        self,
        data: bytes,
        filename: str,
        keys: Dict[str, str],
        title: str,
        detect: Callable[[bytes], Optional[FocalPoint]],
        fixed_focal: Optional[FocalPoint],
        context: Optional[LogContext],
    ) -> IngestedFile:
        focal = fixed_focal or await self.detect_focal(detect, data, filename, context)
        stem = entry_id(filename)
        processed = await asyncio.to_thread(
            self.generator.process,
            data,
            extension_of(filename),
            focal,
            OverlaySpec(title=title, id=stem),
        )
        uploaded = await self._upload_all(
            [
                (keys[THUMB], processed.thumb),
                (keys[FULL], processed.full),
                (keys[ORIGINAL], processed.original),
                (keys[PREVIEW], processed.preview),
            ]
        )
        return IngestedFile(
            id=stem,
            source_filename=filename,
            filename=keys[ORIGINAL].rsplit("/", 1)[-1],
            key=keys[ORIGINAL],
            kind=FileKind.IMAGE,
            mime_type=processed.original.content_type,
            size=len(data),
            uploaded_bytes=uploaded,
            width=processed.width,
            height=processed.height,
            captured_at=processed.captured_at,
            focal=focal,
            variant_keys=keys,
        )

    async def _ingest_animation(
        self, data: bytes, filename: str, keys: Dict[str, str]
    ) -> IngestedFile:
        animation = await asyncio.to_thread(self.generator.process_animated, data)
        mime_type = get_mime_type(filename)
        original = MediaVariant(data=data, content_type=mime_type, extension=extension_of(filename))
        uploaded = await self._upload_all(
            [(keys[THUMB], animation.thumb), (keys[ORIGINAL], original)]
        )
        return IngestedFile(
            id=entry_id(filename),
            source_filename=filename,
            filename=sanitize_filename(filename),
            key=keys[ORIGINAL],
            kind=FileKind.GIF,
            mime_type=mime_type,
            size=len(data),
            uploaded_bytes=uploaded,
            width=animation.width,
            height=animation.height,
            variant_keys=keys,
        )

    async def _ingest_raw(self, data: bytes, filename: str, keys: Dict[str, str]) -> IngestedFile:
        mime_type = get_mime_type(filename)
        await self.store.upload(keys[ORIGINAL], data, mime_type)
        return IngestedFile(
            id=entry_id(filename),
            source_filename=filename,
            filename=sanitize_filename(filename),
            key=keys[ORIGINAL],
            kind=get_file_kind(filename),
            mime_type=mime_type,
            size=len(data),
            uploaded_bytes=len(data),
            variant_keys=keys,
        )

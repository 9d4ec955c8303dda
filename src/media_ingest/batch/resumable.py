"""Generic resumable batch job driven by a checkpoint."""

import asyncio
import os
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Dict, List, Optional, Tuple

from ..core.classifier import Lane
from ..core.exceptions import (
    CheckpointIncompleteError,
    CheckpointMismatchError,
)
from ..core.logging_config import get_logger
from ..core.models import Checkpoint, IngestedFile, RunParameters, UploadPlanEntry
from ..core.protocols import CheckpointStoreProtocol
from .checkpoint import CheckpointJournal
from .limiter import run_bounded

Planner = Callable[[], Awaitable[Tuple[List[UploadPlanEntry], List[str]]]]
ItemProcessor = Callable[[UploadPlanEntry], Awaitable[IngestedFile]]
Finalizer = Callable[[Checkpoint], Awaitable[Optional[str]]]


class JobState(str, Enum):
    NO_CHECKPOINT = "no_checkpoint"
    PLANNED = "planned"
    IN_PROGRESS = "in_progress"
    COMPLETE = "complete"


def job_state(checkpoint: Optional[Checkpoint]) -> JobState:
    if checkpoint is None:
        return JobState.NO_CHECKPOINT
    if checkpoint.is_complete:
        return JobState.COMPLETE
    if checkpoint.completed:
        return JobState.IN_PROGRESS
    return JobState.PLANNED


@dataclass
class JobOutcome:
    checkpoint: Checkpoint
    resumed_count: int
    processed: List[IngestedFile]
    manifest_location: Optional[str] = None


def normalize_directory(directory: str) -> str:
    return os.path.abspath(directory)


class ResumableBatchJob:
    """
    Plan, execute and finalize one batch so a crash can resume it.

    The job is parameterized by a planner (runs only when no checkpoint
    exists), a per-item processor and a finalizer that publishes the result
    once every planned item has completed. Checkpoint identity is the source
    directory, its file listing and the run parameters; any difference on
    resume is rejected.
    """

    def __init__(
        self,
        store: CheckpointStoreProtocol,
        directory: str,
        file_list: List[str],
        run_parameters: RunParameters,
        lane_limits: Dict[Lane, int],
    ):
        self.store = store
        self.directory = normalize_directory(directory)
        self.file_list = list(file_list)
        self.run_parameters = run_parameters
        self.lane_limits = lane_limits
        self.logger = get_logger("media-ingest.job")

    def validate(self, checkpoint: Checkpoint) -> None:
        """Reject a checkpoint that belongs to different inputs or arguments."""
        location = self.store.location
        if checkpoint.directory != self.directory:
            raise CheckpointMismatchError(
                f"Checkpoint {location} was created for directory {checkpoint.directory}, "
                f"not {self.directory}. Delete the checkpoint to start over.",
                path=location,
            )
        if checkpoint.file_list_snapshot != self.file_list:
            before = set(checkpoint.file_list_snapshot)
            now = set(self.file_list)
            added = sorted(now - before)
            removed = sorted(before - now)
            detail = []
            if added:
                detail.append(f"added: {', '.join(added[:5])}")
            if removed:
                detail.append(f"removed: {', '.join(removed[:5])}")
            raise CheckpointMismatchError(
                f"Files in {self.directory} changed since the checkpoint was written"
                f"{' (' + '; '.join(detail) + ')' if detail else ''}. "
                "Restore the original files, or delete the checkpoint "
                f"{location} to start a new batch.",
                path=location,
            )
        if checkpoint.run_parameters != self.run_parameters:
            recorded = checkpoint.run_parameters
            raise CheckpointMismatchError(
                "Checkpoint was created with different arguments "
                f"(target={recorded.target}, force={recorded.force}, title={recorded.title!r}, "
                f"focal strategy={recorded.focal_strategy}, focal preset={recorded.focal_preset}). "
                "Rerun with the original arguments, or delete the checkpoint "
                f"{location} to start a new batch.",
                path=location,
            )

    async def prepare(self, planner: Planner) -> Tuple[Checkpoint, bool]:
        """
        Load and validate an existing checkpoint, or plan and persist a new one.

        Returns:
            (checkpoint, resumed)
        """
        existing = await asyncio.to_thread(self.store.load)
        if existing is not None:
            self.validate(existing)
            self.logger.info(
                f"Resuming from checkpoint {self.store.location}: "
                f"{len(existing.completed)}/{len(existing.plan)} already done"
            )
            return existing, True

        plan, skipped = await planner()
        checkpoint = Checkpoint(
            directory=self.directory,
            file_list_snapshot=self.file_list,
            run_parameters=self.run_parameters,
            plan=plan,
            skipped=skipped,
        )
        if plan:
            await asyncio.to_thread(self.store.save, checkpoint)
            self.logger.info(f"Planned {len(plan)} item(s); checkpoint at {self.store.location}")
        return checkpoint, False

    async def execute(self, checkpoint: Checkpoint, process: ItemProcessor) -> List[IngestedFile]:
        """Process pending entries lane by lane, journaling every completion."""
        journal = CheckpointJournal(self.store, checkpoint)
        pending = checkpoint.pending()

        async def run_lane(lane: Lane, entries: List[UploadPlanEntry]) -> List[IngestedFile]:
            async def run_one(entry: UploadPlanEntry) -> IngestedFile:
                result = await process(entry)
                await journal.record(entry.source_filename, result)
                return result

            return await run_bounded(entries, self.lane_limits.get(lane, 1), run_one)

        lanes = [
            (lane, [e for e in pending if e.lane == lane])
            for lane in Lane
        ]
        # Each lane stops dispatching on its own first failure. The other lane
        # drains its queue, so its completions are journaled before the error
        # is raised.
        outcomes = await asyncio.gather(
            *(run_lane(lane, entries) for lane, entries in lanes if entries),
            return_exceptions=True,
        )
        processed: List[IngestedFile] = []
        for outcome in outcomes:
            if isinstance(outcome, BaseException):
                raise outcome
            processed.extend(outcome)
        return processed

    async def run(
        self,
        planner: Planner,
        process: ItemProcessor,
        finalize: Finalizer,
    ) -> JobOutcome:
        checkpoint, resumed = await self.prepare(planner)
        resumed_count = len(checkpoint.completed) if resumed else 0

        if not checkpoint.plan:
            await asyncio.to_thread(self.discard)
            return JobOutcome(checkpoint=checkpoint, resumed_count=0, processed=[])

        processed = await self.execute(checkpoint, process)

        if not checkpoint.is_complete:
            missing = len(checkpoint.plan) - len(checkpoint.completed)
            raise CheckpointIncompleteError(
                f"Checkpoint incomplete: {missing} of {len(checkpoint.plan)} item(s) did not finish. "
                f"Rerun the same command to resume from {self.store.location}.",
                path=self.store.location,
            )

        location = await finalize(checkpoint)
        await asyncio.to_thread(self.discard)
        return JobOutcome(
            checkpoint=checkpoint,
            resumed_count=resumed_count,
            processed=processed,
            manifest_location=location,
        )

    def discard(self) -> None:
        """Best-effort checkpoint removal; failures are logged, not raised."""
        try:
            self.store.delete()
        except OSError as exc:
            self.logger.warning(
                f"Could not delete checkpoint {self.store.location}: {exc}. "
                "The batch finished; remove the file by hand."
            )

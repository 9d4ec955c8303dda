"""Bounded concurrency and crash-safe checkpointing for batch jobs."""

from .checkpoint import CheckpointJournal, FileCheckpointStore, checkpoint_path
from .limiter import run_bounded
from .resumable import JobOutcome, JobState, ResumableBatchJob, job_state

__all__ = [
    "CheckpointJournal",
    "FileCheckpointStore",
    "JobOutcome",
    "JobState",
    "ResumableBatchJob",
    "checkpoint_path",
    "job_state",
    "run_bounded",
]

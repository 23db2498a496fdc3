"""
Data models for the transcription job server.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, Optional


class JobState(Enum):
    """Lifecycle state of a job."""

    QUEUED = "queued"
    PROCESSING = "processing"
    FINISHED = "finished"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (JobState.FINISHED, JobState.FAILED)


@dataclass(frozen=True)
class JobResult:
    """Outcome of a finished job: public artifact path and a message."""

    file_path: str
    message: str


# Patch-style progress handle handed to a running job body
ProgressUpdate = Callable[..., None]
JobRunnable = Callable[[ProgressUpdate], JobResult]


@dataclass
class Job:
    """Mutable job record; owned and written only by the job queue."""

    id: str
    runnable: JobRunnable
    state: JobState = JobState.QUEUED
    progress: int = 0
    items_done: int = 0
    total_items: int = 0
    message: str = ""
    result: Optional[JobResult] = None
    error: Optional[str] = None
    created_at: datetime = field(default_factory=datetime.now)
    updated_at: datetime = field(default_factory=datetime.now)
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None

    def snapshot(self) -> "JobSnapshot":
        return JobSnapshot(
            id=self.id,
            state=self.state,
            progress=self.progress,
            items_done=self.items_done,
            total_items=self.total_items,
            message=self.message,
            result=self.result,
            error=self.error,
            created_at=self.created_at,
            updated_at=self.updated_at,
            started_at=self.started_at,
            finished_at=self.finished_at,
        )


@dataclass(frozen=True)
class JobSnapshot:
    """Immutable copy of a job record as seen by readers."""

    id: str
    state: JobState
    progress: int
    items_done: int
    total_items: int
    message: str
    result: Optional[JobResult]
    error: Optional[str]
    created_at: datetime
    updated_at: datetime
    started_at: Optional[datetime]
    finished_at: Optional[datetime]

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "job_id": self.id,
            "state": self.state.value,
            "progress": self.progress,
            "items_done": self.items_done,
            "total_items": self.total_items,
            "message": self.message,
            "error": self.error,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }
        if self.state == JobState.FINISHED and self.result:
            data["file_path"] = self.result.file_path
            data["result_message"] = self.result.message
        return data

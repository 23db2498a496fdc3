"""
Scenario transcription server package.

This package provides a Flask API server with a single-worker job queue that
runs uploaded scenario archives through normalization, Whisper transcription
and DOCX report assembly.
"""

from .app import create_app
from .job_queue import JobQueue
from .job_storage import JobDirectory, JobStorage
from .models import Job, JobResult, JobSnapshot, JobState
from .processor import ScenarioProcessor

__all__ = [
    "create_app",
    "Job",
    "JobDirectory",
    "JobQueue",
    "JobResult",
    "JobSnapshot",
    "JobState",
    "JobStorage",
    "ScenarioProcessor",
]

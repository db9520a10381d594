# In-memory job store for deck generation requests.
# Tracks status and the published viewer URL so a client can poll for it.

import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional


# --- Job status enum: used in API responses ---
class JobStatus(str, Enum):
    PENDING = "pending"
    BUILDING = "building"
    PUBLISHING = "publishing"
    COMPLETED = "completed"
    FAILED = "failed"


# --- Single job record: id, status, progress message, publish outcome ---
@dataclass
class Job:
    id: str
    status: JobStatus = JobStatus.PENDING
    message: str = ""
    deck_id: Optional[str] = None
    viewer_url: Optional[str] = None
    persisted: Optional[bool] = None
    error: Optional[str] = None


class JobStore:
    def __init__(self):
        self._jobs: Dict[str, Job] = {}

    def create(self) -> Job:
        """Create a new job with a unique id and PENDING status."""
        job = Job(id=str(uuid.uuid4()))
        self._jobs[job.id] = job
        return job

    def get(self, job_id: str) -> Optional[Job]:
        return self._jobs.get(job_id)

    def update(
        self,
        job_id: str,
        status: JobStatus,
        message: str = "",
        deck_id: Optional[str] = None,
        viewer_url: Optional[str] = None,
        persisted: Optional[bool] = None,
        error: Optional[str] = None,
    ) -> None:
        """Update an existing job; unknown ids are ignored."""
        job = self._jobs.get(job_id)
        if not job:
            return
        job.status = status
        job.message = message
        if deck_id is not None:
            job.deck_id = deck_id
        if viewer_url is not None:
            job.viewer_url = viewer_url
        if persisted is not None:
            job.persisted = persisted
        if error is not None:
            job.error = error

"""
Pydantic models and enums for the vlog pipeline.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ── Job Lifecycle ────────────────────────────────────────────────────────────

class JobStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


# Allowed forward moves; COMPLETED and FAILED are terminal.
_TRANSITIONS = {
    JobStatus.PENDING: {JobStatus.PROCESSING, JobStatus.FAILED},
    JobStatus.PROCESSING: {JobStatus.COMPLETED, JobStatus.FAILED},
    JobStatus.COMPLETED: set(),
    JobStatus.FAILED: set(),
}


def can_transition(current: JobStatus, new: JobStatus) -> bool:
    """True if a job may move from `current` to `new` (re-asserting a live status is allowed)."""
    if current == new:
        return bool(_TRANSITIONS[current])
    return new in _TRANSITIONS[current]


class Job(BaseModel):
    id: str
    user_id: Optional[str] = None
    status: JobStatus = JobStatus.PENDING
    style: str
    photo_urls: list[str] = Field(default_factory=list)
    video_url: Optional[str] = None
    remote_task_ids: Optional[list[str]] = None
    error_message: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)
    completed_at: Optional[datetime] = None


# ── Style ────────────────────────────────────────────────────────────────────

class StylePrompts(BaseModel):
    storyboard_prompt: str
    quality_prompt: str
    video_prompt: str


# ── RunningHub Task ──────────────────────────────────────────────────────────

class TaskStatus(str, Enum):
    QUEUED = "QUEUED"
    RUNNING = "RUNNING"
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"

    @classmethod
    def parse(cls, raw: Optional[str]) -> "TaskStatus":
        """Map a service status string; anything unrecognised is still running."""
        value = (raw or "").upper()
        try:
            return cls(value)
        except ValueError:
            return cls.RUNNING


class TaskOutput(BaseModel):
    url: Optional[str] = None
    output_type: str = Field("", alias="outputType")
    text: Optional[str] = None

    model_config = {"populate_by_name": True}


class RemoteTask(BaseModel):
    task_id: str
    status: TaskStatus = TaskStatus.QUEUED
    error_code: Optional[str] = None
    error_message: Optional[str] = None
    results: list[TaskOutput] = Field(default_factory=list)

    @property
    def first_url(self) -> Optional[str]:
        return next((r.url for r in self.results if r.url), None)


class NodeInfo(BaseModel):
    """One workflow input override: node id, field name, value."""
    node_id: str = Field(..., alias="nodeId")
    field_name: str = Field(..., alias="fieldName")
    field_value: str = Field(..., alias="fieldValue")

    model_config = {"populate_by_name": True}

    def to_api(self) -> dict[str, str]:
        return self.model_dump(by_alias=True)


# ── API Request / Response Models ────────────────────────────────────────────

class VlogCreateRequest(BaseModel):
    photo_urls: list[str] = Field(..., alias="photoUrls")
    style: str

    model_config = {"populate_by_name": True}


class VlogCreateResponse(BaseModel):
    jobId: str
    status: JobStatus


class VlogStatusResponse(BaseModel):
    jobId: str
    status: JobStatus
    style: str
    createdAt: datetime
    completedAt: Optional[datetime] = None
    videoUrl: Optional[str] = None
    error: Optional[str] = None

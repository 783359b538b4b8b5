"""
Vlog job records.

Two interchangeable stores with the same async create / get / update API:
  - InMemoryJobStore: process-local dict, used in development and tests.
  - SupabaseJobStore: `vlog_job` table via the service-role client.

Both refuse status moves that go backwards (see models.can_transition).
"""

import logging
from datetime import datetime
from typing import Any, Optional

from supabase import Client, create_client

from .models import Job, JobStatus, can_transition

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = {"status", "video_url", "error_message", "remote_task_ids", "completed_at"}


def _check_update(job: Job, fields: dict[str, Any]) -> None:
    unknown = set(fields) - UPDATABLE_FIELDS
    if unknown:
        raise ValueError(f"Cannot update job fields: {sorted(unknown)}")

    new_status = fields.get("status")
    if new_status is not None and not can_transition(job.status, JobStatus(new_status)):
        raise ValueError(
            f"Job {job.id}: illegal status transition {job.status.value} → {JobStatus(new_status).value}"
        )


class InMemoryJobStore:
    def __init__(self):
        self._jobs: dict[str, Job] = {}

    async def create(
        self,
        job_id: str,
        photo_urls: list[str],
        style: str,
        user_id: Optional[str] = None,
    ) -> Job:
        if job_id in self._jobs:
            raise ValueError(f"Job {job_id} already exists")
        job = Job(id=job_id, user_id=user_id, style=style, photo_urls=list(photo_urls))
        self._jobs[job_id] = job
        return job

    async def get(self, job_id: str) -> Optional[Job]:
        return self._jobs.get(job_id)

    async def update(self, job_id: str, **fields) -> Job:
        job = self._jobs.get(job_id)
        if job is None:
            raise KeyError(f"Job {job_id} not found")

        _check_update(job, fields)
        updated = job.model_copy(update=fields)
        self._jobs[job_id] = updated
        return updated


class SupabaseJobStore:
    """Job records in the Supabase `vlog_job` table (service role, bypasses RLS)."""

    TABLE = "vlog_job"

    def __init__(self, url: str, service_role_key: str, client: Optional[Client] = None):
        self._client = client or create_client(url, service_role_key)

    @staticmethod
    def _to_row(fields: dict[str, Any]) -> dict[str, Any]:
        row = {}
        for key, value in fields.items():
            if isinstance(value, JobStatus):
                value = value.value
            elif isinstance(value, datetime):
                value = value.isoformat()
            row[key] = value
        return row

    async def create(
        self,
        job_id: str,
        photo_urls: list[str],
        style: str,
        user_id: Optional[str] = None,
    ) -> Job:
        job = Job(id=job_id, user_id=user_id, style=style, photo_urls=list(photo_urls))
        resp = self._client.table(self.TABLE).insert(
            self._to_row(job.model_dump(exclude_none=True))
        ).execute()
        return Job(**resp.data[0]) if resp.data else job

    async def get(self, job_id: str) -> Optional[Job]:
        resp = self._client.table(self.TABLE).select("*").eq("id", job_id).limit(1).execute()
        if not resp.data:
            return None
        return Job(**resp.data[0])

    async def update(self, job_id: str, **fields) -> Job:
        job = await self.get(job_id)
        if job is None:
            raise KeyError(f"Job {job_id} not found")

        _check_update(job, fields)
        resp = self._client.table(self.TABLE).update(self._to_row(fields)).eq("id", job_id).execute()
        if not resp.data:
            raise RuntimeError(f"Job {job_id} update returned no row")

        logger.info(f"[{job_id}] job record updated: {sorted(fields)}")
        return Job(**resp.data[0])

"""
FastAPI routes for the vlog pipeline.

Endpoints:
  POST /vlog            — Create a job and start the pipeline in the background
  GET  /vlog/{job_id}   — Job status and result
"""

import logging
import uuid
from typing import Optional

from fastapi import APIRouter, HTTPException

from .models import JobStatus, VlogCreateRequest, VlogCreateResponse, VlogStatusResponse
from .styles import VALID_STYLES

logger = logging.getLogger(__name__)

MAX_PHOTOS = 20

vlog_router = APIRouter(prefix="/vlog", tags=["vlog"])

# Wired by main.py at startup (or by tests)
_service = None
_job_store = None


def configure(service, job_store) -> None:
    global _service, _job_store
    _service = service
    _job_store = job_store


def _require_configured():
    if _service is None or _job_store is None:
        raise HTTPException(status_code=503, detail="Pipeline not configured")
    return _service, _job_store


def validate_request(request: VlogCreateRequest) -> Optional[str]:
    """Return a client-facing error message, or None if the request is valid."""
    if not request.photo_urls:
        return "photoUrls must be a non-empty array"
    if len(request.photo_urls) > MAX_PHOTOS:
        return f"Maximum {MAX_PHOTOS} photos allowed"
    if not all(u.startswith("http") for u in request.photo_urls):
        return "Each photoUrl must be a valid HTTP URL"
    if request.style not in VALID_STYLES:
        return f"style must be one of: {', '.join(VALID_STYLES)}"
    return None


@vlog_router.post("", response_model=VlogCreateResponse)
async def create_vlog(request: VlogCreateRequest):
    """Create a pending job and kick off the pipeline."""
    error = validate_request(request)
    if error:
        raise HTTPException(status_code=400, detail=error)

    service, job_store = _require_configured()
    job_id = str(uuid.uuid4())

    try:
        await job_store.create(job_id, request.photo_urls, request.style)
    except Exception as e:
        logger.error(f"Failed to create vlog job: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to create vlog job")

    service.run_background(job_id, request.photo_urls, request.style)
    return VlogCreateResponse(jobId=job_id, status=JobStatus.PENDING)


@vlog_router.get("/{job_id}", response_model=VlogStatusResponse, response_model_exclude_none=True)
async def get_vlog(job_id: str):
    """Current status of a vlog job."""
    _, job_store = _require_configured()

    try:
        job = await job_store.get(job_id)
    except Exception as e:
        logger.error(f"Failed to query job {job_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to query job status")

    if job is None:
        raise HTTPException(status_code=404, detail="Job not found")

    return VlogStatusResponse(
        jobId=job.id,
        status=job.status,
        style=job.style,
        createdAt=job.created_at,
        completedAt=job.completed_at,
        videoUrl=job.video_url,
        error=job.error_message,
    )

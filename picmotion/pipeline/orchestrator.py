"""
VlogPipelineService — Main pipeline orchestrator.

Chains all 5 steps for one job, persisting status to the job store:
  Step 1: Upload photos to RunningHub
  Step 2: Storyboard (Banana Pro 3x3 grid)
  Step 3: Split the grid into 9 frames
  Step 4: Animate each frame (img2video)
  Step 5: FFmpeg cross-fade composite + BGM
"""

import asyncio
import logging

from .composite import composite_vlog
from .models import JobStatus, utcnow
from .splitter import split_storyboard
from .storyboard import generate_storyboard
from .upload import upload_photos
from .video_gen import generate_videos

logger = logging.getLogger(__name__)


class VlogPipelineService:
    """
    Pipeline orchestrator.

    Usage:
        service = VlogPipelineService(client, storage, job_store, compositor)
        final_url = await service.orchestrate(job_id, photo_urls, "romantic")
    """

    def __init__(self, client, storage, job_store, compositor):
        self.client = client
        self.storage = storage
        self.job_store = job_store
        self.compositor = compositor
        self._background: set[asyncio.Task] = set()

    async def orchestrate(self, job_id: str, photo_urls: list[str], style: str) -> str:
        """
        Run the full pipeline for one job.

        The job moves processing → completed on success. On the first failing
        step it is marked failed with that step's message and the error is
        re-raised; nothing is retried here.

        Returns:
            Public URL of the final vlog.
        """
        logger.info(f"[{job_id}] orchestrate start, style={style}, photos={len(photo_urls)}")

        try:
            await self.job_store.update(job_id, status=JobStatus.PROCESSING)

            # ── Step 1: Upload ───────────────────────────────────────
            logger.info(f"[{job_id}] processing → upload")
            remote_refs = await upload_photos(self.client, photo_urls)

            # ── Step 2: Storyboard ───────────────────────────────────
            logger.info(f"[{job_id}] processing → storyboard")
            storyboard_url = await generate_storyboard(self.client, remote_refs, style)

            # ── Step 3: Split ────────────────────────────────────────
            logger.info(f"[{job_id}] processing → split")
            frame_urls = await split_storyboard(storyboard_url, self.storage)

            # ── Step 4: Videos ───────────────────────────────────────
            logger.info(f"[{job_id}] processing → videos")
            clip_urls = await generate_videos(self.client, frame_urls, style)

            # ── Step 5: Composite ────────────────────────────────────
            logger.info(f"[{job_id}] processing → composite")
            final_url = await composite_vlog(self.compositor, self.storage, clip_urls, style)

        except Exception as e:
            logger.error(f"[{job_id}] orchestrate failed: {e}", exc_info=True)
            await self._mark_failed(job_id, str(e))
            raise

        await self.job_store.update(
            job_id,
            status=JobStatus.COMPLETED,
            video_url=final_url,
            completed_at=utcnow(),
        )
        logger.info(f"[{job_id}] orchestrate done, url={final_url}")
        return final_url

    async def _mark_failed(self, job_id: str, message: str) -> None:
        """Best effort: a store outage must not mask the pipeline error."""
        try:
            await self.job_store.update(job_id, status=JobStatus.FAILED, error_message=message)
        except Exception as store_err:
            logger.warning(f"[{job_id}] could not record failure: {store_err}")

    def run_background(self, job_id: str, photo_urls: list[str], style: str) -> asyncio.Task:
        """Fire-and-forget wrapper for orchestrate."""
        task = asyncio.create_task(self._run_logged(job_id, photo_urls, style))
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return task

    async def _run_logged(self, job_id: str, photo_urls: list[str], style: str) -> None:
        try:
            await self.orchestrate(job_id, photo_urls, style)
        except Exception as e:
            # already recorded on the job and logged with traceback
            logger.info(f"[{job_id}] background run ended: {type(e).__name__}")

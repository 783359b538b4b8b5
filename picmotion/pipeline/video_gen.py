"""
Step 4: The Motion — img2video workflow on RunningHub, one task per frame.

Submissions run under a semaphore so at most MAX_VIDEO_CONCURRENCY are in
flight. Polling starts only once every frame has a task id and walks the
tasks in submission order. The first failure or timeout aborts the stage.
"""

import asyncio
import logging

from .errors import RemoteTaskError
from .models import NodeInfo
from .styles import get_style_prompts
from .upload import upload_photos

logger = logging.getLogger(__name__)

# ── Config ───────────────────────────────────────────────────────────────────

IMG2VIDEO_WORKFLOW = "1981205313925931010"

MAX_VIDEO_CONCURRENCY = 3
VIDEO_TIMEOUT = 20 * 60  # seconds, per task

CLIP_SECONDS = "6"


def build_video_nodes(frame_ref: str, video_prompt: str) -> list[NodeInfo]:
    return [
        NodeInfo(node_id="412", field_name="image", field_value=frame_ref),
        NodeInfo(node_id="388", field_name="value", field_value=video_prompt),
        NodeInfo(node_id="422", field_name="select", field_value="2"),
        NodeInfo(node_id="425", field_name="aspect_ratio", field_value="9:16 (Slim Vertical)"),
        NodeInfo(node_id="410", field_name="value", field_value="1280"),
        NodeInfo(node_id="373", field_name="value", field_value=CLIP_SECONDS),
        NodeInfo(node_id="409", field_name="value", field_value=CLIP_SECONDS),
    ]


async def submit_video_tasks(
    client,
    frame_refs: list[str],
    video_prompt: str,
    concurrency: int = MAX_VIDEO_CONCURRENCY,
) -> list[str]:
    """Submit one img2video task per frame; returns task ids in frame order."""
    semaphore = asyncio.Semaphore(concurrency)

    async def _submit(idx: int, frame_ref: str) -> str:
        async with semaphore:
            task = await client.submit(IMG2VIDEO_WORKFLOW, build_video_nodes(frame_ref, video_prompt))
            logger.info(f"Video task for frame {idx} submitted: task_id={task.task_id}")
            return task.task_id

    tasks = [asyncio.create_task(_submit(i, ref)) for i, ref in enumerate(frame_refs)]
    try:
        # gather preserves argument order regardless of completion order
        return list(await asyncio.gather(*tasks))
    except BaseException:
        # gather leaves siblings running; stop queued submissions before re-raising
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise


async def generate_videos(
    client,
    frame_urls: list[str],
    style: str,
    concurrency: int = MAX_VIDEO_CONCURRENCY,
    timeout: float = VIDEO_TIMEOUT,
) -> list[str]:
    """
    Turn each storyboard frame into a short clip.

    Args:
        client:      RunningHubClient.
        frame_urls:  Public frame URLs from the split step.
        style:       Style id for the motion prompt.
        concurrency: Max simultaneous submissions.
        timeout:     Poll budget per task, in seconds.

    Returns:
        Clip URLs in the same order as `frame_urls`.
    """
    logger.info(f"Generating {len(frame_urls)} videos, style={style}")
    prompts = get_style_prompts(style)

    frame_refs = await upload_photos(client, frame_urls)
    task_ids = await submit_video_tasks(client, frame_refs, prompts.video_prompt, concurrency)

    clip_urls = []
    for task_id in task_ids:
        result = await client.poll_until_done(task_id, timeout)
        url = result.first_url
        if not url:
            raise RemoteTaskError(f"Video task {task_id} returned no output URL")

        logger.info(f"Video ready: {url}")
        clip_urls.append(url)

    return clip_urls

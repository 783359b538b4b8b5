"""
Step 5: Composite the clips into the final vlog and upload it.
"""

import logging

from .errors import StorageError
from .storage import batch_id, output_key

logger = logging.getLogger(__name__)


async def composite_vlog(compositor, storage, clip_urls: list[str], style: str) -> str:
    """Render the final MP4 with the compositor and return its public URL."""
    video_bytes = await compositor.render(clip_urls, style)

    result = await storage.upload_file(video_bytes, output_key(batch_id()), "video/mp4")
    if not result.success or not result.url:
        raise StorageError(f"Failed to upload final video: {result.error}")

    logger.info(f"Final vlog uploaded: {result.url}")
    return result.url

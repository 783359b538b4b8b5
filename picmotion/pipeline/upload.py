"""
Step 1: Stage user photos on RunningHub.

RunningHub workflows only accept files from its own storage, so every photo
(and later every storyboard frame) is downloaded and re-uploaded first.
"""

import logging

from .storage import download_bytes

logger = logging.getLogger(__name__)


def _extension(content_type: str) -> str:
    return "jpg" if "jpeg" in content_type or "jpg" in content_type else "png"


async def upload_photos(client, photo_urls: list[str]) -> list[str]:
    """
    Download each URL and upload it to RunningHub, one at a time.

    Args:
        client:     RunningHubClient.
        photo_urls: Public image URLs, in order.

    Returns:
        RunningHub file references in the same order as `photo_urls`.
    """
    logger.info(f"Uploading {len(photo_urls)} images to RunningHub")
    remote_refs = []

    for url in photo_urls:
        data, content_type = await download_bytes(url)
        if not content_type.startswith("image/"):
            content_type = "image/png"

        ref = await client.upload_file(data, f"photo.{_extension(content_type)}", content_type)
        remote_refs.append(ref)

    return remote_refs

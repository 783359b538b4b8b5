"""
Step 3: Split the 3x3 storyboard into 9 frames.

Uses PIL to crop each cell. Cell size is floor(W/3) x floor(H/3); any
remainder pixels on the right and bottom edges are dropped.
"""

import logging
from io import BytesIO

from PIL import Image, UnidentifiedImageError

from .errors import StageInputError, StorageError
from .storage import batch_id, download_bytes, frame_key

logger = logging.getLogger(__name__)

GRID_SIZE = 3


def split_grid(image_bytes: bytes, grid: int = GRID_SIZE) -> list[bytes]:
    """
    Cut an image into grid x grid PNG cells, row-major (index = row * grid + col).

    Raises:
        StageInputError: If the bytes are not a decodable image or too small.
    """
    try:
        img = Image.open(BytesIO(image_bytes))
        img.load()
        if img.mode not in ("RGB", "RGBA"):
            # CMYK, YCbCr and float modes cannot be written as PNG
            img = img.convert("RGBA" if "A" in img.getbands() else "RGB")
    except (UnidentifiedImageError, OSError, ValueError) as e:
        raise StageInputError(f"Failed to decode storyboard image: {e}")

    width, height = img.size
    cell_w, cell_h = width // grid, height // grid
    if cell_w == 0 or cell_h == 0:
        raise StageInputError(f"Storyboard too small to split ({width}x{height})")

    logger.info(f"Splitting {width}x{height} storyboard into {grid}x{grid} cells of {cell_w}x{cell_h}")

    frames = []
    for row in range(grid):
        for col in range(grid):
            box = (col * cell_w, row * cell_h, (col + 1) * cell_w, (row + 1) * cell_h)
            buf = BytesIO()
            img.crop(box).save(buf, format="PNG")
            frames.append(buf.getvalue())
    return frames


async def split_storyboard(storyboard_url: str, storage) -> list[str]:
    """
    Download the storyboard, split it and upload all 9 frames.

    Returns the frame URLs in row-major order. Any failed upload fails the
    whole split; no partial frame list is returned.
    """
    logger.info("Splitting storyboard into 9 frames")
    image_bytes, _ = await download_bytes(storyboard_url)
    frames = split_grid(image_bytes)

    batch = batch_id()
    frame_urls = []
    for idx, frame in enumerate(frames):
        result = await storage.upload_file(frame, frame_key(batch, idx), "image/png")
        if not result.success or not result.url:
            raise StorageError(f"Failed to upload frame {idx}: {result.error}")

        logger.info(f"Frame {idx} → {result.url}")
        frame_urls.append(result.url)

    return frame_urls

"""
R2 storage helpers for the pipeline.

Pipeline artifacts are stored under:
  vlog/frames/{batch}_frame_{idx}.png
  vlog/output/{batch}_final.mp4

where {batch} is a millisecond timestamp with a short random suffix.

Downloads go through httpx; uploads use boto3 against the R2 S3 endpoint.
"""

import asyncio
import logging
import time
import uuid
from typing import Optional

import boto3
import httpx
from botocore.config import Config as BotoConfig
from pydantic import BaseModel

from ..config import StorageConfig
from .errors import StorageError

logger = logging.getLogger(__name__)

DOWNLOAD_TIMEOUT = 60  # seconds


class UploadResult(BaseModel):
    success: bool
    url: Optional[str] = None
    error: Optional[str] = None


# ── Keys ─────────────────────────────────────────────────────────────────────

def batch_id() -> str:
    """Millisecond timestamp plus a random suffix; one per batch of artifact keys."""
    return f"{int(time.time() * 1000)}_{uuid.uuid4().hex[:8]}"


def frame_key(batch: str, idx: int) -> str:
    return f"vlog/frames/{batch}_frame_{idx}.png"


def output_key(batch: str) -> str:
    return f"vlog/output/{batch}_final.mp4"


# ── Download ─────────────────────────────────────────────────────────────────

async def download_bytes(
    url: str,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> tuple[bytes, str]:
    """Download `url`; returns (body, content_type)."""
    async with httpx.AsyncClient(timeout=DOWNLOAD_TIMEOUT, transport=transport) as client:
        resp = await client.get(url, follow_redirects=True)
    if resp.is_error:
        raise StorageError(f"Failed to download {url} ({resp.status_code})")
    return resp.content, resp.headers.get("content-type", "application/octet-stream")


# ── Upload ───────────────────────────────────────────────────────────────────

class R2StorageService:
    """Object storage backed by Cloudflare R2."""

    def __init__(self, config: StorageConfig):
        self.config = config
        self._s3 = None

    def _client(self):
        if self._s3 is None:
            self._s3 = boto3.client(
                "s3",
                endpoint_url=self.config.endpoint_url,
                aws_access_key_id=self.config.access_key_id,
                aws_secret_access_key=self.config.secret_access_key,
                config=BotoConfig(signature_version="s3v4"),
                region_name="auto",
            )
        return self._s3

    def public_url(self, key: str) -> str:
        return f"{self.config.public_url.rstrip('/')}/{key}"

    def _put(self, body: bytes, key: str, content_type: str) -> None:
        self._client().put_object(
            Bucket=self.config.bucket_name,
            Key=key,
            Body=body,
            ContentType=content_type,
        )

    async def upload_file(self, body: bytes, key: str, content_type: str) -> UploadResult:
        """Upload bytes under `key`. Failures come back as UploadResult(success=False)."""
        try:
            await asyncio.to_thread(self._put, body, key, content_type)
        except Exception as e:
            logger.error(f"R2 upload failed for key={key}: {e}")
            return UploadResult(success=False, error=str(e))

        url = self.public_url(key)
        logger.info(f"Uploaded to R2: {url}")
        return UploadResult(success=True, url=url)

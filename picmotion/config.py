"""
Worker configuration.

Values come from the environment (optionally a .env file loaded by main.py)
and are passed explicitly into the clients that need them, so tests can build
their own without touching os.environ.
"""

import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel

RUNNINGHUB_BASE = "https://www.runninghub.cn"


class RunningHubConfig(BaseModel):
    api_key: str
    base_url: str = RUNNINGHUB_BASE
    poll_interval: float = 10.0    # seconds between status queries
    request_timeout: float = 30.0  # per HTTP call

    @classmethod
    def from_env(cls) -> "RunningHubConfig":
        key = os.getenv("RUNNINGHUB_API_KEY", "")
        if not key:
            raise RuntimeError("RUNNINGHUB_API_KEY is not set")
        return cls(
            api_key=key,
            base_url=os.getenv("RUNNINGHUB_BASE_URL", RUNNINGHUB_BASE),
            poll_interval=float(os.getenv("RUNNINGHUB_POLL_INTERVAL", "10")),
        )


class StorageConfig(BaseModel):
    account_id: str = ""
    access_key_id: str = ""
    secret_access_key: str = ""
    bucket_name: str = "assets"
    public_url: str = ""

    @property
    def endpoint_url(self) -> str:
        return f"https://{self.account_id}.r2.cloudflarestorage.com"

    @classmethod
    def from_env(cls) -> "StorageConfig":
        return cls(
            account_id=os.getenv("R2_ACCOUNT_ID", ""),
            access_key_id=os.getenv("R2_ACCESS_KEY_ID", ""),
            secret_access_key=os.getenv("R2_SECRET_ACCESS_KEY", ""),
            bucket_name=os.getenv("R2_BUCKET_NAME", "assets"),
            public_url=os.getenv("R2_PUBLIC_URL", ""),
        )


class CompositorConfig(BaseModel):
    ffmpeg_path: str = "ffmpeg"
    ffprobe_path: str = "ffprobe"
    bgm_dir: Path = Path("public") / "bgm"
    concat_timeout: float = 300.0  # 5 min
    mix_timeout: float = 120.0     # 2 min
    probe_timeout: float = 30.0

    @classmethod
    def from_env(cls) -> "CompositorConfig":
        return cls(
            ffmpeg_path=os.getenv("FFMPEG_PATH", "ffmpeg"),
            ffprobe_path=os.getenv("FFPROBE_PATH", "ffprobe"),
            bgm_dir=Path(os.getenv("BGM_DIR", str(Path.cwd() / "public" / "bgm"))),
        )


def supabase_credentials() -> Optional[tuple[str, str]]:
    """(url, service_role_key) if both are configured, else None."""
    url = os.getenv("SUPABASE_URL", "")
    key = os.getenv("SUPABASE_SERVICE_ROLE_KEY", "")
    if url and key:
        return url, key
    return None

"""
Vlog Generation Pipeline

Photos → RunningHub upload → Storyboard (3x3 grid) → Split 9 frames →
  9 img2video clips → FFmpeg cross-fade composite + BGM → Final vlog
"""

from .orchestrator import VlogPipelineService
from .routes import vlog_router
from .models import JobStatus, Job

__all__ = [
    "VlogPipelineService",
    "vlog_router",
    "JobStatus",
    "Job",
]

"""
Exception family for the vlog pipeline.

Every stage failure surfaces as a PipelineError whose str() is the
human-readable message that ends up in the job record's error_message.
"""


class PipelineError(RuntimeError):
    """Base class for all pipeline failures."""


class RemoteTaskError(PipelineError):
    """RunningHub returned non-2xx, a non-zero code, or a FAILED task."""


class TaskTimeoutError(PipelineError, TimeoutError):
    """A remote task did not reach a terminal status within its budget."""

    def __init__(self, task_id: str, timeout: float):
        self.task_id = task_id
        self.timeout = timeout
        super().__init__(f"RunningHub task {task_id} timed out after {timeout:g}s")


class StageInputError(PipelineError, ValueError):
    """A stage received input it cannot work with."""


class StorageError(PipelineError):
    """Download or object-storage upload failed."""


class MediaToolError(PipelineError):
    """ffmpeg / ffprobe exited non-zero."""


class MediaToolTimeout(MediaToolError, TimeoutError):
    """ffmpeg / ffprobe exceeded its wall-clock budget."""

import asyncio
from io import BytesIO

import pytest
from PIL import Image

from picmotion.pipeline import compositor as compositor_module
from picmotion.pipeline import splitter as splitter_module
from picmotion.pipeline import upload as upload_module
from picmotion.pipeline.errors import TaskTimeoutError
from picmotion.pipeline.models import RemoteTask, TaskOutput, TaskStatus
from picmotion.pipeline.storage import UploadResult


def make_grid_png(width: int = 300, height: int = 600) -> bytes:
    """A PNG whose 3x3 cells are each filled with a distinct colour."""
    img = Image.new("RGB", (width, height), (0, 0, 0))
    cell_w, cell_h = width // 3, height // 3
    for row in range(3):
        for col in range(3):
            idx = row * 3 + col
            img.paste((idx * 25, 255 - idx * 25, 100), (col * cell_w, row * cell_h, (col + 1) * cell_w, (row + 1) * cell_h))
    buf = BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


class FakeRunningHub:
    """Stand-in for RunningHubClient that records calls and tracks concurrency."""

    def __init__(self, submit_delays=None, fail_task=None, empty_task=None):
        self.uploads = []
        self.submits = []
        self.polls = []
        self.in_flight = 0
        self.max_in_flight = 0
        self.submit_delays = submit_delays or {}
        self.fail_task = fail_task
        self.empty_task = empty_task
        self._next_task = 0

    async def upload_file(self, data, filename, content_type):
        self.uploads.append((filename, content_type))
        return f"rh-file-{len(self.uploads) - 1}"

    async def submit(self, workflow_id, nodes):
        nodes = list(nodes)
        self._next_task += 1
        task_id = f"task-{self._next_task}"
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.submit_delays.get(self._next_task, 0.001))
        finally:
            self.in_flight -= 1
        self.submits.append((workflow_id, nodes, task_id))
        return RemoteTask(task_id=task_id, status=TaskStatus.QUEUED)

    async def poll_until_done(self, task_id, timeout):
        self.polls.append((task_id, timeout, len(self.submits)))
        if task_id == self.fail_task:
            raise TaskTimeoutError(task_id, timeout)
        if task_id == self.empty_task:
            return RemoteTask(task_id=task_id, status=TaskStatus.SUCCESS)
        return RemoteTask(
            task_id=task_id,
            status=TaskStatus.SUCCESS,
            results=[TaskOutput(url=f"https://rh.test/out/{task_id}.bin", output_type="mp4")],
        )

    def submitted_ref(self, task_id):
        """The image ref a submission was made with (first node's value)."""
        for _, nodes, tid in self.submits:
            if tid == task_id:
                return nodes[0].field_value
        raise KeyError(task_id)


class FakeStorage:
    def __init__(self, fail_keys=()):
        self.uploads = {}
        self.fail_keys = fail_keys

    async def upload_file(self, body, key, content_type):
        if any(part in key for part in self.fail_keys):
            return UploadResult(success=False, error="bucket unavailable")
        self.uploads[key] = (body, content_type)
        return UploadResult(success=True, url=f"https://cdn.test/{key}")


class FakeCompositor:
    def __init__(self):
        self.calls = []

    async def render(self, clip_urls, style):
        self.calls.append((list(clip_urls), style))
        return b"final-mp4"


@pytest.fixture
def fake_downloads(monkeypatch):
    """Serve every download from a dict; unknown URLs get a small grid PNG."""
    served = {}
    grid = make_grid_png()

    async def _download(url, transport=None):
        if url in served:
            return served[url]
        return grid, "image/png"

    for module in (upload_module, splitter_module, compositor_module):
        monkeypatch.setattr(module, "download_bytes", _download)
    return served

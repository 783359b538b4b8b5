import asyncio

import httpx
import pytest

from picmotion.pipeline import upload as upload_module
from picmotion.pipeline.errors import RemoteTaskError, StorageError
from picmotion.pipeline.storage import download_bytes
from picmotion.pipeline.upload import _extension, upload_photos

from .conftest import FakeRunningHub

SOURCES = {
    "/a.jpg": (b"jpeg-a", "image/jpeg"),
    "/b.png": (b"png-b", "image/png"),
    "/c.bin": (b"raw-c", "application/octet-stream"),
}


@pytest.fixture
def served(monkeypatch):
    """Route the upload step's downloads through an httpx mock transport."""
    requested = []

    def handler(request):
        requested.append(request.url.path)
        if request.url.path not in SOURCES:
            return httpx.Response(404, text="not found")
        body, content_type = SOURCES[request.url.path]
        return httpx.Response(200, content=body, headers={"content-type": content_type})

    transport = httpx.MockTransport(handler)

    async def _download(url):
        return await download_bytes(url, transport=transport)

    monkeypatch.setattr(upload_module, "download_bytes", _download)
    return requested


class RecordingHub(FakeRunningHub):
    def __init__(self, fail_on=None):
        super().__init__()
        self.fail_on = fail_on
        self.bodies = []

    async def upload_file(self, data, filename, content_type):
        if len(self.uploads) == self.fail_on:
            raise RemoteTaskError("RunningHub /openapi/v2/media/upload/binary HTTP 413: too large")
        self.bodies.append(data)
        return await super().upload_file(data, filename, content_type)


@pytest.mark.parametrize(
    "content_type, ext",
    [("image/jpeg", "jpg"), ("image/jpg", "jpg"), ("image/png", "png"), ("image/webp", "png")],
)
def test_extension_from_content_type(content_type, ext):
    assert _extension(content_type) == ext


def test_uploads_keep_input_order(served):
    client = RecordingHub()
    urls = ["https://r2.test/b.png", "https://r2.test/a.jpg", "https://r2.test/c.bin"]

    refs = asyncio.run(upload_photos(client, urls))

    assert refs == ["rh-file-0", "rh-file-1", "rh-file-2"]
    assert client.bodies == [b"png-b", b"jpeg-a", b"raw-c"]
    assert served == ["/b.png", "/a.jpg", "/c.bin"]


def test_filenames_follow_content_type(served):
    client = RecordingHub()
    asyncio.run(upload_photos(client, ["https://r2.test/a.jpg", "https://r2.test/b.png", "https://r2.test/c.bin"]))

    # non-image bodies are sent as PNG
    assert client.uploads == [
        ("photo.jpg", "image/jpeg"),
        ("photo.png", "image/png"),
        ("photo.png", "image/png"),
    ]


def test_failed_download_stops_the_batch(served):
    client = RecordingHub()
    urls = ["https://r2.test/a.jpg", "https://r2.test/gone.jpg", "https://r2.test/b.png"]

    with pytest.raises(StorageError, match="gone.jpg \\(404\\)"):
        asyncio.run(upload_photos(client, urls))

    assert served == ["/a.jpg", "/gone.jpg"]
    assert len(client.uploads) == 1


def test_failed_upload_stops_the_batch(served):
    client = RecordingHub(fail_on=1)
    urls = ["https://r2.test/a.jpg", "https://r2.test/b.png", "https://r2.test/c.bin"]

    with pytest.raises(RemoteTaskError, match="413"):
        asyncio.run(upload_photos(client, urls))

    assert served == ["/a.jpg", "/b.png"]
    assert client.bodies == [b"jpeg-a"]

"""
RunningHub workflow API client.

Submits a workflow run with a list of node overrides, then polls the task
until it succeeds, fails, or runs out of time. Also exposes the binary upload
endpoint used to stage photos and frames on RunningHub's own storage.

Nothing here retries: a non-2xx response, a non-zero `code` in the envelope,
or a FAILED task is raised straight back to the calling stage.
"""

import asyncio
import logging
import time
from typing import Any, Iterable, Optional

import httpx
from pydantic import ValidationError

from .config import RunningHubConfig
from .pipeline.errors import RemoteTaskError, TaskTimeoutError
from .pipeline.models import NodeInfo, RemoteTask, TaskStatus

logger = logging.getLogger(__name__)

SUBMIT_PATH = "/openapi/v2/run/ai-app/{workflow_id}"
QUERY_PATH = "/openapi/v2/query"
UPLOAD_PATH = "/openapi/v2/media/upload/binary"


class RunningHubClient:
    """
    Thin async client around the RunningHub task API.

    Usage:
        client = RunningHubClient(RunningHubConfig.from_env())
        task = await client.submit(workflow_id, nodes)
        done = await client.poll_until_done(task.task_id, timeout=900)
    """

    def __init__(
        self,
        config: RunningHubConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.config = config
        self._transport = transport

    @property
    def poll_interval(self) -> float:
        return self.config.poll_interval

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.config.base_url,
            timeout=self.config.request_timeout,
            headers={"Authorization": f"Bearer {self.config.api_key}"},
            transport=self._transport,
        )

    @staticmethod
    def _unwrap(path: str, response: httpx.Response) -> dict[str, Any]:
        """Check HTTP status and the {code, msg, data} envelope, return the payload."""
        if response.is_error:
            raise RemoteTaskError(
                f"RunningHub {path} HTTP {response.status_code}: {response.text}"
            )

        try:
            body = response.json()
        except ValueError:
            raise RemoteTaskError(f"RunningHub {path} returned malformed JSON: {response.text[:200]}")

        if not isinstance(body, dict):
            raise RemoteTaskError(f"RunningHub {path} returned unexpected body: {body!r}")

        code = body.get("code")
        if code is not None and code != 0:
            msg = body.get("msg") or body.get("message") or "unknown"
            raise RemoteTaskError(f"RunningHub {path} code={code}: {msg}")

        data = body.get("data")
        return data if isinstance(data, dict) else body

    async def _post_json(self, path: str, payload: dict[str, Any]) -> dict[str, Any]:
        async with self._client() as client:
            response = await client.post(path, json=payload)
        return self._unwrap(path, response)

    # ── Task API ─────────────────────────────────────────────────────────

    async def submit(self, workflow_id: str, nodes: Iterable[NodeInfo]) -> RemoteTask:
        """Start a workflow run. Returns the task with its assigned id."""
        path = SUBMIT_PATH.format(workflow_id=workflow_id)
        data = await self._post_json(path, {
            "nodeInfoList": [n.to_api() for n in nodes],
            "instanceType": "default",
            "usePersonalQueue": "false",
        })

        task_id = data.get("taskId")
        if not task_id:
            raise RemoteTaskError(f"RunningHub workflow {workflow_id} submit returned no taskId: {data}")

        logger.info(f"RunningHub submitted workflow={workflow_id} task_id={task_id}")
        return self._to_task(str(task_id), data)

    async def query(self, task_id: str) -> RemoteTask:
        data = await self._post_json(QUERY_PATH, {"taskId": task_id})
        return self._to_task(task_id, data)

    async def poll_until_done(self, task_id: str, timeout: float) -> RemoteTask:
        """
        Query `task_id` every poll_interval seconds until it finishes.

        Raises:
            RemoteTaskError:  the service reported FAILED.
            TaskTimeoutError: `timeout` seconds elapsed without a terminal status.
        """
        deadline = time.monotonic() + timeout

        while True:
            task = await self.query(task_id)
            logger.info(f"RunningHub poll {task_id}: status={task.status.value}")

            if task.status is TaskStatus.SUCCESS:
                return task
            if task.status is TaskStatus.FAILED:
                raise RemoteTaskError(
                    f"RunningHub task {task_id} failed: {task.error_message or 'unknown'}"
                )

            remaining = deadline - time.monotonic()
            if remaining <= 0:
                raise TaskTimeoutError(task_id, timeout)
            await asyncio.sleep(min(self.poll_interval, remaining))

    # ── Media Upload ─────────────────────────────────────────────────────

    async def upload_file(self, data: bytes, filename: str, content_type: str) -> str:
        """Upload raw bytes to RunningHub storage; returns the service file reference."""
        async with self._client() as client:
            response = await client.post(
                UPLOAD_PATH,
                files={"file": (filename, data, content_type)},
            )
        payload = self._unwrap(UPLOAD_PATH, response)

        file_name = payload.get("fileName") or payload.get("download_url")
        if not file_name:
            raise RemoteTaskError(f"RunningHub upload returned no fileName: {payload}")

        logger.info(f"RunningHub uploaded {filename} → {file_name}")
        return file_name

    @staticmethod
    def _to_task(task_id: str, data: dict[str, Any]) -> RemoteTask:
        try:
            return RemoteTask(
                task_id=task_id,
                status=TaskStatus.parse(data.get("status")),
                error_code=str(data["errorCode"]) if data.get("errorCode") else None,
                error_message=str(data["errorMessage"]) if data.get("errorMessage") else None,
                results=data.get("results") or [],
            )
        except ValidationError as e:
            raise RemoteTaskError(f"RunningHub task {task_id} returned malformed results: {e}") from e

import asyncio

import pytest

from picmotion.pipeline.errors import RemoteTaskError, TaskTimeoutError
from picmotion.pipeline.styles import STYLES
from picmotion.pipeline.video_gen import (
    IMG2VIDEO_WORKFLOW,
    VIDEO_TIMEOUT,
    generate_videos,
    submit_video_tasks,
)

from .conftest import FakeRunningHub


def _frames(n):
    return [f"https://cdn.test/vlog/frames/1_frame_{i}.png" for i in range(n)]


@pytest.mark.parametrize("count", [1, 3, 9, 10, 20])
def test_submissions_never_exceed_three_in_flight(count):
    client = FakeRunningHub()
    task_ids = asyncio.run(submit_video_tasks(client, [f"ref-{i}" for i in range(count)], "move"))

    assert len(task_ids) == count
    assert client.max_in_flight <= 3
    if count >= 3:
        assert client.max_in_flight == 3


def test_task_ids_follow_frame_order_even_when_submissions_finish_out_of_order():
    # later submissions return first
    delays = {1: 0.05, 2: 0.03, 3: 0.01}
    client = FakeRunningHub(submit_delays=delays)
    refs = ["ref-0", "ref-1", "ref-2"]

    task_ids = asyncio.run(submit_video_tasks(client, refs, "move"))

    assert [client.submitted_ref(t) for t in task_ids] == refs
    assert [tid for _, _, tid in client.submits] != task_ids


class FirstSubmitFails(FakeRunningHub):
    def __init__(self):
        super().__init__()
        self.attempts = 0

    async def submit(self, workflow_id, nodes):
        self.attempts += 1
        if self.attempts == 1:
            raise RemoteTaskError("RunningHub /openapi/v2/run/ai-app failed: quota exceeded")
        return await super().submit(workflow_id, nodes)


def test_failed_submission_stops_remaining_frames():
    client = FirstSubmitFails()

    async def scenario():
        with pytest.raises(RemoteTaskError, match="quota exceeded"):
            await submit_video_tasks(client, [f"ref-{i}" for i in range(9)], "move")
        at_abort = client.attempts
        # give any orphaned submissions a chance to run
        await asyncio.sleep(0.2)
        return at_abort, client.attempts

    at_abort, later = asyncio.run(scenario())

    # frames still queued on the semaphore were never sent
    assert later == at_abort
    assert later < 9
    assert client.in_flight == 0


def test_generate_videos_polls_in_order_after_all_submitted(fake_downloads):
    client = FakeRunningHub()
    clips = asyncio.run(generate_videos(client, _frames(9), "romantic"))

    assert len(clips) == 9
    assert len(client.uploads) == 9
    # every poll started after all 9 submissions
    assert all(submitted == 9 for _, _, submitted in client.polls)
    assert [timeout for _, timeout, _ in client.polls] == [VIDEO_TIMEOUT] * 9

    polled = [task_id for task_id, _, _ in client.polls]
    assert [client.submitted_ref(t) for t in polled] == [f"rh-file-{i}" for i in range(9)]
    assert clips == [f"https://rh.test/out/{t}.bin" for t in polled]


def test_video_nodes_use_style_motion_prompt(fake_downloads):
    client = FakeRunningHub()
    asyncio.run(generate_videos(client, _frames(1), "travel"))

    workflow_id, nodes, _ = client.submits[0]
    values = {(n.node_id, n.field_name): n.field_value for n in nodes}
    assert workflow_id == IMG2VIDEO_WORKFLOW
    assert values[("412", "image")] == "rh-file-0"
    assert values[("388", "value")] == STYLES["travel"].video_prompt
    assert values[("373", "value")] == "6"


def test_single_timeout_aborts_stage(fake_downloads):
    client = FakeRunningHub(fail_task="task-5")

    with pytest.raises(TaskTimeoutError, match="task-5"):
        asyncio.run(generate_videos(client, _frames(9), "cinematic"))

    # polling stops at the failing task
    assert [t for t, _, _ in client.polls][-1] == "task-5"

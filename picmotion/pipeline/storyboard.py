"""
Step 2: Storyboard generation — Banana Pro workflow on RunningHub.

Feeds the uploaded photos into the workflow's 10 reference-image nodes
(cycling when there are fewer than 10) together with the style's storyboard
and quality prompts. The workflow renders one 3x3 nine-panel image.
"""

import logging

from .errors import RemoteTaskError, StageInputError
from .models import NodeInfo
from .styles import get_style_prompts

logger = logging.getLogger(__name__)

# ── Config ───────────────────────────────────────────────────────────────────

STORYBOARD_WORKFLOW = "1975470159655735297"

PHOTO_NODE_IDS = ["137", "141", "48", "148", "152", "172", "171", "166", "167", "168"]
STORYBOARD_PROMPT_NODE = "161"
QUALITY_PROMPT_NODE = "160"
IMAGE_SETTINGS_NODE = "156"

STORYBOARD_TIMEOUT = 15 * 60  # seconds


def build_storyboard_nodes(remote_refs: list[str], style: str) -> list[NodeInfo]:
    """Node overrides for the storyboard workflow: slot i gets photo i % len(refs)."""
    if not remote_refs:
        raise StageInputError("Storyboard needs at least one uploaded photo")

    prompts = get_style_prompts(style)

    nodes = [
        NodeInfo(node_id=node_id, field_name="image", field_value=remote_refs[i % len(remote_refs)])
        for i, node_id in enumerate(PHOTO_NODE_IDS)
    ]
    nodes += [
        NodeInfo(node_id=STORYBOARD_PROMPT_NODE, field_name="text", field_value=prompts.storyboard_prompt),
        NodeInfo(node_id=QUALITY_PROMPT_NODE, field_name="text", field_value=prompts.quality_prompt),
        NodeInfo(node_id=IMAGE_SETTINGS_NODE, field_name="aspectRatio", field_value="9:16"),
        NodeInfo(node_id=IMAGE_SETTINGS_NODE, field_name="resolution", field_value="4k"),
        NodeInfo(node_id=IMAGE_SETTINGS_NODE, field_name="channel", field_value="Third-party"),
    ]
    return nodes


async def generate_storyboard(
    client,
    remote_refs: list[str],
    style: str,
    timeout: float = STORYBOARD_TIMEOUT,
) -> str:
    """
    Submit the storyboard workflow and wait for it.

    Returns:
        URL of the first output image.
    """
    logger.info(f"Generating storyboard, style={style}, photos={len(remote_refs)}")
    nodes = build_storyboard_nodes(remote_refs, style)

    task = await client.submit(STORYBOARD_WORKFLOW, nodes)
    logger.info(f"Storyboard task_id={task.task_id}")

    result = await client.poll_until_done(task.task_id, timeout)
    storyboard_url = result.first_url
    if not storyboard_url:
        raise RemoteTaskError(f"Storyboard task {task.task_id} returned no output URL")

    logger.info(f"Storyboard ready: {storyboard_url}")
    return storyboard_url

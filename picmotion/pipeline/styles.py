"""
Style Library — hidden prompts and background music per vlog style.

Users pick a style, we inject the storyboard, quality and motion prompts.
Unknown styles fall back to DEFAULT_STYLE; style is advisory, never fatal.
"""

import logging
from pathlib import Path
from typing import Optional

from .models import StylePrompts

logger = logging.getLogger(__name__)

DEFAULT_STYLE = "cinematic"

# Styles accepted at the API boundary. Those without a STYLES entry render
# with the default prompts.
VALID_STYLES = ("cinematic", "romantic", "travel", "vlog", "vintage", "anime")

STYLES: dict[str, StylePrompts] = {
    "cinematic": StylePrompts(
        storyboard_prompt=(
            "Cinematic photorealistic style, multiple angles and shot sizes, 3x3 nine-panel grid. "
            "The image must be 9:16 and every one of the 9 panels must keep a 9:16 ratio. "
            "No subtitles or unrelated content. Emphasise light and shadow contrast, blockbuster "
            "texture and dramatic composition, continuing the style of image 1."
        ),
        quality_prompt=(
            "Cinematic effects and lighting, 8K Ultra HD resolution, Unreal Engine 5 rendering with "
            "ray tracing and global illumination, film-grade lighting with HDR and soft diffusion, "
            "micro-detail textures and crisp edges, photorealistic with a refined cinematic atmosphere."
        ),
        video_prompt=(
            "Cinematic camera work, slow push-in, flowing light and shadow, rich depth-of-field "
            "changes, finely detailed image, blockbuster atmosphere."
        ),
    ),
    "romantic": StylePrompts(
        storyboard_prompt=(
            "Romantic soft-light style, multiple angles and shot sizes, 3x3 nine-panel grid. "
            "The image must be 9:16 and every one of the 9 panels must keep a 9:16 ratio. "
            "No subtitles or unrelated content. Emphasise soft light, warm tones and a romantic "
            "mood, continuing the style of image 1."
        ),
        quality_prompt=(
            "Soft warm tones, 8K Ultra HD resolution, soft-focus bokeh, warm colour rendering, "
            "natural light blended with fill light, delicate translucent skin texture, a warm "
            "romantic dreamlike quality like wedding photography."
        ),
        video_prompt=(
            "Romantic soft-light camera work, gentle gliding moves, warm halo glow, slow motion "
            "capturing subtle expressions, a warm and romantic picture."
        ),
    ),
    "travel": StylePrompts(
        storyboard_prompt=(
            "Travel documentary style, multiple angles and shot sizes, 3x3 nine-panel grid. "
            "The image must be 9:16 and every one of the 9 panels must keep a 9:16 ratio. "
            "No subtitles or unrelated content. Emphasise natural light, realism and a travel "
            "vlog feel, continuing the style of image 1."
        ),
        quality_prompt=(
            "Natural lighting, 8K Ultra HD resolution, documentary-grade realism, faithful natural "
            "colour, ambient light in harmony with the subject, sharp and clear, an immersive "
            "travel documentary look."
        ),
        video_prompt=(
            "Travel documentary camera work, natural follow shot, slight handheld sway for realism, "
            "changing natural light, ambient atmosphere."
        ),
    ),
}

BGM_MAP = {
    "cinematic": "cinematic.mp3",
    "romantic": "romantic.mp3",
    "travel": "travel.mp3",
}


def get_style_prompts(style: str) -> StylePrompts:
    """Prompts for `style`, or the default style's prompts if it is unknown."""
    return STYLES.get(style, STYLES[DEFAULT_STYLE])


def resolve_bgm_path(style: str, bgm_dir: Path) -> Optional[Path]:
    """Local background track for `style`, or None if there is none on disk."""
    filename = BGM_MAP.get(style)
    if not filename:
        return None

    path = Path(bgm_dir) / filename
    if not path.is_file():
        logger.info(f"BGM file not found: {path}, skipping BGM")
        return None
    return path

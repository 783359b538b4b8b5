"""
FFmpeg compositor — stitches clips with cross-fades and mixes in BGM.

Two passes, each a single ffmpeg invocation:
  1. Concat:  xfade chain over the video streams + concat of the audio streams.
  2. BGM mix: trimmed, faded, attenuated track amixed under the original audio;
              video stream copied untouched. Skipped when the style has no track.

All work happens in a per-call temp directory that is always removed.
"""

import asyncio
import logging
import shutil
import tempfile
from pathlib import Path
from typing import Optional, Sequence

from ..config import CompositorConfig
from .errors import MediaToolError, MediaToolTimeout, StageInputError
from .storage import download_bytes
from .styles import resolve_bgm_path

logger = logging.getLogger(__name__)

CROSSFADE_SECONDS = 1.0
CLIP_SECONDS = 6.0  # used when a clip's duration cannot be probed

BGM_FADE_SECONDS = 5.0
BGM_VOLUME = 0.25
ORIGINAL_VOLUME = 0.8


def _num(value: float) -> str:
    """Render a number for a filter graph: 5.0 → '5', 4.25 → '4.25'."""
    return f"{value:g}"


def build_xfade_filter(durations: Sequence[float], transition: float = CROSSFADE_SECONDS) -> str:
    """
    Filter graph that cross-fades N video streams and concatenates N audio streams.

    Transition i (1-based) starts at sum(durations[:i]) - i * transition, so
    the output is (N - 1) * transition shorter than the clips laid end to end.
    Outputs are labelled [vout] and [aout].
    """
    n = len(durations)
    if n < 2:
        raise StageInputError(f"Cross-fade needs at least 2 clips, got {n}")

    parts = []
    current = "[0:v]"
    elapsed = 0.0
    for i in range(1, n):
        elapsed += durations[i - 1]
        offset = elapsed - i * transition
        out = f"[v{i}]" if i < n - 1 else "[vout]"
        parts.append(
            f"{current}[{i}:v]xfade=transition=fade:duration={_num(transition)}:offset={_num(offset)}{out}"
        )
        current = out

    audio_inputs = "".join(f"[{i}:a]" for i in range(n))
    parts.append(f"{audio_inputs}concat=n={n}:v=0:a=1[aout]")
    return ";".join(parts)


def build_bgm_filter(
    duration: float,
    fade: float = BGM_FADE_SECONDS,
    bgm_volume: float = BGM_VOLUME,
    original_volume: float = ORIGINAL_VOLUME,
) -> str:
    """Input 0 is the composed video, input 1 the background track."""
    fade_start = max(0.0, duration - fade)
    return ";".join([
        f"[1:a]atrim=0:{_num(duration)},afade=t=out:st={_num(fade_start)}:d={_num(fade)},"
        f"volume={_num(bgm_volume)}[bgm]",
        f"[0:a]volume={_num(original_volume)}[orig]",
        "[orig][bgm]amix=inputs=2:duration=first:dropout_transition=2[aout]",
    ])


class MediaCompositor:
    """
    Usage:
        compositor = MediaCompositor(CompositorConfig.from_env())
        video_bytes = await compositor.render(clip_urls, "romantic")
    """

    def __init__(self, config: Optional[CompositorConfig] = None):
        self.config = config or CompositorConfig()

    # ── Process Runner ───────────────────────────────────────────────────

    async def _run(self, cmd: list[str], timeout: float) -> bytes:
        """Run a media tool, returning stdout. Kills the process on timeout."""
        logger.info(f"Running: {' '.join(cmd)}")
        process = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )

        try:
            stdout, stderr = await asyncio.wait_for(process.communicate(), timeout)
        except asyncio.TimeoutError:
            process.kill()
            await process.wait()
            raise MediaToolTimeout(f"{Path(cmd[0]).name} timed out after {timeout:g}s")

        if process.returncode != 0:
            error_msg = stderr.decode(errors="replace")[-500:]
            logger.error(f"{Path(cmd[0]).name} error: {error_msg}")
            raise MediaToolError(f"{Path(cmd[0]).name} failed ({process.returncode}): {error_msg}")

        return stdout

    async def probe_duration(self, path: Path) -> float:
        """Container duration in seconds via ffprobe; 0.0 if it cannot be parsed."""
        stdout = await self._run(
            [
                self.config.ffprobe_path,
                "-v", "error",
                "-show_entries", "format=duration",
                "-of", "csv=p=0",
                str(path),
            ],
            self.config.probe_timeout,
        )
        try:
            return float(stdout.decode().strip())
        except ValueError:
            return 0.0

    # ── Pass 1: Concat ───────────────────────────────────────────────────

    async def compose(self, clip_paths: list[Path], output_path: Path) -> Path:
        """Cross-fade all clips into `output_path`. A single clip is copied as-is."""
        if not clip_paths:
            raise StageInputError("No clips to composite")

        if len(clip_paths) == 1:
            shutil.copyfile(clip_paths[0], output_path)
            return output_path

        durations = []
        for path in clip_paths:
            duration = await self.probe_duration(path)
            durations.append(duration if duration > 0 else CLIP_SECONDS)

        inputs = []
        for path in clip_paths:
            inputs += ["-i", str(path)]

        cmd = [
            self.config.ffmpeg_path, "-y",
            *inputs,
            "-filter_complex", build_xfade_filter(durations),
            "-map", "[vout]",
            "-map", "[aout]",
            "-c:v", "libx264",
            "-preset", "fast",
            "-crf", "23",
            "-c:a", "aac",
            "-b:a", "128k",
            str(output_path),
        ]
        await self._run(cmd, self.config.concat_timeout)
        return output_path

    # ── Pass 2: BGM Mix ──────────────────────────────────────────────────

    async def mix_bgm(self, composed_path: Path, bgm_path: Path, output_path: Path) -> Path:
        duration = await self.probe_duration(composed_path)
        cmd = [
            self.config.ffmpeg_path, "-y",
            "-i", str(composed_path),
            "-i", str(bgm_path),
            "-filter_complex", build_bgm_filter(duration),
            "-map", "0:v",
            "-map", "[aout]",
            "-c:v", "copy",
            "-c:a", "aac",
            "-b:a", "192k",
            str(output_path),
        ]
        await self._run(cmd, self.config.mix_timeout)
        return output_path

    # ── Full Render ──────────────────────────────────────────────────────

    async def render(self, clip_urls: list[str], style: str) -> bytes:
        """Download clips, composite, mix BGM if the style has one; returns the MP4 bytes."""
        logger.info(f"Compositing {len(clip_urls)} clips, style={style}")
        workdir = Path(tempfile.mkdtemp(prefix="picmotion_"))

        try:
            clip_paths = []
            for i, url in enumerate(clip_urls):
                data, _ = await download_bytes(url)
                path = workdir / f"clip_{i}.mp4"
                path.write_bytes(data)
                clip_paths.append(path)
                logger.info(f"Downloaded clip {i}")

            composed = await self.compose(clip_paths, workdir / "composed.mp4")
            output = workdir / "final.mp4"

            bgm = resolve_bgm_path(style, self.config.bgm_dir)
            if bgm:
                logger.info(f"Mixing BGM: {bgm}")
                await self.mix_bgm(composed, bgm, output)
            else:
                composed.replace(output)

            return output.read_bytes()
        finally:
            shutil.rmtree(workdir, ignore_errors=True)

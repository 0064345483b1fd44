"""
This module provides utility functions related to FFmpeg.

It builds the exact argument vector used to turn a staged image sequence into a
looping GIF, locates and verifies the encoder executable, renders commands for
logging, and probes a produced GIF for its basic properties.
"""

import os
import shlex
import shutil
import subprocess
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence

import ffmpeg
from loguru import logger

from ..config.common import MODULE_PATH
from ..config.image import GIF_LOOP_COUNT, PAD_COLOR
from ..domain.exceptions import EncoderMissing
from ..domain.models import EncodeParameters


def build_scale_pad_filter(resolution: int) -> str:
    """
    Builds the `-vf` expression that letterboxes every frame onto a square canvas.

    The longer axis is scaled to `resolution` while keeping the aspect ratio (-2
    keeps the other axis even), then the shorter axis is padded so the image sits
    centered on a transparent `resolution` x `resolution` canvas.

    Args:
        resolution: Edge length of the square output in pixels.

    Returns:
        The filter expression, for example for 320:
        "scale=w='if(gt(a,1),320,-2)':h='if(gt(a,1),-2,320)':force_original_aspect_ratio=decrease,"
        "pad=320:320:(ow-iw)/2:(oh-ih)/2:color=0x00000000"
    """
    r = int(resolution)
    return (
        f"scale=w='if(gt(a,1),{r},-2)':h='if(gt(a,1),-2,{r})'"
        f":force_original_aspect_ratio=decrease,"
        f"pad={r}:{r}:(ow-iw)/2:(oh-ih)/2:color={PAD_COLOR}"
    )


def build_gif_command(
    encoder_path: str,
    input_pattern: str,
    parameters: EncodeParameters,
    output_path: Path,
) -> List[str]:
    """
    Builds the argument vector for one GIF encode.

    The result is passed to `subprocess.Popen` as a list, never joined into a shell
    string, so file names and parameter text cannot inject shell syntax.

    Args:
        encoder_path: The FFmpeg executable.
        input_pattern: printf-style pattern of the staged sequence, e.g. ".../img%03d.png".
        parameters: Validated frame rate and resolution.
        output_path: Where the GIF is written. Always overwritten.

    Returns:
        [encoder, -y, -framerate, fps, -i, pattern, -vf, filter, -loop, 0, output]
    """
    return [
        str(encoder_path),
        "-y",
        "-framerate", str(parameters.frame_rate),
        "-i", str(input_pattern),
        "-vf", build_scale_pad_filter(parameters.resolution),
        "-loop", str(GIF_LOOP_COUNT),
        str(output_path),
    ]


def format_cmd_for_display(cmd_list: Sequence[str]) -> str:
    """Quotes and joins a command list the way the current platform's shell would read it."""
    if os.name == "nt":
        return subprocess.list2cmdline(list(cmd_list))
    return shlex.join(str(part) for part in cmd_list)


def _executable_name(base_name: str) -> str:
    return f"{base_name}.exe" if sys.platform == "win32" else base_name


def resolve_encoder_path(explicit_path: Optional[Path] = None, module_dir: Optional[Path] = MODULE_PATH) -> Path:
    """
    Determines which FFmpeg executable to use.

    Lookup order:
    1. `explicit_path` (e.g. from `--ffmpeg`). It must exist; there is no fallback
       when the user named a binary explicitly.
    2. `ffmpeg` inside `module_dir` (the `ffmpeg_dir` of `config.user.yaml`).
    3. `ffmpeg` on the system PATH.

    Raises:
        EncoderMissing: If no executable can be found.
    """
    if explicit_path is not None:
        explicit_path = Path(explicit_path)
        if explicit_path.is_file() and os.access(explicit_path, os.X_OK):
            logger.debug(f"Using FFmpeg from explicit path: '{explicit_path}'")
            return explicit_path
        raise EncoderMissing(f"ffmpeg binary not found or not executable: {explicit_path}")

    ffmpeg_exe_name = _executable_name("ffmpeg")
    if module_dir and Path(module_dir).is_dir():
        configured_ffmpeg_path = Path(module_dir) / ffmpeg_exe_name
        if configured_ffmpeg_path.is_file():
            logger.debug(f"Using FFmpeg from configured path: '{configured_ffmpeg_path}'")
            return configured_ffmpeg_path
        logger.warning(
            f"`ffmpeg_dir` is configured, but '{ffmpeg_exe_name}' was not found there. Falling back to system PATH."
        )

    found = shutil.which("ffmpeg")
    if found:
        return Path(found)
    raise EncoderMissing(
        "ffmpeg binary not found. Install FFmpeg, add it to PATH or set `paths.ffmpeg_dir` in config.user.yaml."
    )


def verify_encoder(encoder_path: Path) -> bool:
    """
    Runs `ffmpeg -version` and logs the first line of its output.

    Returns:
        True if the encoder started and exited with status 0.
    """
    try:
        result = subprocess.run(
            [str(encoder_path), "-version"],
            check=True,
            capture_output=True,
            text=True,
            encoding="utf-8",
            errors="replace",
        )
    except subprocess.CalledProcessError as e:
        logger.error(f"FFmpeg version command failed (return code {e.returncode}):\n{e.stderr}")
        return False
    except OSError as e:
        logger.error(f"FFmpeg could not be started from '{encoder_path}': {e}")
        return False

    version_output_lines = result.stdout.splitlines()
    if version_output_lines:
        logger.info(f"FFmpeg version check successful: {version_output_lines[0]}")
    return True


def probe_command_for(encoder_path: Path) -> str:
    """Returns the ffprobe executable that sits next to `encoder_path`, or plain 'ffprobe'."""
    sibling = Path(encoder_path).with_name(_executable_name("ffprobe"))
    return str(sibling) if sibling.is_file() else "ffprobe"


@dataclass(frozen=True)
class GifInfo:
    """Basic properties of a produced GIF, as reported by ffprobe."""

    width: int
    height: int
    frame_count: Optional[int]
    duration_seconds: Optional[float]


def probe_gif(gif_path: Path, ffprobe_cmd: str = "ffprobe") -> Optional[GifInfo]:
    """
    Probes a GIF with `ffmpeg.probe` and extracts its dimensions and frame count.

    Probing is informational only; any failure is logged and None is returned.
    """
    if not Path(gif_path).is_file():
        logger.warning(f"Probe skipped, file not found: {gif_path}")
        return None
    try:
        probe = ffmpeg.probe(str(gif_path), cmd=ffprobe_cmd, count_frames=None)
    except ffmpeg.Error as e:
        stderr = e.stderr.decode("utf-8", errors="replace") if isinstance(e.stderr, bytes) else e.stderr
        logger.error(f"ffmpeg.probe failed for {gif_path}: {stderr}")
        return None
    except OSError as e:
        logger.warning(f"ffprobe could not be started ('{ffprobe_cmd}'): {e}")
        return None

    video_streams = [s for s in probe.get("streams", []) if s.get("codec_type") == "video"]
    if not video_streams:
        logger.warning(f"No video stream reported for {gif_path}")
        return None
    stream = video_streams[0]

    frames = stream.get("nb_read_frames") or stream.get("nb_frames")
    duration = stream.get("duration") or probe.get("format", {}).get("duration")
    try:
        return GifInfo(
            width=int(stream.get("width", 0)),
            height=int(stream.get("height", 0)),
            frame_count=int(frames) if frames not in (None, "N/A") else None,
            duration_seconds=float(duration) if duration not in (None, "N/A") else None,
        )
    except (TypeError, ValueError) as e:
        logger.warning(f"Unexpected probe values for {gif_path}: {e}")
        return None

"""FFmpeg and ffprobe utilities."""
import asyncio
import logging
import math
import re
import shutil
from pathlib import Path
from typing import List, Optional, Tuple

from promptcut.config import settings
from promptcut.errors import ProbeError, TranscodeError, TranscodeTimeoutError

logger = logging.getLogger(__name__)

# Keep error messages readable; ffmpeg stderr can be megabytes long
STDERR_TAIL_CHARS = 2000

# Characters special to a filter option value, then to the filtergraph
_OPTION_SPECIAL_RE = re.compile(r"([\\':])")
_GRAPH_SPECIAL_RE = re.compile(r"([\\',;\[\]])")


def escape_filter_value(value: str) -> str:
    """
    Escape a filter option value for use inside a ``-vf``/``-filter_complex`` graph.

    ffmpeg unescapes twice: once when splitting the graph into filters and
    once when splitting a filter's arguments into options, so both levels
    are applied here. The result must not be wrapped in quotes.
    """
    escaped = _OPTION_SPECIAL_RE.sub(r"\\\1", value)
    return _GRAPH_SPECIAL_RE.sub(r"\\\1", escaped)


def check_ffmpeg_available() -> bool:
    """Check if ffmpeg is available."""
    return shutil.which(settings.ffmpeg_path) is not None


def check_ffprobe_available() -> bool:
    """Check if ffprobe is available."""
    return shutil.which(settings.ffprobe_path) is not None


def _stderr_tail(stderr: bytes) -> str:
    text = stderr.decode("utf-8", errors="ignore").strip()
    return text[-STDERR_TAIL_CHARS:]


async def run_process(cmd: List[str], timeout: float) -> Tuple[bytes, bytes]:
    """
    Run one external process with a wall-clock bound.

    Args:
        cmd: Full command line
        timeout: Seconds before the process is killed

    Returns:
        (stdout, stderr) bytes

    Raises:
        TranscodeTimeoutError: If the process outlives the timeout
        TranscodeError: If the process cannot start or exits non-zero
    """
    logger.debug(f"Running: {' '.join(cmd)}")
    try:
        proc = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE
        )
    except OSError as e:
        raise TranscodeError(f"Failed to start {cmd[0]}: {e}")

    try:
        stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        proc.kill()
        await proc.wait()
        logger.error(f"{cmd[0]} killed after {timeout}s")
        raise TranscodeTimeoutError(f"{Path(cmd[0]).name} timed out after {timeout:g}s")
    except asyncio.CancelledError:
        if proc.returncode is None:
            proc.kill()
            await proc.wait()
        raise

    if proc.returncode != 0:
        raise TranscodeError(
            f"{Path(cmd[0]).name} exited with code {proc.returncode}: {_stderr_tail(stderr)}"
        )

    return stdout, stderr


async def run_ffmpeg(args: List[str], timeout: Optional[float] = None) -> None:
    """
    Run a single ffmpeg invocation.

    Args:
        args: Arguments after the executable (inputs, filters, output)
        timeout: Seconds before the process is killed (defaults to settings)
    """
    timeout = timeout or settings.stage_timeout_seconds
    cmd = [settings.ffmpeg_path, "-hide_banner", "-y", *args]
    await run_process(cmd, timeout)


async def probe_duration(media_path: str | Path, timeout: Optional[float] = None) -> float:
    """
    Get media duration in seconds using ffprobe.

    Never cached: every call spawns a fresh probe.

    Raises:
        ProbeError: If ffprobe fails or prints something that is not a duration
    """
    media_path = Path(media_path)
    timeout = timeout or settings.probe_timeout_seconds

    cmd = [
        settings.ffprobe_path,
        "-v", "error",
        "-show_entries", "format=duration",
        "-of", "default=noprint_wrappers=1:nokey=1",
        str(media_path)
    ]

    try:
        stdout, _ = await run_process(cmd, timeout)
    except TranscodeError as e:
        raise ProbeError(f"Failed to probe duration of {media_path.name}: {e}")

    raw = stdout.decode("utf-8", errors="ignore").strip()
    try:
        duration = float(raw)
    except ValueError:
        raise ProbeError(f"ffprobe returned no duration for {media_path.name}: {raw!r}")

    if not math.isfinite(duration) or duration <= 0:
        raise ProbeError(f"Invalid duration for {media_path.name}: {raw}")

    return duration


async def has_audio_stream(media_path: str | Path, timeout: Optional[float] = None) -> bool:
    """
    Check whether the media has at least one audio stream.

    Raises:
        ProbeError: If ffprobe fails
    """
    media_path = Path(media_path)
    timeout = timeout or settings.probe_timeout_seconds

    cmd = [
        settings.ffprobe_path,
        "-v", "error",
        "-select_streams", "a",
        "-show_entries", "stream=index",
        "-of", "csv=p=0",
        str(media_path)
    ]

    try:
        stdout, _ = await run_process(cmd, timeout)
    except TranscodeError as e:
        raise ProbeError(f"Failed to read streams of {media_path.name}: {e}")

    return bool(stdout.decode("utf-8", errors="ignore").strip())
